"""Configuration domain: the ``migaudit.yml`` schema and its loader."""

from migaudit.config.loader import (
    DEFAULT_CONCURRENCY,
    DEFAULT_CONFIG_NAME,
    MAX_CONCURRENCY,
    BoundaryDeclaration,
    Config,
    PathsConfig,
    PatternDeclaration,
    ReportConfig,
    compile_pattern,
    load_config,
    parse_config,
    validate_concurrency,
)

__all__ = [
    "DEFAULT_CONCURRENCY",
    "DEFAULT_CONFIG_NAME",
    "MAX_CONCURRENCY",
    "BoundaryDeclaration",
    "Config",
    "PathsConfig",
    "PatternDeclaration",
    "ReportConfig",
    "compile_pattern",
    "load_config",
    "parse_config",
    "validate_concurrency",
]
