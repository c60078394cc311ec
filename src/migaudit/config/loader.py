"""Configuration: parse and validate ``migaudit.yml`` into frozen dataclasses."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import yaml

from migaudit.utils.glob import validate_glob

if TYPE_CHECKING:
    from pathlib import Path

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_CONFIG_NAME = "migaudit.yml"
SUPPORTED_CONFIG_VERSIONS: frozenset[int] = frozenset({1})
VALID_SEVERITIES: frozenset[str] = frozenset({"error", "warning"})

DEFAULT_CONCURRENCY = 4
MAX_CONCURRENCY = 16

DEFAULT_INCLUDE: tuple[str, ...] = ("**/*.ts", "**/*.tsx", "**/*.js", "**/*.jsx")
DEFAULT_EXCLUDE: tuple[str, ...] = (
    "node_modules/**",
    "dist/**",
    ".next/**",
    "coverage/**",
    ".git/**",
    "build/**",
    "*.min.js",
)
DEFAULT_PATTERN_FLAGS = "gm"

# JavaScript-style regex flags accepted in pattern declarations.  ``g`` and
# ``u`` have no Python counterpart: every match is reported and ``str``
# patterns are always Unicode-aware.
_REGEX_FLAGS: dict[str, re.RegexFlag | int] = {
    "g": 0,
    "m": re.MULTILINE,
    "i": re.IGNORECASE,
    "s": re.DOTALL,
    "u": 0,
}

# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PathsConfig:
    """Which files are audited, relative to ``root``."""

    root: str = "."
    include: tuple[str, ...] = DEFAULT_INCLUDE
    exclude: tuple[str, ...] = DEFAULT_EXCLUDE


@dataclass(frozen=True)
class ReportConfig:
    """Severities that fail the audit or only warn about it."""

    fail_on: tuple[str, ...] = ("error",)
    warn_on: tuple[str, ...] = ()


@dataclass(frozen=True)
class PatternDeclaration:
    """A pattern rule as written in the config file."""

    id: str
    pattern: str
    files: tuple[str, ...]
    message: str
    severity: str = "warning"
    flags: str = DEFAULT_PATTERN_FLAGS
    negative_pattern: str | None = None
    docs_url: str | None = None
    tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class BoundaryDeclaration:
    """A boundary rule as written in the config file."""

    id: str
    from_glob: str
    disallow: tuple[str, ...]
    message: str
    severity: str = "error"
    docs_url: str | None = None
    tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class Config:
    """Validated audit configuration."""

    version: int = 1
    paths: PathsConfig = field(default_factory=PathsConfig)
    patterns: tuple[PatternDeclaration, ...] = ()
    boundaries: tuple[BoundaryDeclaration, ...] = ()
    report: ReportConfig = field(default_factory=ReportConfig)
    concurrency: int = DEFAULT_CONCURRENCY
    extensions: dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Shared validators
# ---------------------------------------------------------------------------


def compile_pattern(source: str, flags: str = DEFAULT_PATTERN_FLAGS) -> re.Pattern[str]:
    """Compile a regex with JavaScript-style *flags*, raising ``ValueError`` on bad input."""
    re_flags = 0
    for flag in flags:
        if flag not in _REGEX_FLAGS:
            msg = f"unsupported regex flag '{flag}', must be one of {sorted(_REGEX_FLAGS)}"
            raise ValueError(msg)
        re_flags |= _REGEX_FLAGS[flag]
    try:
        return re.compile(source, re_flags)
    except re.error as exc:
        msg = f"invalid regular expression {source!r}: {exc}"
        raise ValueError(msg) from exc


def validate_concurrency(value: object) -> int:
    """Return *value* if it is an integer in ``1..MAX_CONCURRENCY``."""
    if isinstance(value, bool) or not isinstance(value, int):
        msg = f"concurrency must be an integer, got {value!r}"
        raise ValueError(msg)
    if not 1 <= value <= MAX_CONCURRENCY:
        msg = f"concurrency must be between 1 and {MAX_CONCURRENCY}, got {value}"
        raise ValueError(msg)
    return value


def _require_str(data: dict[str, object], key: str, context: str) -> str:
    value = data.get(key)
    if value is None or not isinstance(value, str) or not value.strip():
        msg = f"{context}: '{key}' must be a non-empty string"
        raise ValueError(msg)
    return value


def _optional_str(data: dict[str, object], key: str, context: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        msg = f"{context}: '{key}' must be a string"
        raise ValueError(msg)
    return value


def _str_tuple(value: object, context: str, *, allow_single: bool = True) -> tuple[str, ...]:
    """Normalize a string or a list of strings to a tuple."""
    if isinstance(value, str) and allow_single:
        return (value,)
    if not isinstance(value, list):
        msg = f"{context} must be a list of strings"
        raise ValueError(msg)
    items: list[str] = []
    for idx, item in enumerate(value):
        if not isinstance(item, str) or not item.strip():
            msg = f"{context}[{idx}] must be a non-empty string"
            raise ValueError(msg)
        items.append(item)
    return tuple(items)


def _globs(value: object, context: str) -> tuple[str, ...]:
    globs = _str_tuple(value, context)
    for pattern in globs:
        try:
            validate_glob(pattern)
        except ValueError as exc:
            msg = f"{context}: {exc}"
            raise ValueError(msg) from exc
    return globs


def _severity(data: dict[str, object], default: str, context: str) -> str:
    severity = str(data.get("severity", default))
    if severity not in VALID_SEVERITIES:
        msg = (
            f"{context}: invalid severity '{severity}', "
            f"must be one of {sorted(VALID_SEVERITIES)}"
        )
        raise ValueError(msg)
    return severity


def _tags(data: dict[str, object], context: str) -> tuple[str, ...]:
    raw = data.get("tags")
    if raw is None:
        return ()
    # Duplicates collapse, first occurrence keeps its position.
    return tuple(dict.fromkeys(_str_tuple(raw, f"{context}: 'tags'", allow_single=False)))


# ---------------------------------------------------------------------------
# Section parsers
# ---------------------------------------------------------------------------


def _parse_paths(data: object) -> PathsConfig:
    if data is None:
        return PathsConfig()
    if not isinstance(data, dict):
        msg = "config: 'paths' must be a mapping"
        raise ValueError(msg)

    root = _optional_str(data, "root", "config paths") or "."
    include = DEFAULT_INCLUDE
    if data.get("include") is not None:
        include = _globs(data["include"], "config paths.include")
    exclude = DEFAULT_EXCLUDE
    if data.get("exclude") is not None:
        exclude = _globs(data["exclude"], "config paths.exclude")

    return PathsConfig(root=root, include=include, exclude=exclude)


def _parse_pattern(idx: int, data: object) -> PatternDeclaration:
    if not isinstance(data, dict):
        msg = f"config: pattern at index {idx} must be a mapping"
        raise ValueError(msg)

    rule_id = data.get("id")
    if rule_id is None or not isinstance(rule_id, str) or not rule_id.strip():
        msg = f"config: pattern at index {idx} missing required 'id' field"
        raise ValueError(msg)
    context = f"Pattern '{rule_id}'"

    raw_pattern = data.get("pattern")
    flags = DEFAULT_PATTERN_FLAGS
    if isinstance(raw_pattern, dict):
        source = _require_str(raw_pattern, "source", f"{context} pattern")
        flags = _optional_str(raw_pattern, "flags", f"{context} pattern") or flags
    elif isinstance(raw_pattern, str) and raw_pattern:
        source = raw_pattern
    else:
        msg = f"{context}: 'pattern' must be a string or a mapping with 'source'"
        raise ValueError(msg)

    negative = _optional_str(data, "negative_pattern", context)
    try:
        compile_pattern(source, flags)
        if negative is not None:
            compile_pattern(negative, flags)
    except ValueError as exc:
        msg = f"{context}: {exc}"
        raise ValueError(msg) from exc

    if data.get("files") is None:
        msg = f"{context}: 'files' is required"
        raise ValueError(msg)

    return PatternDeclaration(
        id=rule_id,
        pattern=source,
        files=_globs(data["files"], f"{context}: 'files'"),
        message=_require_str(data, "message", context),
        severity=_severity(data, "warning", context),
        flags=flags,
        negative_pattern=negative,
        docs_url=_optional_str(data, "docs_url", context),
        tags=_tags(data, context),
    )


def _parse_boundary(idx: int, data: object) -> BoundaryDeclaration:
    if not isinstance(data, dict):
        msg = f"config: boundary at index {idx} must be a mapping"
        raise ValueError(msg)

    rule_id = data.get("id")
    if rule_id is None or not isinstance(rule_id, str) or not rule_id.strip():
        msg = f"config: boundary at index {idx} missing required 'id' field"
        raise ValueError(msg)
    context = f"Boundary '{rule_id}'"

    from_glob = _require_str(data, "from", context)
    try:
        validate_glob(from_glob)
    except ValueError as exc:
        msg = f"{context}: {exc}"
        raise ValueError(msg) from exc

    if data.get("disallow") is None:
        msg = f"{context}: 'disallow' is required"
        raise ValueError(msg)
    disallow = _globs(data["disallow"], f"{context}: 'disallow'")
    if not disallow:
        msg = f"{context}: 'disallow' must not be empty"
        raise ValueError(msg)

    return BoundaryDeclaration(
        id=rule_id,
        from_glob=from_glob,
        disallow=tuple(dict.fromkeys(disallow)),
        message=_require_str(data, "message", context),
        severity=_severity(data, "error", context),
        docs_url=_optional_str(data, "docs_url", context),
        tags=_tags(data, context),
    )


def _parse_report(data: object) -> ReportConfig:
    if data is None:
        return ReportConfig()
    if not isinstance(data, dict):
        msg = "config: 'report' must be a mapping"
        raise ValueError(msg)

    def _severities(key: str, default: tuple[str, ...]) -> tuple[str, ...]:
        if data.get(key) is None:
            return default
        values = _str_tuple(data[key], f"config report.{key}", allow_single=False)
        for value in values:
            if value not in VALID_SEVERITIES:
                msg = (
                    f"config report.{key}: invalid severity '{value}', "
                    f"must be one of {sorted(VALID_SEVERITIES)}"
                )
                raise ValueError(msg)
        return tuple(dict.fromkeys(values))

    defaults = ReportConfig()
    return ReportConfig(
        fail_on=_severities("fail_on", defaults.fail_on),
        warn_on=_severities("warn_on", defaults.warn_on),
    )


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def parse_config(data: object) -> Config:
    """Validate an already-decoded YAML document and build a :class:`Config`.

    Raises ``ValueError`` with the offending section in the message.
    """
    if not isinstance(data, dict):
        msg = "config must be a YAML mapping"
        raise ValueError(msg)

    version = data.get("version")
    if version is None:
        msg = "config: missing required 'version' field"
        raise ValueError(msg)
    if isinstance(version, bool) or not isinstance(version, int):
        msg = f"config: 'version' must be an integer, got {version!r}"
        raise ValueError(msg)
    if version not in SUPPORTED_CONFIG_VERSIONS:
        expected = sorted(SUPPORTED_CONFIG_VERSIONS)
        msg = f"config: unsupported version {version}, expected one of {expected}"
        raise ValueError(msg)

    patterns_data = data.get("patterns") or []
    if not isinstance(patterns_data, list):
        msg = "config: 'patterns' must be a list"
        raise ValueError(msg)
    boundaries_data = data.get("boundaries") or []
    if not isinstance(boundaries_data, list):
        msg = "config: 'boundaries' must be a list"
        raise ValueError(msg)

    patterns = tuple(_parse_pattern(idx, item) for idx, item in enumerate(patterns_data))
    boundaries = tuple(_parse_boundary(idx, item) for idx, item in enumerate(boundaries_data))

    seen_ids: set[str] = set()
    for decl in (*patterns, *boundaries):
        if decl.id in seen_ids:
            msg = f"config: duplicate rule id '{decl.id}'"
            raise ValueError(msg)
        seen_ids.add(decl.id)

    concurrency_raw = data.get("concurrency", DEFAULT_CONCURRENCY)
    try:
        concurrency = validate_concurrency(concurrency_raw)
    except ValueError as exc:
        msg = f"config: {exc}"
        raise ValueError(msg) from exc

    extensions = data.get("extensions") or {}
    if not isinstance(extensions, dict):
        msg = "config: 'extensions' must be a mapping"
        raise ValueError(msg)

    return Config(
        version=int(version),
        paths=_parse_paths(data.get("paths")),
        patterns=patterns,
        boundaries=boundaries,
        report=_parse_report(data.get("report")),
        concurrency=concurrency,
        extensions={str(key): value for key, value in extensions.items()},
    )


def load_config(config_path: Path) -> Config:
    """Read ``migaudit.yml`` from *config_path* and return the validated config.

    Raises ``ValueError`` on schema errors and ``OSError`` when the file
    cannot be read.
    """
    with config_path.open("r", encoding="utf-8") as fh:
        try:
            data = yaml.safe_load(fh)
        except yaml.YAMLError as exc:
            msg = f"{config_path.name}: invalid YAML: {exc}"
            raise ValueError(msg) from exc

    return parse_config(data)
