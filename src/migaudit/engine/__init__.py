"""Engine domain: import index, rule evaluators, rule runner, and audit orchestrator."""

from migaudit.engine.auditor import (
    AuditError,
    AuditResult,
    audit,
    format_json,
    format_porcelain,
    render_rich,
)
from migaudit.engine.import_index import (
    ImportIndex,
    ImportIndexCache,
    ImportInfo,
    build_import_index,
    extract_imports,
    specifier_matches,
)
from migaudit.engine.rule_engine import (
    BoundaryRule,
    PatternRule,
    Rule,
    RuleContext,
    RuleResult,
    evaluate_boundary_rule,
    evaluate_pattern_rule,
    evaluate_rule,
    rules_from_config,
)
from migaudit.engine.runner import RuleRunError, run_rules

__all__ = [
    "AuditError",
    "AuditResult",
    "BoundaryRule",
    "ImportIndex",
    "ImportIndexCache",
    "ImportInfo",
    "PatternRule",
    "Rule",
    "RuleContext",
    "RuleResult",
    "RuleRunError",
    "audit",
    "build_import_index",
    "evaluate_boundary_rule",
    "evaluate_pattern_rule",
    "evaluate_rule",
    "extract_imports",
    "format_json",
    "format_porcelain",
    "render_rich",
    "rules_from_config",
    "run_rules",
    "specifier_matches",
]
