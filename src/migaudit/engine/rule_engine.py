"""Rule engine: rule and result types, rule construction, and per-file evaluators."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from migaudit.config.loader import compile_pattern
from migaudit.engine.import_index import specifier_matches
from migaudit.engine.locations import LineIndex
from migaudit.utils.glob import match_any, match_glob

if TYPE_CHECKING:
    import re

    from migaudit.config.loader import BoundaryDeclaration, Config, PatternDeclaration
    from migaudit.engine.import_index import ImportIndex

# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PatternRule:
    """Flag every regex match in files selected by ``files`` globs."""

    id: str
    files: tuple[str, ...]
    pattern: re.Pattern[str]
    message: str
    severity: str = "warning"  # "error" | "warning"
    negative_pattern: re.Pattern[str] | None = None  # suppresses matches on lines it matches
    docs_url: str | None = None
    tags: tuple[str, ...] = ()

    @property
    def kind(self) -> str:
        return "pattern"

    def applies_to(self, file_path: str) -> bool:
        """Return True if *file_path* matches one of the rule's ``files`` globs."""
        return match_any(self.files, file_path)


@dataclass(frozen=True)
class BoundaryRule:
    """Forbid imports of specifiers covered by ``disallow`` from files matching ``from_glob``.

    Operates on raw specifier strings; nothing is resolved.  ``disallow``
    entries are exact names or globs, and also cover ``/``-separated
    subpaths (see :func:`specifier_matches`).
    """

    id: str
    from_glob: str
    disallow: tuple[str, ...]
    message: str
    severity: str = "error"  # "error" | "warning"
    docs_url: str | None = None
    tags: tuple[str, ...] = ()

    @property
    def kind(self) -> str:
        return "boundary"

    def applies_to(self, file_path: str) -> bool:
        """Return True if *file_path* is inside the rule's ``from`` scope."""
        return match_glob(self.from_glob, file_path)


Rule = PatternRule | BoundaryRule


@dataclass(frozen=True)
class RuleResult:
    """A single rule violation."""

    id: str  # id of the rule that produced it
    rule_kind: str  # "pattern" | "boundary"
    severity: str  # "error" | "warning"
    message: str
    file: str | None = None  # None for project-level findings
    line: int | None = None  # 1-based
    column: int | None = None  # 1-based
    end_line: int | None = None
    end_column: int | None = None
    docs_url: str | None = None
    tags: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serialisable dict; unset optional fields are omitted."""
        data: dict[str, Any] = {
            "id": self.id,
            "rule_kind": self.rule_kind,
            "severity": self.severity,
            "message": self.message,
        }
        optional: dict[str, Any] = {
            "file": self.file,
            "line": self.line,
            "column": self.column,
            "end_line": self.end_line,
            "end_column": self.end_column,
            "docs_url": self.docs_url,
        }
        data.update({key: value for key, value in optional.items() if value is not None})
        if self.tags:
            data["tags"] = list(self.tags)
        return data


@dataclass(frozen=True)
class RuleContext:
    """Run-wide inputs shared read-only by every evaluation."""

    root: str
    extensions: dict[str, Any]
    index: ImportIndex | None = None


# ---------------------------------------------------------------------------
# Rule construction
# ---------------------------------------------------------------------------


def make_pattern_rule(decl: PatternDeclaration) -> PatternRule:
    """Compile a pattern declaration into an executable rule.

    Raises ``ValueError`` when either regex does not compile.
    """
    try:
        pattern = compile_pattern(decl.pattern, decl.flags)
        negative = (
            compile_pattern(decl.negative_pattern, decl.flags)
            if decl.negative_pattern is not None
            else None
        )
    except ValueError as exc:
        msg = f"Pattern '{decl.id}': {exc}"
        raise ValueError(msg) from exc

    return PatternRule(
        id=decl.id,
        files=decl.files,
        pattern=pattern,
        message=decl.message,
        severity=decl.severity,
        negative_pattern=negative,
        docs_url=decl.docs_url,
        tags=decl.tags,
    )


def make_boundary_rule(decl: BoundaryDeclaration) -> BoundaryRule:
    """Build a boundary rule carrying its own scope and disallow list."""
    return BoundaryRule(
        id=decl.id,
        from_glob=decl.from_glob,
        disallow=decl.disallow,
        message=decl.message,
        severity=decl.severity,
        docs_url=decl.docs_url,
        tags=decl.tags,
    )


def rules_from_config(config: Config) -> list[Rule]:
    """Build executable rules from *config*: pattern rules first, then boundary rules."""
    rules: list[Rule] = [make_pattern_rule(decl) for decl in config.patterns]
    rules.extend(make_boundary_rule(decl) for decl in config.boundaries)
    return rules


# ---------------------------------------------------------------------------
# Pattern rule evaluation
# ---------------------------------------------------------------------------


def evaluate_pattern_rule(rule: PatternRule, file_path: str, content: str) -> list[RuleResult]:
    """Return one violation per match of ``rule.pattern`` in *content*.

    Line and column are 1-based and point at the start of the match.  A
    match is dropped when ``rule.negative_pattern`` matches anywhere on the
    line containing it.  Zero-width matches are reported once per position;
    the scan always moves forward.
    """
    lines: LineIndex | None = None
    suppressed: dict[int, bool] = {}
    violations: list[RuleResult] = []

    for match in rule.pattern.finditer(content):
        if lines is None:
            lines = LineIndex(content)
        line, column = lines.locate(match.start())

        if rule.negative_pattern is not None:
            if line not in suppressed:
                suppressed[line] = rule.negative_pattern.search(lines.line_text(line)) is not None
            if suppressed[line]:
                continue

        end_line, end_column = lines.locate(match.end())
        violations.append(
            RuleResult(
                id=rule.id,
                rule_kind="pattern",
                severity=rule.severity,
                message=rule.message,
                file=file_path,
                line=line,
                column=column,
                end_line=end_line,
                end_column=end_column,
                docs_url=rule.docs_url,
                tags=rule.tags,
            )
        )

    return violations


# ---------------------------------------------------------------------------
# Boundary rule evaluation
# ---------------------------------------------------------------------------


def evaluate_boundary_rule(
    rule: BoundaryRule, file_path: str, index: ImportIndex
) -> list[RuleResult]:
    """Return one violation per import of *file_path* covered by ``rule.disallow``.

    Each import is reported at most once, for the first disallow pattern it
    matches, at the line and column of its specifier.
    """
    records = index.import_records(file_path)
    if not records:
        return []

    violations: list[RuleResult] = []
    for record in records:
        if not any(specifier_matches(record.specifier, pattern) for pattern in rule.disallow):
            continue
        violations.append(
            RuleResult(
                id=rule.id,
                rule_kind="boundary",
                severity=rule.severity,
                message=f'{rule.message}: Found import of "{record.specifier}"',
                file=file_path,
                line=record.line_number,
                column=record.column,
                docs_url=rule.docs_url,
                tags=rule.tags,
            )
        )

    return violations


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


def evaluate_rule(
    rule: Rule, file_path: str, content: str | None, ctx: RuleContext
) -> list[RuleResult]:
    """Evaluate one rule against one file.

    *content* is required for pattern rules; boundary rules need
    ``ctx.index``.  Anything that is not a known rule type is a ``TypeError``.
    """
    if isinstance(rule, PatternRule):
        if content is None:
            msg = f"Pattern rule '{rule.id}' needs the content of '{file_path}'"
            raise ValueError(msg)
        return evaluate_pattern_rule(rule, file_path, content)
    if isinstance(rule, BoundaryRule):
        if ctx.index is None:
            msg = f"Boundary rule '{rule.id}' evaluated before the import index was built"
            raise ValueError(msg)
        return evaluate_boundary_rule(rule, file_path, ctx.index)
    msg = f"Unsupported rule type: {type(rule).__name__}"
    raise TypeError(msg)
