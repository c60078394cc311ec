"""Audit orchestrator: load config, run rules, apply the report policy, format results."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from migaudit import __version__
from migaudit.config.loader import DEFAULT_CONFIG_NAME, ReportConfig, load_config
from migaudit.engine.rule_engine import RuleResult, rules_from_config
from migaudit.engine.runner import RuleRunError, run_rules
from migaudit.infrastructure.file_discovery import FileDiscovery

if TYPE_CHECKING:
    from pathlib import Path

    from rich.console import Console

JSON_OUTPUT_VERSION = 1

STARTER_CONFIG = """\
version: 1

paths:
  root: "."
  include:
    - "src/**/*.ts"
    - "src/**/*.tsx"
  exclude:
    - "node_modules/**"
    - "dist/**"
    - ".next/**"
    - "coverage/**"
    - ".git/**"

# Regex rules evaluated against file contents.
patterns:
  - id: effect-promise-usage
    pattern: "new Promise"
    files: "src/**/*.ts"
    message: "Consider using Effect instead of Promise"
    severity: warning
    tags: [migration, effect]

# Import restrictions between parts of the tree.
boundaries:
  - id: no-direct-promises
    from: "src/**/*.ts"
    disallow: ["promise"]
    message: "Avoid mixing Promises with Effect code"
    severity: warning

report:
  fail_on: [error]
  warn_on: [warning]

concurrency: 4
"""


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class AuditError(Exception):
    """Raised when an audit cannot run: missing or invalid config, unreadable files."""


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass
class AuditResult:
    """Result of an audit run."""

    results: list[RuleResult] = field(default_factory=list)
    rules_evaluated: int = 0
    files_scanned: int = 0
    elapsed_ms: float = 0.0
    report: ReportConfig = field(default_factory=ReportConfig)

    @property
    def errors(self) -> list[RuleResult]:
        return [r for r in self.results if r.severity == "error"]

    @property
    def warnings(self) -> list[RuleResult]:
        return [r for r in self.results if r.severity == "warning"]

    @property
    def failed(self) -> bool:
        """True when any result has a severity listed in ``report.fail_on``."""
        return any(r.severity in self.report.fail_on for r in self.results)

    @property
    def warned(self) -> bool:
        """True when any result has a severity listed in ``report.warn_on``."""
        return any(r.severity in self.report.warn_on for r in self.results)


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def audit(project_root: Path, *, config_path: Path | None = None) -> AuditResult:
    """Load the config, run every rule, and return the findings.

    Parameters
    ----------
    project_root:
        Root of the project.  ``paths.root`` in the config is resolved
        against it.
    config_path:
        Optional explicit path to the config file.  When *None* the default
        location ``<project_root>/migaudit.yml`` is used.

    Returns
    -------
    AuditResult
        Findings, counts, timing, and the report policy from the config.

    Raises
    ------
    AuditError
        When the config is missing or invalid, or a file cannot be read.
    """
    start = time.monotonic()

    if config_path is None:
        config_path = project_root / DEFAULT_CONFIG_NAME
    if not config_path.is_file():
        msg = f"Config file not found: {config_path}. Run `migaudit init` first."
        raise AuditError(msg)

    try:
        config = load_config(config_path)
        rules = rules_from_config(config)
    except ValueError as exc:
        msg = f"Invalid configuration: {exc}"
        raise AuditError(msg) from exc
    except OSError as exc:
        msg = f"Cannot read {config_path}: {exc}"
        raise AuditError(msg) from exc

    source = FileDiscovery(project_root / config.paths.root)
    files: list[str] = []
    try:
        results = run_rules(rules, config, source=source, on_files=files.extend)
    except RuleRunError as exc:
        raise AuditError(str(exc)) from exc

    elapsed = (time.monotonic() - start) * 1000
    return AuditResult(
        results=results,
        rules_evaluated=len(rules),
        files_scanned=len(files),
        elapsed_ms=elapsed,
        report=config.report,
    )


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


def _group_by_file(
    results: list[RuleResult],
) -> tuple[dict[str, list[RuleResult]], list[RuleResult]]:
    """Split results into per-file groups (first-seen order) and project-level ones."""
    by_file: dict[str, list[RuleResult]] = {}
    project: list[RuleResult] = []
    for result in results:
        if result.file is None:
            project.append(result)
        else:
            by_file.setdefault(result.file, []).append(result)
    return by_file, project


def format_json(result: AuditResult) -> str:
    """Format an AuditResult as structured JSON.

    Findings are grouped under ``findings.by_file``; results without a file
    go to ``findings.project``.  ``summary.total_files`` counts files with
    at least one finding.
    """
    by_file, project = _group_by_file(result.results)

    output: dict[str, object] = {
        "version": JSON_OUTPUT_VERSION,
        "tool_version": __version__,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "findings": {
            "by_file": {
                path: [r.to_dict() for r in file_results]
                for path, file_results in by_file.items()
            },
            "project": [r.to_dict() for r in project],
        },
        "summary": {
            "errors": len(result.errors),
            "warnings": len(result.warnings),
            "total_files": len(by_file),
            "total_findings": len(result.results),
            "rules_evaluated": result.rules_evaluated,
            "files_scanned": result.files_scanned,
            "elapsed_ms": result.elapsed_ms,
        },
    }

    return json.dumps(output, indent=2)


def format_porcelain(result: AuditResult) -> str:
    """Format an AuditResult as one line per finding.

    Format: ``id:severity:file:line:column``

    Missing file/line/column are represented as empty strings.
    Returns empty string when there are no findings.
    """
    if not result.results:
        return ""

    lines: list[str] = []
    for r in result.results:
        file_path = r.file if r.file is not None else ""
        line = str(r.line) if r.line is not None else ""
        column = str(r.column) if r.column is not None else ""
        lines.append(f"{r.id}:{r.severity}:{file_path}:{line}:{column}")

    return "\n".join(lines)


def render_rich(result: AuditResult, console: Console) -> None:
    """Render an AuditResult with Rich: a table per file, then a summary panel."""
    from rich.panel import Panel
    from rich.table import Table

    icons = {"error": "[red]✗[/]", "warning": "[yellow]![/]"}

    console.print(
        Panel(
            f"Rules: {result.rules_evaluated} evaluated   Files: {result.files_scanned} scanned",
            title=f"migaudit v{__version__}",
            border_style="blue",
        )
    )

    by_file, project = _group_by_file(result.results)

    if project:
        console.print("[bold]Project[/]")
        for r in project:
            console.print(f"  {icons.get(r.severity, '?')} [dim]\\[{r.id}][/] {r.message}")
        console.print()

    for path in sorted(by_file):
        table = Table(
            title=path, title_justify="left", show_header=False, box=None, padding=(0, 1)
        )
        table.add_column("severity")
        table.add_column("location", style="dim", justify="right")
        table.add_column("rule", style="cyan")
        table.add_column("message")
        for r in by_file[path]:
            location = f"{r.line}:{r.column}" if r.line is not None else ""
            message = r.message if r.docs_url is None else f"{r.message}\n[blue]{r.docs_url}[/]"
            table.add_row(icons.get(r.severity, "?"), location, r.id, message)
        console.print(table)
        console.print()

    elapsed_s = result.elapsed_ms / 1000
    if result.results:
        summary = (
            f"Errors: [bold]{len(result.errors)}[/]   "
            f"Warnings: [bold]{len(result.warnings)}[/]   "
            f"Total: [bold]{len(result.results)}[/] ({elapsed_s:.1f}s)"
        )
        border = "red" if result.failed else "yellow"
    else:
        summary = f"[green]✓[/] No issues found ({elapsed_s:.1f}s)"
        border = "green"
    console.print(Panel(summary, title="Summary", border_style=border))
