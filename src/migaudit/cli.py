"""migaudit CLI entry point."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from migaudit import __version__


@click.group()
@click.version_option(version=__version__, prog_name="migaudit")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Minimal output (errors only).")
@click.pass_context
def main(ctx: click.Context, *, verbose: bool, quiet: bool) -> None:
    """migaudit - pattern and boundary audits for codebases under migration."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet

    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


@main.command()
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["rich", "json", "porcelain"]),
    default=None,
    help="Output format (default: rich if TTY, porcelain if piped).",
)
@click.option(
    "--strict",
    is_flag=True,
    default=False,
    help="Exit 1 on any finding, not only on severities listed in report.fail_on.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Config file (default: <project>/migaudit.yml).",
)
@click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Project root (default: current directory).",
)
def audit(
    *,
    fmt: str | None,
    strict: bool,
    config_path: Path | None,
    project: Path | None,
) -> None:
    """Run pattern and boundary rules against the project.

    Exit codes: 0 = no failing findings, 1 = a finding whose severity is in
    report.fail_on (any finding with --strict), 2 = configuration or I/O error.
    """
    from migaudit.engine.auditor import AuditError
    from migaudit.engine.auditor import audit as run_audit
    from migaudit.engine.auditor import format_json as _format_json
    from migaudit.engine.auditor import format_porcelain as _format_porcelain

    project_root = project or Path.cwd()

    # Resolve output format: explicit flag > TTY detection.
    if fmt is None:
        fmt = "rich" if sys.stdout.isatty() else "porcelain"

    try:
        result = run_audit(project_root, config_path=config_path)
    except AuditError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    if fmt == "rich":
        from rich.console import Console

        from migaudit.engine.auditor import render_rich

        render_rich(result, Console())
    else:
        formatters = {
            "json": _format_json,
            "porcelain": _format_porcelain,
        }
        output = formatters[fmt](result)
        if output:
            click.echo(output)

    if result.failed or (strict and result.results):
        sys.exit(1)


@main.command()
@click.option("--force", "-f", is_flag=True, default=False, help="Overwrite an existing config.")
@click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Project root (default: current directory).",
)
def init(*, force: bool, project: Path | None) -> None:
    """Write a starter migaudit.yml into the project."""
    from migaudit.config.loader import DEFAULT_CONFIG_NAME
    from migaudit.engine.auditor import STARTER_CONFIG

    project_root = project or Path.cwd()
    config_path = project_root / DEFAULT_CONFIG_NAME

    if config_path.exists() and not force:
        click.echo(f"Error: config file already exists: {config_path}", err=True)
        click.echo("Use --force to overwrite.", err=True)
        sys.exit(1)

    config_path.write_text(STARTER_CONFIG, encoding="utf-8")
    click.echo(f"Created {config_path}")
    click.echo("")
    click.echo("Next steps:")
    click.echo("  1. Adjust paths, patterns and boundaries for your project")
    click.echo("  2. Run `migaudit audit`")
