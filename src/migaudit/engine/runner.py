"""Rule runner: build the import index once, then evaluate every file on a worker pool."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from migaudit.config.loader import validate_concurrency
from migaudit.engine.import_index import ImportIndexCache
from migaudit.engine.pool import bounded_map
from migaudit.engine.rule_engine import (
    BoundaryRule,
    PatternRule,
    RuleContext,
    evaluate_rule,
)
from migaudit.infrastructure.file_discovery import FileDiscovery, FileReadError
from migaudit.utils.glob import validate_glob

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from migaudit.config.loader import Config
    from migaudit.engine.rule_engine import Rule, RuleResult
    from migaudit.infrastructure.file_discovery import FileSource

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class RuleRunError(Exception):
    """Raised when a run aborts; ``stage`` names the phase that failed.

    Stages: ``configuration``, ``index build``, ``discovery``, ``evaluation``.
    The underlying error is chained as ``__cause__``.
    """

    def __init__(self, stage: str, detail: str) -> None:
        self.stage = stage
        self.detail = detail
        super().__init__(f"{stage} failed: {detail}")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _partition(rules: Sequence[Rule]) -> tuple[list[PatternRule], list[BoundaryRule]]:
    """Split *rules* by type; an unknown rule type is a ``TypeError``."""
    pattern_rules: list[PatternRule] = []
    boundary_rules: list[BoundaryRule] = []
    for rule in rules:
        if isinstance(rule, PatternRule):
            pattern_rules.append(rule)
        elif isinstance(rule, BoundaryRule):
            boundary_rules.append(rule)
        else:
            msg = f"Unsupported rule type: {type(rule).__name__}"
            raise TypeError(msg)
    return pattern_rules, boundary_rules


def _validate(rules: Sequence[Rule], config: Config) -> None:
    """Reject bad concurrency and malformed globs before touching the filesystem."""
    try:
        validate_concurrency(config.concurrency)
        for pattern in (*config.paths.include, *config.paths.exclude):
            validate_glob(pattern)
        for rule in rules:
            if isinstance(rule, PatternRule):
                for pattern in rule.files:
                    validate_glob(pattern)
            elif isinstance(rule, BoundaryRule):
                validate_glob(rule.from_glob)
                for pattern in rule.disallow:
                    validate_glob(pattern)
    except ValueError as exc:
        raise RuleRunError("configuration", str(exc)) from exc


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def run_rules(
    rules: Sequence[Rule],
    config: Config,
    *,
    source: FileSource | None = None,
    on_files: Callable[[list[str]], None] | None = None,
) -> list[RuleResult]:
    """Run pattern and boundary rules over the configured file set.

    Parameters
    ----------
    rules:
        Executable rules, typically from :func:`rules_from_config`.
    config:
        Validated configuration; supplies the include/exclude globs, the
        worker pool width, and the extensions passed to the rule context.
    source:
        File discovery collaborator.  Defaults to a :class:`FileDiscovery`
        rooted at ``config.paths.root``.
    on_files:
        Called once with the discovered file list before evaluation starts.

    Returns
    -------
    list[RuleResult]
        Every violation, grouped by file in discovery order; within a file,
        in rule order and then in the order each evaluator found them.

    Raises
    ------
    RuleRunError
        On invalid configuration or when any file cannot be listed or read.
        Nothing is returned from a failed run.
    """
    _validate(rules, config)
    pattern_rules, boundary_rules = _partition(rules)
    logger.info(
        "Running %d rules (%d pattern, %d boundary)",
        len(rules),
        len(pattern_rules),
        len(boundary_rules),
    )

    if source is None:
        source = FileDiscovery(config.paths.root)
    include = list(config.paths.include)
    exclude = list(config.paths.exclude)
    concurrency = config.concurrency

    try:
        files = source.list_files(include, exclude)
    except OSError as exc:
        raise RuleRunError("discovery", str(exc)) from exc
    if not files:
        logger.warning("No files matched include globs %s", include)
    if on_files is not None:
        on_files(files)

    # Phase 1: the index is complete before any evaluation starts.
    index = None
    if boundary_rules:
        try:
            index = ImportIndexCache(source).get(include, exclude, concurrency)
        except (FileReadError, OSError) as exc:
            raise RuleRunError("index build", str(exc)) from exc

    ctx = RuleContext(root=config.paths.root, extensions=dict(config.extensions), index=index)
    ordered_rules = list(rules)

    def _evaluate_file(file_path: str) -> list[RuleResult]:
        applicable = [rule for rule in ordered_rules if rule.applies_to(file_path)]
        if not applicable:
            return []

        content: str | None = None
        if any(isinstance(rule, PatternRule) for rule in applicable):
            content = source.read_file(file_path)

        file_results: list[RuleResult] = []
        for rule in applicable:
            file_results.extend(evaluate_rule(rule, file_path, content, ctx))
        if file_results:
            logger.debug("%s: %d findings", file_path, len(file_results))
        return file_results

    # Phase 2: read-only fan-out over files.
    try:
        per_file = bounded_map(_evaluate_file, files, concurrency=concurrency)
    except FileReadError as exc:
        raise RuleRunError("evaluation", str(exc)) from exc

    results = [result for file_results in per_file for result in file_results]
    logger.info("Complete: %d findings in %d files", len(results), len(files))
    return results
