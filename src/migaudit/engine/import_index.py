"""Import index: extract import specifiers from source text and query them both ways.

Specifiers are kept exactly as written.  Nothing is resolved against the
filesystem, so ``"./util"`` and ``"src/util"`` are different specifiers and
``"@scope/pkg"`` is never mapped to a package directory.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from migaudit.config.loader import DEFAULT_CONCURRENCY
from migaudit.engine.locations import LineIndex
from migaudit.engine.pool import bounded_map
from migaudit.utils.glob import match_glob

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from migaudit.infrastructure.file_discovery import FileSource

logger = logging.getLogger(__name__)

# Statement shapes that introduce a dependency.  Group 1 is the specifier.
_IMPORT_PATTERNS: tuple[re.Pattern[str], ...] = (
    # import x from "m" / import { a, b } from "m" / import * as ns from "m" / import "m"
    re.compile(r"""\bimport\s+(?:[\w$*{}\s,]+\s+from\s+)?['"]([^'"\n]+)['"]"""),
    # export { a } from "m" / export * from "m" / export * as ns from "m"
    re.compile(r"""\bexport\s+(?:[\w$*{}\s,]+\s+from\s+)['"]([^'"\n]+)['"]"""),
    # import("m")
    re.compile(r"""\bimport\s*\(\s*['"]([^'"\n]+)['"]\s*\)"""),
    # require("m")
    re.compile(r"""\brequire\s*\(\s*['"]([^'"\n]+)['"]\s*\)"""),
)

IndexKey = tuple[tuple[str, ...], tuple[str, ...], int]


@dataclass(frozen=True)
class ImportInfo:
    """A single import extracted from source text."""

    file_path: str
    line_number: int  # 1-based line of the specifier
    column: int  # 1-based column of the specifier's first character
    specifier: str  # raw specifier, e.g. "@scope/pkg/sub"


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


def extract_imports(content: str, file_path: str) -> list[ImportInfo]:
    """Extract import specifiers from *content* in source order.

    Each specifier is reported once, at its first occurrence.  Statements
    inside comments or string literals are picked up too; this is a text
    scan, not a parser.
    """
    found: dict[str, int] = {}
    for pattern in _IMPORT_PATTERNS:
        for match in pattern.finditer(content):
            specifier = match.group(1).strip()
            if not specifier:
                continue
            offset = match.start(1)
            if specifier not in found or offset < found[specifier]:
                found[specifier] = offset

    lines = LineIndex(content)
    results: list[ImportInfo] = []
    for specifier, offset in sorted(found.items(), key=lambda item: item[1]):
        line, column = lines.locate(offset)
        results.append(
            ImportInfo(
                file_path=file_path,
                line_number=line,
                column=column,
                specifier=specifier,
            )
        )
    return results


def specifier_matches(specifier: str, pattern: str) -> bool:
    """Return True if *specifier* is covered by the glob/prefix *pattern*.

    The pattern is matched against the whole specifier and against every
    leading ``/``-separated prefix of it, so a pattern of ``@scope/name``
    covers ``@scope/name`` and ``@scope/name/subpath`` but not
    ``@scope/name-extra``, and ``@pkg/sub-*`` covers ``@pkg/sub-a/deep``.
    """
    segments = specifier.split("/")
    for end in range(len(segments), 0, -1):
        if match_glob(pattern, "/".join(segments[:end])):
            return True
    return False


# ---------------------------------------------------------------------------
# Index
# ---------------------------------------------------------------------------


class ImportIndex:
    """Read-only, bidirectional map between files and the specifiers they import."""

    def __init__(self, forward: dict[str, Sequence[ImportInfo]]) -> None:
        self._forward: dict[str, tuple[ImportInfo, ...]] = {
            file_path: tuple(records) for file_path, records in forward.items()
        }
        reverse: dict[str, set[str]] = {}
        for file_path, records in self._forward.items():
            for record in records:
                reverse.setdefault(record.specifier, set()).add(file_path)
        self._reverse: dict[str, frozenset[str]] = {
            specifier: frozenset(files) for specifier, files in reverse.items()
        }

    def __len__(self) -> int:
        return len(self._forward)

    @property
    def files(self) -> tuple[str, ...]:
        """Every indexed file, in build order."""
        return tuple(self._forward)

    def import_records(self, file_path: str) -> tuple[ImportInfo, ...]:
        """Return the imports recorded for *file_path* (empty when unknown)."""
        return self._forward.get(file_path, ())

    def imports_of(self, file_path: str) -> list[str]:
        """Return the raw specifiers imported by *file_path*, in source order."""
        return [record.specifier for record in self.import_records(file_path)]

    def dependents_of(self, target: str) -> set[str]:
        """Return the files importing a specifier covered by *target*.

        Uses :func:`specifier_matches`, the same comparison boundary rules use.
        Unknown targets yield an empty set.
        """
        target = target.rstrip("/")
        if not target:
            return set()
        dependents: set[str] = set()
        for specifier, files in self._reverse.items():
            if specifier_matches(specifier, target):
                dependents.update(files)
        return dependents

    def edges(self) -> set[tuple[str, str]]:
        """Return every ``(file, specifier)`` edge in the graph."""
        return {
            (file_path, record.specifier)
            for file_path, records in self._forward.items()
            for record in records
        }


def build_import_index(
    source: FileSource,
    include: Iterable[str],
    exclude: Iterable[str] = (),
    *,
    concurrency: int = DEFAULT_CONCURRENCY,
) -> ImportIndex:
    """Discover files and scan each one for imports on a bounded worker pool.

    A :class:`~migaudit.infrastructure.file_discovery.FileReadError` from any
    file aborts the whole build; no partial index is produced.
    """
    files = source.list_files(list(include), list(exclude))
    logger.info("Building import index over %d files", len(files))

    def _scan(file_path: str) -> tuple[str, list[ImportInfo]]:
        return file_path, extract_imports(source.read_file(file_path), file_path)

    forward = dict(bounded_map(_scan, files, concurrency=concurrency))
    index = ImportIndex(forward)
    logger.info("Indexed %d imports across %d files", len(index.edges()), len(index))
    return index


class ImportIndexCache:
    """Per-run memo of import indices keyed by ``(include, exclude, concurrency)``.

    Asking for the same key again returns the first build's index.  Glob
    order does not matter for the key.
    """

    def __init__(self, source: FileSource) -> None:
        self._source = source
        self._indices: dict[IndexKey, ImportIndex] = {}

    def __len__(self) -> int:
        return len(self._indices)

    def get(
        self,
        include: Iterable[str],
        exclude: Iterable[str] = (),
        concurrency: int = DEFAULT_CONCURRENCY,
    ) -> ImportIndex:
        """Return the index for the given scope, building it on first request."""
        include_t = tuple(include)
        exclude_t = tuple(exclude)
        key: IndexKey = (tuple(sorted(include_t)), tuple(sorted(exclude_t)), concurrency)

        index = self._indices.get(key)
        if index is None:
            index = build_import_index(
                self._source, include_t, exclude_t, concurrency=concurrency
            )
            self._indices[key] = index
        else:
            logger.debug("Reusing import index for %s", key)
        return index
