"""File discovery: list project files by include/exclude globs and read their contents."""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Protocol

from migaudit.utils.glob import match_glob

logger = logging.getLogger(__name__)

# Only files with these extensions are ever listed.
TEXT_EXTENSIONS: frozenset[str] = frozenset(
    {
        ".ts",
        ".tsx",
        ".js",
        ".jsx",
        ".mjs",
        ".cjs",
        ".json",
        ".md",
        ".txt",
        ".yml",
        ".yaml",
        ".css",
        ".scss",
        ".sass",
        ".less",
        ".html",
        ".svg",
        ".xml",
    }
)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class FileReadError(Exception):
    """Raised when a discovered file cannot be read or decoded."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot read '{path}': {reason}")


# ---------------------------------------------------------------------------
# Collaborator interface
# ---------------------------------------------------------------------------


class FileSource(Protocol):
    """What the rule engine needs from file discovery."""

    def list_files(self, include: list[str], exclude: list[str]) -> list[str]: ...

    def read_file(self, path: str) -> str: ...


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def is_text_file(path: str) -> bool:
    """Return True if *path* has one of the known text extensions."""
    return os.path.splitext(path)[1].lower() in TEXT_EXTENSIONS


def _matches_exclude(rel_path: str, exclude: list[str]) -> bool:
    """Check a file path against exclude globs.

    Slash-free patterns (``*.min.js``) are also tested against the basename
    so they apply at any depth.
    """
    name = rel_path.rsplit("/", 1)[-1]
    for pattern in exclude:
        if match_glob(pattern, rel_path):
            return True
        if "/" not in pattern and match_glob(pattern, name):
            return True
    return False


def _raise_walk_error(exc: OSError) -> None:
    raise exc


def _prunes_dir(rel_dir: str, exclude: list[str]) -> bool:
    """Return True if a directory is excluded wholesale by a ``<dir>/**`` pattern.

    A single-segment base such as ``node_modules/**`` prunes that directory
    name at any depth.
    """
    name = rel_dir.rsplit("/", 1)[-1]
    for pattern in exclude:
        if not pattern.endswith("/**"):
            continue
        base = pattern[:-3]
        if match_glob(base, rel_dir):
            return True
        if "/" not in base and match_glob(base, name):
            return True
    return False


# ---------------------------------------------------------------------------
# FileDiscovery
# ---------------------------------------------------------------------------


class FileDiscovery:
    """Walks a project root and serves file contents.

    Paths handed out and accepted are POSIX-style and relative to *root*.
    Contents are cached after the first successful read; the cache is safe
    to use from several worker threads.
    """

    def __init__(self, root: Path | str = ".") -> None:
        self.root = Path(root)
        self._contents: dict[str, str] = {}
        self._lock = threading.Lock()

    def list_files(self, include: list[str], exclude: list[str]) -> list[str]:
        """Return the sorted, de-duplicated text files matching *include* and not *exclude*.

        Raises ``OSError`` when the root is missing or any directory under it
        cannot be listed; a partial file set is never returned.
        """
        if not self.root.exists():
            msg = f"Project root not found: {self.root}"
            raise FileNotFoundError(msg)
        if not self.root.is_dir():
            msg = f"Project root is not a directory: {self.root}"
            raise NotADirectoryError(msg)

        found: set[str] = set()
        for dirpath, dirnames, filenames in os.walk(self.root, onerror=_raise_walk_error):
            rel_dir = Path(dirpath).relative_to(self.root).as_posix()
            prefix = "" if rel_dir == "." else rel_dir + "/"

            dirnames[:] = sorted(d for d in dirnames if not _prunes_dir(prefix + d, exclude))

            for filename in filenames:
                rel_path = prefix + filename
                if not is_text_file(rel_path):
                    continue
                if _matches_exclude(rel_path, exclude):
                    continue
                if any(match_glob(pattern, rel_path) for pattern in include):
                    found.add(rel_path)

        files = sorted(found)
        logger.debug("Discovered %d files under %s", len(files), self.root)
        return files

    def read_file(self, path: str) -> str:
        """Return the UTF-8 content of *path*, raising :class:`FileReadError` on failure."""
        with self._lock:
            cached = self._contents.get(path)
        if cached is not None:
            return cached

        try:
            content = (self.root / path).read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise FileReadError(path, "file not found") from exc
        except UnicodeDecodeError as exc:
            raise FileReadError(path, "not valid UTF-8 text") from exc
        except OSError as exc:
            raise FileReadError(path, exc.strerror or str(exc)) from exc

        with self._lock:
            self._contents[path] = content
        return content
