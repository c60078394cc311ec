"""Shared test fixtures for migaudit."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from migaudit.config.loader import Config, PathsConfig

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path


def write_files(root: Path, files: dict[str, str]) -> None:
    """Write ``{relative_path: content}`` under *root*, creating directories."""
    for rel_path, content in files.items():
        target = root / rel_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")


class MemorySource:
    """In-memory file source that counts reads per file."""

    def __init__(self, files: dict[str, str], *, broken: tuple[str, ...] = ()) -> None:
        self.files = dict(files)
        self.broken = set(broken)
        self.reads: dict[str, int] = {}
        self.list_calls = 0

    def list_files(self, include: list[str], exclude: list[str]) -> list[str]:
        from migaudit.utils.glob import match_any

        self.list_calls += 1
        return sorted(
            path
            for path in self.files
            if match_any(include, path) and not match_any(exclude, path)
        )

    def read_file(self, path: str) -> str:
        from migaudit.infrastructure.file_discovery import FileReadError

        self.reads[path] = self.reads.get(path, 0) + 1
        if path in self.broken:
            raise FileReadError(path, "permission denied")
        if path not in self.files:
            raise FileReadError(path, "file not found")
        return self.files[path]


@pytest.fixture()
def tmp_project(tmp_path: Path) -> Path:
    """Create a minimal project structure for testing."""
    project = tmp_path / "proj"
    (project / "src").mkdir(parents=True)
    return project


@pytest.fixture()
def ts_config() -> Config:
    """Config that includes every ``.ts`` file and excludes nothing."""
    return Config(paths=PathsConfig(root=".", include=("**/*.ts",), exclude=()))


@pytest.fixture()
def make_source() -> type[MemorySource]:
    """Factory for in-memory file sources."""
    return MemorySource


@pytest.fixture()
def write_tree() -> Callable[[Path, dict[str, str]], None]:
    """Return the helper that writes a ``{path: content}`` tree to disk."""
    return write_files
