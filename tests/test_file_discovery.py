"""Tests for migaudit.infrastructure.file_discovery: listing and reading project files."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest

from migaudit.config.loader import DEFAULT_EXCLUDE
from migaudit.infrastructure.file_discovery import FileDiscovery, FileReadError, is_text_file

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path


class TestListFiles:
    """Tests for FileDiscovery.list_files()."""

    def test_include_and_sort(
        self, tmp_project: Path, write_tree: Callable[[Path, dict[str, str]], None]
    ) -> None:
        write_tree(
            tmp_project,
            {"src/b.ts": "", "src/a.ts": "", "src/nested/c.ts": "", "lib/d.ts": ""},
        )
        files = FileDiscovery(tmp_project).list_files(["src/**/*.ts"], [])
        assert files == ["src/a.ts", "src/b.ts", "src/nested/c.ts"]

    def test_deduplicates_overlapping_includes(
        self, tmp_project: Path, write_tree: Callable[[Path, dict[str, str]], None]
    ) -> None:
        write_tree(tmp_project, {"src/a.ts": ""})
        files = FileDiscovery(tmp_project).list_files(["src/**/*.ts", "**/*.ts"], [])
        assert files == ["src/a.ts"]

    def test_default_excludes_prune_directories(
        self, tmp_project: Path, write_tree: Callable[[Path, dict[str, str]], None]
    ) -> None:
        write_tree(
            tmp_project,
            {
                "src/a.ts": "",
                "node_modules/pkg/index.js": "",
                "packages/x/node_modules/dep/index.js": "",
                "dist/out.js": "",
                "src/vendor.min.js": "",
            },
        )
        discovery = FileDiscovery(tmp_project)
        files = discovery.list_files(["**/*.ts", "**/*.js"], list(DEFAULT_EXCLUDE))
        assert files == ["src/a.ts"]

    def test_exclude_file_glob(
        self, tmp_project: Path, write_tree: Callable[[Path, dict[str, str]], None]
    ) -> None:
        write_tree(tmp_project, {"src/a.ts": "", "src/a.test.ts": ""})
        files = FileDiscovery(tmp_project).list_files(["**/*.ts"], ["**/*.test.ts"])
        assert files == ["src/a.ts"]

    def test_non_text_files_skipped(
        self, tmp_project: Path, write_tree: Callable[[Path, dict[str, str]], None]
    ) -> None:
        write_tree(tmp_project, {"src/a.ts": ""})
        (tmp_project / "src" / "logo.png").write_bytes(b"\x89PNG")
        files = FileDiscovery(tmp_project).list_files(["src/**"], [])
        assert files == ["src/a.ts"]

    def test_no_matches(self, tmp_project: Path) -> None:
        assert FileDiscovery(tmp_project).list_files(["**/*.ts"], []) == []


class TestListFilesErrors:
    """Directory errors abort listing instead of returning a partial file set."""

    def test_missing_root(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError, match="Project root not found"):
            FileDiscovery(tmp_path / "does-not-exist").list_files(["**/*.ts"], [])

    def test_root_is_a_file(self, tmp_path: Path) -> None:
        (tmp_path / "a.ts").write_text("", encoding="utf-8")
        with pytest.raises(NotADirectoryError):
            FileDiscovery(tmp_path / "a.ts").list_files(["**/*.ts"], [])

    def test_unreadable_subdirectory(
        self,
        tmp_project: Path,
        write_tree: Callable[[Path, dict[str, str]], None],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        write_tree(tmp_project, {"src/a.ts": "", "src/locked/b.ts": ""})
        real_scandir = os.scandir

        def _scandir(path: str) -> object:
            if os.fspath(path).endswith("locked"):
                raise PermissionError(13, "Permission denied", os.fspath(path))
            return real_scandir(path)

        monkeypatch.setattr(os, "scandir", _scandir)
        with pytest.raises(PermissionError):
            FileDiscovery(tmp_project).list_files(["**/*.ts"], [])


class TestReadFile:
    """Tests for FileDiscovery.read_file()."""

    def test_read_and_cache(
        self, tmp_project: Path, write_tree: Callable[[Path, dict[str, str]], None]
    ) -> None:
        write_tree(tmp_project, {"src/a.ts": "const a = 1;\n"})
        discovery = FileDiscovery(tmp_project)
        assert discovery.read_file("src/a.ts") == "const a = 1;\n"

        # Cached content survives the file changing on disk.
        (tmp_project / "src" / "a.ts").write_text("changed\n", encoding="utf-8")
        assert discovery.read_file("src/a.ts") == "const a = 1;\n"

    def test_missing_file(self, tmp_project: Path) -> None:
        with pytest.raises(FileReadError, match="file not found") as exc_info:
            FileDiscovery(tmp_project).read_file("src/missing.ts")
        assert exc_info.value.path == "src/missing.ts"

    def test_invalid_utf8(self, tmp_project: Path) -> None:
        (tmp_project / "src" / "bad.ts").write_bytes(b"\xff\xfe\xfa")
        with pytest.raises(FileReadError, match="UTF-8"):
            FileDiscovery(tmp_project).read_file("src/bad.ts")


class TestIsTextFile:
    """Tests for is_text_file()."""

    def test_known_extensions(self) -> None:
        assert is_text_file("src/a.ts")
        assert is_text_file("src/App.TSX")
        assert is_text_file("package.json")

    def test_unknown_extensions(self) -> None:
        assert not is_text_file("logo.png")
        assert not is_text_file("Makefile")
