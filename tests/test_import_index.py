"""Tests for migaudit.engine.import_index: import extraction and the bidirectional index."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from migaudit.engine.import_index import (
    ImportIndex,
    ImportIndexCache,
    build_import_index,
    extract_imports,
    specifier_matches,
)
from migaudit.infrastructure.file_discovery import FileReadError

if TYPE_CHECKING:
    from conftest import MemorySource


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


class TestExtractImports:
    """Tests for extract_imports()."""

    def test_statement_shapes(self) -> None:
        content = (
            'import React from "react"\n'
            "import { a, b } from './util'\n"
            'import * as ns from "@scope/pkg"\n'
            'import "./side-effect.css"\n'
            'export { x } from "./reexport"\n'
            'export * from "./all"\n'
            'const lazy = import("./lazy")\n'
            'const fs = require("fs")\n'
        )
        specifiers = [info.specifier for info in extract_imports(content, "src/a.ts")]
        assert specifiers == [
            "react",
            "./util",
            "@scope/pkg",
            "./side-effect.css",
            "./reexport",
            "./all",
            "./lazy",
            "fs",
        ]

    def test_line_and_column(self) -> None:
        content = "// header\nimport x from 'pkg'\n"
        (info,) = extract_imports(content, "src/a.ts")
        assert info.file_path == "src/a.ts"
        assert info.line_number == 2
        assert info.column == 16  # first character of pkg

    def test_multiline_import(self) -> None:
        content = "import {\n  a,\n  b,\n} from 'pkg/sub'\n"
        (info,) = extract_imports(content, "src/a.ts")
        assert info.specifier == "pkg/sub"
        assert info.line_number == 4

    def test_duplicates_reported_once(self) -> None:
        content = "import a from 'pkg'\nconst b = require('pkg')\n"
        infos = extract_imports(content, "src/a.ts")
        assert len(infos) == 1
        assert infos[0].line_number == 1

    def test_specifiers_kept_verbatim(self) -> None:
        """Nothing is resolved: relative and aliased paths stay as written."""
        content = "import a from './util'\nimport b from 'src/util'\n"
        specifiers = [info.specifier for info in extract_imports(content, "src/a.ts")]
        assert specifiers == ["./util", "src/util"]

    def test_no_imports(self) -> None:
        assert extract_imports("const x = 1;\n", "src/a.ts") == []

    def test_deterministic(self) -> None:
        content = "import a from 'x'\nimport b from 'y'\nrequire('z')\n"
        assert extract_imports(content, "f.ts") == extract_imports(content, "f.ts")


class TestSpecifierMatches:
    """Tests for specifier_matches()."""

    def test_exact(self) -> None:
        assert specifier_matches("@scope/pkg", "@scope/pkg")

    def test_subpath_covered(self) -> None:
        assert specifier_matches("@scope/pkg/sub", "@scope/pkg")
        assert specifier_matches("react/jsx-runtime", "react")

    def test_sibling_name_not_covered(self) -> None:
        assert not specifier_matches("react-dom", "react")
        assert not specifier_matches("@scope/pkg-extra", "@scope/pkg")

    def test_glob_pattern(self) -> None:
        assert specifier_matches("src/cli/commands", "src/cli/**")
        assert specifier_matches("@pkg/sub-a/deep", "@pkg/sub-*")
        assert not specifier_matches("src/core/util", "src/cli/**")

    def test_trailing_double_star_covers_directory_itself(self) -> None:
        """``src/cli/**`` also covers an import of the ``src/cli`` index."""
        assert specifier_matches("src/cli", "src/cli/**")
        assert not specifier_matches("src/client", "src/cli/**")


# ---------------------------------------------------------------------------
# Index
# ---------------------------------------------------------------------------


@pytest.fixture()
def project_files() -> dict[str, str]:
    return {
        "src/a.ts": "import x from '@scope/pkg'\nimport y from './b'\n",
        "src/b.ts": "import z from '@scope/pkg/sub'\n",
        "src/c.ts": "const nothing = 1;\n",
        "lib/d.ts": "import q from '@scope/pkg-extra'\n",
    }


class TestBuildImportIndex:
    """Tests for build_import_index() and ImportIndex queries."""

    def test_forward_and_reverse(
        self, project_files: dict[str, str], make_source: type[MemorySource]
    ) -> None:
        index = build_import_index(make_source(project_files), ["**/*.ts"], concurrency=2)

        assert len(index) == 4
        assert index.imports_of("src/a.ts") == ["@scope/pkg", "./b"]
        assert index.imports_of("src/c.ts") == []
        assert index.imports_of("unknown.ts") == []
        assert index.dependents_of("@scope/pkg") == {"src/a.ts", "src/b.ts"}
        assert index.dependents_of("@scope/pkg/") == {"src/a.ts", "src/b.ts"}
        assert index.dependents_of("./b") == {"src/a.ts"}

    def test_unknown_and_empty_targets(
        self, project_files: dict[str, str], make_source: type[MemorySource]
    ) -> None:
        index = build_import_index(make_source(project_files), ["**/*.ts"])
        assert index.dependents_of("nothing-imports-this") == set()
        assert index.dependents_of("") == set()

    def test_scope_respected(
        self, project_files: dict[str, str], make_source: type[MemorySource]
    ) -> None:
        source = make_source(project_files)
        index = build_import_index(source, ["src/**/*.ts"], ["src/c.ts"])
        assert index.files == ("src/a.ts", "src/b.ts")
        assert "lib/d.ts" not in source.reads

    def test_edges(self, make_source: type[MemorySource]) -> None:
        source = make_source({"a.ts": "import x from 'x'\nimport y from 'y'\n"})
        index = build_import_index(source, ["**/*.ts"])
        assert index.edges() == {("a.ts", "x"), ("a.ts", "y")}

    def test_identical_across_concurrency(
        self, project_files: dict[str, str], make_source: type[MemorySource]
    ) -> None:
        serial = build_import_index(make_source(project_files), ["**/*.ts"], concurrency=1)
        parallel = build_import_index(make_source(project_files), ["**/*.ts"], concurrency=8)
        assert serial.edges() == parallel.edges()
        for path in serial.files:
            assert serial.import_records(path) == parallel.import_records(path)

    def test_read_failure_aborts_build(
        self, project_files: dict[str, str], make_source: type[MemorySource]
    ) -> None:
        source = make_source(project_files, broken=("src/b.ts",))
        with pytest.raises(FileReadError, match="src/b.ts"):
            build_import_index(source, ["**/*.ts"])

    def test_empty_index(self) -> None:
        index = ImportIndex({})
        assert len(index) == 0
        assert index.edges() == set()
        assert index.dependents_of("x") == set()


class TestImportIndexCache:
    """Tests for ImportIndexCache memoization."""

    def test_same_key_returns_same_index(
        self, project_files: dict[str, str], make_source: type[MemorySource]
    ) -> None:
        source = make_source(project_files)
        cache = ImportIndexCache(source)

        first = cache.get(["src/**/*.ts", "lib/**/*.ts"], [], 4)
        second = cache.get(["lib/**/*.ts", "src/**/*.ts"], [], 4)

        assert first is second
        assert len(cache) == 1
        assert source.list_calls == 1
        assert all(count == 1 for count in source.reads.values())

    def test_different_scope_builds_again(
        self, project_files: dict[str, str], make_source: type[MemorySource]
    ) -> None:
        cache = ImportIndexCache(make_source(project_files))
        first = cache.get(["src/**/*.ts"])
        second = cache.get(["lib/**/*.ts"])
        assert first is not second
        assert len(cache) == 2
