"""Tests for the source parsers."""

from __future__ import annotations

from pathlib import Path

import pytest

from depgraph.config import IndexerConfig
from depgraph.parser.core import collect_files, parse_directory, parse_file
from depgraph.parser.models import DeclarationKind, SiteKind, detect_language
from depgraph.parser.python_parser import parse_python_file
from depgraph.parser.tree_sitter_parser import _rust_use_names


def _decls(result):
    return {d.name: d for d in result.declarations}


def _sites(result, kind: SiteKind = SiteKind.CALL) -> list[tuple[int, str]]:
    return [(c.caller_line, c.callee_name) for c in result.calls if c.kind == kind]


class TestLanguageDetection:
    def test_python(self):
        assert detect_language("main.py") == "python"
        assert detect_language("types.pyi") == "python"

    def test_tree_sitter_languages(self):
        assert detect_language("app.js") == "javascript"
        assert detect_language("app.mjs") == "javascript"
        assert detect_language("app.ts") == "typescript"
        assert detect_language("view.tsx") == "tsx"
        assert detect_language("main.rs") == "rust"

    def test_unknown(self):
        assert detect_language("readme.md") is None
        assert detect_language("main.go") is None


class TestPythonParser:
    def test_declarations(self, sample_python_source: str):
        result = parse_python_file("sample.py", sample_python_source)
        assert result.errors == []
        decls = _decls(result)

        assert decls["BaseProcessor"].kind == DeclarationKind.CLASS
        assert decls["AdvancedProcessor"].signature == "class AdvancedProcessor(BaseProcessor):"
        assert decls["process"].kind == DeclarationKind.METHOD
        assert decls["create_processor"].kind == DeclarationKind.FUNCTION
        assert decls["CONSTANT_VALUE"].kind == DeclarationKind.VARIABLE
        assert "__all__" not in decls

    def test_line_ranges(self, sample_python_source: str):
        decls = _decls(parse_python_file("sample.py", sample_python_source))
        base = decls["BaseProcessor"]
        transform = decls["_transform"]
        assert base.line_start < transform.line_start <= transform.line_end <= base.line_end

    def test_multiline_signature(self, sample_python_source: str):
        decls = _decls(parse_python_file("sample.py", sample_python_source))
        assert decls["run_pipeline"].signature.startswith("def run_pipeline(")
        assert decls["run_pipeline"].signature.endswith(":")

    def test_exported_from_dunder_all(self, sample_python_source: str):
        decls = _decls(parse_python_file("sample.py", sample_python_source))
        assert decls["BaseProcessor"].exported
        assert decls["run_pipeline"].exported
        assert not decls["create_processor"].exported
        # methods are never exported on their own
        assert not decls["process"].exported

    def test_call_sites(self, sample_python_source: str):
        result = parse_python_file("sample.py", sample_python_source)
        callees = {name for _, name in _sites(result)}
        assert {"create_processor", "AdvancedProcessor", "BaseProcessor", "strip"} <= callees
        # attribute calls are recorded by their last name
        assert "process" in callees

    def test_module_level_call_kept(self, sample_python_source: str):
        result = parse_python_file("sample.py", sample_python_source)
        last_line = len(sample_python_source.splitlines())
        assert (last_line, "run_pipeline") in _sites(result)

    def test_imports_and_references(self, sample_python_source: str):
        result = parse_python_file("sample.py", sample_python_source)
        imported = {name for _, name in _sites(result, SiteKind.IMPORT)}
        referenced = {name for _, name in _sites(result, SiteKind.REFERENCE)}
        assert imported == {"List", "Path"}
        assert "CONSTANT_VALUE" in referenced
        # call targets are not double-counted as references
        assert "create_processor" not in referenced

    def test_sites_sorted_by_line(self, sample_python_source: str):
        lines = [c.caller_line for c in parse_python_file("s.py", sample_python_source).calls]
        assert lines == sorted(lines)

    def test_syntax_error(self):
        result = parse_python_file("bad.py", "def broken(:\n")
        assert result.errors
        assert result.declarations == []


class TestJavaScriptParser:
    @pytest.fixture(autouse=True)
    def _grammar(self):
        pytest.importorskip("tree_sitter_javascript")

    def test_declarations_and_calls(self):
        source = """import { helper } from './util';

export function main() {
  const w = new Widget();
  return helper(w.render());
}

class Widget {
  render() {
    return format(1);
  }
}

const twice = (x) => x * 2;
"""
        result = parse_file("app.js", source)
        decls = _decls(result)
        assert decls["main"].exported
        assert decls["main"].kind == DeclarationKind.FUNCTION
        assert not decls["Widget"].exported
        assert decls["render"].kind == DeclarationKind.METHOD
        assert decls["twice"].kind == DeclarationKind.FUNCTION

        callees = {name for _, name in _sites(result)}
        assert {"Widget", "helper", "render", "format"} <= callees
        assert _sites(result, SiteKind.IMPORT) == [(1, "helper")]


class TestRustParser:
    @pytest.fixture(autouse=True)
    def _grammar(self):
        pytest.importorskip("tree_sitter_rust")

    def test_declarations_and_calls(self):
        source = """use crate::graph::{CodeGraph, NodeId};

pub struct Scanner {
    root: String,
}

impl Scanner {
    pub fn new(root: String) -> Self {
        Scanner { root }
    }

    fn scan(&self) -> Vec<NodeId> {
        let graph = CodeGraph::new();
        println!("{}", self.root);
        detect(&graph)
    }
}

fn detect(graph: &CodeGraph) -> Vec<NodeId> {
    Vec::new()
}
"""
        result = parse_file("src/scanner.rs", source)
        decls = _decls(result)
        assert decls["Scanner"].exported
        assert decls["Scanner"].kind == DeclarationKind.CLASS
        assert decls["new"].kind == DeclarationKind.METHOD
        assert decls["new"].exported
        assert not decls["scan"].exported
        assert decls["detect"].kind == DeclarationKind.FUNCTION

        callees = {name for _, name in _sites(result)}
        assert {"new", "CodeGraph", "println", "detect", "Vec"} <= callees
        assert {name for _, name in _sites(result, SiteKind.IMPORT)} == {"CodeGraph", "NodeId"}


class TestRustUseNames:
    def test_flat_group(self):
        assert _rust_use_names("use crate::graph::{CodeGraph, NodeId};") == ["CodeGraph", "NodeId"]

    def test_nested_groups(self):
        assert _rust_use_names("use a::{b::{c, d}, e as f, self};") == ["c", "d", "e"]

    def test_multiline_group_with_trailing_comma(self):
        text = "pub use a::{\n    b::{c, d},\n    e::*,\n    g,\n};"
        assert _rust_use_names(text) == ["c", "d", "g"]

    def test_single_path(self):
        assert _rust_use_names("pub(crate) use super::scanner::Scanner;") == ["Scanner"]


class TestCoreParser:
    def test_auto_detect_python(self, sample_python_source: str):
        result = parse_file("sample.py", sample_python_source)
        assert result is not None
        assert result.language == "python"

    def test_unsupported_file(self):
        assert parse_file("readme.md", "# Hello") is None

    def test_parse_directory_paths_are_relative(self, tmp_project: Path):
        results = parse_directory(tmp_project)
        assert [r.file_path for r in results] == [
            "main.py", "models.py", "tests/test_utils.py", "utils.py",
        ]

    def test_progress_callback(self, tmp_project: Path):
        calls = []
        parse_directory(tmp_project, progress_callback=lambda p, i, n: calls.append((p, i, n)))
        assert [i for _, i, _ in calls] == [1, 2, 3, 4]
        assert all(n == 4 for _, _, n in calls)

    def test_exclude_patterns_and_gitignore(self, tmp_project: Path):
        (tmp_project / ".gitignore").write_text("# build output\ngenerated/\n")
        generated = tmp_project / "generated"
        generated.mkdir()
        (generated / "out.py").write_text("def generated():\n    pass\n")

        config = IndexerConfig(exclude_patterns=["tests"])
        files = [p.relative_to(tmp_project).as_posix() for p in collect_files(tmp_project, config)]
        assert files == ["main.py", "models.py", "utils.py"]

    def test_size_limit(self, tmp_project: Path):
        (tmp_project / "big.py").write_text("X = 1\n" * 400)
        files = collect_files(tmp_project, IndexerConfig(max_file_size_kb=1))
        assert "big.py" not in {p.name for p in files}

    def test_language_filter(self, tmp_project: Path):
        (tmp_project / "app.js").write_text("function a() {}\n")
        files = collect_files(tmp_project, IndexerConfig(languages=["python"]))
        assert all(p.suffix == ".py" for p in files)

    def test_broken_file_skipped(self, tmp_project: Path):
        (tmp_project / "broken.py").write_text("class (:\n")
        results = parse_directory(tmp_project)
        assert "broken.py" not in [r.file_path for r in results]
