"""Tests for context generation and directed graph queries."""

from __future__ import annotations

from pathlib import Path

from conftest import make_node
from depgraph.context.engine import ContextGenerator, node_importance, sort_by_importance
from depgraph.context.formatter import parse_edit_blocks
from depgraph.context.models import ContextFormat, ContextMode
from depgraph.context.quality import calculate_quality, signal_noise_ratio
from depgraph.graph.builder import GraphBuilder
from depgraph.graph.models import CodeGraph, DependencyEdge, NodeKind


def _names(items) -> list[str]:
    return [i.name for i in items]


class TestDependencies:
    def test_dependents_of_detect(self, triangle_graph: CodeGraph):
        gen = ContextGenerator(triangle_graph)
        assert set(_names(gen.get_dependents("detect", 1))) == {"main", "scan"}

    def test_dependencies_of_main(self, triangle_graph: CodeGraph):
        gen = ContextGenerator(triangle_graph)
        assert set(_names(gen.get_dependencies("main", 1))) == {"scan", "detect"}

    def test_depth_zero_is_empty(self, triangle_graph: CodeGraph):
        gen = ContextGenerator(triangle_graph)
        assert gen.get_dependencies("main", 0) == []
        assert gen.get_dependents("detect", 0) == []

    def test_depth_limits_transitive_results(self, chain_graph: CodeGraph):
        gen = ContextGenerator(chain_graph)
        assert _names(gen.get_dependencies("a", 1)) == ["b"]
        assert _names(gen.get_dependencies("a", 3)) == ["b", "c", "d"]
        assert _names(gen.get_dependents("e", 2)) == ["d", "c"]

    def test_results_deduplicated_by_location(self, triangle_graph: CodeGraph):
        gen = ContextGenerator(triangle_graph)
        names = _names(gen.get_dependencies("main", 5))
        assert sorted(names) == ["detect", "scan"]

    def test_unknown_symbol_is_empty(self, triangle_graph: CodeGraph):
        assert ContextGenerator(triangle_graph).get_dependencies("nope", 2) == []

    def test_dependency_info_fields(self, triangle_graph: CodeGraph):
        (first, _) = ContextGenerator(triangle_graph).get_dependencies("main", 1)
        assert first.name == "scan"
        assert first.file_path == "app.py"
        assert first.line == 5
        assert first.node_type == "function"


class TestQualifiedNames:
    def _graph(self) -> CodeGraph:
        graph = CodeGraph()
        graph.add_node(make_node("run", 1, file_path="pkg/server.py"))
        graph.add_node(make_node("run", 1, file_path="pkg/worker.py"))
        graph.add_node(
            make_node("start", 1, kind=NodeKind.METHOD, file_path="lib.rs", signature="impl Engine fn start()")
        )
        return graph

    def test_plain_name_first_match(self):
        gen = ContextGenerator(self._graph())
        assert gen.find_node_by_qualified_name("run").file_path == "pkg/server.py"

    def test_file_qualifier(self):
        gen = ContextGenerator(self._graph())
        assert gen.find_node_by_qualified_name("worker::run").file_path == "pkg/worker.py"
        assert gen.find_node_by_qualified_name("worker.py::run").file_path == "pkg/worker.py"

    def test_type_qualifier(self):
        gen = ContextGenerator(self._graph())
        assert gen.find_node_by_qualified_name("Engine::start").file_path == "lib.rs"
        assert gen.find_node_by_qualified_name("Other::start") is None


class TestCallChain:
    def test_boundary_not_found(self, chain_graph: CodeGraph):
        result = ContextGenerator(chain_graph).get_call_chain("a", "e", 3)
        assert not result.found
        assert result.chain == []

    def test_boundary_found(self, chain_graph: CodeGraph):
        result = ContextGenerator(chain_graph).get_call_chain("a", "e", 4)
        assert result.found
        assert _names(result.chain) == ["a", "b", "c", "d", "e"]

    def test_shortest_path_wins(self, chain_graph: CodeGraph):
        chain_graph.add_edge(DependencyEdge(source=1, target=4))
        result = ContextGenerator(chain_graph).get_call_chain("a", "e", 5)
        assert _names(result.chain) == ["a", "b", "e"]

    def test_direction_matters(self, chain_graph: CodeGraph):
        assert not ContextGenerator(chain_graph).get_call_chain("e", "a", 10).found

    def test_unknown_endpoint(self, chain_graph: CodeGraph):
        result = ContextGenerator(chain_graph).get_call_chain("a", "zzz", 3)
        assert not result.found
        assert result.to_name == "zzz"


class TestCallTree:
    def test_callee_tree(self, triangle_graph: CodeGraph):
        tree = ContextGenerator(triangle_graph).get_call_tree("main", 3, "callee")
        assert [(t.name, t.depth) for t in tree] == [("main", 0), ("scan", 1), ("detect", 2)]

    def test_caller_tree(self, triangle_graph: CodeGraph):
        tree = ContextGenerator(triangle_graph).get_call_tree("detect", 3, "caller")
        assert [(t.name, t.depth) for t in tree] == [("detect", 0), ("main", 1), ("scan", 1)]

    def test_depth_bound(self, chain_graph: CodeGraph):
        tree = ContextGenerator(chain_graph).get_call_tree("a", 2, "down")
        assert _names(tree) == ["a", "b", "c"]

    def test_unknown_root(self, chain_graph: CodeGraph):
        assert ContextGenerator(chain_graph).get_call_tree("zzz") == []


class TestImportance:
    def test_entry_point_dominates(self):
        small = make_node("tiny", 1)
        small.id = 7
        big = make_node("Engine", 1, kind=NodeKind.CLASS, signature="pub struct Engine")
        big.id = 8
        assert node_importance(small, {7}) > node_importance(big, {7})

    def test_kind_and_pattern_scores(self):
        cls = make_node("Parser", 1, kind=NodeKind.CLASS)
        func = make_node("parse", 1)
        getter = make_node("get_value", 1)
        ctor = make_node("new", 1)
        assert node_importance(cls, set()) == 100 - 10
        assert node_importance(func, set()) == 50 - 10
        assert node_importance(getter, set()) == 50 - 30 - 10
        assert node_importance(ctor, set()) == 50 - 40 - 10

    def test_long_bodies_rewarded(self):
        node = make_node("long", 1)
        node.line_end = 80
        assert node_importance(node, set()) == 50 + 30

    def test_sort_is_stable(self):
        nodes = [make_node("one", 1), make_node("two", 5)]
        assert _names(sort_by_importance(nodes, set())) == ["one", "two"]


class TestGatherContext:
    def test_nothing_specified(self, triangle_graph: CodeGraph):
        result = ContextGenerator(triangle_graph).gather_context()
        assert result.content == "// No entry point or query specified"
        assert result.functions_count == 0

    def test_skeleton_standard(self, triangle_graph: CodeGraph):
        result = ContextGenerator(triangle_graph).gather_context("main", depth=2)
        assert result.functions_count == 3
        assert result.files_count == 2
        assert result.total_lines == 9
        assert result.content.startswith("// ===== CONTEXT FILE =====\n")
        assert "// Entry point: main\n" in result.content
        assert "// Files: 2, Functions: 3\n" in result.content
        assert "// ===== FILE: app.py =====\n" in result.content
        assert "main function" in result.content
        assert result.content.endswith("// ===== END CONTEXT =====\n")

    def test_depth_limits_collection(self, chain_graph: CodeGraph):
        result = ContextGenerator(chain_graph).gather_context("a", depth=2)
        assert result.functions_count == 2

    def test_qualified_entry_point(self, triangle_graph: CodeGraph):
        gen = ContextGenerator(triangle_graph)
        assert gen.gather_context("detector::detect", depth=1).functions_count == 1
        assert gen.gather_context("app::detect", depth=1).functions_count == 0

    def test_query_seeding(self, triangle_graph: CodeGraph):
        result = ContextGenerator(triangle_graph).gather_context(query="how does scan work", depth=1)
        assert result.functions_count == 1
        assert "// Query: how does scan work\n" in result.content

    def test_full_mode_reads_source(self, tmp_project: Path):
        graph = GraphBuilder().build_from_directory(tmp_project)
        result = ContextGenerator(graph, tmp_project).gather_context(
            "calculate_total", depth=1, mode=ContextMode.FULL
        )
        assert "subtotal = sum(" in result.content
        assert result.quality.dependency_count == result.functions_count

    def test_llm_edit_round_trip(self, tmp_project: Path):
        graph = GraphBuilder().build_from_directory(tmp_project)
        result = ContextGenerator(graph, tmp_project).gather_context(
            "helper_function", depth=1, mode=ContextMode.FULL, fmt=ContextFormat.LLM_EDIT
        )
        assert result.content.startswith("# CONTEXT FOR LLM EDITING\n")
        (block,) = parse_edit_blocks(result.content)
        assert block.file_path == "utils.py"
        assert block.content.startswith("def helper_function(value):")
        source = (tmp_project / "utils.py").read_text().splitlines()
        assert block.content == "\n".join(source[block.start_line - 1:block.end_line])

    def test_max_tokens_keeps_at_least_one(self, triangle_graph: CodeGraph):
        result = ContextGenerator(triangle_graph).gather_context("main", depth=2, max_tokens=0)
        assert result.functions_count == 1
        assert result.omitted_count == 2


class TestParseEditBlocks:
    def test_multiple_blocks(self):
        text = (
            "# header\n"
            "<<<FILE: src/a.py:3-4>>>\ndef a():\n    pass\n\n<<<END FILE>>>\n\n"
            "<<<FILE: src/b.py:10-10>>>\nX = 1\n<<<END FILE>>>\n"
        )
        blocks = parse_edit_blocks(text)
        assert [(b.file_path, b.start_line, b.end_line) for b in blocks] == [
            ("src/a.py", 3, 4),
            ("src/b.py", 10, 10),
        ]
        assert blocks[0].content == "def a():\n    pass"

    def test_no_blocks(self):
        assert parse_edit_blocks("nothing here") == []


class TestQuality:
    def test_signal_noise_ratio(self):
        assert signal_noise_ratio("calculate total amount") == 10.0
        assert signal_noise_ratio("") == 1.0
        assert signal_noise_ratio("fn let if") == 1.0
        assert signal_noise_ratio("value x y") == 0.5

    def test_levels(self):
        high = calculate_quality("calculate total amount", [], set(), ContextMode.SKELETON)
        assert high.quality_level == "high"
        assert high.recommendation is None
        low = calculate_quality("a b c d value", [], set(), ContextMode.SKELETON)
        assert low.quality_level == "low"
        assert "short variable names" in low.recommendation

    def test_explosion_warning(self):
        content = "meaningful_identifier " * 1000
        quality = calculate_quality(content, [], set(), ContextMode.SKELETON)
        assert quality.context_explosion_warning
        assert quality.estimated_tokens > 4000
        assert "Context explosion detected" in quality.recommendation

    def test_concept_density_and_entry_ratio(self):
        cls = make_node("Engine", 1, kind=NodeKind.CLASS)
        cls.id = 1
        func = make_node("run_engine", 10)
        func.id = 2
        quality = calculate_quality("Engine run_engine", [cls, func], {1}, ContextMode.SKELETON)
        assert quality.concept_density == 0.75
        assert quality.entry_point_ratio == 0.5
        assert quality.dependency_count == 2
