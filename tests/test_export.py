"""Tests for graph export and whole-graph statistics."""

from __future__ import annotations

import json
from pathlib import Path

import networkx as nx
import pytest

from depgraph.graph.export import export_graph, graph_stats
from depgraph.graph.models import CodeGraph, DependencyEdge, EdgeKind


@pytest.fixture
def usage_graph(triangle_graph: CodeGraph) -> CodeGraph:
    """The triangle plus a top-level call of main and an edge to a missing node."""
    triangle_graph.add_edge(DependencyEdge(source=None, target=0, kind=EdgeKind.CALLS))
    triangle_graph.add_edge(DependencyEdge(source=1, target=99, kind=EdgeKind.REFERENCES))
    return triangle_graph


class TestGraphStats:
    def test_counts(self, usage_graph: CodeGraph):
        stats = graph_stats(usage_graph)
        assert stats.total_nodes == 3
        assert stats.total_edges == 5
        assert stats.files == 2
        assert stats.functions == 3
        assert stats.classes == 0
        assert stats.top_level_usages == 1
        assert stats.dangling_edges == 1
        assert stats.edge_kinds == {"calls": 4, "references": 1}
        assert stats.components == 1
        assert stats.recursive_groups == 0

    def test_recursion_counted(self, chain_graph: CodeGraph):
        chain_graph.add_edge(DependencyEdge(source=4, target=2))
        chain_graph.add_edge(DependencyEdge(source=0, target=0))
        assert graph_stats(chain_graph).recursive_groups == 2

    def test_empty_graph(self):
        stats = graph_stats(CodeGraph())
        assert stats.total_nodes == 0
        assert stats.components == 0


class TestExport:
    def test_json(self, usage_graph: CodeGraph, tmp_path: Path):
        out = export_graph(usage_graph, tmp_path / "graph.json", "json")
        data = json.loads(out.read_text())
        assert sorted(n["id"] for n in data["nodes"]) == [0, 1, 2]
        assert data["top_level_usages"] == [{"target": 0, "kind": "calls"}]

    def test_graphml_round_trip(self, usage_graph: CodeGraph, tmp_path: Path):
        out = export_graph(usage_graph, tmp_path / "nested" / "graph.graphml", "graphml")
        g = nx.read_graphml(out)
        assert g.number_of_nodes() == 3
        # top-level usages and dangling edges are not part of the export
        assert g.number_of_edges() == 3

    def test_dot(self, usage_graph: CodeGraph, tmp_path: Path):
        text = export_graph(usage_graph, tmp_path / "graph.dot", "dot").read_text()
        assert text.startswith("digraph depgraph {")
        assert 'n0 -> n1 [label="calls"];' in text
        assert "n99" not in text

    def test_unknown_format(self, usage_graph: CodeGraph, tmp_path: Path):
        with pytest.raises(ValueError):
            export_graph(usage_graph, tmp_path / "graph.txt", "txt")
