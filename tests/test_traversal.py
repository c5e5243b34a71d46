"""Tests for bounded graph traversal."""

from __future__ import annotations

from conftest import make_node
from depgraph.config import TraversalConfig
from depgraph.graph.models import CodeGraph, DependencyEdge
from depgraph.graph.traversal import GraphTraverser, TraversalOptions


def _star(leaves: int, hub_name: str = "hub") -> CodeGraph:
    graph = CodeGraph()
    hub = graph.add_node(make_node(hub_name, 1))
    for i in range(leaves):
        leaf = graph.add_node(make_node(f"leaf{i}", 10 + i * 4))
        graph.add_edge(DependencyEdge(source=hub, target=leaf))
    return graph


class TestGraphTraverser:
    def test_chain_depth_limit(self, chain_graph: CodeGraph):
        results = GraphTraverser(chain_graph).traverse([0], TraversalOptions(max_depth=2))
        assert [(r.node_id, r.depth) for r in results] == [(0, 0), (1, 1), (2, 2)]
        assert results[2].path == [0, 1, 2]

    def test_edges_followed_in_both_directions(self, chain_graph: CodeGraph):
        results = GraphTraverser(chain_graph).traverse([2], TraversalOptions(max_depth=1))
        assert {r.node_id for r in results} == {1, 2, 3}

    def test_cycle_terminates(self, chain_graph: CodeGraph):
        chain_graph.add_edge(DependencyEdge(source=4, target=0))
        results = GraphTraverser(chain_graph).traverse([0], TraversalOptions(max_depth=10))
        ids = [r.node_id for r in results]
        assert sorted(ids) == [0, 1, 2, 3, 4]
        assert len(ids) == len(set(ids))

    def test_unknown_and_duplicate_seeds_ignored(self, chain_graph: CodeGraph):
        results = GraphTraverser(chain_graph).traverse([99, 0, 0], TraversalOptions(max_depth=0))
        assert [r.node_id for r in results] == [0]

    def test_dangling_and_top_level_edges_skipped(self, chain_graph: CodeGraph):
        chain_graph.add_edge(DependencyEdge(source=0, target=77))
        chain_graph.add_edge(DependencyEdge(source=None, target=0))
        results = GraphTraverser(chain_graph).traverse([0], TraversalOptions(max_depth=1))
        assert [r.node_id for r in results] == [0, 1]

    def test_per_depth_cap(self):
        graph = _star(10)
        options = TraversalOptions(max_depth=1, per_depth_caps=(50, 3))
        results = GraphTraverser(graph).traverse([0], options)
        depth_one = [r for r in results if r.depth == 1]
        assert len(depth_one) == 3
        assert [r.node_id for r in depth_one] == [1, 2, 3]

    def test_capped_node_not_reported_deeper(self):
        graph = _star(5)
        # leaf0 -> leaf4 gives leaf4 a second, longer path from the hub
        graph.add_edge(DependencyEdge(source=1, target=5))
        options = TraversalOptions(max_depth=2, per_depth_caps=(50, 2, 15))
        results = GraphTraverser(graph).traverse([0], options)
        assert [(r.node_id, r.depth) for r in results] == [(0, 0), (1, 1), (2, 1)]

    def test_capped_seed_not_reported_as_neighbour(self):
        graph = _star(3)
        options = TraversalOptions(max_depth=1, per_depth_caps=(1, 50))
        results = GraphTraverser(graph).traverse([0, 1], options)
        assert [(r.node_id, r.depth) for r in results] == [(0, 0), (2, 1), (3, 1)]

    def test_last_cap_applies_to_deeper_levels(self):
        options = TraversalOptions(per_depth_caps=(50, 30, 15, 5))
        assert options.cap_for_depth(3) == 5
        assert options.cap_for_depth(9) == 5

    def test_seed_cap(self):
        graph = _star(5)
        options = TraversalOptions(max_depth=0, per_depth_caps=(2,))
        results = GraphTraverser(graph).traverse([1, 2, 3], options)
        assert [r.node_id for r in results] == [1, 2]

    def test_terminal_node_reported_not_expanded(self):
        graph = _star(3, hub_name="new")
        results = GraphTraverser(graph).traverse([0], TraversalOptions(max_depth=3))
        assert [r.node_id for r in results] == [0]

    def test_terminal_neighbour_reported_at_its_depth(self):
        graph = CodeGraph()
        start = graph.add_node(make_node("start_here", 1))
        ctor = graph.add_node(make_node("new", 5))
        beyond = graph.add_node(make_node("beyond", 9))
        graph.add_edge(DependencyEdge(source=start, target=ctor))
        graph.add_edge(DependencyEdge(source=ctor, target=beyond))

        results = GraphTraverser(graph).traverse([start], TraversalOptions(max_depth=3))
        assert [(r.node_id, r.depth) for r in results] == [(start, 0), (ctor, 1)]

    def test_terminal_stopping_can_be_disabled(self):
        graph = _star(3, hub_name="new")
        options = TraversalOptions(max_depth=1, stop_at_terminal_names=False)
        results = GraphTraverser(graph).traverse([0], options)
        assert len(results) == 4

    def test_custom_terminal_names(self):
        graph = _star(3, hub_name="dispatch")
        options = TraversalOptions(max_depth=1, terminal_names=frozenset({"dispatch"}))
        results = GraphTraverser(graph).traverse([0], options)
        assert [r.node_id for r in results] == [0]

    def test_traverse_from_names(self, triangle_graph: CodeGraph):
        results = GraphTraverser(triangle_graph).traverse_from_names(
            ["DETECT"], TraversalOptions(max_depth=1)
        )
        assert results[0].node_id == 2
        assert {r.node_id for r in results} == {0, 1, 2}

    def test_options_from_config(self):
        config = TraversalConfig(max_depth=4, per_depth_caps=[7], terminal_names=["x"])
        options = TraversalOptions.from_config(config, max_depth=1)
        assert options.max_depth == 1
        assert options.cap_for_depth(3) == 7
        assert options.terminal_names == frozenset({"x"})
