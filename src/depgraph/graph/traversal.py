"""Bounded breadth-first traversal over the dependency graph."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass, field

from depgraph.config import TraversalConfig
from depgraph.graph.models import CodeGraph
from depgraph.names import DEFAULT_TERMINAL_NAMES

DEFAULT_DEPTH_CAPS: tuple[int, ...] = (50, 30, 15, 5)


@dataclass
class TraversalOptions:
    """Bounds for a traversal.

    `per_depth_caps[i]` is the maximum number of results at depth i; the
    last entry applies to every deeper level.
    """

    max_depth: int = 3
    per_depth_caps: tuple[int, ...] = DEFAULT_DEPTH_CAPS
    stop_at_terminal_names: bool = True
    terminal_names: frozenset[str] = DEFAULT_TERMINAL_NAMES

    @classmethod
    def from_config(cls, config: TraversalConfig, max_depth: int | None = None) -> TraversalOptions:
        return cls(
            max_depth=config.max_depth if max_depth is None else max_depth,
            per_depth_caps=tuple(config.per_depth_caps) or DEFAULT_DEPTH_CAPS,
            stop_at_terminal_names=config.stop_at_terminal_names,
            terminal_names=frozenset(config.terminal_names),
        )

    def cap_for_depth(self, depth: int) -> int:
        if not self.per_depth_caps:
            return 0
        return self.per_depth_caps[min(depth, len(self.per_depth_caps) - 1)]


@dataclass
class TraversalResult:
    """A node reached by a traversal, with the path that reached it."""

    node_id: int
    depth: int
    path: list[int] = field(default_factory=list)


class GraphTraverser:
    """Multi-source BFS that treats edges as undirected.

    - A global visited set means each node is reported at most once, so
      the walk terminates on cyclic graphs.
    - Results per depth are capped; discoveries past a full depth are
      dropped and count as visited, so no node is reported deeper than
      its distance from the nearest seed.
    - Nodes with a terminal name are reported but never expanded.
    - Results come out in BFS insertion order, which follows edge-list
      order. Callers sort if they need a ranking.
    """

    def __init__(self, graph: CodeGraph, options: TraversalOptions | None = None) -> None:
        self.graph = graph
        self.options = options or TraversalOptions()

    def traverse(
        self, seed_ids: Iterable[int], options: TraversalOptions | None = None
    ) -> list[TraversalResult]:
        opts = options or self.options
        graph = self.graph

        results: list[TraversalResult] = []
        visited: set[int] = set()
        depth_counts: dict[int, int] = {}
        queue: deque[TraversalResult] = deque()

        for seed in seed_ids:
            if seed in visited or not graph.has_node(seed):
                continue
            visited.add(seed)
            if depth_counts.get(0, 0) >= opts.cap_for_depth(0):
                continue
            depth_counts[0] = depth_counts.get(0, 0) + 1
            item = TraversalResult(node_id=seed, depth=0, path=[seed])
            results.append(item)
            queue.append(item)

        while queue:
            current = queue.popleft()
            if current.depth >= opts.max_depth:
                continue
            if self._is_terminal(current.node_id, opts):
                continue

            next_depth = current.depth + 1
            cap = opts.cap_for_depth(next_depth)
            for edge in graph.incident(current.node_id):
                neighbor = edge.target if edge.source == current.node_id else edge.source
                if neighbor is None or neighbor in visited or not graph.has_node(neighbor):
                    continue
                visited.add(neighbor)
                if depth_counts.get(next_depth, 0) >= cap:
                    # Dropped discoveries stay visited
                    continue
                depth_counts[next_depth] = depth_counts.get(next_depth, 0) + 1
                item = TraversalResult(
                    node_id=neighbor, depth=next_depth, path=current.path + [neighbor]
                )
                results.append(item)
                queue.append(item)

        return results

    def traverse_from_names(
        self, names: Iterable[str], options: TraversalOptions | None = None
    ) -> list[TraversalResult]:
        """Traverse from every node whose name contains one of `names`."""
        seeds: list[int] = []
        for name in names:
            seeds.extend(self.graph.find_nodes_by_name(name))
        return self.traverse(seeds, options)

    def _is_terminal(self, node_id: int, opts: TraversalOptions) -> bool:
        if not opts.stop_at_terminal_names:
            return False
        node = self.graph.nodes[node_id]
        return node.name in opts.terminal_names
