"""Context generation and directed graph queries.

The generator answers the symbol-level questions a reasoning agent asks
about a codebase:

  - gather_context: the entry point plus everything it depends on, ranked
    and formatted under an optional token budget
  - get_dependencies / get_dependents: direction-flipped, depth-limited
    walks deduplicated by source location
  - get_call_chain: the first shortest call path between two symbols
  - get_call_tree: a depth-annotated DFS enumeration for tree rendering

Unlike the traversal engine, every walk here follows edge direction.
Unknown symbols produce empty or not-found results, never errors.
"""

from __future__ import annotations

import logging
import re
from collections import deque
from collections.abc import Iterator
from pathlib import Path

from depgraph.context.formatter import SourceReader, format_context
from depgraph.context.models import (
    CallChainResult,
    CallChainStep,
    CallTreeNode,
    ContextFormat,
    ContextMode,
    ContextQuality,
    ContextResult,
    DependencyInfo,
    TokenEstimator,
)
from depgraph.context.quality import calculate_quality
from depgraph.graph.models import CodeGraph, CodeNode, DependencyEdge, NodeKind

logger = logging.getLogger("depgraph.context")

MAX_QUERY_SEEDS = 10

_KIND_IMPORTANCE: dict[NodeKind, int] = {
    NodeKind.CLASS: 100,
    NodeKind.FUNCTION: 50,
    NodeKind.METHOD: 40,
    NodeKind.VARIABLE: 10,
}

_BOILERPLATE_NAMES = frozenset({"new", "default", "clone"})

_QUERY_STOP_WORDS = frozenset({
    "the", "and", "for", "that", "this", "with", "from", "into", "when",
    "where", "how", "what", "why", "which", "does", "add", "fix", "bug",
    "function", "method", "class", "file", "code",
})


def node_importance(node: CodeNode, entry_ids: set[int]) -> int:
    """Ranking score for skeleton mode.

    Entry points dominate. Type-like declarations beat plain functions,
    accessors and trivial constructors sink, and long bodies rise.
    """
    score = 0
    if node.id in entry_ids:
        score += 1000

    score += _KIND_IMPORTANCE.get(node.kind, 0)

    sig = node.signature.lower()
    if "trait" in sig or "interface" in sig:
        score += 80
    elif "impl" in sig:
        score += 60
    elif "struct" in sig or "enum" in sig or "type" in sig:
        score += 70
    if "pub" in sig:
        score += 20

    name = node.name
    if name.startswith(("get_", "set_")):
        score -= 30
    elif name.startswith(("is_", "has_")):
        score -= 20
    if name in _BOILERPLATE_NAMES:
        score -= 40

    lines = node.line_count
    if lines <= 3:
        score -= 10
    elif lines > 50:
        score += 30
    return score


def sort_by_importance(nodes: list[CodeNode], entry_ids: set[int]) -> list[CodeNode]:
    """Descending importance; ties keep collection order."""
    return sorted(nodes, key=lambda n: node_importance(n, entry_ids), reverse=True)


def _query_terms(query: str) -> list[str]:
    terms: list[str] = []
    for word in re.findall(r"[A-Za-z_][A-Za-z0-9_]*", query):
        if len(word) < 3 or word.lower() in _QUERY_STOP_WORDS or word in terms:
            continue
        terms.append(word)
    return terms


class ContextGenerator:
    """Directed queries and context assembly over a built graph.

    Args:
        graph: The graph to query. Treated as read-only.
        root: Project root used to read source for full mode. Without it,
            full mode falls back to a one-line placeholder per node.
    """

    def __init__(self, graph: CodeGraph, root: str | Path | None = None) -> None:
        self.graph = graph
        self.root = Path(root) if root is not None else None

    # ------------------------------------------------------------------
    # Context assembly
    # ------------------------------------------------------------------

    def gather_context(
        self,
        entry_point: str | None = None,
        query: str | None = None,
        depth: int = 2,
        mode: ContextMode = ContextMode.SKELETON,
        fmt: ContextFormat = ContextFormat.STANDARD,
        max_tokens: int | None = None,
    ) -> ContextResult:
        """Collect the entry point's dependencies and format them.

        Args:
            entry_point: A symbol name or a ``file::name`` pair. Every
                matching node becomes a seed.
            query: Free text used for seeding when no entry point is given.
            depth: How many levels of outgoing edges to follow. Zero
                collects nothing.
            mode: Full source or ranked signatures.
            fmt: Output layout.
            max_tokens: Optional budget on the estimated size of the
                emitted nodes. At least one node is always kept.

        Returns:
            The formatted context and its quality figures.
        """
        if entry_point:
            seeds = self.resolve_entry_point(entry_point)
        elif query:
            seeds = self.resolve_query(query)
        else:
            return ContextResult(
                content="// No entry point or query specified",
                quality=ContextQuality(),
            )

        collected: list[CodeNode] = []
        visited: set[int] = set()
        for seed in seeds:
            self.collect_dependencies(seed.id, depth, collected, visited)

        entry_ids = {seed.id for seed in seeds}
        if mode == ContextMode.SKELETON:
            collected = sort_by_importance(collected, entry_ids)

        reader = SourceReader(self.root)
        omitted = 0
        if max_tokens is not None and collected:
            collected, omitted = self._apply_budget(collected, mode, reader, max_tokens)

        content = format_context(collected, mode, fmt, reader, entry_point, query)
        total_lines = sum(n.line_count for n in collected)
        quality = calculate_quality(content, collected, entry_ids, mode)

        logger.debug(
            "Context for %s: %d seeds, %d nodes, %d omitted",
            entry_point or query, len(seeds), len(collected), omitted,
        )
        return ContextResult(
            content=content,
            files_count=len({n.file_path for n in collected}),
            functions_count=len(collected),
            total_lines=total_lines,
            omitted_count=omitted,
            quality=quality,
        )

    def resolve_entry_point(self, entry_point: str) -> list[CodeNode]:
        """Nodes matching a bare name or a ``file::name`` pair."""
        if "::" in entry_point:
            file_part, _, name_part = entry_point.partition("::")
            return [
                n for n in self.graph.nodes.values()
                if file_part in Path(n.file_path).name
                and (n.name == name_part or name_part in n.name)
            ]
        return [
            n for n in self.graph.nodes.values()
            if n.name == entry_point or entry_point in n.name
        ]

    def resolve_query(self, query: str) -> list[CodeNode]:
        """Seed nodes for a free-text query, at most MAX_QUERY_SEEDS of them."""
        seeds: list[CodeNode] = []
        seen: set[int] = set()
        for term in _query_terms(query):
            for node_id in self.graph.find_nodes_by_name(term):
                if node_id not in seen:
                    seen.add(node_id)
                    seeds.append(self.graph.nodes[node_id])
        if not seeds:
            # Nothing in the query names a symbol
            seeds = list(self.graph.nodes.values())
        return seeds[:MAX_QUERY_SEEDS]

    def collect_dependencies(
        self,
        node_id: int,
        depth: int,
        collected: list[CodeNode],
        visited: set[int],
    ) -> None:
        """Depth-limited pre-order walk along outgoing edges.

        Each node is appended at most once. Uses an explicit stack of edge
        iterators so deep graphs cannot exhaust the interpreter stack.
        """
        if not self._enter(node_id, depth, collected, visited):
            return
        stack: list[tuple[Iterator[DependencyEdge], int]] = [
            (iter(self.graph.outgoing(node_id)), depth)
        ]
        while stack:
            edges, current_depth = stack[-1]
            edge = next(edges, None)
            if edge is None:
                stack.pop()
                continue
            if self._enter(edge.target, current_depth - 1, collected, visited):
                stack.append((iter(self.graph.outgoing(edge.target)), current_depth - 1))

    def _enter(
        self, node_id: int, depth: int, collected: list[CodeNode], visited: set[int]
    ) -> bool:
        node = self.graph.get_node(node_id)
        if node is None or node_id in visited or depth == 0:
            return False
        visited.add(node_id)
        collected.append(node)
        return True

    def _apply_budget(
        self,
        nodes: list[CodeNode],
        mode: ContextMode,
        reader: SourceReader,
        max_tokens: int,
    ) -> tuple[list[CodeNode], int]:
        kept: list[CodeNode] = []
        used = 0
        for node in nodes:
            if mode == ContextMode.FULL:
                text = reader.read_range(node.file_path, node.line_start, node.line_end) or ""
            else:
                text = node.signature or node.name
            cost = TokenEstimator.estimate(text)
            if kept and used + cost > max_tokens:
                break
            kept.append(node)
            used += cost
        return kept, len(nodes) - len(kept)

    # ------------------------------------------------------------------
    # Dependency queries
    # ------------------------------------------------------------------

    def find_node_by_qualified_name(self, name: str) -> CodeNode | None:
        """Look up ``Qualifier::name`` or an exact bare name.

        The qualifier matches a file base name (with or without extension)
        or an enclosing type named in the signature.
        """
        if "::" in name:
            qualifier, _, func = name.rpartition("::")
            for node in self.graph.nodes.values():
                if node.name != func:
                    continue
                base = Path(node.file_path).name
                if (
                    base == qualifier
                    or base.startswith(f"{qualifier}.")
                    or f"impl {qualifier}" in node.signature
                    or f"{qualifier}::" in node.signature
                    or f"class {qualifier}" in node.signature
                ):
                    return node
            return None
        for node in self.graph.nodes.values():
            if node.name == name:
                return node
        return None

    def get_dependencies(self, name: str, depth: int = 1) -> list[DependencyInfo]:
        """What `name` uses, following outgoing edges up to `depth` levels."""
        return self._dependency_info(name, depth, forward=True)

    def get_dependents(self, name: str, depth: int = 1) -> list[DependencyInfo]:
        """What uses `name`, following incoming edges up to `depth` levels."""
        return self._dependency_info(name, depth, forward=False)

    def _dependency_info(self, name: str, depth: int, forward: bool) -> list[DependencyInfo]:
        node = self.find_node_by_qualified_name(name)
        if node is None or depth == 0:
            return []

        results: list[DependencyInfo] = []
        seen: set[tuple[str, str, int]] = set()
        visited: set[int] = {node.id}

        stack: list[tuple[Iterator[DependencyEdge], int]] = [
            (iter(self._edges(node.id, forward)), depth)
        ]
        while stack:
            edges, current_depth = stack[-1]
            edge = next(edges, None)
            if edge is None:
                stack.pop()
                continue
            other = self.graph.get_node(edge.target if forward else edge.source)
            if other is None:
                continue
            key = (other.name, other.file_path, other.line_start)
            if key not in seen:
                seen.add(key)
                results.append(DependencyInfo.from_node(other))
            if current_depth > 1 and other.id not in visited:
                visited.add(other.id)
                stack.append((iter(self._edges(other.id, forward)), current_depth - 1))
        return results

    def _edges(self, node_id: int, forward: bool) -> list[DependencyEdge]:
        return self.graph.outgoing(node_id) if forward else self.graph.incoming(node_id)

    # ------------------------------------------------------------------
    # Call chains and trees
    # ------------------------------------------------------------------

    def get_call_chain(self, from_name: str, to_name: str, max_depth: int = 5) -> CallChainResult:
        """First shortest path of at most ``max_depth + 1`` nodes from one symbol to another."""
        result = CallChainResult(from_name=from_name, to_name=to_name)
        start = self.find_node_by_qualified_name(from_name)
        goal = self.find_node_by_qualified_name(to_name)
        if start is None or goal is None:
            return result

        queue: deque[list[int]] = deque([[start.id]])
        visited = {start.id}
        while queue:
            path = queue.popleft()
            if len(path) > max_depth + 1:
                continue
            current = path[-1]
            if current == goal.id:
                result.chain = [
                    CallChainStep.from_node(self.graph.nodes[nid]) for nid in path
                ]
                result.found = True
                return result
            for edge in self.graph.outgoing(current):
                if edge.target in visited or not self.graph.has_node(edge.target):
                    continue
                visited.add(edge.target)
                queue.append(path + [edge.target])
        return result

    def get_call_tree(
        self, name: str, depth: int = 3, direction: str = "callee"
    ) -> list[CallTreeNode]:
        """Flattened pre-order call tree rooted at `name`.

        ``direction`` is "callee"/"down" to follow calls outward, anything
        else to follow callers. A node reached on two branches appears once.
        """
        root = self.find_node_by_qualified_name(name)
        if root is None:
            return []
        forward = direction in ("callee", "down")

        tree: list[CallTreeNode] = []
        visited: set[int] = set()

        def visit(node_id: int, current_depth: int) -> bool:
            node = self.graph.get_node(node_id)
            if node is None or node_id in visited or current_depth > depth:
                return False
            visited.add(node_id)
            tree.append(
                CallTreeNode(
                    name=node.name,
                    file_path=node.file_path,
                    line=node.line_start,
                    depth=current_depth,
                    node_type=node.kind.value,
                )
            )
            return True

        if not visit(root.id, 0):
            return tree
        stack: list[tuple[Iterator[DependencyEdge], int]] = [
            (iter(self._edges(root.id, forward)), 0)
        ]
        while stack:
            edges, current_depth = stack[-1]
            edge = next(edges, None)
            if edge is None:
                stack.pop()
                continue
            child = edge.target if forward else edge.source
            if child is not None and visit(child, current_depth + 1):
                stack.append((iter(self._edges(child, forward)), current_depth + 1))
        return tree
