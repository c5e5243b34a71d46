"""Graph search: name or embedding seeding followed by bounded expansion.

Seeds are found by case-insensitive name match (or by nearest embedding),
then the traversal engine widens them to their graph neighbourhood. Scores
decay with distance from the nearest seed, and every result carries the
path that reached it so a caller can see why it was included.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from enum import Enum

from pydantic import BaseModel, Field

from depgraph.config import SearchConfig, TraversalConfig
from depgraph.exceptions import DepGraphError
from depgraph.graph.models import CodeGraph, CodeNode
from depgraph.graph.traversal import GraphTraverser, TraversalOptions, TraversalResult
from depgraph.search.embedding_cache import EmbeddingCache
from depgraph.search.embeddings import Embedder, cosine_similarity

logger = logging.getLogger("depgraph.search")

DEPTH_DECAY = 0.3
SEMANTIC_DEPTH_DECAY = 0.8


class MatchType(str, Enum):
    DIRECT_HIT = "DirectHit"
    GRAPH_NEIGHBOR = "GraphNeighbor"


class TraceStep(BaseModel):
    """One node on the path from a seed to a result."""

    node: str
    node_type: str
    reason: str
    edge: str | None = None
    direction: str | None = None  # forward | backward


class ScoreBreakdown(BaseModel):
    base_score: float
    decay_factor: float
    depth: int


class MatchExplanation(BaseModel):
    trace: list[TraceStep] = Field(default_factory=list)
    score_details: ScoreBreakdown


class GraphSearchResult(BaseModel):
    node_id: int
    name: str
    file_path: str
    line_start: int
    line_end: int
    node_type: str
    score: float
    depth: int
    path: list[int] = Field(default_factory=list)
    match_type: MatchType
    explanation: MatchExplanation
    dependencies: list[str] = Field(default_factory=list)


class GraphSearcher:
    """Hybrid name-match plus graph-neighbour search over a built graph."""

    def __init__(
        self,
        graph: CodeGraph,
        config: SearchConfig | None = None,
        traversal: TraversalConfig | None = None,
    ) -> None:
        self.graph = graph
        self.config = config or SearchConfig()
        self.traversal = traversal or TraversalConfig()
        self.noise_names = frozenset(self.config.noise_names)
        self.traverser = GraphTraverser(graph, TraversalOptions.from_config(self.traversal))

    def _options(self, graph_depth: int) -> TraversalOptions:
        return TraversalOptions.from_config(self.traversal, max_depth=graph_depth)

    def is_noise(self, name: str) -> bool:
        return name in self.noise_names

    def search(
        self,
        query: str,
        top_k: int | None = None,
        graph_depth: int | None = None,
        filter_generic: bool | None = None,
    ) -> list[GraphSearchResult]:
        """Search by name substring and expand through the graph.

        Args:
            query: Case-insensitive substring of the symbol name.
            top_k: How many name matches seed the traversal.
            graph_depth: Maximum traversal depth.
            filter_generic: Drop noise-named results beyond depth 0.

        Returns:
            Results ordered by descending score; ties keep traversal order.
        """
        top_k = self.config.top_k if top_k is None else top_k
        graph_depth = self.config.graph_depth if graph_depth is None else graph_depth
        if filter_generic is None:
            filter_generic = self.config.filter_generic

        seeds = self.graph.find_nodes_by_name(query)[:top_k]
        if not seeds:
            return []

        results = []
        for tr in self.traverser.traverse(seeds, self._options(graph_depth)):
            node = self.graph.nodes[tr.node_id]
            if filter_generic and tr.depth > 0 and self.is_noise(node.name):
                continue
            decay = 1.0 / (1.0 + tr.depth * DEPTH_DECAY)
            results.append(
                self._result(
                    node,
                    tr,
                    score=decay,
                    breakdown=ScoreBreakdown(base_score=1.0, decay_factor=decay, depth=tr.depth),
                    match_type=MatchType.DIRECT_HIT if tr.depth == 0 else MatchType.GRAPH_NEIGHBOR,
                    reason="name_match",
                )
            )

        results.sort(key=lambda r: r.score, reverse=True)
        return results

    def search_semantic(
        self,
        query: str,
        cache: EmbeddingCache,
        embedder: Embedder,
        top_k: int | None = None,
        graph_depth: int | None = None,
    ) -> list[GraphSearchResult]:
        """Seed with the nodes nearest to the query embedding.

        Seeds score their cosine similarity. Other results score a base
        similarity times ``0.8 ** depth``. Any embedding failure falls back
        to name search.
        """
        top_k = self.config.top_k if top_k is None else top_k
        graph_depth = self.config.graph_depth if graph_depth is None else graph_depth

        try:
            query_vec = embedder.embed(query)
        except DepGraphError as e:
            logger.warning("Embedding the query failed, using name search: %s", e)
            return self.search(query, top_k, graph_depth)

        similarities = sorted(
            (
                (node_id, cosine_similarity(query_vec, vector))
                for node_id, vector in cache.embeddings.items()
                if self.graph.has_node(node_id)
            ),
            key=lambda item: item[1],
            reverse=True,
        )
        initial = dict(similarities[:top_k])
        if not initial:
            return []
        top_sim = similarities[0][1]

        results = []
        for tr in self.traverser.traverse(list(initial), self._options(graph_depth)):
            node = self.graph.nodes[tr.node_id]
            if tr.node_id in initial:
                base = initial[tr.node_id]
                score, decay = base, 1.0
                match_type = MatchType.DIRECT_HIT
                reason = f"semantic_match ({base:.2f})"
            else:
                vector = cache.embeddings.get(tr.node_id)
                sim = cosine_similarity(query_vec, vector) if vector is not None else 0.0
                base = sim if sim > 0 else top_sim * 0.5
                decay = SEMANTIC_DEPTH_DECAY ** tr.depth
                score = base * decay
                match_type = MatchType.GRAPH_NEIGHBOR
                reason = "graph_traversal"
            result = self._result(
                node,
                tr,
                score=score,
                breakdown=ScoreBreakdown(base_score=base, decay_factor=decay, depth=tr.depth),
                match_type=match_type,
                reason=reason,
            )
            result.dependencies = [
                target.name
                for edge in self.graph.outgoing(tr.node_id)
                if (target := self.graph.get_node(edge.target)) is not None
            ]
            results.append(result)

        results.sort(key=lambda r: r.score, reverse=True)
        return results

    def traverse_from_names(
        self, names: Iterable[str], max_depth: int | None = None
    ) -> list[TraversalResult]:
        """Traversal only, seeded from every node whose name contains one of `names`."""
        depth = self.traversal.max_depth if max_depth is None else max_depth
        return self.traverser.traverse_from_names(names, self._options(depth))

    def _result(
        self,
        node: CodeNode,
        tr: TraversalResult,
        score: float,
        breakdown: ScoreBreakdown,
        match_type: MatchType,
        reason: str,
    ) -> GraphSearchResult:
        return GraphSearchResult(
            node_id=node.id,
            name=node.name,
            file_path=node.file_path,
            line_start=node.line_start,
            line_end=node.line_end,
            node_type=node.kind.value,
            score=score,
            depth=tr.depth,
            path=list(tr.path),
            match_type=match_type,
            explanation=MatchExplanation(
                trace=self.build_trace(tr.path, reason),
                score_details=breakdown,
            ),
        )

    def build_trace(self, path: Sequence[int], reason: str) -> list[TraceStep]:
        """Name, kind and the traversed edge for each hop of `path`."""
        trace = []
        for i, node_id in enumerate(path):
            node = self.graph.get_node(node_id)
            if node is None:
                continue
            edge_kind = direction = None
            if i > 0:
                prev = path[i - 1]
                edge = self.graph.find_edge(prev, node_id)
                if edge is not None:
                    edge_kind = edge.kind.value
                    direction = "forward" if edge.source == prev else "backward"
            trace.append(
                TraceStep(
                    node=node.name,
                    node_type=node.kind.value,
                    reason=reason if i == 0 else "graph_traversal",
                    edge=edge_kind,
                    direction=direction,
                )
            )
        return trace
