"""Node/edge model for the dependency graph.

The graph is an id-keyed arena: nodes live in a dict keyed by an integer id
handed out by the graph itself, and every reference between nodes (edges,
seeds, paths) is a plain integer.
"""

from __future__ import annotations

from enum import Enum

import networkx as nx
from pydantic import BaseModel, Field

from depgraph.exceptions import GraphError


class NodeKind(str, Enum):
    """Kinds of declarations stored as nodes."""

    FUNCTION = "function"
    CLASS = "class"
    METHOD = "method"
    VARIABLE = "variable"


class EdgeKind(str, Enum):
    """Kinds of directed relations between nodes."""

    CALLS = "calls"
    REFERENCES = "references"
    INSTANTIATES = "instantiates"
    IMPORTS = "imports"


class CodeNode(BaseModel):
    """A single declaration."""

    id: int = 0
    name: str
    kind: NodeKind
    file_path: str
    line_start: int
    line_end: int
    exported: bool = False
    used: bool = False  # set during construction; reachability analysis is authoritative
    signature: str = ""

    @property
    def line_count(self) -> int:
        return self.line_end - self.line_start + 1

    @property
    def location(self) -> str:
        return f"{self.file_path}:{self.line_start}"


class DependencyEdge(BaseModel):
    """A directed relation ``source -> target``.

    ``source`` is None for a top-level usage (a call made outside every
    declaration). Either endpoint may also name an id that is not in the
    graph; such edges count as usage evidence but are never traversed.
    """

    source: int | None
    target: int
    kind: EdgeKind = EdgeKind.CALLS


class CodeGraph:
    """Owned collection of nodes, an ordered edge list and an id counter.

    Mutated only while it is being built; query components treat it as
    read-only.
    """

    def __init__(self) -> None:
        self.nodes: dict[int, CodeNode] = {}
        self.edges: list[DependencyEdge] = []
        self.next_id: int = 0
        # node id -> indices into self.edges, in edge-list order
        self._outgoing: dict[int, list[int]] = {}
        self._incoming: dict[int, list[int]] = {}
        self._incident: dict[int, list[int]] = {}

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def add_node(self, node: CodeNode) -> int:
        """Insert `node`, overwriting its id with the next graph id."""
        if node.line_end < node.line_start:
            raise GraphError(
                f"Invalid line range {node.line_start}-{node.line_end} for '{node.name}'"
            )
        node_id = self.next_id
        self.next_id += 1
        node.id = node_id
        self.nodes[node_id] = node
        return node_id

    def add_edge(self, edge: DependencyEdge) -> None:
        index = len(self.edges)
        self.edges.append(edge)
        if edge.source is not None:
            self._outgoing.setdefault(edge.source, []).append(index)
            self._incident.setdefault(edge.source, []).append(index)
        self._incoming.setdefault(edge.target, []).append(index)
        if edge.source != edge.target:
            self._incident.setdefault(edge.target, []).append(index)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_node(self, node_id: int | None) -> CodeNode | None:
        if node_id is None:
            return None
        return self.nodes.get(node_id)

    def has_node(self, node_id: int | None) -> bool:
        return node_id is not None and node_id in self.nodes

    def outgoing(self, node_id: int) -> list[DependencyEdge]:
        """Edges whose source is `node_id`, in edge-list order."""
        return [self.edges[i] for i in self._outgoing.get(node_id, [])]

    def incoming(self, node_id: int) -> list[DependencyEdge]:
        """Edges whose target is `node_id`, in edge-list order."""
        return [self.edges[i] for i in self._incoming.get(node_id, [])]

    def incident(self, node_id: int) -> list[DependencyEdge]:
        """Edges touching `node_id` in either direction, in edge-list order."""
        return [self.edges[i] for i in self._incident.get(node_id, [])]

    def find_nodes_by_name(self, query: str) -> list[int]:
        """Ids of nodes whose name contains `query` (case-insensitive)."""
        needle = query.lower()
        return [nid for nid, node in self.nodes.items() if needle in node.name.lower()]

    def nodes_named(self, name: str) -> list[int]:
        """Ids of nodes whose name is exactly `name`."""
        return [nid for nid, node in self.nodes.items() if node.name == name]

    def find_edge(self, a: int, b: int) -> DependencyEdge | None:
        """First edge joining `a` and `b` in either direction."""
        for edge in self.incident(a):
            if (edge.source == a and edge.target == b) or (edge.source == b and edge.target == a):
                return edge
        return None

    def is_targeted(self, node_id: int) -> bool:
        return bool(self._incoming.get(node_id))

    @property
    def node_count(self) -> int:
        return len(self.nodes)

    @property
    def edge_count(self) -> int:
        return len(self.edges)

    def file_paths(self) -> list[str]:
        return sorted({node.file_path for node in self.nodes.values()})

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    def to_networkx(self) -> nx.MultiDiGraph:
        """The traversable part of the graph as a networkx multigraph.

        Top-level usages and dangling edges are left out.
        """
        g = nx.MultiDiGraph()
        for node_id, node in self.nodes.items():
            g.add_node(
                node_id,
                name=node.name,
                kind=node.kind.value,
                file_path=node.file_path,
                line_start=node.line_start,
                line_end=node.line_end,
                exported=node.exported,
                used=node.used,
                signature=node.signature,
            )
        for edge in self.edges:
            if self.has_node(edge.source) and self.has_node(edge.target):
                g.add_edge(edge.source, edge.target, kind=edge.kind.value)
        return g

    def to_dict(self) -> dict:
        return {
            "next_id": self.next_id,
            "nodes": [n.model_dump(mode="json") for n in self.nodes.values()],
            "edges": [e.model_dump(mode="json") for e in self.edges],
        }

    @classmethod
    def from_dict(cls, data: dict) -> CodeGraph:
        """Rebuild a graph keeping the stored ids."""
        graph = cls()
        for raw in data.get("nodes", []):
            node = CodeNode.model_validate(raw)
            graph.nodes[node.id] = node
        for raw in data.get("edges", []):
            graph.add_edge(DependencyEdge.model_validate(raw))
        graph.next_id = max(data.get("next_id", 0), max(graph.nodes, default=-1) + 1)
        return graph

    def __len__(self) -> int:
        return len(self.nodes)

    def __repr__(self) -> str:
        return f"CodeGraph(nodes={self.node_count}, edges={self.edge_count})"


class GraphStats(BaseModel):
    """Summary numbers for a graph."""

    total_nodes: int = 0
    total_edges: int = 0
    files: int = 0
    functions: int = 0
    classes: int = 0
    node_kinds: dict[str, int] = Field(default_factory=dict)
    edge_kinds: dict[str, int] = Field(default_factory=dict)
    top_level_usages: int = 0
    dangling_edges: int = 0
    components: int = 0
    recursive_groups: int = 0
