"""Dependency graph: model, construction, traversal and persistence."""

from depgraph.graph.builder import GraphBuilder
from depgraph.graph.models import CodeGraph, CodeNode, DependencyEdge, EdgeKind, NodeKind
from depgraph.graph.store import GraphStore
from depgraph.graph.traversal import GraphTraverser, TraversalOptions, TraversalResult

__all__ = [
    "CodeGraph",
    "CodeNode",
    "DependencyEdge",
    "EdgeKind",
    "GraphBuilder",
    "GraphStore",
    "GraphTraverser",
    "NodeKind",
    "TraversalOptions",
    "TraversalResult",
]
