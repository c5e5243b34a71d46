"""Context generation: directed dependency queries and formatted context."""

from depgraph.context.engine import ContextGenerator, node_importance, sort_by_importance
from depgraph.context.formatter import parse_edit_blocks
from depgraph.context.models import (
    CallChainResult,
    CallChainStep,
    CallTreeNode,
    ContextFormat,
    ContextMode,
    ContextQuality,
    ContextResult,
    DependencyInfo,
    EditBlock,
)

__all__ = [
    "CallChainResult",
    "CallChainStep",
    "CallTreeNode",
    "ContextFormat",
    "ContextGenerator",
    "ContextMode",
    "ContextQuality",
    "ContextResult",
    "DependencyInfo",
    "EditBlock",
    "node_importance",
    "parse_edit_blocks",
    "sort_by_importance",
]
