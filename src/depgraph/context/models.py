"""Data models for context generation and graph queries."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from depgraph.graph.models import CodeNode


class ContextMode(str, Enum):
    """How much of each declaration is emitted."""

    FULL = "full"  # complete source of every node
    SKELETON = "skeleton"  # signatures only, ranked by importance


class ContextFormat(str, Enum):
    """Textual layout of the emitted context."""

    STANDARD = "standard"  # human-readable, grouped by file
    LLM_EDIT = "llm_edit"  # <<<FILE: path:a-b>>> blocks for round-tripping edits


class ContextQuality(BaseModel):
    """Advisory quality figures for a generated context."""

    estimated_tokens: int = 0
    # meaningful (3+ char) identifiers per short (1-2 char) identifier
    sn_ratio: float = 0.0
    quality_level: str = ""  # high | medium | low
    recommendation: str | None = None
    concept_density: float = 0.0
    dependency_count: int = 0
    context_explosion_warning: bool = False
    entry_point_ratio: float = 0.0


class ContextResult(BaseModel):
    """Formatted context plus the numbers describing it."""

    content: str
    files_count: int = 0
    functions_count: int = 0
    total_lines: int = 0
    omitted_count: int = 0  # nodes dropped to honour max_tokens
    quality: ContextQuality = Field(default_factory=ContextQuality)


class DependencyInfo(BaseModel):
    """A dependency or dependent of a queried symbol."""

    name: str
    file_path: str
    line: int
    node_type: str

    @classmethod
    def from_node(cls, node: CodeNode) -> DependencyInfo:
        return cls(
            name=node.name,
            file_path=node.file_path,
            line=node.line_start,
            node_type=node.kind.value,
        )


class CallChainStep(DependencyInfo):
    """One hop of a call chain."""


class CallChainResult(BaseModel):
    from_name: str
    to_name: str
    chain: list[CallChainStep] = Field(default_factory=list)
    found: bool = False


class CallTreeNode(BaseModel):
    """A call tree entry, flattened with its depth for rendering."""

    name: str
    file_path: str
    line: int
    depth: int
    node_type: str


class EditBlock(BaseModel):
    """One ``<<<FILE: ...>>>`` block read back from llm_edit output."""

    file_path: str
    start_line: int
    end_line: int
    content: str


class TokenEstimator:
    """Rough token estimates for code (about four characters per token)."""

    CHARS_PER_TOKEN = 4

    @classmethod
    def estimate(cls, text: str) -> int:
        return len(text) // cls.CHARS_PER_TOKEN
