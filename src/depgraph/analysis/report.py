"""Dead code scan report."""

from __future__ import annotations

from pydantic import BaseModel, Field

from depgraph.analysis.dead_code import DeadCode, group_by_safety
from depgraph.graph.models import CodeGraph, NodeKind


class ReportSummary(BaseModel):
    total_files: int = 0
    total_functions: int = 0
    dead_code_count: int = 0
    dead_code_lines: int = 0
    by_safety_level: dict[str, int] = Field(default_factory=dict)
    reduction_percent: float = 0.0


class ReportEntry(BaseModel):
    file: str
    name: str
    kind: str
    line_start: int
    line_end: int
    safety_level: str
    reason: str
    category: str | None = None
    confidence: float | None = None


class ScanReport(BaseModel):
    summary: ReportSummary
    dead_code: list[ReportEntry] = Field(default_factory=list)


def build_report(graph: CodeGraph, dead: list[DeadCode]) -> ScanReport:
    """Summarise `dead` against the graph it came from."""
    total_functions = sum(
        1 for n in graph.nodes.values() if n.kind in (NodeKind.FUNCTION, NodeKind.METHOD)
    )
    dead_lines = sum(item.node.line_count for item in dead)
    summary = ReportSummary(
        total_files=len(graph.file_paths()),
        total_functions=total_functions,
        dead_code_count=len(dead),
        dead_code_lines=dead_lines,
        by_safety_level={
            level.value: len(items) for level, items in group_by_safety(dead).items()
        },
        reduction_percent=(len(dead) / total_functions * 100.0) if total_functions else 0.0,
    )

    entries = []
    for item in dead:
        node = item.node
        entries.append(
            ReportEntry(
                file=node.file_path,
                name=node.name,
                kind=node.kind.value,
                line_start=node.line_start,
                line_end=node.line_end,
                safety_level=item.safety_level.value,
                reason=item.reason,
                category=item.analysis.category.value if item.analysis else None,
                confidence=item.analysis.confidence if item.analysis else None,
            )
        )
    return ScanReport(summary=summary, dead_code=entries)
