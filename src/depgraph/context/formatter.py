"""Stateless projections of a collected node set into context text."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from depgraph.context.models import ContextFormat, ContextMode, EditBlock
from depgraph.graph.models import CodeNode

logger = logging.getLogger("depgraph.context")

_EDIT_BLOCK_RE = re.compile(
    r"<<<FILE:\s*(?P<path>.+?):(?P<start>\d+)-(?P<end>\d+)>>>\n(?P<code>[\s\S]*?)<<<END FILE>>>"
)


class SourceReader:
    """Reads line ranges from project files, caching file contents."""

    def __init__(self, root: Path | None) -> None:
        self.root = root
        self._cache: dict[str, list[str] | None] = {}

    def read_range(self, file_path: str, start: int, end: int) -> str | None:
        lines = self._lines(file_path)
        if lines is None:
            return None
        return "\n".join(lines[max(start - 1, 0): min(end, len(lines))])

    def _lines(self, file_path: str) -> list[str] | None:
        if file_path not in self._cache:
            if self.root is None:
                self._cache[file_path] = None
            else:
                try:
                    text = (self.root / file_path).read_text(encoding="utf-8", errors="replace")
                    self._cache[file_path] = text.splitlines()
                except OSError as e:
                    logger.warning("Cannot read %s: %s", file_path, e)
                    self._cache[file_path] = None
        return self._cache[file_path]


def _group_by_file(nodes: list[CodeNode]) -> dict[str, list[CodeNode]]:
    # dicts keep first-appearance order, so ranking order carries across files
    by_file: dict[str, list[CodeNode]] = {}
    for node in nodes:
        by_file.setdefault(node.file_path, []).append(node)
    return by_file


def _body(node: CodeNode, mode: ContextMode, reader: SourceReader) -> str:
    if mode == ContextMode.FULL:
        code = reader.read_range(node.file_path, node.line_start, node.line_end)
        if code is not None:
            return code
        return f"// {node.name} {node.kind.value}"
    if node.signature:
        return node.signature
    return f"{node.name} {node.kind.value}"


def format_context(
    nodes: list[CodeNode],
    mode: ContextMode,
    fmt: ContextFormat,
    reader: SourceReader,
    entry_point: str | None = None,
    query: str | None = None,
) -> str:
    if fmt == ContextFormat.LLM_EDIT:
        return format_llm_edit(nodes, mode, reader, entry_point, query)
    return format_standard(nodes, mode, reader, entry_point, query)


def format_standard(
    nodes: list[CodeNode],
    mode: ContextMode,
    reader: SourceReader,
    entry_point: str | None = None,
    query: str | None = None,
) -> str:
    out = ["// ===== CONTEXT FILE =====", "// Generated by depgraph"]
    if entry_point:
        out.append(f"// Entry point: {entry_point}")
    if query:
        out.append(f"// Query: {query}")

    by_file = _group_by_file(nodes)
    out.append(f"// Files: {len(by_file)}, Functions: {len(nodes)}")
    out.append("")

    for file_path, file_nodes in by_file.items():
        out.append(f"// ===== FILE: {file_path} =====")
        for node in file_nodes:
            out.append(f"// Lines: {node.line_start}-{node.line_end}")
            out.append("")
            out.append(_body(node, mode, reader))
            out.append("")

    out.append("// ===== END CONTEXT =====")
    return "\n".join(out) + "\n"


def format_llm_edit(
    nodes: list[CodeNode],
    mode: ContextMode,
    reader: SourceReader,
    entry_point: str | None = None,
    query: str | None = None,
) -> str:
    out = ["# CONTEXT FOR LLM EDITING"]
    if entry_point:
        out.append(f"# Entry: {entry_point}")
    if query:
        out.append(f"# Query: {query}")
    out.append("#")
    out.append("# Instructions: Edit the code blocks below. Keep the <<<FILE>>> markers intact.")
    out.append("# The markers contain file path and line numbers for applying changes.")
    out.append("")

    for file_path, file_nodes in _group_by_file(nodes).items():
        for node in sorted(file_nodes, key=lambda n: n.line_start):
            out.append(f"<<<FILE: {file_path}:{node.line_start}-{node.line_end}>>>")
            out.append(_body(node, mode, reader))
            out.append("<<<END FILE>>>")
            out.append("")

    return "\n".join(out) + "\n"


def parse_edit_blocks(text: str) -> list[EditBlock]:
    """Read the ``<<<FILE: path:a-b>>>`` blocks back out of llm_edit text."""
    blocks = []
    for match in _EDIT_BLOCK_RE.finditer(text):
        blocks.append(
            EditBlock(
                file_path=match.group("path").strip(),
                start_line=int(match.group("start")),
                end_line=int(match.group("end")),
                content=match.group("code").rstrip("\n"),
            )
        )
    return blocks
