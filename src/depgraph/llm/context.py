"""Context text handed to dead code analyzers."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from depgraph.graph.models import CodeNode

logger = logging.getLogger("depgraph.llm")


class ContextCollector:
    """Builds the evidence an analyzer sees for one node.

    Location and signature, the source excerpt, and the latest commits that
    touched the file when the project is a git checkout.
    """

    def __init__(self, root: Path, max_source_lines: int = 40, max_commits: int = 5) -> None:
        self.root = root
        self.max_source_lines = max_source_lines
        self.max_commits = max_commits
        self._history: dict[str, str] = {}

    def __call__(self, node: CodeNode) -> str:
        return self.collect(node)

    def collect(self, node: CodeNode) -> str:
        parts = [
            f"Kind: {node.kind.value}",
            f"Location: {node.file_path}:{node.line_start}-{node.line_end}",
        ]
        if node.signature:
            parts.append(f"Signature: {node.signature}")

        source = self._read_source(node)
        if source:
            parts.append("Source:")
            parts.append(source)

        history = self._git_history(node.file_path)
        if history:
            parts.append("Recent commits touching this file:")
            parts.append(history)
        return "\n".join(parts)

    def _read_source(self, node: CodeNode) -> str:
        try:
            lines = (self.root / node.file_path).read_text(
                encoding="utf-8", errors="replace"
            ).splitlines()
        except OSError as e:
            logger.debug("Cannot read %s: %s", node.file_path, e)
            return ""
        end = min(node.line_end, node.line_start + self.max_source_lines - 1)
        excerpt = lines[node.line_start - 1: end]
        if end < node.line_end:
            excerpt.append(f"... ({node.line_end - end} more lines)")
        return "\n".join(excerpt)

    def _git_history(self, file_path: str) -> str:
        if file_path in self._history:
            return self._history[file_path]
        try:
            result = subprocess.run(
                [
                    "git", "log", f"--max-count={self.max_commits}",
                    "--date=short", "--format=%h %ad %s", "--", file_path,
                ],
                cwd=self.root,
                capture_output=True,
                text=True,
                timeout=10,
            )
            history = result.stdout.strip() if result.returncode == 0 else ""
        except (subprocess.SubprocessError, FileNotFoundError, OSError):
            history = ""
        self._history[file_path] = history
        return history
