"""Build a dependency graph from parsed declarations and call sites."""

from __future__ import annotations

import logging
from pathlib import Path

from depgraph.config import IndexerConfig, ProjectConfig
from depgraph.exceptions import IndexingError
from depgraph.graph.export import graph_stats
from depgraph.graph.models import (
    CodeGraph,
    CodeNode,
    DependencyEdge,
    EdgeKind,
    GraphStats,
    NodeKind,
)
from depgraph.parser.core import ProgressCallback, parse_directory
from depgraph.parser.models import CallSite, FileParseResult, SiteKind

logger = logging.getLogger("depgraph.graph")

_SITE_EDGE_KINDS = {
    SiteKind.REFERENCE: EdgeKind.REFERENCES,
    SiteKind.IMPORT: EdgeKind.IMPORTS,
}


class GraphBuilder:
    """Builds a CodeGraph in two passes.

    Pass 1 registers every declaration as a node. Pass 2 turns each call
    site into an edge from the innermost enclosing declaration to the
    callee, or into a top-level usage (source None) when the site lies
    outside every declaration.
    """

    def __init__(self) -> None:
        self.graph = CodeGraph()
        self._by_file: dict[str, list[int]] = {}
        self._by_name: dict[str, list[int]] = {}
        self._seen_edges: set[tuple[int | None, int, EdgeKind]] = set()
        self.files_parsed = 0
        self.unresolved_sites = 0

    def build_from_directory(
        self,
        root: str | Path,
        config: ProjectConfig | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> CodeGraph:
        """Parse every supported file under `root` and build the graph.

        Args:
            root: Root directory to scan.
            config: Project configuration.
            progress_callback: Optional callback(file_path, current, total).

        Returns:
            The constructed graph.

        Raises:
            IndexingError: If `root` is not a directory.
        """
        root = Path(root).resolve()
        if not root.is_dir():
            raise IndexingError(f"Not a directory: {root}")
        indexer_config = config.indexer if config else IndexerConfig()
        parsed = parse_directory(root, indexer_config, progress_callback)
        return self.build(parsed)

    def build(self, parsed_files: list[FileParseResult]) -> CodeGraph:
        """Build a fresh graph from already-parsed files."""
        self.graph = CodeGraph()
        self._by_file = {}
        self._by_name = {}
        self._seen_edges = set()
        self.unresolved_sites = 0
        self.files_parsed = len(parsed_files)

        # Pass 1: declarations -> nodes
        for fs in parsed_files:
            self._add_declarations(fs)

        # Pass 2: call sites -> edges
        for fs in parsed_files:
            for site in fs.calls:
                self._add_site(fs.file_path, site)

        logger.info(
            "Built graph: %d nodes, %d edges from %d files (%d unresolved call sites)",
            self.graph.node_count,
            self.graph.edge_count,
            self.files_parsed,
            self.unresolved_sites,
        )
        return self.graph

    def _add_declarations(self, fs: FileParseResult) -> None:
        for decl in fs.declarations:
            if decl.line_end < decl.line_start:
                logger.warning(
                    "Ignoring %s in %s: empty line range %d-%d",
                    decl.name, fs.file_path, decl.line_start, decl.line_end,
                )
                continue
            node_id = self.graph.add_node(
                CodeNode(
                    name=decl.name,
                    kind=NodeKind(decl.kind.value),
                    file_path=fs.file_path,
                    line_start=decl.line_start,
                    line_end=decl.line_end,
                    exported=decl.exported,
                    signature=decl.signature,
                )
            )
            self._by_file.setdefault(fs.file_path, []).append(node_id)
            self._by_name.setdefault(decl.name, []).append(node_id)

    def _add_site(self, file_path: str, site: CallSite) -> None:
        target = self.resolve_callee(site.callee_name, file_path)
        if target is None:
            self.unresolved_sites += 1
            logger.debug(
                "Unresolved %s '%s' at %s:%d",
                site.kind.value, site.callee_name, file_path, site.caller_line,
            )
            return

        source = self.find_enclosing(file_path, site.caller_line)

        if site.kind == SiteKind.CALL:
            if self.graph.nodes[target].kind == NodeKind.CLASS:
                kind = EdgeKind.INSTANTIATES
            else:
                kind = EdgeKind.CALLS
        else:
            if source == target:
                # A declaration naming itself is not usage evidence
                return
            kind = _SITE_EDGE_KINDS[site.kind]

        key = (source, target, kind)
        if key in self._seen_edges:
            return
        self._seen_edges.add(key)
        self.graph.add_edge(DependencyEdge(source=source, target=target, kind=kind))
        self.graph.nodes[target].used = True

    def find_enclosing(self, file_path: str, line: int) -> int | None:
        """Innermost declaration in `file_path` whose range contains `line`."""
        best: int | None = None
        best_span = 0
        for node_id in self._by_file.get(file_path, []):
            node = self.graph.nodes[node_id]
            if node.line_start <= line <= node.line_end:
                span = node.line_end - node.line_start
                if best is None or span < best_span:
                    best = node_id
                    best_span = span
        return best

    def resolve_callee(self, name: str, file_path: str) -> int | None:
        """Resolve a callee name: same-file declaration first, then the first one inserted."""
        candidates = self._by_name.get(name)
        if not candidates:
            return None
        for node_id in candidates:
            if self.graph.nodes[node_id].file_path == file_path:
                return node_id
        return candidates[0]

    def get_stats(self) -> GraphStats:
        """Statistics for the graph built last."""
        return graph_stats(self.graph)
