"""Graph export and whole-graph structure analysis, backed by networkx."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from pathlib import Path

import networkx as nx
from networkx.readwrite import json_graph

from depgraph.graph.models import CodeGraph, GraphStats, NodeKind
from depgraph.names import DEFAULT_ENTRY_POINT_NAMES

logger = logging.getLogger("depgraph.graph.export")

EXPORT_FORMATS = ("json", "graphml", "dot")


def export_graph(graph: CodeGraph, output: str | Path, fmt: str = "json") -> Path:
    """Write `graph` to `output` as node-link JSON, GraphML or Graphviz DOT."""
    output = Path(output)
    output.parent.mkdir(parents=True, exist_ok=True)
    g = graph.to_networkx()

    if fmt == "json":
        data = json_graph.node_link_data(g)
        data["top_level_usages"] = [
            {"target": e.target, "kind": e.kind.value}
            for e in graph.edges
            if e.source is None and graph.has_node(e.target)
        ]
        output.write_text(json.dumps(data, indent=2))
    elif fmt == "graphml":
        nx.write_graphml(g, output)
    elif fmt == "dot":
        output.write_text(_to_dot(g))
    else:
        raise ValueError(f"Unknown export format '{fmt}'. Supported: {', '.join(EXPORT_FORMATS)}")

    logger.info("Exported %d nodes to %s (%s)", g.number_of_nodes(), output, fmt)
    return output


def _to_dot(g: nx.MultiDiGraph) -> str:
    lines = ["digraph depgraph {", "  rankdir=LR;", "  node [shape=box];"]
    for node_id, data in g.nodes(data=True):
        label = f"{data['name']}\\n{data['file_path']}:{data['line_start']}"
        style = "" if data.get("used") or data.get("exported") else ", color=red"
        lines.append(f'  n{node_id} [label="{_dot_escape(label)}"{style}];')
    for source, target, data in g.edges(data=True):
        lines.append(f'  n{source} -> n{target} [label="{data["kind"]}"];')
    lines.append("}")
    return "\n".join(lines) + "\n"


def _dot_escape(text: str) -> str:
    return text.replace('"', '\\"')


def recursive_groups(g: nx.MultiDiGraph) -> list[set[int]]:
    """Strongly connected components that actually form a cycle."""
    groups = []
    for component in nx.strongly_connected_components(g):
        if len(component) > 1:
            groups.append(component)
        else:
            (only,) = component
            if g.has_edge(only, only):
                groups.append(component)
    return groups


def graph_stats(graph: CodeGraph) -> GraphStats:
    """Counts by kind plus connectivity figures."""
    g = graph.to_networkx()

    node_kinds: dict[str, int] = {}
    for node in graph.nodes.values():
        node_kinds[node.kind.value] = node_kinds.get(node.kind.value, 0) + 1

    edge_kinds: dict[str, int] = {}
    top_level = 0
    dangling = 0
    for edge in graph.edges:
        edge_kinds[edge.kind.value] = edge_kinds.get(edge.kind.value, 0) + 1
        if edge.source is None:
            top_level += 1
        elif not graph.has_node(edge.source) or not graph.has_node(edge.target):
            dangling += 1

    return GraphStats(
        total_nodes=graph.node_count,
        total_edges=graph.edge_count,
        files=len(graph.file_paths()),
        functions=node_kinds.get(NodeKind.FUNCTION.value, 0) + node_kinds.get(NodeKind.METHOD.value, 0),
        classes=node_kinds.get(NodeKind.CLASS.value, 0),
        node_kinds=node_kinds,
        edge_kinds=edge_kinds,
        top_level_usages=top_level,
        dangling_edges=dangling,
        components=nx.number_weakly_connected_components(g) if g.number_of_nodes() else 0,
        recursive_groups=len(recursive_groups(g)),
    )


def find_dead_cycles(
    graph: CodeGraph, entry_point_names: Iterable[str] = DEFAULT_ENTRY_POINT_NAMES
) -> list[list[int]]:
    """Groups of nodes that only keep each other alive.

    Every edge into the group starts inside the group, and no member is
    exported or an entry point. Reachability alone counts these nodes as
    used, so they are reported separately.
    """
    entry_names = set(entry_point_names)
    cycles = []
    for group in recursive_groups(graph.to_networkx()):
        members = [graph.nodes[nid] for nid in group]
        if any(m.exported or m.name in entry_names for m in members):
            continue
        if all(
            edge.source in group
            for nid in group
            for edge in graph.incoming(nid)
        ):
            cycles.append(sorted(group))
    return sorted(cycles)
