"""Persistent storage for the dependency graph using SQLite.

Node ids are stored as-is so a reloaded graph keeps the identities (and
the next-id counter) of the graph that was saved. File paths are interned
in a side table.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any

from depgraph.exceptions import GraphError
from depgraph.graph.models import CodeGraph, CodeNode, DependencyEdge, EdgeKind, NodeKind

logger = logging.getLogger("depgraph.graph.store")

SCHEMA_VERSION = 1


class GraphStore:
    """Saves and loads a CodeGraph to a SQLite database."""

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self._conn: sqlite3.Connection | None = None

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self.db_path))
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._create_tables(self._conn)
        return self._conn

    @staticmethod
    def _create_tables(conn: sqlite3.Connection) -> None:
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS path_map (
                pid INTEGER PRIMARY KEY,
                path TEXT UNIQUE NOT NULL
            );

            CREATE TABLE IF NOT EXISTS nodes (
                nid INTEGER PRIMARY KEY,
                name TEXT NOT NULL,
                kind TEXT NOT NULL,
                path_id INTEGER NOT NULL REFERENCES path_map(pid),
                line_start INTEGER NOT NULL,
                line_end INTEGER NOT NULL,
                exported INTEGER NOT NULL DEFAULT 0,
                used INTEGER NOT NULL DEFAULT 0,
                signature TEXT
            );

            -- source_nid is NULL for top-level usages; ids may dangle
            CREATE TABLE IF NOT EXISTS edges (
                seq INTEGER PRIMARY KEY,
                source_nid INTEGER,
                target_nid INTEGER NOT NULL,
                kind TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS metadata (
                key TEXT PRIMARY KEY,
                value TEXT
            );

            CREATE INDEX IF NOT EXISTS idx_nodes_name ON nodes(name);
            CREATE INDEX IF NOT EXISTS idx_edges_source ON edges(source_nid);
            CREATE INDEX IF NOT EXISTS idx_edges_target ON edges(target_nid);
        """)
        conn.commit()

    # ------------------------------------------------------------------
    # Save / Load
    # ------------------------------------------------------------------

    def save(self, graph: CodeGraph, metadata: dict[str, Any] | None = None) -> None:
        """Replace the stored graph with `graph`."""
        conn = self._get_conn()
        conn.execute("DELETE FROM edges")
        conn.execute("DELETE FROM nodes")
        conn.execute("DELETE FROM path_map")

        path_ids: dict[str, int] = {}
        for path in graph.file_paths():
            cur = conn.execute("INSERT INTO path_map (path) VALUES (?)", (path,))
            path_ids[path] = cur.lastrowid

        conn.executemany(
            """INSERT INTO nodes
               (nid, name, kind, path_id, line_start, line_end, exported, used, signature)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            [
                (
                    node.id,
                    node.name,
                    node.kind.value,
                    path_ids[node.file_path],
                    node.line_start,
                    node.line_end,
                    int(node.exported),
                    int(node.used),
                    node.signature,
                )
                for node in graph.nodes.values()
            ],
        )
        conn.executemany(
            "INSERT INTO edges (seq, source_nid, target_nid, kind) VALUES (?, ?, ?, ?)",
            [
                (seq, edge.source, edge.target, edge.kind.value)
                for seq, edge in enumerate(graph.edges)
            ],
        )

        meta = {"schema_version": SCHEMA_VERSION, "next_id": graph.next_id}
        meta.update(metadata or {})
        for key, value in meta.items():
            conn.execute(
                "INSERT OR REPLACE INTO metadata (key, value) VALUES (?, ?)",
                (key, json.dumps(value)),
            )
        conn.commit()
        logger.debug(
            "Saved %d nodes and %d edges to %s", graph.node_count, graph.edge_count, self.db_path
        )

    def load(self) -> CodeGraph | None:
        """Load the stored graph, or None if nothing has been saved yet."""
        conn = self._get_conn()
        if self.get_metadata("next_id") is None:
            return None

        pid_to_path = {
            row["pid"]: row["path"]
            for row in conn.execute("SELECT pid, path FROM path_map").fetchall()
        }

        graph = CodeGraph()
        try:
            for row in conn.execute("SELECT * FROM nodes ORDER BY nid").fetchall():
                node = CodeNode(
                    id=row["nid"],
                    name=row["name"],
                    kind=NodeKind(row["kind"]),
                    file_path=pid_to_path.get(row["path_id"], ""),
                    line_start=row["line_start"],
                    line_end=row["line_end"],
                    exported=bool(row["exported"]),
                    used=bool(row["used"]),
                    signature=row["signature"] or "",
                )
                graph.nodes[node.id] = node

            for row in conn.execute("SELECT * FROM edges ORDER BY seq").fetchall():
                graph.add_edge(
                    DependencyEdge(
                        source=row["source_nid"],
                        target=row["target_nid"],
                        kind=EdgeKind(row["kind"]),
                    )
                )
        except ValueError as e:
            raise GraphError(f"Corrupt graph database {self.db_path}: {e}") from e

        stored_next = self.get_metadata("next_id") or 0
        graph.next_id = max(stored_next, max(graph.nodes, default=-1) + 1)
        return graph

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def get_metadata(self, key: str) -> Any:
        """Get a metadata value."""
        conn = self._get_conn()
        row = conn.execute("SELECT value FROM metadata WHERE key = ?", (key,)).fetchone()
        if row:
            return json.loads(row["value"])
        return None

    def set_metadata(self, key: str, value: Any) -> None:
        """Set a single metadata value without a full save."""
        conn = self._get_conn()
        conn.execute(
            "INSERT OR REPLACE INTO metadata (key, value) VALUES (?, ?)",
            (key, json.dumps(value)),
        )
        conn.commit()

    def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None
