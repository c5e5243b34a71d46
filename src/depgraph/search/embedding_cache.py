"""Persisted node embeddings, keyed by node id."""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from depgraph.config import EMBEDDINGS_FILE, get_depgraph_dir
from depgraph.graph.models import CodeGraph, CodeNode
from depgraph.search.embeddings import Embedder

logger = logging.getLogger("depgraph.search.cache")

_BATCH_SIZE = 64


def node_text(node: CodeNode) -> str:
    """The text embedded for a node."""
    parts = [node.name, node.kind.value, node.file_path]
    if node.signature:
        parts.append(node.signature)
    return " ".join(parts)


class EmbeddingCache(BaseModel):
    """Vectors for a project's nodes plus the text that produced them."""

    project_path: str
    model: str
    embeddings: dict[int, list[float]] = Field(default_factory=dict)
    node_texts: dict[int, str] = Field(default_factory=dict)

    def is_valid_for(self, graph: CodeGraph) -> bool:
        """True when the cache covers at least half of the graph's nodes."""
        if not graph.node_count:
            return False
        return len(self.embeddings) * 2 >= graph.node_count

    @classmethod
    def build(cls, project_path: str | Path, graph: CodeGraph, embedder: Embedder) -> EmbeddingCache:
        """Embed every node of `graph`. Raises EmbeddingError on backend failure."""
        cache = cls(project_path=str(project_path), model=embedder.name)
        ids = list(graph.nodes)
        for start in range(0, len(ids), _BATCH_SIZE):
            batch = ids[start:start + _BATCH_SIZE]
            texts = [node_text(graph.nodes[nid]) for nid in batch]
            for nid, text, vector in zip(batch, texts, embedder.embed_batch(texts)):
                cache.embeddings[nid] = vector
                cache.node_texts[nid] = text
        logger.info("Embedded %d nodes with %s", len(cache.embeddings), embedder.name)
        return cache

    def save(self, path: str | Path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json())

    @classmethod
    def load(cls, path: str | Path) -> EmbeddingCache | None:
        """Load a cache file, or None if it is missing or unreadable."""
        path = Path(path)
        if not path.exists():
            return None
        try:
            return cls.model_validate_json(path.read_text())
        except (OSError, ValidationError) as e:
            logger.warning("Ignoring unreadable embedding cache %s: %s", path, e)
            return None

    @classmethod
    def load_or_build(cls, root: str | Path, graph: CodeGraph, embedder: Embedder) -> EmbeddingCache:
        """Reuse the project's cache when it still fits the graph, else rebuild and save it."""
        root = Path(root)
        path = get_depgraph_dir(root) / EMBEDDINGS_FILE
        cache = cls.load(path)
        if cache is not None and cache.model == embedder.name and cache.is_valid_for(graph):
            return cache
        cache = cls.build(root, graph, embedder)
        cache.save(path)
        return cache
