"""Graph search with optional embedding seeding."""

from depgraph.search.embedding_cache import EmbeddingCache
from depgraph.search.embeddings import (
    Embedder,
    HashingEmbedder,
    OpenAIEmbedder,
    cosine_similarity,
    create_embedder,
)
from depgraph.search.graph_search import GraphSearcher, GraphSearchResult, MatchType

__all__ = [
    "Embedder",
    "EmbeddingCache",
    "GraphSearchResult",
    "GraphSearcher",
    "HashingEmbedder",
    "MatchType",
    "OpenAIEmbedder",
    "cosine_similarity",
    "create_embedder",
]
