"""Embedding backends and vector similarity."""

from __future__ import annotations

import hashlib
import re
from abc import ABC, abstractmethod
from collections.abc import Sequence

import numpy as np

from depgraph.config import EmbeddingConfig
from depgraph.exceptions import ConfigError, EmbeddingError, ProviderNotAvailableError


class Embedder(ABC):
    """Turns text into fixed-length float vectors."""

    name: str = "embedder"

    @abstractmethod
    def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        """Embed several texts. Raises EmbeddingError on backend failure."""
        ...

    def embed(self, text: str) -> list[float]:
        return self.embed_batch([text])[0]


class HashingEmbedder(Embedder):
    """Feature hashing of identifier tokens, L2-normalised.

    Needs no model or network, so it is always available. Tokens are split
    on camelCase and snake_case boundaries; each token increments the
    bucket its digest selects, with a digest-derived sign.
    """

    name = "hashing"

    def __init__(self, dimensions: int = 256) -> None:
        if dimensions <= 0:
            raise ConfigError(f"Embedding dimensions must be positive, got {dimensions}")
        self.dimensions = dimensions

    def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        return [self._vector(text).tolist() for text in texts]

    def _vector(self, text: str) -> np.ndarray:
        vec = np.zeros(self.dimensions, dtype=np.float64)
        for token in _tokenize(text):
            digest = hashlib.md5(token.encode("utf-8")).digest()
            bucket = int.from_bytes(digest[:4], "little") % self.dimensions
            sign = 1.0 if digest[4] & 1 else -1.0
            vec[bucket] += sign
        norm = np.linalg.norm(vec)
        if norm > 0:
            vec /= norm
        return vec


class OpenAIEmbedder(Embedder):
    """Embeddings from the OpenAI API."""

    name = "openai"

    def __init__(self, model: str = "text-embedding-3-small", api_key: str | None = None) -> None:
        try:
            import openai
        except ImportError:
            raise ProviderNotAvailableError("openai", "openai")

        self.model = model
        self.name = f"openai:{model}"
        self.client = openai.OpenAI(api_key=api_key)

    def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        if not texts:
            return []
        try:
            response = self.client.embeddings.create(model=self.model, input=list(texts))
        except Exception as e:
            raise EmbeddingError(f"OpenAI embedding request failed: {e}") from e
        return [list(item.embedding) for item in response.data]


def create_embedder(config: EmbeddingConfig, api_key: str | None = None) -> Embedder:
    """Create the embedder named by the configuration."""
    provider = config.provider.lower()
    if provider == "hashing":
        return HashingEmbedder(config.dimensions)
    if provider == "openai":
        return OpenAIEmbedder(config.model, api_key)
    raise ConfigError(
        f"Unknown embedding provider: '{config.provider}'. Supported: hashing, openai"
    )


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between two vectors.

    0.0 for vectors of different lengths or with zero magnitude.
    """
    if len(a) != len(b) or not len(a):
        return 0.0
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    denom = np.linalg.norm(va) * np.linalg.norm(vb)
    if denom == 0:
        return 0.0
    return float(np.dot(va, vb) / denom)


def _tokenize(text: str) -> list[str]:
    """Split on non-alphanumerics and camelCase."""
    text = re.sub(r"([a-z])([A-Z])", r"\1 \2", text)
    text = text.replace("_", " ").replace(".", " ")
    return re.findall(r"[a-zA-Z]{2,}", text.lower())
