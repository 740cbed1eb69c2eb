"""Ollama embeddings for local models such as ``nomic-embed-text``."""

from __future__ import annotations

import logging

import httpx

from finrag.embeddings.base import EmbeddingProvider

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "nomic-embed-text"
DEFAULT_BASE_URL = "http://localhost:11434"
DEFAULT_DIM = 768


class OllamaEmbeddingProvider(EmbeddingProvider):
    """Embed text via a local Ollama server."""

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        dimension: int = DEFAULT_DIM,
        timeout: float = 60.0,
    ):
        self.model = model
        self.base_url = base_url.rstrip("/")
        self._dimension = dimension
        self._client = httpx.Client(base_url=self.base_url, timeout=timeout)

    def embed_texts(self, texts: list[str]) -> list[list[float]]:
        """Embed with the batch ``/api/embed`` endpoint.

        Servers older than v0.5 lack it; those get one legacy
        ``/api/embeddings`` call per text.
        """
        if not texts:
            return []

        resp = self._client.post("/api/embed", json={"model": self.model, "input": texts})
        if resp.status_code == 404:
            logger.debug("Ollama /api/embed unavailable; embedding %d texts one by one", len(texts))
            return [self._embed_single(text) for text in texts]
        resp.raise_for_status()
        return resp.json()["embeddings"]

    def embed_query(self, query: str) -> list[float]:
        return self.embed_texts([query])[0]

    @property
    def dimension(self) -> int:
        return self._dimension

    def _embed_single(self, text: str) -> list[float]:
        resp = self._client.post("/api/embeddings", json={"model": self.model, "prompt": text})
        resp.raise_for_status()
        return resp.json()["embedding"]
