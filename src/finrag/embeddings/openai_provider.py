"""OpenAI embeddings (text-embedding-3-small/large).

Requires the ``openai`` extra and ``OPENAI_API_KEY`` env var.
"""

from __future__ import annotations

import logging
from typing import Any

from finrag.embeddings.base import EmbeddingProvider

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "text-embedding-3-small"

_DIMENSION_MAP = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}

MAX_BATCH = 2048  # API limit on inputs per request


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """Embed text via the OpenAI Embeddings API."""

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        api_key: str | None = None,
        dimensions: int | None = None,
        timeout: float = 60.0,
    ):
        try:
            import openai
        except ImportError as exc:
            raise ImportError("openai package required: pip install finrag[openai]") from exc

        self.model = model
        self._dimensions = dimensions or _DIMENSION_MAP.get(model, 1536)
        self._client: Any = openai.OpenAI(api_key=api_key, timeout=timeout)

    def embed_texts(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        vectors: list[list[float]] = []
        for i in range(0, len(texts), MAX_BATCH):
            resp = self._client.embeddings.create(
                model=self.model,
                input=texts[i : i + MAX_BATCH],
                dimensions=self._dimensions,
            )
            # Responses carry an index; sort to guarantee input order
            vectors.extend(d.embedding for d in sorted(resp.data, key=lambda d: d.index))
        return vectors

    def embed_query(self, query: str) -> list[float]:
        return self.embed_texts([query])[0]

    @property
    def dimension(self) -> int:
        return self._dimensions
