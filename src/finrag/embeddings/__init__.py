"""Embedding providers and context-enriched chunk embedding."""

from finrag.embeddings.base import EmbeddingProvider
from finrag.embeddings.enrichment import build_embedding_text
from finrag.embeddings.factory import available_providers, get_embedding_provider
from finrag.embeddings.generator import ChunkEmbedder

__all__ = [
    "ChunkEmbedder",
    "EmbeddingProvider",
    "available_providers",
    "build_embedding_text",
    "get_embedding_provider",
]
