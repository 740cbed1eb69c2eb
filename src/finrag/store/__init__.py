"""Chunk stores: in-memory, Qdrant, FAISS."""

from finrag.store.base import ChunkStore, insert_chunks
from finrag.store.factory import available_stores, get_chunk_store
from finrag.store.memory_store import InMemoryChunkStore
from finrag.store.schemas import SearchFilters, SearchResult

__all__ = [
    "ChunkStore",
    "InMemoryChunkStore",
    "SearchFilters",
    "SearchResult",
    "available_stores",
    "get_chunk_store",
    "insert_chunks",
]
