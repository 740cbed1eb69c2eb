"""In-process chunk store: an ordered list with a linear cosine scan.

Used for tests, demos and single-process deployments. Insertion order is
preserved, so ``chunks()`` doubles as the persisted insertion sequence.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

import numpy as np

from finrag.chunking.schemas import Chunk
from finrag.errors import SearchError, StorageError
from finrag.store.base import ChunkStore
from finrag.store.schemas import SearchFilters, SearchResult

logger = logging.getLogger(__name__)


def cosine_similarities(query: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """Cosine similarity of ``query`` against each row; zero vectors score 0."""
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
    dots = matrix @ query
    return np.divide(dots, norms, out=np.zeros_like(dots), where=norms > 0)


class InMemoryChunkStore(ChunkStore):
    def __init__(self, dimension: int | None = None):
        super().__init__()
        self._dimension = dimension
        self._chunks: list[Chunk] = []
        self._by_id: dict[str, Chunk] = {}
        self._lock = threading.Lock()

    def insert_parents(self, chunks: list[Chunk]) -> int:
        self._validate_batch(chunks, parents=True)
        return self._append(chunks)

    def insert_children(self, chunks: list[Chunk]) -> int:
        self._validate_batch(chunks, parents=False)
        with self._lock:
            orphans = [c.id for c in chunks if c.parent_id not in self._by_id]
        if orphans:
            raise StorageError(
                f"{len(orphans)} child chunk(s) reference parents that are not stored",
                document_id=chunks[0].document_id,
            )
        return self._append(chunks)

    def _append(self, chunks: list[Chunk]) -> int:
        with self._lock:
            for chunk in chunks:
                self._check_dimension(len(chunk.embedding), chunk.document_id)
                if chunk.id in self._by_id:
                    raise StorageError(
                        f"Duplicate chunk id {chunk.id}", document_id=chunk.document_id
                    )
            for chunk in chunks:
                self._chunks.append(chunk)
                self._by_id[chunk.id] = chunk
            total = len(self._chunks)
        logger.debug("InMemoryChunkStore added %d chunks (total: %d)", len(chunks), total)
        return len(chunks)

    def _check_dimension(self, dim: int, document_id: str) -> None:
        if self._dimension is None:
            self._dimension = dim
        elif dim != self._dimension:
            raise StorageError(
                f"Embedding dimension {dim} does not match store dimension {self._dimension}",
                document_id=document_id,
            )

    def search(
        self,
        query_embedding: list[float],
        filters: SearchFilters | None = None,
    ) -> list[SearchResult]:
        filters = filters or SearchFilters()
        with self._lock:
            candidates = [c for c in self._chunks if filters.matches(c)]
            by_id = dict(self._by_id)
        if not candidates:
            return []

        query = np.asarray(query_embedding, dtype=np.float64)
        if query.ndim != 1 or query.shape[0] != self._dimension:
            raise SearchError(
                f"Query vector has shape {query.shape}, expected ({self._dimension},)"
            )

        matrix = np.asarray([c.embedding for c in candidates], dtype=np.float64)
        scores = cosine_similarities(query, matrix)

        results: list[SearchResult] = []
        for idx in np.argsort(-scores, kind="stable"):
            score = float(scores[idx])
            if score < filters.min_similarity or len(results) >= filters.max_results:
                break
            chunk = candidates[idx]
            parent = by_id.get(chunk.parent_id) if chunk.parent_id else None
            results.append(SearchResult.from_chunk(
                chunk, score, parent.content if parent else None,
            ))
        return results

    def count(self) -> int:
        with self._lock:
            return len(self._chunks)

    def get_chunk(self, chunk_id: str) -> Chunk | None:
        with self._lock:
            return self._by_id.get(chunk_id)

    def chunks(self, document_id: str | None = None) -> list[Chunk]:
        """Stored chunks in insertion order."""
        with self._lock:
            return [c for c in self._chunks if document_id is None or c.document_id == document_id]

    def delete_document(self, document_id: str) -> int:
        with self._lock:
            kept = [c for c in self._chunks if c.document_id != document_id]
            removed = len(self._chunks) - len(kept)
            self._chunks = kept
            self._by_id = {c.id: c for c in kept}
            self._profile_table.pop(document_id, None)
        logger.info("Deleted %d chunks of document %s", removed, document_id)
        return removed

    def clear(self) -> None:
        with self._lock:
            self._chunks.clear()
            self._by_id.clear()
            self._profile_table.clear()

    def stats(self) -> dict[str, Any]:
        with self._lock:
            parents = sum(1 for c in self._chunks if c.is_parent)
            return {
                "backend": "memory",
                "chunks": len(self._chunks),
                "parents": parents,
                "children": len(self._chunks) - parents,
                "documents": len({c.document_id for c in self._chunks}),
                "dimension": self._dimension,
            }
