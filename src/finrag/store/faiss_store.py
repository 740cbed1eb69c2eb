"""FAISS chunk store: local, zero infrastructure.

Vectors are L2-normalised into an ``IndexFlatIP`` so inner product equals
cosine similarity. Metadata filters are applied after the index scan.
Requires the ``faiss`` extra.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any

import numpy as np

from finrag.chunking.schemas import Chunk
from finrag.errors import SearchError, StorageError
from finrag.extraction.profile import FinancialProfile
from finrag.store.base import ChunkStore
from finrag.store.schemas import SearchFilters, SearchResult

logger = logging.getLogger(__name__)


class FAISSChunkStore(ChunkStore):
    def __init__(self, dimension: int = 1536, path: str | None = None):
        super().__init__()
        try:
            import faiss
        except ImportError as exc:
            raise ImportError("faiss-cpu required: pip install finrag[faiss]") from exc

        self._faiss = faiss
        self._dimension = dimension
        self._index = faiss.IndexFlatIP(dimension)
        self._chunks: list[Chunk] = []  # row i of the index is self._chunks[i]
        self._by_id: dict[str, Chunk] = {}
        self._lock = threading.Lock()
        self._path = path
        if path and (Path(path) / "index.faiss").exists():
            self.load(path)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert_parents(self, chunks: list[Chunk]) -> int:
        self._validate_batch(chunks, parents=True)
        return self._add(chunks)

    def insert_children(self, chunks: list[Chunk]) -> int:
        self._validate_batch(chunks, parents=False)
        with self._lock:
            orphans = [c.id for c in chunks if c.parent_id not in self._by_id]
        if orphans:
            raise StorageError(
                f"{len(orphans)} child chunk(s) reference parents that are not stored",
                document_id=chunks[0].document_id,
            )
        return self._add(chunks)

    def _add(self, chunks: list[Chunk]) -> int:
        vectors = self._normalized([c.embedding for c in chunks])
        if vectors.shape[1] != self._dimension:
            raise StorageError(
                f"Embedding dimension {vectors.shape[1]} does not match index dimension "
                f"{self._dimension}",
                document_id=chunks[0].document_id,
            )
        with self._lock:
            self._index.add(vectors)
            self._chunks.extend(chunks)
            self._by_id.update((c.id, c) for c in chunks)
        if self._path:
            self.save(self._path)
        logger.debug("FAISSChunkStore added %d chunks (total: %d)", len(chunks), self.count())
        return len(chunks)

    def _normalized(self, embeddings: list[list[float]]) -> np.ndarray:
        vectors = np.asarray(embeddings, dtype=np.float32)
        if vectors.ndim != 2:
            raise StorageError("Embeddings must form a 2-D matrix")
        self._faiss.normalize_L2(vectors)
        return vectors

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search(
        self,
        query_embedding: list[float],
        filters: SearchFilters | None = None,
    ) -> list[SearchResult]:
        filters = filters or SearchFilters()
        if len(query_embedding) != self._dimension:
            raise SearchError(
                f"Query vector has {len(query_embedding)} dims, expected {self._dimension}"
            )

        with self._lock:
            total = self._index.ntotal
            if total == 0:
                return []
            query = np.asarray([query_embedding], dtype=np.float32)
            self._faiss.normalize_L2(query)
            # Post-filtering needs the full ranking when metadata filters apply
            k = total if filters.to_dict() or filters.chunk_types else min(filters.max_results, total)
            scores, indices = self._index.search(query, k)
            chunks = list(self._chunks)
            by_id = dict(self._by_id)

        results: list[SearchResult] = []
        for score, idx in zip(scores[0], indices[0], strict=True):
            if idx == -1 or float(score) < filters.min_similarity:
                continue
            chunk = chunks[int(idx)]
            if not filters.matches(chunk):
                continue
            parent = by_id.get(chunk.parent_id) if chunk.parent_id else None
            results.append(SearchResult.from_chunk(
                chunk, float(score), parent.content if parent else None,
            ))
            if len(results) >= filters.max_results:
                break
        return results

    # ------------------------------------------------------------------
    # Reads and maintenance
    # ------------------------------------------------------------------

    def count(self) -> int:
        return self._index.ntotal

    def get_chunk(self, chunk_id: str) -> Chunk | None:
        with self._lock:
            return self._by_id.get(chunk_id)

    def delete_document(self, document_id: str) -> int:
        # IndexFlatIP has no in-place delete; rebuild from the kept chunks.
        with self._lock:
            kept = [c for c in self._chunks if c.document_id != document_id]
            removed = len(self._chunks) - len(kept)
            if not removed and document_id not in self._profile_table:
                return 0
            self._index = self._faiss.IndexFlatIP(self._dimension)
            if kept:
                self._index.add(self._normalized([c.embedding for c in kept]))
            self._chunks = kept
            self._by_id = {c.id: c for c in kept}
            self._profile_table.pop(document_id, None)
        if self._path:
            self.save(self._path)
        logger.info("Deleted %d chunks of document %s", removed, document_id)
        return removed

    def clear(self) -> None:
        with self._lock:
            self._index = self._faiss.IndexFlatIP(self._dimension)
            self._chunks = []
            self._by_id = {}
            self._profile_table.clear()

    def stats(self) -> dict[str, Any]:
        with self._lock:
            parents = sum(1 for c in self._chunks if c.is_parent)
            return {
                "backend": "faiss",
                "chunks": len(self._chunks),
                "parents": parents,
                "children": len(self._chunks) - parents,
                "documents": len({c.document_id for c in self._chunks}),
                "dimension": self._dimension,
            }

    def save_profile(self, profile: FinancialProfile) -> None:
        super().save_profile(profile)
        if self._path:
            self.save(self._path)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, path: str) -> None:
        """Write the index, chunk payloads and profiles under ``path``."""
        p = Path(path)
        p.mkdir(parents=True, exist_ok=True)
        with self._lock:
            self._faiss.write_index(self._index, str(p / "index.faiss"))
            data = {
                "chunks": [
                    {"payload": c.to_payload(), "embedding": c.embedding} for c in self._chunks
                ],
                "profiles": [prof.to_dict() for prof in self._profile_table.values()],
            }
        with open(p / "chunks.json", "w") as f:
            json.dump(data, f)
        logger.info("FAISSChunkStore saved to %s (%d chunks)", path, len(data["chunks"]))

    def load(self, path: str) -> None:
        p = Path(path)
        index = self._faiss.read_index(str(p / "index.faiss"))
        with open(p / "chunks.json") as f:
            data = json.load(f)

        chunks = [Chunk.from_payload(r["payload"], r["embedding"]) for r in data["chunks"]]
        with self._lock:
            self._index = index
            self._dimension = index.d
            self._chunks = chunks
            self._by_id = {c.id: c for c in chunks}
            self._profile_table = {
                prof["document_id"]: FinancialProfile.from_dict(prof) for prof in data["profiles"]
            }
        logger.info("FAISSChunkStore loaded from %s (%d chunks)", path, len(chunks))
