"""Qdrant chunk store with native payload filtering.

Requires the ``qdrant`` extra. Connects to a server (``url``), an embedded
on-disk database (``path``) or, with neither, an in-memory instance.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from finrag.chunking.schemas import Chunk
from finrag.errors import SearchError, StorageError
from finrag.extraction.profile import FinancialProfile
from finrag.store.base import ChunkStore
from finrag.store.schemas import SearchFilters, SearchResult

logger = logging.getLogger(__name__)

DEFAULT_COLLECTION = "financial_document_chunks"
_PROFILE_SUFFIX = "_profiles"
_SCROLL_PAGE = 256


class QdrantChunkStore(ChunkStore):
    """Chunks as Qdrant points keyed by chunk id; cosine distance."""

    def __init__(
        self,
        collection_name: str = DEFAULT_COLLECTION,
        dimension: int = 1536,
        url: str | None = None,
        api_key: str | None = None,
        path: str | None = None,
    ):
        super().__init__()
        try:
            from qdrant_client import QdrantClient, models
        except ImportError as exc:
            raise ImportError("qdrant-client required: pip install finrag[qdrant]") from exc

        self._models = models
        self._collection = collection_name
        self._profile_collection = collection_name + _PROFILE_SUFFIX
        self._dimension = dimension

        if url:
            self._client = QdrantClient(url=url, api_key=api_key)
        elif path:
            self._client = QdrantClient(path=path)
        else:
            self._client = QdrantClient(":memory:")

        self._ensure_collections()

    def _ensure_collections(self) -> None:
        models = self._models
        if not self._client.collection_exists(self._collection):
            self._client.create_collection(
                collection_name=self._collection,
                vectors_config=models.VectorParams(
                    size=self._dimension, distance=models.Distance.COSINE,
                ),
            )
            logger.info("Created Qdrant collection '%s' (dim=%d)", self._collection, self._dimension)
        if not self._client.collection_exists(self._profile_collection):
            self._client.create_collection(
                collection_name=self._profile_collection,
                vectors_config=models.VectorParams(size=1, distance=models.Distance.DOT),
            )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert_parents(self, chunks: list[Chunk]) -> int:
        self._validate_batch(chunks, parents=True)
        return self._upsert(chunks)

    def insert_children(self, chunks: list[Chunk]) -> int:
        self._validate_batch(chunks, parents=False)
        parent_ids = list({c.parent_id for c in chunks})
        found = {str(p.id) for p in self._client.retrieve(self._collection, ids=parent_ids)}
        missing = set(parent_ids) - found
        if missing:
            raise StorageError(
                f"{len(missing)} parent chunk(s) are not stored",
                document_id=chunks[0].document_id,
            )
        return self._upsert(chunks)

    def _upsert(self, chunks: list[Chunk]) -> int:
        for chunk in chunks:
            if len(chunk.embedding) != self._dimension:
                raise StorageError(
                    f"Embedding dimension {len(chunk.embedding)} does not match "
                    f"collection dimension {self._dimension}",
                    document_id=chunk.document_id,
                )
        points = [
            self._models.PointStruct(
                id=chunk.id, vector=chunk.embedding, payload=self._to_payload(chunk),
            )
            for chunk in chunks
        ]
        self._client.upsert(collection_name=self._collection, points=points, wait=True)
        logger.debug("QdrantChunkStore upserted %d chunks", len(points))
        return len(points)

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
        try:
            response = self._client.query_points(
                collection_name=self._collection,
                query=query_embedding,
                query_filter=self._build_filter(filters),
                limit=filters.max_results,
                score_threshold=filters.min_similarity,
                with_payload=True,
            )
            points = response.points
            parent_ids = list({
                p.payload["parent_id"] for p in points if p.payload.get("parent_id")
            })
            parents = {
                str(p.id): p.payload.get("content", "")
                for p in (self._client.retrieve(self._collection, ids=parent_ids) if parent_ids else [])
            }
        except Exception as exc:
            raise SearchError(f"Qdrant search failed: {exc}") from exc

        results = []
        for point in points:
            chunk = Chunk.from_payload(point.payload)
            results.append(SearchResult.from_chunk(
                chunk, float(point.score), parents.get(chunk.parent_id or ""),
            ))
        return sorted(results, key=lambda r: r.similarity, reverse=True)

    def _build_filter(self, filters: SearchFilters) -> Any:
        models = self._models
        conditions = [
            models.FieldCondition(key=key, match=models.MatchValue(value=value))
            for key, value in filters.to_dict().items()
        ]
        if filters.chunk_types:
            conditions.append(models.FieldCondition(
                key="chunk_type", match=models.MatchAny(any=list(filters.chunk_types)),
            ))
        return models.Filter(must=conditions) if conditions else None

    def _document_filter(self, document_id: str) -> Any:
        return self._build_filter(SearchFilters(document_id=document_id))

    # ------------------------------------------------------------------
    # Reads and maintenance
    # ------------------------------------------------------------------

    def count(self) -> int:
        return self._client.count(self._collection, exact=True).count

    def get_chunk(self, chunk_id: str) -> Chunk | None:
        points = self._client.retrieve(self._collection, ids=[chunk_id], with_vectors=True)
        if not points:
            return None
        return Chunk.from_payload(points[0].payload, embedding=list(points[0].vector))

    def delete_document(self, document_id: str) -> int:
        doc_filter = self._document_filter(document_id)
        removed = self._client.count(self._collection, count_filter=doc_filter, exact=True).count
        self._client.delete(
            collection_name=self._collection,
            points_selector=self._models.FilterSelector(filter=doc_filter),
            wait=True,
        )
        self._client.delete(
            collection_name=self._profile_collection,
            points_selector=self._models.PointIdsList(points=[_profile_point_id(document_id)]),
            wait=True,
        )
        logger.info("Deleted %d chunks of document %s", removed, document_id)
        return removed

    def clear(self) -> None:
        self._client.delete_collection(self._collection)
        self._client.delete_collection(self._profile_collection)
        self._ensure_collections()

    def stats(self) -> dict[str, Any]:
        documents: set[str] = set()
        parents = 0
        total = 0
        offset = None
        while True:
            points, offset = self._client.scroll(
                self._collection,
                limit=_SCROLL_PAGE,
                offset=offset,
                with_payload=["document_id", "parent_id"],
            )
            for point in points:
                total += 1
                documents.add(point.payload["document_id"])
                if not point.payload.get("parent_id"):
                    parents += 1
            if offset is None:
                break
        return {
            "backend": "qdrant",
            "collection": self._collection,
            "chunks": total,
            "parents": parents,
            "children": total - parents,
            "documents": len(documents),
            "dimension": self._dimension,
        }

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    def save_profile(self, profile: FinancialProfile) -> None:
        self._client.upsert(
            collection_name=self._profile_collection,
            points=[self._models.PointStruct(
                id=_profile_point_id(profile.document_id),
                vector=[1.0],
                payload=profile.to_dict(),
            )],
            wait=True,
        )

    def get_profile(self, document_id: str) -> FinancialProfile | None:
        points = self._client.retrieve(
            self._profile_collection, ids=[_profile_point_id(document_id)],
        )
        return FinancialProfile.from_dict(points[0].payload) if points else None

    @staticmethod
    def _to_payload(chunk: Chunk) -> dict[str, Any]:
        payload = chunk.to_payload()
        payload["company_key"] = (chunk.metadata.company_name or "").casefold() or None
        return payload


def _profile_point_id(document_id: str) -> str:
    # Qdrant point ids must be UUIDs or integers.
    return str(uuid.uuid5(uuid.NAMESPACE_URL, f"finrag-profile:{document_id}"))
