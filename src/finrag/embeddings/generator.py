"""Concurrent embedding of a document's chunks.

Batches are fanned out over a thread pool and fanned back in by position,
so the output order never depends on completion order. At most
``max_workers`` batches are in flight; a set ``cancel_event`` stops new
batches from being scheduled.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait

from finrag.chunking.schemas import Chunk
from finrag.embeddings.base import EmbeddingProvider
from finrag.embeddings.enrichment import build_embedding_text
from finrag.errors import EmbeddingError, ProcessingCancelled

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4
DEFAULT_BATCH_SIZE = 32


class ChunkEmbedder:
    """Populate ``Chunk.embedding`` for every chunk of a document."""

    def __init__(
        self,
        provider: EmbeddingProvider,
        max_workers: int = DEFAULT_MAX_WORKERS,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        if max_workers < 1 or batch_size < 1:
            raise ValueError("max_workers and batch_size must be positive")
        self.provider = provider
        self.max_workers = max_workers
        self.batch_size = batch_size

    def embed_chunks(
        self,
        chunks: list[Chunk],
        cancel_event: threading.Event | None = None,
    ) -> list[Chunk]:
        """Embed ``chunks`` in place and return them.

        Raises:
            EmbeddingError: A provider call failed or returned vectors of the
                wrong count or dimension. No chunk is left half-embedded.
            ProcessingCancelled: ``cancel_event`` was set before every batch
                was scheduled.
        """
        if not chunks:
            return chunks

        document_id = chunks[0].document_id
        texts = [build_embedding_text(c) for c in chunks]
        pending = deque(range(0, len(texts), self.batch_size))
        total_batches = len(pending)
        workers = min(self.max_workers, len(pending))
        results: dict[int, list[list[float]]] = {}
        in_flight: dict[Future, int] = {}
        cancelled = False

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="embed") as executor:
            while pending or in_flight:
                while pending and len(in_flight) < workers:
                    if cancel_event is not None and cancel_event.is_set():
                        cancelled = True
                        pending.clear()
                        break
                    start = pending.popleft()
                    batch = texts[start : start + self.batch_size]
                    in_flight[executor.submit(self.provider.embed_texts, batch)] = start

                if not in_flight:
                    break
                done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
                for future in done:
                    start = in_flight.pop(future)
                    try:
                        results[start] = future.result()
                    except Exception as exc:
                        for other in in_flight:
                            other.cancel()
                        raise EmbeddingError(
                            f"Embedding provider failed on batch at chunk {start}: {exc}",
                            document_id=document_id,
                        ) from exc

        if cancelled:
            logger.warning(
                "Embedding cancelled for document %s after %d/%d batches",
                document_id, len(results), total_batches,
            )
            raise ProcessingCancelled("Embedding cancelled", document_id=document_id)

        vectors = self._fan_in(results, len(chunks), document_id)
        for chunk, vector in zip(chunks, vectors, strict=True):
            chunk.embedding = vector

        logger.info(
            "Embedded %d chunks for document %s (dim=%d)",
            len(chunks), document_id, len(vectors[0]),
        )
        return chunks

    def _fan_in(
        self,
        results: dict[int, list[list[float]]],
        expected: int,
        document_id: str,
    ) -> list[list[float]]:
        vectors: list[list[float]] = []
        for start in sorted(results):
            batch_len = min(self.batch_size, expected - start)
            if len(results[start]) != batch_len:
                raise EmbeddingError(
                    f"Provider returned {len(results[start])} vectors for {batch_len} texts",
                    document_id=document_id,
                )
            vectors.extend([float(x) for x in v] for v in results[start])

        dim = len(vectors[0])
        declared = self.provider.dimension
        if dim == 0 or (declared and dim != declared):
            raise EmbeddingError(
                f"Embedding dimension {dim} does not match provider dimension {declared}",
                document_id=document_id,
            )
        if any(len(v) != dim for v in vectors):
            raise EmbeddingError(
                "Provider returned vectors of mixed dimension", document_id=document_id,
            )
        return vectors
