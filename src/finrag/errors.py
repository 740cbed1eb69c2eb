"""Exception hierarchy for document processing and retrieval."""

from __future__ import annotations


class FinRagError(Exception):
    """Base class for all errors raised by finrag.

    Attributes:
        message: Human-readable explanation.
        document_id: Document being processed when the error occurred, if any.
    """

    def __init__(self, message: str, *, document_id: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.document_id = document_id


class ExtractionError(FinRagError):
    """The LLM response could not be turned into a structured record.

    Never escapes the extractor: it always falls back to heuristics.
    """


# ---------------------------------------------------------------------------
# Processing failures (surfaced to the caller)
# ---------------------------------------------------------------------------


class ProcessingError(FinRagError):
    """Processing a document failed; the document should be marked failed."""


class EmbeddingError(ProcessingError):
    """The embedding provider failed or returned a malformed vector."""


class ProcessingCancelled(ProcessingError):
    """The caller cancelled processing before all embeddings were scheduled."""


class StorageError(ProcessingError):
    """The chunk store rejected a write."""


class ParentInsertError(StorageError):
    """The parent batch failed. No child chunk was attempted."""


class ChildInsertError(StorageError):
    """The child batch failed after the parent batch was committed.

    Attributes:
        parents_inserted: Number of parent chunks left in the store.
    """

    def __init__(
        self,
        message: str,
        *,
        document_id: str | None = None,
        parents_inserted: int = 0,
    ) -> None:
        super().__init__(message, document_id=document_id)
        self.parents_inserted = parents_inserted


# ---------------------------------------------------------------------------
# Retrieval failures (caught by the retriever, never raised to callers)
# ---------------------------------------------------------------------------


class SearchError(FinRagError):
    """The store could not answer a similarity search."""
