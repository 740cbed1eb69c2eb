"""Document processing and question answering on top of the chunk store."""

from finrag.pipeline.ingest import DocumentProcessor, apply_metadata_overrides
from finrag.pipeline.query import QueryPipeline
from finrag.pipeline.schemas import (
    Citation,
    ProcessingJob,
    ProcessingStatus,
    RAGQuery,
    RAGResponse,
)

__all__ = [
    "Citation",
    "DocumentProcessor",
    "ProcessingJob",
    "ProcessingStatus",
    "QueryPipeline",
    "RAGQuery",
    "RAGResponse",
    "apply_metadata_overrides",
]
