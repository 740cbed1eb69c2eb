"""Document loading and input sanitization."""

from finrag.documents.loader import DocumentLoader
from finrag.documents.sanitize import sanitize_document_text
from finrag.documents.schemas import DocumentMetadata, LoadResult, ReportType

__all__ = [
    "DocumentLoader",
    "DocumentMetadata",
    "ReportType",
    "LoadResult",
    "sanitize_document_text",
]
