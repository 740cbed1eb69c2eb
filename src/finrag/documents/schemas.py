"""Data models for document ingestion."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class ReportType(StrEnum):
    """Supported financial report types."""

    EARNINGS = "earnings"
    FORM_10K = "10k"
    FORM_10Q = "10q"
    ANNUAL_REPORT = "annual_report"
    QUARTERLY_REPORT = "quarterly_report"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: object) -> ReportType:
        """Map loose spellings ("10-K", "Annual Report") to a member."""
        if isinstance(value, ReportType):
            return value
        if not isinstance(value, str):
            return cls.UNKNOWN
        key = value.strip().lower().replace("-", "").replace(" ", "_")
        aliases = {
            "earnings_report": cls.EARNINGS,
            "earnings_release": cls.EARNINGS,
            "form_10k": cls.FORM_10K,
            "form_10q": cls.FORM_10Q,
            "annual": cls.ANNUAL_REPORT,
            "quarterly": cls.QUARTERLY_REPORT,
        }
        if key in aliases:
            return aliases[key]
        try:
            return cls(key)
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class DocumentMetadata:
    """Caller-supplied metadata for a document; overrides extracted values."""

    filename: str | None = None
    company_name: str | None = None
    ticker: str | None = None
    report_type: ReportType | None = None
    source_integration: str | None = None


@dataclass
class LoadResult:
    """Result of loading a single document file.

    Attributes:
        text: Full extracted text.
        page_texts: Per-page text (for PDFs). Empty for non-paged formats.
        source_path: Filesystem path or identifier.
        format: File extension used (pdf, docx, txt, csv, xlsx).
        page_count: Number of pages (PDFs) or sheets (Excel).
        char_count: Length of ``text``.
        metadata: User-supplied metadata.
        warnings: Non-fatal issues encountered during loading.
    """

    text: str
    page_texts: list[str] = field(default_factory=list)
    source_path: str | None = None
    format: str = ""
    page_count: int | None = None
    char_count: int = 0
    metadata: DocumentMetadata = field(default_factory=DocumentMetadata)
    warnings: list[str] = field(default_factory=list)
