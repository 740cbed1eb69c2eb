"""Data models for chunks."""

from __future__ import annotations

import math
import uuid
from dataclasses import asdict, dataclass, field, replace
from enum import StrEnum
from typing import Any

from finrag.extraction.schemas import StructuredFinancialRecord


class ChunkType(StrEnum):
    """Content shape of a chunk. Stores accept any string; these are the built-ins."""

    EXECUTIVE_SUMMARY = "executive_summary"
    INCOME_STATEMENT = "income_statement"
    BALANCE_SHEET = "balance_sheet"
    CASH_FLOW = "cash_flow"
    KEY_METRICS = "key_metrics"
    HIGHLIGHT = "highlight"
    TRANSCRIPT = "transcript"
    FINANCIAL_METRICS = "financial_metrics"
    NARRATIVE = "narrative"
    TABLE = "table"


class ChunkLevel(StrEnum):
    PARENT = "parent"
    CHILD = "child"


def estimate_tokens(text: str) -> int:
    """Rough token count: one token per four characters."""
    return math.ceil(len(text) / 4)


@dataclass(frozen=True)
class FinancialMetadata:
    """Document-level financial context stamped on every chunk of a document.

    Only ``metrics`` and ``financial_statements`` vary between chunks of the
    same document.
    """

    company_name: str | None = None
    report_type: str | None = None
    fiscal_period: str | None = None
    fiscal_year: int | None = None
    quarter: int | None = None
    currency: str = "USD"
    metrics: tuple[str, ...] = ()
    financial_statements: tuple[str, ...] = ()

    @classmethod
    def from_record(cls, record: StructuredFinancialRecord) -> FinancialMetadata:
        report = record.report_info
        return cls(
            company_name=record.company_name,
            report_type=None if report.report_type == "unknown" else str(report.report_type),
            fiscal_period=report.fiscal_period,
            fiscal_year=report.fiscal_year,
            quarter=report.quarter,
            currency=record.currency,
        )

    def tagged(
        self,
        metrics: list[str] | tuple[str, ...] = (),
        statements: list[str] | tuple[str, ...] = (),
    ) -> FinancialMetadata:
        return replace(self, metrics=tuple(metrics), financial_statements=tuple(statements))

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["metrics"] = list(self.metrics)
        data["financial_statements"] = list(self.financial_statements)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FinancialMetadata:
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        known["metrics"] = tuple(known.get("metrics") or ())
        known["financial_statements"] = tuple(known.get("financial_statements") or ())
        return cls(**known)


@dataclass
class Chunk:
    """A node in a document's two-level chunk tree.

    ``id`` is assigned at creation so children can reference a parent that
    has not been stored yet. ``depth`` is the presentation level (1 summary,
    2 section, 3 highlight); ``level`` is the storage role derived from
    ``parent_id``.
    """

    document_id: str
    content: str
    chunk_type: str
    title: str = ""
    parent_id: str | None = None
    order: int = 0
    depth: int = 1
    section_type: str | None = None
    speaker: str | None = None
    confidence: float | None = None
    metadata: FinancialMetadata = field(default_factory=FinancialMetadata)
    embedding: list[float] | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    token_count: int = -1

    def __post_init__(self) -> None:
        if self.token_count < 0:
            self.token_count = estimate_tokens(self.content)

    @property
    def level(self) -> ChunkLevel:
        return ChunkLevel.PARENT if self.parent_id is None else ChunkLevel.CHILD

    @property
    def is_parent(self) -> bool:
        return self.parent_id is None

    def to_payload(self) -> dict[str, Any]:
        """Flat JSON-safe representation, without the embedding."""
        return {
            "chunk_id": self.id,
            "document_id": self.document_id,
            "parent_id": self.parent_id,
            "level": str(self.level),
            "order": self.order,
            "depth": self.depth,
            "chunk_type": str(self.chunk_type),
            "title": self.title,
            "content": self.content,
            "token_count": self.token_count,
            "section_type": self.section_type,
            "speaker": self.speaker,
            "confidence": self.confidence,
            **self.metadata.to_dict(),
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any], embedding: list[float] | None = None) -> Chunk:
        return cls(
            id=payload["chunk_id"],
            document_id=payload["document_id"],
            parent_id=payload.get("parent_id"),
            order=payload.get("order", 0),
            depth=payload.get("depth", 1),
            chunk_type=payload.get("chunk_type", ChunkType.NARRATIVE),
            title=payload.get("title", ""),
            content=payload.get("content", ""),
            token_count=payload.get("token_count", -1),
            section_type=payload.get("section_type"),
            speaker=payload.get("speaker"),
            confidence=payload.get("confidence"),
            metadata=FinancialMetadata.from_dict(payload),
            embedding=embedding,
        )
