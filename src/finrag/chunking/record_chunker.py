"""Record-mode chunking: an executive view built from the structured record.

Produces one ``executive_summary`` chunk (always), one chunk per populated
financial statement and for key metrics, and one ``highlight`` chunk per key
highlight. Statement and highlight chunks are children of the summary unless
``flat`` is set, in which case all chunks are stored as independent parents.
"""

from __future__ import annotations

import logging

from finrag.chunking.base import BaseChunker
from finrag.chunking.schemas import Chunk, ChunkType, FinancialMetadata
from finrag.extraction.schemas import NumericSection, StructuredFinancialRecord
from finrag.formatting import format_compact, format_currency, format_metric, humanize, plain_number

logger = logging.getLogger(__name__)

SUMMARY_HIGHLIGHTS = 3

# (record attribute, chunk type, title, metric tags, fields rendered)
_STATEMENTS: list[tuple[str, ChunkType, str, list[str], list[tuple[str, str]]]] = [
    (
        "income_statement",
        ChunkType.INCOME_STATEMENT,
        "Income Statement",
        ["revenue", "net_income", "operating_income", "gross_profit"],
        [
            ("revenue", "Revenue"),
            ("cost_of_revenue", "Cost of Revenue"),
            ("gross_profit", "Gross Profit"),
            ("operating_expenses", "Operating Expenses"),
            ("operating_income", "Operating Income"),
            ("net_income", "Net Income"),
        ],
    ),
    (
        "balance_sheet",
        ChunkType.BALANCE_SHEET,
        "Balance Sheet",
        ["total_assets", "total_liabilities", "shareholders_equity"],
        [
            ("total_assets", "Total Assets"),
            ("current_assets", "Current Assets"),
            ("total_liabilities", "Total Liabilities"),
            ("current_liabilities", "Current Liabilities"),
            ("shareholders_equity", "Shareholders Equity"),
        ],
    ),
    (
        "cash_flow_statement",
        ChunkType.CASH_FLOW,
        "Cash Flow Statement",
        ["operating_cash_flow", "free_cash_flow", "capex"],
        [
            ("operating_cash_flow", "Operating Cash Flow"),
            ("investing_cash_flow", "Investing Cash Flow"),
            ("financing_cash_flow", "Financing Cash Flow"),
            ("free_cash_flow", "Free Cash Flow"),
            ("capital_expenditures", "CapEx"),
        ],
    ),
]

# Summary line items: (metric, label)
_SUMMARY_CURRENCY_FIELDS = [
    ("revenue", "Revenue"),
    ("net_income", "Net Income"),
    ("gross_profit", "Gross Profit"),
    ("operating_income", "Operating Income"),
]


def build_executive_summary(record: StructuredFinancialRecord) -> str:
    """Single-line pipe-joined synopsis. Empty when the record is empty."""
    metrics = record.financial_metrics
    currency = record.currency
    parts: list[str] = []

    if record.company_name:
        parts.append(f"Company: {record.company_name}")
    if record.fiscal_period:
        parts.append(f"Period: {record.fiscal_period}")
    for key, label in _SUMMARY_CURRENCY_FIELDS:
        value = getattr(metrics, key)
        if value is not None:
            parts.append(f"{label}: {format_currency(value, currency)}")
    if metrics.eps is not None:
        parts.append(f"EPS: ${plain_number(metrics.eps)}")
    if metrics.free_cash_flow is not None:
        parts.append(f"Free Cash Flow: {format_currency(metrics.free_cash_flow, currency)}")
    if record.growth_metrics.revenue_growth is not None:
        parts.append(f"Revenue Growth: {plain_number(record.growth_metrics.revenue_growth)}%")
    if record.key_highlights:
        highlights = "; ".join(record.key_highlights[:SUMMARY_HIGHLIGHTS])
        parts.append(f"Key Highlights: {highlights}")

    return " | ".join(parts)


def _statement_content(
    section: NumericSection,
    fields: list[tuple[str, str]],
    currency: str,
) -> str:
    values = section.present()
    return " | ".join(
        f"{label}: {format_compact(values[key], currency)}"
        for key, label in fields
        if key in values
    )


def _metrics_content(record: StructuredFinancialRecord) -> str:
    return " | ".join(
        f"{humanize(key)}: {format_metric(key, value, record.currency)}"
        for key, value in record.financial_metrics.present().items()
    )


class RecordChunker(BaseChunker):
    """Executive-view chunks derived from a ``StructuredFinancialRecord``."""

    def __init__(self, flat: bool = False):
        self.flat = flat

    def chunk(
        self,
        text: str,
        document_id: str,
        record: StructuredFinancialRecord | None = None,
    ) -> list[Chunk]:
        return self.chunk_record(document_id, record or StructuredFinancialRecord())

    def chunk_record(self, document_id: str, record: StructuredFinancialRecord) -> list[Chunk]:
        base = FinancialMetadata.from_record(record)
        summary = Chunk(
            document_id=document_id,
            content=build_executive_summary(record),
            chunk_type=ChunkType.EXECUTIVE_SUMMARY,
            title="Executive Summary",
            order=0,
            depth=1,
            section_type="summary",
            metadata=base,
        )
        chunks = [summary]
        parent_id = None if self.flat else summary.id

        def add(chunk_type: ChunkType, title: str, content: str, depth: int,
                section_type: str, metadata: FinancialMetadata) -> None:
            # Sibling position under the summary, or among roots when flat.
            order = len(chunks) if self.flat else len(chunks) - 1
            chunks.append(Chunk(
                document_id=document_id,
                content=content,
                chunk_type=chunk_type,
                title=title,
                parent_id=parent_id,
                order=order,
                depth=depth,
                section_type=section_type,
                metadata=metadata,
            ))

        for attr, chunk_type, title, tags, fields in _STATEMENTS:
            section = getattr(record, attr)
            if section is None or section.is_empty():
                continue
            add(
                chunk_type, title,
                _statement_content(section, fields, record.currency),
                2, "financial_statement",
                base.tagged(metrics=tags, statements=[str(chunk_type)]),
            )

        if not record.financial_metrics.is_empty():
            add(
                ChunkType.KEY_METRICS, "Key Financial Metrics",
                _metrics_content(record),
                2, "metrics",
                base.tagged(metrics=list(record.financial_metrics.present())),
            )

        for i, highlight in enumerate(record.key_highlights):
            add(ChunkType.HIGHLIGHT, f"Key Highlight {i + 1}", highlight, 3, "insight", base)

        logger.info(
            "Record chunking: %d chunks for %s (%s linkage)",
            len(chunks), record.company_name or "unknown company",
            "flat" if self.flat else "hierarchical",
        )
        return chunks
