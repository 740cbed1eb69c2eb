"""Context-enriched embedding input for chunks.

A bare child sentence ("Revenue grew 12%") is ambiguous across documents;
appending company, period and section tags anchors it in embedding space.
"""

from __future__ import annotations

from finrag.chunking.schemas import Chunk


def build_embedding_text(chunk: Chunk) -> str:
    """``content | Company: X | Report Type: X | Period: X | Metrics: a, b | Section: X``.

    Each tag is appended only when the chunk carries it.
    """
    meta = chunk.metadata
    parts = [chunk.content]
    if meta.company_name:
        parts.append(f"Company: {meta.company_name}")
    if meta.report_type:
        parts.append(f"Report Type: {meta.report_type}")
    if meta.fiscal_period:
        parts.append(f"Period: {meta.fiscal_period}")
    if meta.metrics:
        parts.append(f"Metrics: {', '.join(meta.metrics)}")
    if chunk.section_type:
        parts.append(f"Section: {chunk.section_type}")
    return " | ".join(parts)
