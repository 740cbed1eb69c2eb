"""Keyword intent detection and per-intent search options."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

from finrag.chunking.schemas import ChunkType


class QueryIntent(StrEnum):
    SPEAKER = "speaker"
    FINANCIAL = "financial"
    ANALYTICAL = "analytical"
    FACTUAL = "factual"


@dataclass(frozen=True)
class SearchOptions:
    max_results: int
    strictness: float
    chunk_types: tuple[str, ...] | None = None


_SPEAKER_PHRASES = ("who said", "who spoke", "speaker")
_FINANCIAL_RE = re.compile(r"revenue|earnings|profit|margin|ratio|financial|numbers")
_ANALYTICAL_RE = re.compile(r"why|how|analyze|compare|trend|impact")

_OPTIONS: dict[QueryIntent, SearchOptions] = {
    QueryIntent.SPEAKER: SearchOptions(3, 0.2, (ChunkType.TRANSCRIPT,)),
    QueryIntent.FINANCIAL: SearchOptions(
        5,
        0.15,
        (
            ChunkType.FINANCIAL_METRICS,
            ChunkType.TABLE,
            ChunkType.KEY_METRICS,
            ChunkType.INCOME_STATEMENT,
            ChunkType.BALANCE_SHEET,
            ChunkType.CASH_FLOW,
            ChunkType.EXECUTIVE_SUMMARY,
        ),
    ),
    QueryIntent.ANALYTICAL: SearchOptions(7, 0.1),
    QueryIntent.FACTUAL: SearchOptions(5, 0.15),
}


def detect_query_intent(query: str) -> QueryIntent:
    lowered = query.lower()
    if any(phrase in lowered for phrase in _SPEAKER_PHRASES):
        return QueryIntent.SPEAKER
    if _FINANCIAL_RE.search(lowered):
        return QueryIntent.FINANCIAL
    if _ANALYTICAL_RE.search(lowered):
        return QueryIntent.ANALYTICAL
    return QueryIntent.FACTUAL


def search_options_for_intent(intent: QueryIntent) -> SearchOptions:
    return _OPTIONS[intent]
