"""Data models for retrieval operations."""

from __future__ import annotations

from dataclasses import dataclass, field

from finrag.store.schemas import SearchResult


@dataclass(frozen=True)
class DocumentContext:
    """What is known about the document a query is about."""

    company_name: str | None = None
    fiscal_period: str | None = None
    document_id: str | None = None


@dataclass
class RetrievalResult:
    """Outcome of one retrieval call.

    ``failed`` separates "the search could not run" from "nothing relevant";
    both carry an empty ``results`` list.
    """

    query: str
    rewritten_query: str = ""
    results: list[SearchResult] = field(default_factory=list)
    total_candidates: int = 0
    after_relative_cutoff: int = 0
    intent: str | None = None
    failed: bool = False
    error: str | None = None
