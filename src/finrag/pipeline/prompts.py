"""Answer-generation prompt templates for financial document questions."""

from __future__ import annotations

from collections.abc import Sequence

from finrag.store.schemas import SearchResult

RAG_SYSTEM_PROMPT = """\
You are a financial analyst answering questions about company reports and \
earnings materials. Answer using ONLY the provided context documents. If the \
context does not contain enough information to answer the question, say so \
explicitly.

Rules:
1. Cite sources using [1], [2], etc. corresponding to the numbered context \
documents below.
2. Quote financial figures exactly as the source states them.
3. Attribute statements from call transcripts to their speakers.
4. If multiple sources conflict, note the discrepancy.
"""

RAG_QUERY_TEMPLATE = """\
Context Documents:
{context}

Question: {question}

Answer the question using only the context documents above. Cite sources \
using [1], [2], etc.
"""

NO_RESULTS_ANSWER = "No relevant documents found for this query."
SEARCH_UNAVAILABLE_ANSWER = (
    "Search is temporarily unavailable, so this question could not be answered. "
    "Please try again later."
)


def source_label(result: SearchResult) -> str:
    """``Acme Corp, Q3 2024 | Income Statement`` style label."""
    meta = result.metadata
    origin = ", ".join(part for part in (meta.company_name, meta.fiscal_period) if part)
    parts = [part for part in (origin, result.title) if part]
    if result.speaker:
        parts.append(f"speaker: {result.speaker}")
    return " | ".join(parts) or result.document_id


def format_context(results: Sequence[SearchResult]) -> str:
    """Number each result and expand child hits with their parent text."""
    parts = []
    for i, result in enumerate(results, 1):
        parts.append(f"[{i}] ({source_label(result)})\n{result.context}")
    return "\n\n---\n\n".join(parts)


def build_rag_prompt(question: str, results: Sequence[SearchResult]) -> str:
    return RAG_QUERY_TEMPLATE.format(context=format_context(results), question=question)
