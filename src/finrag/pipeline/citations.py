"""Citation extraction and source mapping.

Parses [1], [2], [1,3], [2-4] from LLM output and maps them back to the
search results that were numbered in the prompt.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from finrag.pipeline.schemas import Citation
from finrag.store.schemas import SearchResult

_CITATION_RE = re.compile(r"\[(\d+(?:\s*[,\-]\s*\d+)*)\]")

SNIPPET_CHARS = 200


def cited_indices(answer: str) -> list[int]:
    """Sorted 1-based indices referenced in ``answer``."""
    indices: set[int] = set()
    for match in _CITATION_RE.finditer(answer):
        for part in match.group(1).split(","):
            part = part.strip()
            if "-" in part:
                start, end = (int(p) for p in part.split("-", 1))
                indices.update(range(start, end + 1))
            else:
                indices.add(int(part))
    return sorted(indices)


def extract_citations(
    answer: str,
    search_results: Sequence[SearchResult],
) -> list[Citation]:
    """Map citation markers in ``answer`` to ``search_results`` (1-indexed).

    Markers outside the numbered range are ignored.
    """
    citations: list[Citation] = []
    for idx in cited_indices(answer):
        if not 1 <= idx <= len(search_results):
            continue
        result = search_results[idx - 1]
        snippet = result.content
        if len(snippet) > SNIPPET_CHARS:
            snippet = snippet[:SNIPPET_CHARS] + "..."
        citations.append(Citation(
            index=idx,
            text=snippet,
            chunk_id=result.chunk_id,
            document_id=result.document_id,
            title=result.title,
            company=result.metadata.company_name,
            fiscal_period=result.metadata.fiscal_period,
            similarity=result.similarity,
        ))
    return citations


def format_citations(citations: list[Citation]) -> str:
    """Markdown source list for display."""
    if not citations:
        return ""

    lines = ["\n---\n**Sources:**"]
    for c in citations:
        parts = [f"[{c.index}]"]
        if c.company:
            parts.append(c.company)
        if c.fiscal_period:
            parts.append(c.fiscal_period)
        if c.title:
            parts.append(f"({c.title})")
        lines.append(f"- {' | '.join(parts)}")
    return "\n".join(lines)
