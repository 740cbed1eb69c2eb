"""Line-level structure detection for financial documents.

Classifies raw text into typed spans (transcript speaker turns,
financial-metric lines, pipe tables, narrative) so each span can be chunked
and scored according to its shape.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from finrag.chunking.schemas import ChunkType

SPEAKER_RE = re.compile(r"^([A-Z][a-z]+ [A-Z][a-z]+|Operator|Analyst):\s*")

_FINANCIAL_TERMS_RE = re.compile(
    r"(?i)revenue|earnings|profit|loss|margin|ratio|eps|ebitda|cash flow"
)
_FINANCIAL_NUMBER_RE = re.compile(
    r"(?i)\$[\d,]+|\d+\.\d+%|\d+\s*(?:million|billion|thousand)"
)
# Two-word labels such as "Net Loss:" or "Operating Income:" are line items, not speakers.
# Whole words only, so names like "Horatio" or "Cashman" still count as speakers.
_LINE_ITEM_LABEL_RE = re.compile(
    r"(?i)\b(?:revenues?|earnings|profits?|loss(?:es)?|margins?|ratios?|eps|ebitda|cash|income"
    r"|expenses?|sales|assets|liabilities|equity|growth|debt|dividends?)\b"
)
_HEADER_RE = re.compile(r"^#{1,6}\s+(.+)$")
_TITLE_SPEAKER_RE = re.compile(r"^([A-Z][a-z]+ [A-Z][a-z]+|Operator):")

MAX_TITLE_CHARS = 50
UNKNOWN_SECTION = "Unknown Section"

# Metric tag -> phrases that mark it inside free text.
_METRIC_TAGS: dict[str, re.Pattern[str]] = {
    "revenue": re.compile(r"(?i)\b(?:revenue|sales)\b"),
    "net_income": re.compile(r"(?i)\bnet\s+(?:income|loss|earnings)\b"),
    "eps": re.compile(r"(?i)\b(?:eps|earnings\s+per\s+share)\b"),
    "gross_margin": re.compile(r"(?i)\bgross\s+margin\b"),
    "operating_margin": re.compile(r"(?i)\boperating\s+margin\b"),
    "operating_income": re.compile(r"(?i)\boperating\s+(?:income|loss)\b"),
    "ebitda": re.compile(r"(?i)\bebitda\b"),
    "free_cash_flow": re.compile(r"(?i)\bfree\s+cash\s+flow\b"),
    "operating_cash_flow": re.compile(r"(?i)\boperating\s+cash\s+flow\b"),
    "guidance": re.compile(r"(?i)\b(?:guidance|outlook)\b"),
}


@dataclass
class Span:
    """A contiguous run of lines sharing one content shape."""

    span_type: ChunkType
    content: str
    start_line: int = 0
    speaker: str | None = None


def is_financial_metrics_line(line: str) -> bool:
    return bool(_FINANCIAL_TERMS_RE.search(line) and _FINANCIAL_NUMBER_RE.search(line))


def is_table_line(line: str) -> bool:
    return "|" in line and len(line.split("|")) > 2


def is_speaker_label(label: str) -> bool:
    """False for labels that name a financial line item rather than a person."""
    return not _LINE_ITEM_LABEL_RE.search(label)


def detect_structure(text: str) -> list[Span]:
    """Split ``text`` into typed spans.

    Rules, checked per non-blank line in priority order:
      1. A speaker label (``Jane Doe:``, ``Operator:``, ``Analyst:``) always
         starts a new ``transcript`` span. Labels naming a financial line
         item (``Net Loss:``) are not speakers.
      2. A financial keyword plus a ``$``/percent/unit number starts or
         continues a ``financial_metrics`` span.
      3. A line with 3+ pipe-separated fields starts or continues a ``table``.
      4. Anything else extends the current span (``narrative`` at the start).

    Blank lines never start a span but are kept inside the current one so
    paragraph breaks survive for the splitters.
    """
    spans: list[Span] = []
    current = Span(ChunkType.NARRATIVE, "", 0)
    lines: list[str] = []

    def flush() -> None:
        content = "\n".join(lines).strip()
        if content:
            current.content = content
            spans.append(current)

    for i, raw in enumerate(text.splitlines()):
        line = raw.strip()
        if not line:
            if lines and lines[-1]:
                lines.append("")
            continue

        speaker = SPEAKER_RE.match(line)
        if speaker and is_speaker_label(speaker.group(1)):
            flush()
            current, lines = Span(ChunkType.TRANSCRIPT, "", i, speaker.group(1)), [line]
            continue

        for span_type, matches in (
            (ChunkType.FINANCIAL_METRICS, is_financial_metrics_line),
            (ChunkType.TABLE, is_table_line),
        ):
            if matches(line):
                if current.span_type != span_type:
                    flush()
                    current, lines = Span(span_type, "", i), []
                lines.append(line)
                break
        else:
            lines.append(line)

    flush()
    return spans


def extract_section_title(content: str) -> str:
    """Heuristic title: markdown header, speaker label, else first sentence."""
    lines = [line.strip() for line in content.splitlines() if line.strip()]
    if not lines:
        return UNKNOWN_SECTION

    first = lines[0]
    if header := _HEADER_RE.match(first):
        return header.group(1).strip()
    speaker = _TITLE_SPEAKER_RE.match(first)
    if speaker and is_speaker_label(speaker.group(1)):
        return f"{speaker.group(1)} Statement"

    sentence = first.split(".")[0].strip()
    if not sentence:
        return UNKNOWN_SECTION
    if len(sentence) > MAX_TITLE_CHARS:
        return sentence[:MAX_TITLE_CHARS] + "..."
    return sentence


def detect_metric_tags(content: str) -> list[str]:
    """Metric names mentioned in ``content``, in a stable order."""
    return [tag for tag, pattern in _METRIC_TAGS.items() if pattern.search(content)]
