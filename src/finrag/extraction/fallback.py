"""Heuristic extraction used when the LLM returns nothing usable.

Scans the lower-cased document for keyword windows with layered regular
expressions. Each pattern captures an optional ``$``, a numeric literal with
thousands separators and decimals, and an optional unit token that is
normalized into an absolute number.
"""

from __future__ import annotations

import logging
import re
from decimal import Decimal

from finrag.documents.schemas import ReportType
from finrag.extraction.schemas import (
    CompanyInfo,
    FinancialMetrics,
    ReportInfo,
    StructuredFinancialRecord,
)
from finrag.formatting import format_currency, plain_number

logger = logging.getLogger(__name__)

UNKNOWN_COMPANY = "Unknown Company"

_NUM = r"(?P<open>\()?(?P<num>\d[\d,]*(?:\.\d+)?)(?P<close>\))?"
_UNIT = r"(?:\s*(?P<unit>million|billion|thousand|mm|bn|m|b|k)\b)?"
# Rejects percentages and truncated numbers ("12%" or the "1" of "12").
_NOT_PCT = r"(?!\d|\.\d|\s*%)"
_UNIT_AHEAD = r"(?=\s*(?:million|billion|thousand|mm|bn|m|b|k)\b)"

_UNIT_SCALE = {
    "million": 1_000_000,
    "mm": 1_000_000,
    "m": 1_000_000,
    "billion": 1_000_000_000,
    "bn": 1_000_000_000,
    "b": 1_000_000_000,
    "thousand": 1_000,
    "k": 1_000,
}

# Metric -> keywords, most specific first. Matches on keywords containing
# "loss" are returned as negative values.
METRIC_KEYWORDS: dict[str, list[str]] = {
    "revenue": ["total revenue", "total product revenue", "product revenue", "revenue", "sales"],
    "net_income": ["net income", "net loss", "net earnings", "net profit", "profit", "loss"],
    "eps": ["diluted eps", "basic eps", "earnings per share", "eps"],
    "gross_profit": ["gross profit"],
    "operating_income": ["operating income", "operating profit", "operating loss"],
    "free_cash_flow": ["free cash flow", "fcf"],
}

# Whole-word company names that are common in uploaded filings.
KNOWN_COMPANIES: dict[str, str] = {
    "snowflake": "Snowflake Inc.",
    "apple": "Apple Inc.",
    "microsoft": "Microsoft Corporation",
    "nvidia": "NVIDIA Corporation",
    "alphabet": "Alphabet Inc.",
    "amazon": "Amazon.com, Inc.",
    "tesla": "Tesla, Inc.",
}

_COMPANY_PATTERNS = [
    re.compile(r"(?im)^[ \t]*company(?:[ \t]+name)?[ \t]*:[ \t]*([^\n,]+)"),
    re.compile(
        r"\b((?:[A-Z][\w&.\-]*[ \t]+){0,3}[A-Z][\w&.\-]*,?[ \t]+"
        r"(?:Inc|Corp|Corporation|Company|Ltd|PLC|LLC)\b\.?)"
    ),
    re.compile(
        r"(?m)^[ \t]*([A-Z][\w&.\-]*(?:[ \t]+[A-Z][\w&.\-]*){0,4})[ \t]+"
        r"(?i:financial|earnings|report)"
    ),
]

_QUARTER_RE = re.compile(r"(?i)\bQ([1-4])\s*(?:FY\s*)?'?((?:19|20)\d{2})\b")
_QUARTER_WORDS_RE = re.compile(
    r"(?i)\b(first|second|third|fourth)\s+quarter\s+(?:of\s+)?(?:fiscal\s+)?(?:year\s+)?((?:19|20)\d{2})\b"
)
_FISCAL_YEAR_RE = re.compile(r"(?i)\b(?:FY\s*'?|fiscal\s+(?:year\s+)?)((?:19|20)\d{2})\b")
_QUARTER_WORDS = {"first": 1, "second": 2, "third": 3, "fourth": 4}


def _metric_patterns(keyword: str) -> list[re.Pattern[str]]:
    kw = re.escape(keyword)
    return [
        # "revenue: $123.4 million", "revenue of $123.4 million"
        re.compile(rf"\b{kw}[:\s]+(?:of\s+)?\$?{_NUM}{_NOT_PCT}{_UNIT}"),
        # "$123.4 million revenue", "$123.4m in revenue"
        re.compile(rf"\${_NUM}{_NOT_PCT}{_UNIT}\s+(?:in\s+)?{kw}\b"),
        # "revenue was $123.4 million"
        re.compile(rf"\b{kw}\s+(?:was|were|of|totaled|reached)\s+\$?{_NUM}{_NOT_PCT}{_UNIT}"),
        # "revenue grew 12% to $123.4 million" within a short window; a bare
        # number needs a unit or parentheses so years and percentages are skipped
        re.compile(
            rf"\b{kw}[^\n]{{0,40}}?(?<![\w.,$])(?P<dollar>\$)?{_NUM}{_NOT_PCT}"
            rf"(?(dollar)|(?(close)|{_UNIT_AHEAD})){_UNIT}"
        ),
    ]


def extract_financial_number(text: str, keywords: list[str]) -> tuple[float, str] | None:
    """Find the first number attached to any of ``keywords``.

    Returns:
        ``(value, matched_keyword)`` or ``None``. The value is already scaled
        by its unit and negated when the keyword or the parentheses mark a loss.
    """
    lowered = text.lower()
    for keyword in keywords:
        for pattern in _metric_patterns(keyword):
            match = pattern.search(lowered)
            if not match:
                continue

            number = Decimal(match.group("num").replace(",", ""))
            unit = match.group("unit")
            if unit:
                number *= _UNIT_SCALE[unit]

            negative = "loss" in keyword or bool(match.group("open") and match.group("close"))
            value = float(-number if negative else number)
            logger.debug("Extracted %s: %s from %r", keyword, value, match.group(0))
            return value, keyword
    return None


def find_company_name(text: str) -> str:
    """Resolve a company name with progressively looser heuristics."""
    lowered = text.lower()
    for needle, name in KNOWN_COMPANIES.items():
        if re.search(rf"\b{needle}\b", lowered):
            return name

    for pattern in _COMPANY_PATTERNS:
        match = pattern.search(text)
        if match and match.group(1).strip():
            return match.group(1).strip().rstrip(",")
    return UNKNOWN_COMPANY


def find_report_info(text: str) -> ReportInfo:
    """Detect fiscal period, year, quarter and report type."""
    quarter: int | None = None
    year: int | None = None
    period: str | None = None

    if match := _QUARTER_RE.search(text):
        quarter, year = int(match.group(1)), int(match.group(2))
    elif match := _QUARTER_WORDS_RE.search(text):
        quarter, year = _QUARTER_WORDS[match.group(1).lower()], int(match.group(2))
    elif match := _FISCAL_YEAR_RE.search(text):
        year = int(match.group(1))

    if quarter and year:
        period = f"Q{quarter} {year}"
    elif year:
        period = f"FY {year}"

    lowered = text.lower()
    if "10-k" in lowered or "form 10k" in lowered:
        report_type = ReportType.FORM_10K
    elif "10-q" in lowered or "form 10q" in lowered:
        report_type = ReportType.FORM_10Q
    elif "earnings" in lowered:
        report_type = ReportType.EARNINGS
    elif "annual report" in lowered:
        report_type = ReportType.ANNUAL_REPORT
    elif quarter:
        report_type = ReportType.QUARTERLY_REPORT
    else:
        report_type = ReportType.UNKNOWN

    return ReportInfo(
        report_type=report_type,
        fiscal_period=period,
        fiscal_year=year,
        quarter=quarter,
    )


def extract_fallback(text: str) -> StructuredFinancialRecord:
    """Build a best-effort record from raw text. Never raises."""
    logger.info("Creating fallback structured data from %d chars", len(text))

    company = find_company_name(text)
    values: dict[str, float] = {}
    for metric, keywords in METRIC_KEYWORDS.items():
        found = extract_financial_number(text, keywords)
        if found is not None:
            values[metric] = found[0]

    highlights = [f"Financial report for {company}"]
    labels = {
        "revenue": "Revenue",
        "net_income": "Net Income",
        "gross_profit": "Gross Profit",
        "operating_income": "Operating Income",
        "free_cash_flow": "Free Cash Flow",
    }
    for metric, label in labels.items():
        if metric in values:
            highlights.append(f"{label}: {format_currency(values[metric])}")
    if "eps" in values:
        highlights.append(f"EPS: ${plain_number(values['eps'])}")

    return StructuredFinancialRecord(
        company_info=CompanyInfo(company_name=company),
        report_info=find_report_info(text),
        financial_metrics=FinancialMetrics(**values),
        key_highlights=highlights,
    )
