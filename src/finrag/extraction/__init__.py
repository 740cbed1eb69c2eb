"""Structured financial extraction: LLM JSON with a regex fallback."""

from finrag.extraction.extractor import FinancialDataExtractor, find_json_object
from finrag.extraction.fallback import extract_fallback, extract_financial_number
from finrag.extraction.profile import FinancialProfile, build_profile
from finrag.extraction.schemas import StructuredFinancialRecord

__all__ = [
    "FinancialDataExtractor",
    "FinancialProfile",
    "StructuredFinancialRecord",
    "build_profile",
    "extract_fallback",
    "extract_financial_number",
    "find_json_object",
]
