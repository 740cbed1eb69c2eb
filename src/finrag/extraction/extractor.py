"""LLM-backed structured extraction with a heuristic safety net."""

from __future__ import annotations

import json
import logging

from pydantic import ValidationError

from finrag.documents.sanitize import sanitize_document_text
from finrag.errors import ExtractionError
from finrag.extraction.fallback import extract_fallback
from finrag.extraction.prompts import EXTRACTION_SYSTEM_PROMPT, build_extraction_prompt
from finrag.extraction.schemas import StructuredFinancialRecord
from finrag.llm.base import LLMProvider

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.1
DEFAULT_MAX_CHARS = 60_000


def find_json_object(text: str) -> str | None:
    """Return the first balanced top-level ``{...}`` in ``text``.

    Braces inside JSON string literals (including escaped quotes) do not
    count towards the nesting depth.
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start : i + 1]
        # Unbalanced from this brace; try the next one.
        start = text.find("{", start + 1)
    return None


def parse_record(response: str) -> StructuredFinancialRecord:
    """Parse an LLM response into a record.

    Raises:
        ExtractionError: No JSON object, invalid JSON or a non-object payload.
    """
    candidate = find_json_object(response)
    if candidate is None:
        raise ExtractionError("No JSON object found in LLM response")
    try:
        payload = json.loads(candidate)
    except json.JSONDecodeError as exc:
        raise ExtractionError(f"Malformed JSON in LLM response: {exc}") from exc
    try:
        return StructuredFinancialRecord.model_validate(payload)
    except ValidationError as exc:
        raise ExtractionError(f"LLM JSON does not match the record shape: {exc}") from exc


class FinancialDataExtractor:
    """Turn raw document text into a ``StructuredFinancialRecord``.

    ``extract`` never raises: LLM failures and unusable responses are logged
    and recovered with regex extraction over the full text.
    """

    def __init__(
        self,
        llm: LLMProvider | None,
        temperature: float = DEFAULT_TEMPERATURE,
        max_chars: int = DEFAULT_MAX_CHARS,
    ):
        self.llm = llm
        self.temperature = temperature
        self.max_chars = max_chars

    def extract(self, text: str) -> StructuredFinancialRecord:
        if self.llm is None or not text.strip():
            return extract_fallback(text)

        document = sanitize_document_text(text)
        if len(document) > self.max_chars:
            logger.info("Truncating document from %d to %d chars for extraction",
                        len(document), self.max_chars)
            document = document[: self.max_chars]

        try:
            response = self.llm.generate(
                build_extraction_prompt(document),
                system=EXTRACTION_SYSTEM_PROMPT,
                temperature=self.temperature,
            )
            record = parse_record(response)
        except ExtractionError as exc:
            logger.warning("Structured extraction failed (%s); using fallback", exc.message)
            return extract_fallback(text)
        except Exception:
            logger.exception("LLM call failed during extraction; using fallback")
            return extract_fallback(text)

        logger.info(
            "Extracted record for %s (%s)",
            record.company_name or "unknown company",
            record.fiscal_period or "unknown period",
        )
        return record
