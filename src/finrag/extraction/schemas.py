"""Structured financial record produced per document.

Every field is optional: LLM output is loose, so values are coerced at this
boundary ("$1,234.5" -> 1234.5, "(12)" -> -12.0, "N/A" -> None) instead of
raising. Keys are accepted in either camelCase (LLM JSON) or snake_case.
"""

from __future__ import annotations

import math
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from finrag.documents.schemas import ReportType

_NUMBER_RE = re.compile(r"^\(?-?[\d,]*\.?\d+\)?$")


def coerce_number(value: Any) -> float | None:
    """Best-effort conversion of an LLM-provided value to a float."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value) if math.isfinite(value) else None
    if not isinstance(value, str):
        return None

    cleaned = value.strip().replace("$", "").replace("%", "").replace(" ", "")
    if not cleaned or not _NUMBER_RE.match(cleaned):
        return None

    negative = cleaned.startswith("(") and cleaned.endswith(")")
    number = float(cleaned.strip("()").replace(",", ""))
    return -number if negative else number


class _RecordModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class NumericSection(_RecordModel):
    """A model whose fields are all ``float | None``."""

    @model_validator(mode="before")
    @classmethod
    def _coerce_numbers(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        return {key: coerce_number(value) for key, value in data.items()}

    def present(self) -> dict[str, float]:
        """Populated fields keyed by snake_case name, in declaration order."""
        return {k: v for k, v in self.model_dump().items() if v is not None}

    def is_empty(self) -> bool:
        return not self.present()


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


class CompanyInfo(_RecordModel):
    company_name: str | None = None
    ticker: str | None = None
    sector: str | None = None
    industry: str | None = None
    market_cap: float | None = None
    currency: str = "USD"

    @field_validator("company_name", "ticker", "sector", "industry", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str | None:
        return _optional_str(value)

    @field_validator("market_cap", mode="before")
    @classmethod
    def _market_cap(cls, value: Any) -> float | None:
        return coerce_number(value)

    @field_validator("currency", mode="before")
    @classmethod
    def _currency(cls, value: Any) -> str:
        if isinstance(value, str) and len(value.strip()) == 3:
            return value.strip().upper()
        return "USD"


class ReportInfo(_RecordModel):
    report_type: ReportType = ReportType.UNKNOWN
    fiscal_period: str | None = None
    fiscal_year: int | None = None
    quarter: int | None = None
    reporting_date: str | None = None

    @field_validator("report_type", mode="before")
    @classmethod
    def _report_type(cls, value: Any) -> ReportType:
        return ReportType.parse(value)

    @field_validator("fiscal_period", "reporting_date", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str | None:
        return _optional_str(value)

    @field_validator("fiscal_year", mode="before")
    @classmethod
    def _fiscal_year(cls, value: Any) -> int | None:
        number = coerce_number(value)
        return int(number) if number is not None else None

    @field_validator("quarter", mode="before")
    @classmethod
    def _quarter(cls, value: Any) -> int | None:
        if isinstance(value, str):
            value = value.strip().upper().removeprefix("Q")
        number = coerce_number(value)
        if number is None or not 1 <= number <= 4:
            return None
        return int(number)


class FinancialMetrics(NumericSection):
    revenue: float | None = None
    net_income: float | None = None
    eps: float | None = None
    gross_profit: float | None = None
    operating_income: float | None = None
    gross_margin: float | None = None
    operating_margin: float | None = None
    net_margin: float | None = None
    roe: float | None = None
    roa: float | None = None
    debt_to_equity: float | None = None
    current_ratio: float | None = None
    total_assets: float | None = None
    total_liabilities: float | None = None
    shareholders_equity: float | None = None
    operating_cash_flow: float | None = None
    free_cash_flow: float | None = None


class GrowthMetrics(NumericSection):
    revenue_growth: float | None = None
    net_income_growth: float | None = None
    eps_growth: float | None = None


class IncomeStatement(NumericSection):
    revenue: float | None = None
    cost_of_revenue: float | None = None
    gross_profit: float | None = None
    operating_expenses: float | None = None
    operating_income: float | None = None
    interest_expense: float | None = None
    tax_expense: float | None = None
    net_income: float | None = None


class BalanceSheet(NumericSection):
    total_assets: float | None = None
    current_assets: float | None = None
    total_liabilities: float | None = None
    current_liabilities: float | None = None
    shareholders_equity: float | None = None
    retained_earnings: float | None = None


class CashFlowStatement(NumericSection):
    operating_cash_flow: float | None = None
    investing_cash_flow: float | None = None
    financing_cash_flow: float | None = None
    free_cash_flow: float | None = None
    capital_expenditures: float | None = None


class Outlook(_RecordModel):
    guidance: str | None = None
    key_drivers: list[str] = Field(default_factory=list)
    challenges: list[str] = Field(default_factory=list)

    @field_validator("guidance", mode="before")
    @classmethod
    def _guidance(cls, value: Any) -> str | None:
        return _optional_str(value)

    @field_validator("key_drivers", "challenges", mode="before")
    @classmethod
    def _lists(cls, value: Any) -> list[str]:
        return _string_list(value)


def _optional_str(value: Any) -> str | None:
    if value is None or isinstance(value, bool | dict | list):
        return None
    text = str(value).strip()
    return text or None


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if item is not None and str(item).strip()]


# ---------------------------------------------------------------------------
# Root record
# ---------------------------------------------------------------------------


class StructuredFinancialRecord(_RecordModel):
    """Normalized key facts of one financial document."""

    company_info: CompanyInfo = Field(default_factory=CompanyInfo)
    report_info: ReportInfo = Field(default_factory=ReportInfo)
    financial_metrics: FinancialMetrics = Field(default_factory=FinancialMetrics)
    growth_metrics: GrowthMetrics = Field(default_factory=GrowthMetrics)
    income_statement: IncomeStatement | None = None
    balance_sheet: BalanceSheet | None = None
    cash_flow_statement: CashFlowStatement | None = None
    key_highlights: list[str] = Field(default_factory=list)
    risks: list[str] = Field(default_factory=list)
    outlook: Outlook | None = None

    @field_validator(
        "company_info", "report_info", "financial_metrics", "growth_metrics",
        mode="before",
    )
    @classmethod
    def _null_section(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("key_highlights", "risks", mode="before")
    @classmethod
    def _lists(cls, value: Any) -> list[str]:
        return _string_list(value)

    # Convenience accessors used by the chunk builders

    @property
    def company_name(self) -> str | None:
        return self.company_info.company_name

    @property
    def fiscal_period(self) -> str | None:
        return self.report_info.fiscal_period

    @property
    def currency(self) -> str:
        return self.company_info.currency
