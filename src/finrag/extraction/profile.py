"""Flat per-document financial profile derived from the structured record."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

from finrag.extraction.schemas import StructuredFinancialRecord

# Fields counted by the completeness score.
_TRACKED_FIELDS = (
    "company_name",
    "ticker",
    "sector",
    "industry",
    "report_type",
    "fiscal_period",
    "fiscal_year",
    "revenue",
    "net_income",
    "eps",
    "gross_margin",
    "operating_margin",
    "net_margin",
    "revenue_growth",
    "total_assets",
    "operating_cash_flow",
    "free_cash_flow",
)

_PROFILE_METRICS = (
    "revenue",
    "net_income",
    "eps",
    "gross_margin",
    "operating_margin",
    "net_margin",
    "roe",
    "roa",
    "debt_to_equity",
    "current_ratio",
    "total_assets",
    "total_liabilities",
    "shareholders_equity",
    "operating_cash_flow",
    "free_cash_flow",
)


@dataclass
class FinancialProfile:
    """One row per document; resolves query context without touching chunks."""

    document_id: str
    company_name: str | None = None
    ticker: str | None = None
    sector: str | None = None
    industry: str | None = None
    market_cap: float | None = None
    report_type: str | None = None
    fiscal_period: str | None = None
    fiscal_year: int | None = None
    quarter: int | None = None
    reporting_date: str | None = None
    currency: str = "USD"
    metrics: dict[str, float] = field(default_factory=dict)
    growth: dict[str, float] = field(default_factory=dict)
    completeness_score: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FinancialProfile:
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


def build_profile(document_id: str, record: StructuredFinancialRecord) -> FinancialProfile:
    """Flatten ``record`` and score how much of it was populated."""
    company = record.company_info
    report = record.report_info
    metrics = {
        k: v for k, v in record.financial_metrics.present().items() if k in _PROFILE_METRICS
    }
    growth = record.growth_metrics.present()

    profile = FinancialProfile(
        document_id=document_id,
        company_name=company.company_name,
        ticker=company.ticker,
        sector=company.sector,
        industry=company.industry,
        market_cap=company.market_cap,
        report_type=None if report.report_type == "unknown" else str(report.report_type),
        fiscal_period=report.fiscal_period,
        fiscal_year=report.fiscal_year,
        quarter=report.quarter,
        reporting_date=report.reporting_date,
        currency=company.currency,
        metrics=metrics,
        growth=growth,
    )

    values = {**profile.to_dict(), **metrics, **growth}
    populated = sum(1 for name in _TRACKED_FIELDS if values.get(name) is not None)
    profile.completeness_score = round(populated / len(_TRACKED_FIELDS), 3)
    return profile
