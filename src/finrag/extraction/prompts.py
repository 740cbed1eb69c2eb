"""Prompt templates for structured financial extraction."""

from __future__ import annotations

EXTRACTION_SYSTEM_PROMPT = """\
You are a financial data extraction engine. You read financial documents \
(earnings releases, 10-K and 10-Q filings, call transcripts) and return \
strictly valid JSON. Report amounts as absolute numbers in the reporting \
currency (e.g. 734200000, not "734.2 million"). Use null for anything the \
document does not state. Never invent figures.
"""

RECORD_SCHEMA = """\
{
  "companyInfo": {
    "companyName": "string",
    "ticker": "string",
    "sector": "string",
    "industry": "string",
    "marketCap": "number",
    "currency": "string (ISO code, e.g. USD)"
  },
  "reportInfo": {
    "reportType": "earnings|10k|10q|annual_report|quarterly_report",
    "fiscalPeriod": "string (e.g. Q3 2024, FY 2023)",
    "fiscalYear": "number",
    "quarter": "number (1-4, null for annual)",
    "reportingDate": "string (YYYY-MM-DD)"
  },
  "financialMetrics": {
    "revenue": "number",
    "netIncome": "number (negative for a net loss)",
    "eps": "number",
    "grossProfit": "number",
    "operatingIncome": "number",
    "grossMargin": "number (percentage)",
    "operatingMargin": "number (percentage)",
    "netMargin": "number (percentage)",
    "roe": "number (percentage)",
    "roa": "number (percentage)",
    "debtToEquity": "number",
    "currentRatio": "number",
    "totalAssets": "number",
    "totalLiabilities": "number",
    "shareholdersEquity": "number",
    "operatingCashFlow": "number",
    "freeCashFlow": "number"
  },
  "growthMetrics": {
    "revenueGrowth": "number (percentage)",
    "netIncomeGrowth": "number (percentage)",
    "epsGrowth": "number (percentage)"
  },
  "incomeStatement": {
    "revenue": "number",
    "costOfRevenue": "number",
    "grossProfit": "number",
    "operatingExpenses": "number",
    "operatingIncome": "number",
    "interestExpense": "number",
    "taxExpense": "number",
    "netIncome": "number"
  },
  "balanceSheet": {
    "totalAssets": "number",
    "currentAssets": "number",
    "totalLiabilities": "number",
    "currentLiabilities": "number",
    "shareholdersEquity": "number",
    "retainedEarnings": "number"
  },
  "cashFlowStatement": {
    "operatingCashFlow": "number",
    "investingCashFlow": "number",
    "financingCashFlow": "number",
    "freeCashFlow": "number",
    "capitalExpenditures": "number"
  },
  "keyHighlights": ["string"],
  "risks": ["string"],
  "outlook": {
    "guidance": "string",
    "keyDrivers": ["string"],
    "challenges": ["string"]
  }
}"""

EXTRACTION_TEMPLATE = """\
Analyze this financial document and extract structured information. \
Return a single JSON object with the following structure and nothing else:

{schema}

Financial document content:
{document}
"""


def build_extraction_prompt(document: str) -> str:
    return EXTRACTION_TEMPLATE.format(schema=RECORD_SCHEMA, document=document)
