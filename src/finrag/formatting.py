"""Display formatting for financial values inside chunk text."""

from __future__ import annotations

_CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£", "JPY": "¥", "CAD": "C$", "AUD": "A$"}

PERCENTAGE_METRICS = frozenset({
    "gross_margin",
    "operating_margin",
    "net_margin",
    "roe",
    "roa",
    "revenue_growth",
    "net_income_growth",
    "eps_growth",
})

RATIO_METRICS = frozenset({"eps", "debt_to_equity", "current_ratio"})


def _symbol(currency: str | None) -> str:
    code = (currency or "USD").upper()
    return _CURRENCY_SYMBOLS.get(code, f"{code} ")


def plain_number(value: float) -> str:
    """``734200000.0`` -> ``734200000``, ``0.590`` -> ``0.59``."""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:f}".rstrip("0").rstrip(".")


def format_currency(amount: float, currency: str | None = "USD") -> str:
    """Whole-unit currency with thousands separators: ``-$194,300,000``."""
    sign = "-" if amount < 0 else ""
    return f"{sign}{_symbol(currency)}{abs(amount):,.0f}"


def format_compact(amount: float, currency: str | None = "USD") -> str:
    """Compact currency: ``$1.2B``, ``$3.4M``, ``$5.6K``, ``$120``."""
    sign = "-" if amount < 0 else ""
    symbol = _symbol(currency)
    magnitude = abs(amount)
    if magnitude >= 1e9:
        return f"{sign}{symbol}{magnitude / 1e9:.1f}B"
    if magnitude >= 1e6:
        return f"{sign}{symbol}{magnitude / 1e6:.1f}M"
    if magnitude >= 1e3:
        return f"{sign}{symbol}{magnitude / 1e3:.1f}K"
    return f"{sign}{symbol}{magnitude:.0f}"


def format_metric(key: str, value: float, currency: str | None = "USD") -> str:
    """Format a named metric: percentages, plain ratios, or compact currency."""
    if key in PERCENTAGE_METRICS:
        return f"{value:.1f}%"
    if key in RATIO_METRICS:
        return plain_number(value)
    return format_compact(value, currency)


def humanize(key: str) -> str:
    """``net_income`` -> ``Net Income``; ``eps`` -> ``EPS``."""
    acronyms = {"eps": "EPS", "roe": "ROE", "roa": "ROA", "ebitda": "EBITDA"}
    return " ".join(acronyms.get(part, part.capitalize()) for part in key.split("_"))
