"""Column-name heuristics for Excel and console output."""

from __future__ import annotations

CURRENCY_KEYWORDS = ("revenue", "net", "amount", "payout", "sales", "change", "intercept")
PERCENT_KEYWORDS = ("%", "pct", "percent", "rate")
COUNT_KEYWORDS = ("accounts", "account_count", "count", "growth", "rank", "declines", "top_n")


def format_value(val, col_name: str) -> str:
    """Format a cell value for display based on column name heuristics."""
    if val is None or (isinstance(val, float) and val != val):
        return ""
    col_lower = col_name.lower()
    if isinstance(val, str):
        return val
    if is_percentage_column(col_lower):
        return f"{float(val):.2f}%"
    if is_count_column(col_lower):
        return f"{int(val):,}"
    if is_currency_column(col_lower):
        return f"${float(val):,.2f}"
    try:
        num = float(val)
        if num == int(num):
            return f"{int(num):,}"
        return f"{num:,.2f}"
    except (ValueError, TypeError):
        return str(val)


def excel_number_format(col_name: str) -> str:
    """Return openpyxl number format string for a column."""
    col_lower = col_name.lower()
    if is_percentage_column(col_lower):
        return "0.00%"
    if is_count_column(col_lower):
        return "#,##0"
    if is_currency_column(col_lower):
        return "$#,##0.00"
    return "General"


def is_currency_column(col_lower: str) -> bool:
    return any(kw in col_lower for kw in CURRENCY_KEYWORDS)


def is_percentage_column(col_lower: str) -> bool:
    return any(kw in col_lower for kw in PERCENT_KEYWORDS)


def is_count_column(col_lower: str) -> bool:
    return any(kw in col_lower for kw in COUNT_KEYWORDS)
