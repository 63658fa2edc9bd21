"""Month token parsing: cell values, filenames and sheet names -> ``YYYY-MM``."""

from __future__ import annotations

import re
from datetime import date, datetime
from pathlib import Path

import pandas as pd

# Tried in order; the first format that parses to a real calendar month wins.
MONTH_FORMATS: tuple[str, ...] = (
    "%Y-%m",  # 2024-01
    "%m/%Y",  # 01/2024
    "%m-%Y",  # 01-2024
    "%B %Y",  # January 2024
    "%b %Y",  # Jan 2024
    "%Y/%m",  # 2024/01
    "%b-%y",  # Jun-25
)

# Full dates seen in "Processing Date" style columns.
DATE_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d",
    "%m/%d/%Y",
)

MONTH_NAMES = (
    "january",
    "february",
    "march",
    "april",
    "may",
    "june",
    "july",
    "august",
    "september",
    "october",
    "november",
    "december",
)

_MONTH_WORD = "|".join(
    sorted({*MONTH_NAMES, *(m[:3] for m in MONTH_NAMES), "sept"}, key=len, reverse=True)
)

# Month name followed by a year: "PayBright_Aug2025", "TRX June 2025", "Jun-25".
_NAMED_MONTH = re.compile(
    rf"(?<![a-z])(?P<name>{_MONTH_WORD})(?![a-z])[\s_.\-']*(?P<year>\d{{4}}|\d{{2}})(?!\d)",
    re.IGNORECASE,
)
_YEAR_FIRST = re.compile(r"(?<!\d)(?P<year>\d{4})[-_/.](?P<month>\d{1,2})(?!\d)")
_MONTH_FIRST = re.compile(r"(?<!\d)(?P<month>\d{1,2})[-_/.](?P<year>\d{4})(?!\d)")

_MONTH_TOKEN = re.compile(r"^\d{4}-\d{2}$")

FILE_SUFFIXES = frozenset({".csv", ".xlsx", ".xls", ".xlsm"})


def is_month_token(value: str) -> bool:
    """True if *value* is already a canonical ``YYYY-MM`` token."""
    return bool(_MONTH_TOKEN.match(value)) and 1 <= int(value[5:]) <= 12


def format_month(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def parse_month(value: object) -> str | None:
    """Parse a cell value into ``YYYY-MM``; None if no known format applies."""
    if value is None:
        return None
    if isinstance(value, (datetime, date, pd.Timestamp)):
        if pd.isna(value):
            return None
        return format_month(value.year, value.month)
    if isinstance(value, float) and pd.isna(value):
        return None

    text = " ".join(str(value).split())
    if not text:
        return None
    for fmt in MONTH_FORMATS + DATE_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt)
        except ValueError:
            continue
        return format_month(parsed.year, parsed.month)
    return None


def month_from_name(name: str | Path) -> str | None:
    """Extract a month embedded in a filename or sheet name.

    The whole stem is first tried against MONTH_FORMATS, then regex
    heuristics look for a month name followed by a year, ``YYYY-MM`` and
    ``MM-YYYY`` fragments.
    """
    text = str(name)
    path = Path(text)
    stem = path.stem if path.suffix.lower() in FILE_SUFFIXES else text
    direct = parse_month(stem)
    if direct:
        return direct

    match = _NAMED_MONTH.search(stem)
    if match:
        word = match.group("name").lower()
        month = next(i for i, m in enumerate(MONTH_NAMES, start=1) if m.startswith(word[:3]))
        year = int(match.group("year"))
        if year < 100:
            year += 2000
        return format_month(year, month)

    for pattern in (_YEAR_FIRST, _MONTH_FIRST):
        match = pattern.search(stem)
        if match and 1 <= int(match.group("month")) <= 12:
            return format_month(int(match.group("year")), int(match.group("month")))
    return None


def sort_months(months) -> list[str]:
    """Sort ``YYYY-MM`` tokens chronologically (duplicates removed)."""
    return sorted(set(months), key=lambda m: pd.Period(m, freq="M"))


def add_months(month: str, count: int) -> str:
    """Shift a ``YYYY-MM`` token by *count* calendar months."""
    return str(pd.Period(month, freq="M") + count)


def month_label(month: str) -> str:
    """Human label for a month token, e.g. ``2025-01`` -> ``Jan 2025``."""
    try:
        return pd.Period(month, freq="M").strftime("%b %Y")
    except ValueError:
        return month
