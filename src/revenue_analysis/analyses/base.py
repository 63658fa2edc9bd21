"""Base types and helpers for all analyses."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import asdict, dataclass, field, is_dataclass

import pandas as pd

from revenue_analysis.months import sort_months
from revenue_analysis.records import CanonicalRecord, records_to_frame


@dataclass
class AnalysisResult:
    """Outcome of a single registered analysis."""

    name: str
    title: str
    df: pd.DataFrame
    error: str | None = None
    sheet_name: str | None = None
    metadata: dict = field(default_factory=dict)

    @classmethod
    def from_df(
        cls,
        name: str,
        title: str,
        df: pd.DataFrame,
        *,
        error: str | None = None,
        sheet_name: str | None = None,
        metadata: dict | None = None,
    ) -> AnalysisResult:
        return cls(
            name=name,
            title=title,
            df=df,
            error=error,
            sheet_name=sheet_name or name.replace(" ", "_")[:31],
            metadata=dict(metadata or {}),
        )


def to_frame(items: Iterable, columns: Iterable[str] | None = None) -> pd.DataFrame:
    """DataFrame from a sequence of dataclass value objects."""
    rows = [asdict(item) if is_dataclass(item) else dict(item) for item in items]
    if not rows:
        return pd.DataFrame(columns=list(columns or []))
    return pd.DataFrame(rows)


def available_months(records: Iterable[CanonicalRecord]) -> list[str]:
    return sort_months(r.month for r in records)


def resolve_month_pair(
    months: list[str], current_month: str | None
) -> tuple[int, str | None, str | None]:
    """Index, month and previous month for *current_month* (default: latest).

    Returns ``(-1, None, None)`` when the month is not in *months*.
    """
    if not months:
        return -1, None, None
    if current_month is None:
        index = len(months) - 1
    elif current_month in months:
        index = months.index(current_month)
    else:
        return -1, None, None
    previous = months[index - 1] if index > 0 else None
    return index, months[index], previous


def merchant_revenue(records: Iterable[CanonicalRecord], month: str | None = None) -> pd.DataFrame:
    """Revenue summed per merchant id, in first-appearance order.

    Columns: merchant_id (index), merchant_name, processor, branch_id, revenue.
    """
    df = records_to_frame(records)
    if month is not None:
        df = df[df["month"] == month]
    if df.empty:
        return pd.DataFrame(
            columns=["merchant_name", "processor", "branch_id", "revenue"],
            index=pd.Index([], name="merchant_id"),
        )
    return df.groupby("merchant_id", sort=False).agg(
        merchant_name=("merchant_name", "first"),
        processor=("processor", "first"),
        branch_id=("branch_id", "first"),
        revenue=("revenue", "sum"),
    )


@dataclass
class AnalysisContext:
    """Inputs shared by every registered analysis.

    ``records`` holds the display window only; ``history`` holds every
    in-scope record so month-over-month analyses can reach the month before
    the window.
    """

    records: list[CanonicalRecord]
    history: list[CanonicalRecord]
    metrics: list
    settings: object
    window: list[str] = field(default_factory=list)
    metadata: list = field(default_factory=list)
    completed_results: dict[str, AnalysisResult] = field(default_factory=dict)

    @property
    def current_month(self) -> str | None:
        """Last displayed month, or the latest month on record."""
        if self.window:
            return self.window[-1]
        months = available_months(self.history)
        return months[-1] if months else None

    def history_through_current(self) -> list[CanonicalRecord]:
        current = self.current_month
        if current is None:
            return []
        return [r for r in self.history if r.month <= current]
