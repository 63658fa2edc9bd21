"""New and lost merchants between the two most recent months."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

import pandas as pd

from revenue_analysis.analyses.base import (
    AnalysisContext,
    AnalysisResult,
    available_months,
    merchant_revenue,
    to_frame,
)
from revenue_analysis.processors import ALL_PROCESSORS
from revenue_analysis.records import CanonicalRecord, filter_scope


@dataclass(frozen=True)
class MerchantChange:
    merchant_id: str
    merchant_name: str
    revenue: float
    month: str
    processor: str


@dataclass(frozen=True)
class MerchantChanges:
    previous_month: str | None = None
    current_month: str | None = None
    new_merchants: list[MerchantChange] = field(default_factory=list)
    lost_merchants: list[MerchantChange] = field(default_factory=list)
    retained_count: int = 0


def _changes(grouped, ids, month: str) -> list[MerchantChange]:
    changes = [
        MerchantChange(
            merchant_id=str(mid),
            merchant_name=grouped.at[mid, "merchant_name"],
            revenue=float(grouped.at[mid, "revenue"]),
            month=month,
            processor=grouped.at[mid, "processor"],
        )
        for mid in ids
    ]
    changes.sort(key=lambda c: c.revenue, reverse=True)
    return changes


def merchant_changes(
    records: Iterable[CanonicalRecord], processor: str = ALL_PROCESSORS
) -> MerchantChanges:
    """Compare the merchant sets of the two latest months in *records*.

    A merchant only in the later month is new; only in the earlier, lost.
    Both lists are sorted by revenue, highest first.
    """
    scoped = filter_scope(records, processor)
    months = available_months(scoped)
    if len(months) < 2:
        return MerchantChanges()

    previous_month, current_month = months[-2], months[-1]
    previous = merchant_revenue(scoped, previous_month)
    current = merchant_revenue(scoped, current_month)
    previous_ids = set(previous.index)
    current_ids = set(current.index)

    return MerchantChanges(
        previous_month=previous_month,
        current_month=current_month,
        new_merchants=_changes(
            current, [m for m in current.index if m not in previous_ids], current_month
        ),
        lost_merchants=_changes(
            previous, [m for m in previous.index if m not in current_ids], previous_month
        ),
        retained_count=len(previous_ids & current_ids),
    )


CHANGE_COLUMNS = ["change", "merchant_id", "merchant_name", "processor", "month", "revenue"]


def analyze_merchant_changes(context: AnalysisContext) -> AnalysisResult:
    changes = merchant_changes(context.history_through_current(), context.settings.scope)
    new = to_frame(changes.new_merchants)
    lost = to_frame(changes.lost_merchants)
    new.insert(0, "change", "New")
    lost.insert(0, "change", "Lost")
    df = pd.concat([new, lost], ignore_index=True)
    df = df.reindex(columns=CHANGE_COLUMNS)
    return AnalysisResult.from_df(
        "merchant_changes",
        "New and Lost Merchants",
        df,
        sheet_name="Merchant Changes",
        metadata={
            "previous_month": changes.previous_month,
            "current_month": changes.current_month,
            "new": len(changes.new_merchants),
            "lost": len(changes.lost_merchants),
            "retained": changes.retained_count,
        },
    )
