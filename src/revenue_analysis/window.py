"""Display-window selection and anchor-month metrics.

The first month of any computed series has no prior month, so its retention
figures are a vacuous baseline (100% retention, every account new).  When a
caller views a sub-window of a longer history, the month immediately before
the window is added to the computation as an *anchor* and removed from the
output again, so the first displayed month compares against real data.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from revenue_analysis.metrics import MonthlyMetric, calculate_monthly_metrics
from revenue_analysis.months import month_label, sort_months
from revenue_analysis.processors import ALL_PROCESSORS
from revenue_analysis.records import CanonicalRecord, filter_scope

logger = logging.getLogger(__name__)

DATE_RANGE_PRESETS: dict[str, int | None] = {
    "all": None,
    "current": 1,
    "3months": 3,
    "6months": 6,
    "12months": 12,
    "custom": None,
}


@dataclass(frozen=True)
class WindowSummary:
    """Aggregate of a displayed metric window."""

    label: str
    months: int
    total_revenue: float
    total_accounts: int
    average_retention_rate: float
    average_attrition_rate: float
    new_accounts: int
    lost_accounts: int


def select_window(
    all_months: Iterable[str],
    preset: str = "all",
    start: str | None = None,
    end: str | None = None,
) -> list[str]:
    """Pick the display months for a date-range preset.

    ``custom`` uses *start*/*end* (either order); when a bound is missing or
    not present in the data the whole history is returned.
    """
    months = sort_months(all_months)
    if preset not in DATE_RANGE_PRESETS:
        raise ValueError(
            f"Unknown date range {preset!r}; expected one of {list(DATE_RANGE_PRESETS)}"
        )
    if preset == "all" or not months:
        return months
    if preset == "custom":
        if not start or not end or start not in months or end not in months:
            return months
        lo, hi = sorted((months.index(start), months.index(end)))
        return months[lo : hi + 1]
    return months[-DATE_RANGE_PRESETS[preset] :]


def anchor_months(
    all_months: Iterable[str], window: Sequence[str]
) -> tuple[str | None, list[str]]:
    """Return ``(anchor, months_to_compute)`` for a display *window*.

    The anchor is the data month immediately preceding the window's first
    month, or None when the window starts at the first available month.
    """
    window = sort_months(window)
    if not window:
        return None, []
    months = sort_months(all_months)
    if window[0] not in months:
        return None, window
    index = months.index(window[0])
    if index == 0:
        return None, window
    anchor = months[index - 1]
    return anchor, [anchor, *window]


def calculate_window_metrics(
    records: Iterable[CanonicalRecord],
    window: Sequence[str] | None = None,
    processor: str = ALL_PROCESSORS,
    all_time: bool = False,
) -> list[MonthlyMetric]:
    """Monthly metrics for *window*, seeded by an anchor month when one exists.

    ``window=None`` or ``all_time=True`` computes the whole history without
    an anchor.  Window months absent from the data are ignored.
    """
    scoped = filter_scope(records, processor)
    if all_time or window is None:
        return calculate_monthly_metrics(scoped, processor)

    available = sort_months(r.month for r in scoped)
    display = [m for m in sort_months(window) if m in set(available)]
    anchor, compute = anchor_months(available, display)
    needed = set(compute)
    metrics = calculate_monthly_metrics([r for r in scoped if r.month in needed], processor)
    if anchor is not None:
        logger.debug("Anchor month %s seeds window %s..%s", anchor, display[0], display[-1])
    return [m for m in metrics if m.month != anchor]


def summarize_window(metrics: Sequence[MonthlyMetric]) -> WindowSummary | None:
    """Roll a metric window up into one summary; None for an empty window.

    Revenue and account flows are summed, the account total is the last
    month's, and rates are averaged across the window's months.
    """
    if not metrics:
        return None
    first, last = metrics[0], metrics[-1]
    if len(metrics) > 1:
        label = f"{month_label(first.month)} - {month_label(last.month)}"
    else:
        label = month_label(first.month)
    count = len(metrics)
    return WindowSummary(
        label=label,
        months=count,
        total_revenue=sum(m.total_revenue for m in metrics),
        total_accounts=last.total_accounts,
        average_retention_rate=round(sum(m.retention_rate for m in metrics) / count, 2),
        average_attrition_rate=round(sum(m.attrition_rate for m in metrics) / count, 2),
        new_accounts=sum(m.new_accounts for m in metrics),
        lost_accounts=sum(m.lost_accounts for m in metrics),
    )
