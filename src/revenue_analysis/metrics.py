"""Monthly retention, attrition and growth metrics."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import asdict, dataclass

import pandas as pd

from revenue_analysis.helpers import safe_percentage, safe_ratio
from revenue_analysis.months import sort_months
from revenue_analysis.processors import ALL_PROCESSORS, Processor
from revenue_analysis.records import CanonicalRecord, filter_scope, records_to_frame

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MonthlyMetric:
    """Aggregate figures for one month of one processor scope."""

    month: str
    processor: str
    total_revenue: float
    total_accounts: int
    retained_accounts: int
    lost_accounts: int
    new_accounts: int
    retention_rate: float
    attrition_rate: float
    revenue_per_account: float
    net_account_growth: int
    mom_revenue_change: float | None = None
    mom_revenue_change_percent: float | None = None
    total_agent_net: float = 0.0
    agent_net_per_account: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


def _agent_net(frame: pd.DataFrame) -> float:
    """Clearent agent commission for the month; other processors report none."""
    if "agent_net" not in frame.columns:
        return 0.0
    clearent = frame[frame["processor"] == Processor.CLEARENT.value]
    return float(pd.to_numeric(clearent["agent_net"], errors="coerce").sum())


def calculate_monthly_metrics(
    records: Iterable[CanonicalRecord],
    processor: str = ALL_PROCESSORS,
) -> list[MonthlyMetric]:
    """Compute one MonthlyMetric per month present in *records*.

    Months are walked chronologically and each month's merchant-id set is
    compared with the previous computed month's set (gaps are bridged, not
    interpolated).  The first month is the baseline: everything is new,
    retention 100, attrition 0.  ``processor="All"`` treats every processor
    as one pool, so equal merchant ids from different processors count once.
    """
    df = records_to_frame(filter_scope(records, processor))
    if df.empty:
        return []

    by_month = {month: frame for month, frame in df.groupby("month", sort=False)}
    metrics: list[MonthlyMetric] = []
    previous: set[str] | None = None

    for month in sort_months(by_month):
        frame = by_month[month]
        current = set(frame["merchant_id"])
        total_revenue = float(frame["revenue"].sum())
        total_accounts = len(current)
        total_agent_net = _agent_net(frame)

        if previous is None:
            retained = lost = 0
            new = total_accounts
            retention_rate, attrition_rate = 100.0, 0.0
        else:
            retained = len(previous & current)
            lost = len(previous - current)
            new = len(current - previous)
            retention_rate = safe_percentage(retained, len(previous))
            attrition_rate = safe_percentage(lost, len(previous))

        mom_change = mom_percent = None
        if metrics:
            prior_revenue = metrics[-1].total_revenue
            mom_change = total_revenue - prior_revenue
            mom_percent = safe_percentage(mom_change, prior_revenue) if prior_revenue > 0 else 0.0

        metrics.append(
            MonthlyMetric(
                month=month,
                processor=processor,
                total_revenue=total_revenue,
                total_accounts=total_accounts,
                retained_accounts=retained,
                lost_accounts=lost,
                new_accounts=new,
                retention_rate=retention_rate,
                attrition_rate=attrition_rate,
                revenue_per_account=safe_ratio(total_revenue, total_accounts, decimals=None),
                net_account_growth=new - lost,
                mom_revenue_change=mom_change,
                mom_revenue_change_percent=mom_percent,
                total_agent_net=total_agent_net,
                agent_net_per_account=safe_ratio(total_agent_net, total_accounts, decimals=None),
            )
        )
        previous = current

    logger.debug("Computed %d monthly metrics for %s", len(metrics), processor)
    return metrics


def metrics_to_frame(metrics: Iterable[MonthlyMetric]) -> pd.DataFrame:
    """Tabular form of a metric series, one row per month."""
    rows = [m.to_dict() for m in metrics]
    if not rows:
        return pd.DataFrame(columns=list(MonthlyMetric.__dataclass_fields__))
    return pd.DataFrame(rows)
