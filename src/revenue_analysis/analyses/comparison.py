"""Side-by-side latest-month figures per processor."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from revenue_analysis.analyses.base import AnalysisContext, AnalysisResult, to_frame
from revenue_analysis.helpers import safe_percentage
from revenue_analysis.metrics import calculate_monthly_metrics
from revenue_analysis.processors import Processor
from revenue_analysis.records import CanonicalRecord


@dataclass(frozen=True)
class ProcessorSnapshot:
    processor: str
    month: str
    total_revenue: float
    revenue_share_pct: float
    total_accounts: int
    retention_rate: float
    revenue_per_account: float
    mom_revenue_change_percent: float | None


def processor_comparison(
    records: Iterable[CanonicalRecord], current_month: str | None = None
) -> list[ProcessorSnapshot]:
    """Latest metrics of every processor present in *records*.

    Each processor's figures come from its own metric series, so retention
    and month-over-month change compare against that processor's previous
    month.  Processors whose data stops early report their last month.
    ``revenue_share_pct`` is the processor's slice of the summed revenue.
    """
    records = [r for r in records if current_month is None or r.month <= current_month]
    present = {r.processor for r in records}

    latest = []
    for processor in Processor:
        if processor not in present:
            continue
        series = calculate_monthly_metrics(records, processor.value)
        if series:
            latest.append(series[-1])

    total = sum(m.total_revenue for m in latest)
    return [
        ProcessorSnapshot(
            processor=m.processor,
            month=m.month,
            total_revenue=m.total_revenue,
            revenue_share_pct=safe_percentage(m.total_revenue, total),
            total_accounts=m.total_accounts,
            retention_rate=m.retention_rate,
            revenue_per_account=m.revenue_per_account,
            mom_revenue_change_percent=m.mom_revenue_change_percent,
        )
        for m in latest
    ]


def analyze_processor_comparison(context: AnalysisContext) -> AnalysisResult:
    snapshots = processor_comparison(context.history, context.current_month)
    return AnalysisResult.from_df(
        "processor_comparison",
        "Processor Comparison",
        to_frame(snapshots, list(ProcessorSnapshot.__dataclass_fields__)),
        sheet_name="Processors",
    )
