"""Which processors reported data for which months."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

import pandas as pd

from revenue_analysis.analyses.base import AnalysisContext, AnalysisResult
from revenue_analysis.helpers import safe_percentage
from revenue_analysis.months import add_months, month_label, sort_months
from revenue_analysis.processors import Processor
from revenue_analysis.records import CanonicalRecord

UPLOADED = "uploaded"
MISSING = "missing"
COVERAGE_MONTHS = 12


@dataclass(frozen=True)
class ProcessorCoverage:
    processor: str
    statuses: dict[str, str]

    @property
    def uploaded_months(self) -> int:
        return sum(1 for s in self.statuses.values() if s == UPLOADED)

    @property
    def upload_rate(self) -> float:
        return safe_percentage(self.uploaded_months, len(self.statuses), decimals=0)


@dataclass(frozen=True)
class UploadCoverage:
    months: list[str] = field(default_factory=list)
    processors: list[ProcessorCoverage] = field(default_factory=list)

    @property
    def expected(self) -> int:
        return len(self.months) * len(self.processors)

    @property
    def uploaded(self) -> int:
        return sum(p.uploaded_months for p in self.processors)

    @property
    def missing(self) -> int:
        return self.expected - self.uploaded

    @property
    def completion_rate(self) -> float:
        return safe_percentage(self.uploaded, self.expected, decimals=0)


def coverage_months(
    months: Iterable[str], end_month: str | None = None, span: int = COVERAGE_MONTHS
) -> list[str]:
    """Consecutive calendar months ending at *end_month* (default: latest).

    At most *span* months, never earlier than the first month on record, so
    a month no processor reported still shows up as a gap.
    """
    ordered = sort_months(months)
    if not ordered:
        return []
    end = end_month or ordered[-1]
    start = max(ordered[0], add_months(end, -(span - 1)))
    result = []
    month = start
    while month <= end:
        result.append(month)
        month = add_months(month, 1)
    return result


def upload_coverage(
    records: Iterable[CanonicalRecord],
    end_month: str | None = None,
    span: int = COVERAGE_MONTHS,
) -> UploadCoverage:
    """Processor x month matrix of uploaded / missing data.

    Processors are those with any record; a cell is uploaded when the
    processor has at least one record for that month.
    """
    records = list(records)
    months = coverage_months((r.month for r in records), end_month, span)
    if not months:
        return UploadCoverage()

    reported: dict[Processor, set[str]] = {}
    for r in records:
        reported.setdefault(r.processor, set()).add(r.month)

    processors = [
        ProcessorCoverage(
            processor=processor.value,
            statuses={m: UPLOADED if m in reported[processor] else MISSING for m in months},
        )
        for processor in Processor
        if processor in reported
    ]
    return UploadCoverage(months=months, processors=processors)


def coverage_frame(coverage: UploadCoverage) -> pd.DataFrame:
    """One row per processor: upload rate, then one status column per month."""
    columns = ["processor", "upload_rate"] + [month_label(m) for m in coverage.months]
    rows = [
        [p.processor, p.upload_rate] + [p.statuses[m] for m in coverage.months]
        for p in coverage.processors
    ]
    return pd.DataFrame(rows, columns=columns)


def analyze_upload_coverage(context: AnalysisContext) -> AnalysisResult:
    coverage = upload_coverage(context.history, context.current_month)
    return AnalysisResult.from_df(
        "upload_coverage",
        "Upload Coverage",
        coverage_frame(coverage),
        sheet_name="Coverage",
        metadata={
            "completion_rate": coverage.completion_rate,
            "uploaded": coverage.uploaded,
            "expected": coverage.expected,
            "missing": coverage.missing,
        },
    )
