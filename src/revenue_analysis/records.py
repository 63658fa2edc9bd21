"""Canonical merchant revenue records, one variant per processor family.

Every variant shares the identity fields (merchant id, month, processor) and
carries only the numeric fields its processor actually reports.  Revenue is a
projection defined per variant, never a stored column:

* Clearent / ML report revenue as ``net``.  ``net`` is mandatory for these
  processors, so the variants do not allow it to be missing.
* Shift4 reports ``payout_amount``, falling back to ``sales_amount``.
* Every other processor uses ``net``, falling back to ``sales_amount``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass, fields

import pandas as pd

from revenue_analysis.exceptions import MissingRevenueError
from revenue_analysis.processors import ALL_PROCESSORS, Processor

RecordKey = tuple[str, str, str]


@dataclass(frozen=True, kw_only=True)
class _BaseRecord(ABC):
    merchant_id: str
    merchant_name: str
    month: str
    processor: Processor
    branch_id: str | None = None

    @property
    def key(self) -> RecordKey:
        """Identity used for deduplication and upsert."""
        return (self.processor.value, self.month, self.merchant_id)

    @abstractmethod
    def revenue(self) -> float:
        """Revenue figure of this record under its processor's rule."""

    def to_dict(self) -> dict:
        data = asdict(self)
        data["processor"] = self.processor.value
        data["revenue"] = self.revenue()
        return data


@dataclass(frozen=True, kw_only=True)
class ClearentRecord(_BaseRecord):
    net: float
    sales_amount: float | None = None
    transactions: float | None = None
    agent_net: float | None = None
    commission_percent: float | None = None
    partner_net: float | None = None

    def revenue(self) -> float:
        return self.net


@dataclass(frozen=True, kw_only=True)
class MLRecord(_BaseRecord):
    net: float
    sales_amount: float | None = None
    income: float | None = None
    expenses: float | None = None

    def revenue(self) -> float:
        return self.net


@dataclass(frozen=True, kw_only=True)
class Shift4Record(_BaseRecord):
    payout_amount: float | None = None
    sales_amount: float | None = None
    volume: float | None = None
    sales: float | None = None
    refunds: float | None = None
    reject_amount: float | None = None
    bank_split: float | None = None
    bank_payout: float | None = None

    def revenue(self) -> float:
        if self.payout_amount is not None:
            return self.payout_amount
        if self.sales_amount is not None:
            return self.sales_amount
        return 0.0


@dataclass(frozen=True, kw_only=True)
class GenericRecord(_BaseRecord):
    net: float | None = None
    sales_amount: float | None = None

    def revenue(self) -> float:
        if self.net is not None:
            return self.net
        if self.sales_amount is not None:
            return self.sales_amount
        return 0.0


CanonicalRecord = ClearentRecord | MLRecord | Shift4Record | GenericRecord

RECORD_TYPES: dict[Processor, type[_BaseRecord]] = {
    Processor.CLEARENT: ClearentRecord,
    Processor.ML: MLRecord,
    Processor.SHIFT4: Shift4Record,
}

# Processors that must never fall back from ``net`` to a weaker figure.
NET_REQUIRED = frozenset({Processor.CLEARENT, Processor.ML})


def record_type(processor: Processor) -> type[_BaseRecord]:
    """Return the record variant for *processor*."""
    return RECORD_TYPES.get(processor, GenericRecord)


def record_fields(processor: Processor) -> tuple[str, ...]:
    """Names of the processor-specific numeric fields of its variant."""
    base = {f.name for f in fields(_BaseRecord)}
    return tuple(f.name for f in fields(record_type(processor)) if f.name not in base)


def build_record(
    processor: Processor,
    *,
    merchant_id: str,
    merchant_name: str,
    month: str,
    branch_id: str | None = None,
    values: Mapping[str, float] | None = None,
) -> CanonicalRecord:
    """Build the variant for *processor* from parsed numeric *values*.

    Fields the variant does not carry are ignored.  Raises MissingRevenueError
    for Clearent/ML values without ``net``.
    """
    values = values or {}
    if processor in NET_REQUIRED and values.get("net") is None:
        raise MissingRevenueError(processor.value, merchant_id, merchant_name)
    numeric = {
        name: values[name] for name in record_fields(processor) if values.get(name) is not None
    }
    return record_type(processor)(
        merchant_id=merchant_id,
        merchant_name=merchant_name,
        month=month,
        processor=processor,
        branch_id=branch_id,
        **numeric,
    )


def revenue(record: CanonicalRecord) -> float:
    """Authoritative revenue of a record under its processor's rule."""
    return record.revenue()


def filter_scope(
    records: Iterable[CanonicalRecord], scope: str = ALL_PROCESSORS
) -> list[CanonicalRecord]:
    """Restrict records to one processor, or keep everything for 'All'."""
    if scope == ALL_PROCESSORS:
        return list(records)
    return [r for r in records if r.processor.value == scope]


def records_to_frame(records: Iterable[CanonicalRecord]) -> pd.DataFrame:
    """Flatten records into a DataFrame with a computed ``revenue`` column.

    Row order follows the input order, which analyses rely on for stable
    tie-breaks.
    """
    rows = [r.to_dict() for r in records]
    columns = ["processor", "month", "merchant_id", "merchant_name", "branch_id", "revenue"]
    if not rows:
        return pd.DataFrame(columns=columns)
    df = pd.DataFrame(rows)
    extra = [c for c in df.columns if c not in columns]
    return df[columns + extra]
