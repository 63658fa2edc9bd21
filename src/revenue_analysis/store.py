"""In-memory canonical record store with revenue-aware upsert.

The store mirrors the contract a relational storage collaborator must honour:
records are keyed by (processor, month, merchant id) and a conflicting insert
only replaces the stored record when its revenue is strictly higher.
Re-uploading the same data is therefore idempotent.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from revenue_analysis.months import sort_months
from revenue_analysis.records import CanonicalRecord, RecordKey

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UpsertSummary:
    """Counts from one upsert call."""

    inserted: int = 0
    replaced: int = 0
    unchanged: int = 0


def merge_records(
    existing: Iterable[CanonicalRecord], incoming: Iterable[CanonicalRecord]
) -> list[CanonicalRecord]:
    """Pure merge of *incoming* into *existing* under the upsert rule."""
    store = RecordStore(existing)
    store.upsert(incoming)
    return store.records()


class RecordStore:
    """Canonical records keyed by (processor, month, merchant id)."""

    def __init__(self, records: Iterable[CanonicalRecord] = ()) -> None:
        self._records: dict[RecordKey, CanonicalRecord] = {}
        if records:
            self.upsert(records)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, key: object) -> bool:
        return key in self._records

    def get(self, key: RecordKey) -> CanonicalRecord | None:
        return self._records.get(key)

    def upsert(self, records: Iterable[CanonicalRecord]) -> UpsertSummary:
        """Insert new keys; replace an existing key only on strictly higher revenue."""
        inserted = replaced = unchanged = 0
        for record in records:
            current = self._records.get(record.key)
            if current is None:
                self._records[record.key] = record
                inserted += 1
            elif record.revenue() > current.revenue():
                self._records[record.key] = record
                replaced += 1
            else:
                unchanged += 1
        summary = UpsertSummary(inserted=inserted, replaced=replaced, unchanged=unchanged)
        logger.debug(
            "Upsert: %d inserted, %d replaced, %d unchanged", inserted, replaced, unchanged
        )
        return summary

    def records(self) -> list[CanonicalRecord]:
        """All stored records in insertion order."""
        return list(self._records.values())

    def months(self, processor: str | None = None) -> list[str]:
        return sort_months(
            r.month
            for r in self._records.values()
            if processor is None or r.processor.value == processor
        )

    def delete_month(self, month: str, processor: str | None = None) -> int:
        """Remove a month (optionally for one processor); returns the count removed."""
        doomed = [
            key
            for key, r in self._records.items()
            if r.month == month and (processor is None or r.processor.value == processor)
        ]
        for key in doomed:
            del self._records[key]
        logger.info("Deleted %d records for %s (%s)", len(doomed), month, processor or "all")
        return len(doomed)

    def clear(self) -> None:
        self._records.clear()
