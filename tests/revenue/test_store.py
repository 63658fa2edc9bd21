"""Tests for revenue_analysis.store."""

from __future__ import annotations

from revenue_analysis.extractor import extract_sheet
from revenue_analysis.processors import Processor
from revenue_analysis.store import RecordStore, UpsertSummary, merge_records


class TestUpsert:
    def test_insert(self, make_record):
        store = RecordStore()
        summary = store.upsert([make_record("A", "2024-01", 10.0)])
        assert summary == UpsertSummary(inserted=1)
        assert len(store) == 1
        assert ("Clearent", "2024-01", "A") in store

    def test_higher_revenue_replaces(self, make_record):
        store = RecordStore([make_record("A", "2024-01", 10.0)])
        summary = store.upsert([make_record("A", "2024-01", 25.0)])
        assert summary.replaced == 1
        assert store.get(("Clearent", "2024-01", "A")).net == 25.0

    def test_lower_or_equal_revenue_kept(self, make_record):
        store = RecordStore([make_record("A", "2024-01", 10.0, name="Original")])
        summary = store.upsert(
            [
                make_record("A", "2024-01", 5.0),
                make_record("A", "2024-01", 10.0, name="Same Revenue"),
            ]
        )
        assert summary.unchanged == 2
        assert store.get(("Clearent", "2024-01", "A")).merchant_name == "Original"

    def test_same_merchant_other_processor_is_distinct(self, make_record):
        store = RecordStore(
            [
                make_record("A", "2024-01", 10.0),
                make_record("A", "2024-01", processor=Processor.TSYS, net=3.0),
            ]
        )
        assert len(store) == 2

    def test_idempotent_reingestion(self, clearent_rows_jan):
        extraction = extract_sheet(clearent_rows_jan, Processor.CLEARENT, month="2024-01")
        once = RecordStore(extraction.records)
        twice = RecordStore(extraction.records)
        twice.upsert(extract_sheet(clearent_rows_jan, Processor.CLEARENT, month="2024-01").records)
        assert once.records() == twice.records()


class TestMaintenance:
    def test_months_by_processor(self, make_record):
        store = RecordStore(
            [
                make_record("A", "2024-02", 1.0),
                make_record("A", "2024-01", 1.0),
                make_record("B", "2024-03", processor=Processor.TSYS, net=1.0),
            ]
        )
        assert store.months() == ["2024-01", "2024-02", "2024-03"]
        assert store.months("Clearent") == ["2024-01", "2024-02"]

    def test_delete_month(self, make_record):
        store = RecordStore(
            [
                make_record("A", "2024-01", 1.0),
                make_record("B", "2024-01", processor=Processor.TSYS, net=1.0),
                make_record("A", "2024-02", 1.0),
            ]
        )
        assert store.delete_month("2024-01", "Clearent") == 1
        assert store.months() == ["2024-01", "2024-02"]
        assert store.delete_month("2024-01") == 1
        assert store.months() == ["2024-02"]

    def test_clear(self, make_record):
        store = RecordStore([make_record("A", "2024-01", 1.0)])
        store.clear()
        assert len(store) == 0


class TestMergeRecords:
    def test_pure_merge(self, make_record):
        existing = [make_record("A", "2024-01", 10.0)]
        incoming = [make_record("A", "2024-01", 20.0), make_record("B", "2024-01", 1.0)]
        merged = merge_records(existing, incoming)
        assert [(r.merchant_id, r.revenue()) for r in merged] == [("A", 20.0), ("B", 1.0)]
        assert existing[0].revenue() == 10.0
