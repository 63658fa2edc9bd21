"""Tests for the analyzer functions in revenue_analysis.analyses."""

from __future__ import annotations

import pytest

from revenue_analysis import analyses
from revenue_analysis.analyses import ANALYSIS_REGISTRY, run_all_analyses
from revenue_analysis.analyses.at_risk import at_risk_merchants, risk_level
from revenue_analysis.analyses.base import AnalysisContext, merchant_revenue, resolve_month_pair
from revenue_analysis.analyses.branches import branch_performance
from revenue_analysis.analyses.cohort import merchant_changes
from revenue_analysis.analyses.comparison import processor_comparison
from revenue_analysis.analyses.concentration import (
    concentration_risk,
    revenue_concentration,
    top_merchants,
)
from revenue_analysis.analyses.coverage import coverage_frame, coverage_months, upload_coverage
from revenue_analysis.analyses.forecast import fit_trend, forecast_confidence, forecast_revenue
from revenue_analysis.analyses.trending import trending_merchants
from revenue_analysis.leads import MerchantMetadata
from revenue_analysis.metrics import MonthlyMetric, calculate_monthly_metrics
from revenue_analysis.processors import Processor
from revenue_analysis.settings import AtRiskConfig, Settings


def _metric(month: str, revenue: float) -> MonthlyMetric:
    return MonthlyMetric(
        month=month,
        processor="All",
        total_revenue=revenue,
        total_accounts=1,
        retained_accounts=0,
        lost_accounts=0,
        new_accounts=1,
        retention_rate=100.0,
        attrition_rate=0.0,
        revenue_per_account=revenue,
        net_account_growth=1,
    )


class TestBaseHelpers:
    def test_resolve_month_pair_latest(self):
        assert resolve_month_pair(["2024-01", "2024-02"], None) == (1, "2024-02", "2024-01")

    def test_resolve_month_pair_first_month(self):
        assert resolve_month_pair(["2024-01", "2024-02"], "2024-01") == (0, "2024-01", None)

    def test_resolve_month_pair_unknown(self):
        assert resolve_month_pair(["2024-01"], "2023-12") == (-1, None, None)
        assert resolve_month_pair([], None) == (-1, None, None)

    def test_merchant_revenue_sums_across_processors(self, make_record):
        records = [
            make_record("1", "2024-01", 10.0),
            make_record("1", "2024-01", processor=Processor.TSYS, net=5.0),
            make_record("2", "2024-01", 7.0),
        ]
        grouped = merchant_revenue(records, "2024-01")
        assert list(grouped.index) == ["1", "2"]
        assert grouped.loc["1", "revenue"] == 15.0

    def test_merchant_revenue_empty(self):
        assert merchant_revenue([], "2024-01").empty


class TestTopMerchants:
    def test_ranked_by_revenue(self, make_record):
        records = [
            make_record("1", "2024-01", 100.0),
            make_record("2", "2024-01", 300.0),
            make_record("3", "2024-01", 600.0),
        ]
        leaders = top_merchants(records, "2024-01", limit=2)
        assert [m.merchant_id for m in leaders] == ["3", "2"]
        assert [m.rank for m in leaders] == [1, 2]
        assert leaders[0].percent_of_total == pytest.approx(60.0)

    def test_ties_keep_first_appearance(self, make_record):
        records = [
            make_record("b", "2024-01", 50.0),
            make_record("a", "2024-01", 50.0),
        ]
        assert [m.merchant_id for m in top_merchants(records)] == ["b", "a"]

    def test_defaults_to_latest_month(self, make_record):
        records = [make_record("1", "2024-01", 10.0), make_record("2", "2024-02", 20.0)]
        assert [m.merchant_id for m in top_merchants(records)] == ["2"]

    def test_shift4_revenue_rule(self, make_record):
        records = [
            make_record("1", "2024-01", processor=Processor.SHIFT4, payout_amount=5.0,
                        sales_amount=900.0),
            make_record("2", "2024-01", processor=Processor.SHIFT4, sales_amount=10.0),
        ]
        assert [m.revenue for m in top_merchants(records)] == [10.0, 5.0]

    def test_empty(self):
        assert top_merchants([]) == []


class TestConcentration:
    @pytest.mark.parametrize(
        ("percent", "expected"),
        [(0.0, "low"), (24.99, "low"), (25.0, "medium"), (40.0, "medium"), (40.01, "high")],
    )
    def test_risk_boundaries(self, percent, expected):
        assert concentration_risk(percent) == expected

    def test_top_share(self, make_record):
        records = [make_record(str(i), "2024-01", 10.0) for i in range(20)]
        result = revenue_concentration(records, top_n=10)
        assert result.concentration_percent == pytest.approx(50.0)
        assert result.risk_level == "high"
        assert result.month == "2024-01"

    def test_exactly_forty_percent_is_medium(self, make_record):
        records = [make_record("big", "2024-01", 40.0)]
        records += [make_record(str(i), "2024-01", 10.0) for i in range(6)]
        result = revenue_concentration(records, top_n=1)
        assert result.concentration_percent == pytest.approx(40.0)
        assert result.risk_level == "medium"

    def test_empty(self):
        result = revenue_concentration([])
        assert result.concentration_percent == 0
        assert result.risk_level == "low"


class TestMerchantChanges:
    def test_new_and_lost(self, make_record):
        records = [
            make_record("A", "2024-01", 500.0),
            make_record("B", "2024-01", 300.0),
            make_record("D", "2024-01", 900.0),
            make_record("A", "2024-02", 400.0),
            make_record("C", "2024-02", 600.0),
            make_record("E", "2024-02", 700.0),
        ]
        changes = merchant_changes(records)
        assert changes.previous_month == "2024-01"
        assert changes.current_month == "2024-02"
        assert [m.merchant_id for m in changes.new_merchants] == ["E", "C"]
        assert [m.merchant_id for m in changes.lost_merchants] == ["D", "B"]
        assert changes.retained_count == 1

    def test_uses_two_latest_months(self, make_record):
        records = [
            make_record("A", "2024-01", 1.0),
            make_record("B", "2024-02", 1.0),
            make_record("B", "2024-03", 1.0),
        ]
        changes = merchant_changes(records)
        assert changes.new_merchants == []
        assert changes.lost_merchants == []
        assert changes.retained_count == 1

    def test_single_month(self, make_record):
        changes = merchant_changes([make_record("A", "2024-01", 1.0)])
        assert changes.current_month is None

    def test_processor_scope(self, make_record):
        records = [
            make_record("A", "2024-01", 1.0),
            make_record("T", "2024-02", processor=Processor.TSYS, net=1.0),
            make_record("A", "2024-02", 1.0),
        ]
        assert merchant_changes(records, "Clearent").new_merchants == []


class TestAtRisk:
    def test_churn_counts_as_full_decline(self, make_record):
        records = [
            make_record("A", "2024-01", 1000.0),
            make_record("B", "2024-01", 100.0),
            make_record("B", "2024-02", 100.0),
        ]
        (churned,) = at_risk_merchants(records)
        assert churned.merchant_id == "A"
        assert churned.current_revenue == 0.0
        assert churned.decline_percent == -100.0
        assert churned.risk_level in {"critical", "high"}

    def test_small_decline_not_flagged(self, make_record):
        records = [make_record("A", "2024-01", 100.0), make_record("A", "2024-02", 96.0)]
        assert at_risk_merchants(records) == []

    def test_five_percent_decline_flagged(self, make_record):
        records = [make_record("A", "2024-01", 100.0), make_record("A", "2024-02", 95.0)]
        (flagged,) = at_risk_merchants(records)
        assert flagged.risk_level == "medium"

    def test_no_positive_baseline_skipped(self, make_record):
        records = [
            make_record("A", "2024-01", 0.0),
            make_record("A", "2024-02", 0.0),
            make_record("N", "2024-02", 50.0),
        ]
        assert at_risk_merchants(records) == []

    def test_consecutive_declines(self, make_record):
        records = [
            make_record("A", "2024-01", 100.0),
            make_record("A", "2024-02", 90.0),
            make_record("A", "2024-03", 80.0),
        ]
        (flagged,) = at_risk_merchants(records)
        assert flagged.consecutive_declines == 2
        assert flagged.risk_level == "high"

    def test_consecutive_with_steep_drop_is_critical(self, make_record):
        records = [
            make_record("A", "2024-01", 100.0),
            make_record("A", "2024-02", 90.0),
            make_record("A", "2024-03", 70.0),
        ]
        assert at_risk_merchants(records)[0].risk_level == "critical"

    def test_sorted_by_tier_then_decline(self, make_record):
        records = [
            make_record("med", "2024-01", 100.0),
            make_record("med", "2024-02", 90.0),
            make_record("high", "2024-01", 100.0),
            make_record("high", "2024-02", 70.0),
            make_record("crit", "2024-01", 100.0),
            make_record("crit", "2024-02", 40.0),
            make_record("med2", "2024-01", 100.0),
            make_record("med2", "2024-02", 80.0),
        ]
        flagged = at_risk_merchants(records)
        assert [m.merchant_id for m in flagged] == ["crit", "high", "med2", "med"]

    def test_explicit_month_and_limit(self, make_record):
        records = [
            make_record("A", "2024-01", 100.0),
            make_record("B", "2024-01", 100.0),
            make_record("A", "2024-02", 10.0),
            make_record("B", "2024-02", 20.0),
            make_record("A", "2024-03", 10.0),
        ]
        flagged = at_risk_merchants(records, current_month="2024-02", limit=1)
        assert [m.merchant_id for m in flagged] == ["A"]

    def test_needs_two_months(self, make_record):
        assert at_risk_merchants([make_record("A", "2024-01", 1.0)]) == []

    def test_risk_level_thresholds(self):
        config = AtRiskConfig()
        assert risk_level(-50.0, 1, config) == "critical"
        assert risk_level(-25.0, 1, config) == "high"
        assert risk_level(-10.0, 2, config) == "high"
        assert risk_level(-20.0, 2, config) == "critical"
        assert risk_level(-6.0, 1, config) == "medium"


class TestTrending:
    def test_gainers_and_losers(self, make_record):
        records = [
            make_record("up", "2024-01", 100.0),
            make_record("up", "2024-02", 150.0),
            make_record("down", "2024-01", 100.0),
            make_record("down", "2024-02", 60.0),
            make_record("flat", "2024-01", 100.0),
            make_record("flat", "2024-02", 100.0),
            make_record("new", "2024-02", 500.0),
        ]
        gainers, losers = trending_merchants(records)
        assert [m.merchant_id for m in gainers] == ["up"]
        assert gainers[0].change_percent == pytest.approx(50.0)
        assert [m.merchant_id for m in losers] == ["down"]
        assert losers[0].change == pytest.approx(-40.0)

    def test_limit(self, make_record):
        records = []
        for i in range(8):
            records.append(make_record(str(i), "2024-01", 100.0))
            records.append(make_record(str(i), "2024-02", 101.0 + i))
        gainers, _ = trending_merchants(records, limit=3)
        assert [m.merchant_id for m in gainers] == ["7", "6", "5"]

    def test_single_month(self, make_record):
        assert trending_merchants([make_record("A", "2024-01", 1.0)]) == ([], [])


class TestBranchPerformance:
    def test_ranked_with_retention(self, make_record):
        records = [
            make_record("1", "2024-01", 100.0, branch_id="B1"),
            make_record("2", "2024-01", 100.0, branch_id="B1"),
            make_record("1", "2024-02", 100.0, branch_id="B1"),
            make_record("3", "2024-02", 500.0, branch_id="B2"),
            make_record("4", "2024-02", 999.0),
        ]
        b2, b1 = branch_performance(records)
        assert (b2.branch_id, b2.rank, b2.retention_rate) == ("B2", 1, 100.0)
        assert (b1.branch_id, b1.rank) == ("B1", 2)
        assert b1.retention_rate == 50.0
        assert b1.account_count == 1
        assert b1.revenue_per_account == 100.0

    def test_no_branches(self, make_record):
        assert branch_performance([make_record("1", "2024-01", 1.0)]) == []


class TestForecast:
    def test_needs_three_months(self):
        result = forecast_revenue([_metric("2024-01", 1.0), _metric("2024-02", 2.0)])
        assert result.points == []
        assert result.months_used == 2

    def test_linear_series(self):
        metrics = [_metric(f"2024-0{i}", 100.0 * i) for i in range(1, 5)]
        result = forecast_revenue(metrics)
        assert result.slope == pytest.approx(100.0)
        assert result.r_squared == pytest.approx(1.0)
        assert [p.month for p in result.points] == ["2024-05", "2024-06", "2024-07"]
        assert [p.forecast_revenue for p in result.points] == pytest.approx([500.0, 600.0, 700.0])
        assert [p.confidence for p in result.points] == ["high", "medium", "low"]
        assert result.points[0].label == "May 2024"
        assert result.trend_percent == pytest.approx(50.0)

    def test_flat_series_r_squared_is_one(self):
        result = forecast_revenue([_metric(f"2024-0{i}", 250.0) for i in range(1, 4)])
        assert result.r_squared == 1.0
        assert result.slope == 0.0
        assert result.trend_percent == pytest.approx(0.0)

    def test_forecast_clamped_at_zero(self):
        metrics = [_metric("2024-01", 300.0), _metric("2024-02", 200.0), _metric("2024-03", 0.0)]
        result = forecast_revenue(metrics)
        assert all(p.forecast_revenue == 0.0 for p in result.points)

    def test_uses_trailing_window(self):
        metrics = [_metric("2023-12", 1_000_000.0)]
        metrics += [_metric(f"2024-0{i}", 100.0) for i in range(1, 7)]
        result = forecast_revenue(metrics)
        assert result.months_used == 6
        assert result.slope == pytest.approx(0.0)

    def test_malformed_months_ignored(self):
        metrics = [_metric("bad", 1.0), _metric("2024-01", 1.0), _metric("2024-02", 2.0)]
        assert forecast_revenue(metrics).points == []

    def test_fit_trend_single_point_guard(self):
        slope, intercept, r_squared = fit_trend([42.0])
        assert slope == 0.0
        assert intercept == 42.0
        assert r_squared == 1.0

    def test_confidence_tiers(self):
        assert forecast_confidence(0.8, 1) == "high"
        assert forecast_confidence(0.8, 2) == "medium"
        assert forecast_confidence(0.6, 1) == "medium"
        assert forecast_confidence(0.4, 1) == "low"

    def test_from_computed_metrics(self, make_record):
        records = [make_record("1", f"2024-0{i}", 10.0 * i) for i in range(1, 4)]
        result = forecast_revenue(calculate_monthly_metrics(records))
        assert result.points[0].forecast_revenue == pytest.approx(40.0)


class TestRunAllAnalyses:
    @pytest.fixture()
    def context(self, make_record):
        records = [
            make_record("A", "2024-01", 500.0, branch_id="B1"),
            make_record("B", "2024-01", 300.0, branch_id="B1"),
            make_record("A", "2024-02", 400.0, branch_id="B1"),
            make_record("C", "2024-02", 600.0, branch_id="B2"),
        ]
        return AnalysisContext(
            records=records,
            history=records,
            metrics=calculate_monthly_metrics(records),
            settings=Settings(),
            window=["2024-01", "2024-02"],
        )

    def test_registry_order(self, context):
        results = run_all_analyses(context)
        expected = [name for name, _ in ANALYSIS_REGISTRY if name != "validation_warnings"]
        assert [r.name for r in results] == expected
        assert all(r.error is None for r in results)

    def test_results_stored_on_context(self, context):
        run_all_analyses(context)
        changes = context.completed_results["merchant_changes"]
        assert changes.metadata["new"] == 1
        assert changes.metadata["lost"] == 1
        assert list(changes.df["change"]) == ["New", "Lost"]

    def test_validation_runs_with_metadata(self, context):
        context.metadata = [
            MerchantMetadata(merchant_id="C", dba_name="Charlie", current_processor="TSYS")
        ]
        results = run_all_analyses(context)
        validation = results[-1]
        assert validation.name == "validation_warnings"
        assert validation.metadata["processor_mismatch"] == 1

    def test_failure_is_isolated(self, context, monkeypatch):
        def boom(_context):
            raise RuntimeError("boom")

        monkeypatch.setattr(
            analyses,
            "ANALYSIS_REGISTRY",
            [("broken", boom), *ANALYSIS_REGISTRY[:2]],
        )
        progress: list[str] = []
        results = run_all_analyses(context, on_progress=progress.append)
        assert results[0].error == "Analysis 'broken' failed: boom"
        assert results[0].df.empty
        assert [r.error for r in results[1:]] == [None, None]
        assert progress == ["broken", "window_summary", "monthly_metrics"]

    def test_empty_context(self):
        context = AnalysisContext(records=[], history=[], metrics=[], settings=Settings())
        results = run_all_analyses(context)
        assert all(r.error is None for r in results)
        assert all(r.df.empty for r in results if r.name != "revenue_concentration")


class TestProcessorComparison:
    @pytest.fixture()
    def records(self, make_record):
        return [
            make_record("A", "2024-01", 100.0),
            make_record("B", "2024-01", 100.0),
            make_record("A", "2024-02", 300.0),
            make_record("T1", "2024-01", processor=Processor.TSYS, net=50.0),
            make_record("T1", "2024-02", processor=Processor.TSYS, net=100.0),
            make_record("S", "2024-01", processor=Processor.SHIFT4, payout_amount=10.0),
        ]

    def test_latest_month_per_processor(self, records):
        snapshots = processor_comparison(records)
        assert [s.processor for s in snapshots] == ["Clearent", "Shift4", "TSYS"]
        clearent, shift4, tsys = snapshots
        assert clearent.month == "2024-02"
        assert clearent.total_revenue == 300.0
        assert clearent.total_accounts == 1
        assert clearent.retention_rate == 50.0
        assert clearent.revenue_per_account == 300.0
        assert clearent.mom_revenue_change_percent == 50.0
        assert clearent.revenue_share_pct == pytest.approx(73.17)
        assert shift4.month == "2024-01"
        assert shift4.mom_revenue_change_percent is None
        assert tsys.mom_revenue_change_percent == 100.0

    def test_current_month_cutoff(self, records):
        snapshots = processor_comparison(records, "2024-01")
        assert [(s.processor, s.total_revenue) for s in snapshots] == [
            ("Clearent", 200.0),
            ("Shift4", 10.0),
            ("TSYS", 50.0),
        ]
        assert all(s.month == "2024-01" for s in snapshots)

    def test_empty(self):
        assert processor_comparison([]) == []


class TestUploadCoverage:
    @pytest.fixture()
    def records(self, make_record):
        return [
            make_record("A", "2024-01", 1.0),
            make_record("A", "2024-03", 1.0),
            make_record("T", "2024-02", processor=Processor.TSYS, net=1.0),
            make_record("T", "2024-03", processor=Processor.TSYS, net=1.0),
        ]

    def test_matrix(self, records):
        coverage = upload_coverage(records)
        assert coverage.months == ["2024-01", "2024-02", "2024-03"]
        clearent, tsys = coverage.processors
        assert clearent.processor == "Clearent"
        assert clearent.statuses == {
            "2024-01": "uploaded",
            "2024-02": "missing",
            "2024-03": "uploaded",
        }
        assert tsys.statuses["2024-01"] == "missing"
        assert clearent.upload_rate == 67.0

    def test_totals(self, records):
        coverage = upload_coverage(records)
        assert (coverage.expected, coverage.uploaded, coverage.missing) == (6, 4, 2)
        assert coverage.completion_rate == 67.0

    def test_end_month(self, records):
        assert upload_coverage(records, "2024-02").months == ["2024-01", "2024-02"]

    def test_span_limited(self):
        months = coverage_months(["2023-01", "2024-06"], span=12)
        assert months[0] == "2023-07"
        assert months[-1] == "2024-06"
        assert len(months) == 12

    def test_frame(self, records):
        df = coverage_frame(upload_coverage(records))
        assert list(df.columns) == ["processor", "upload_rate", "Jan 2024", "Feb 2024", "Mar 2024"]
        assert list(df["processor"]) == ["Clearent", "TSYS"]
        assert df.loc[1, "Jan 2024"] == "missing"

    def test_empty(self):
        coverage = upload_coverage([])
        assert coverage.months == []
        assert coverage.completion_rate == 0.0
        assert coverage_frame(coverage).empty

    def test_registered_analysis(self, make_record):
        records = [make_record("A", "2024-01", 1.0), make_record("A", "2024-02", 1.0)]
        context = AnalysisContext(
            records=records,
            history=records,
            metrics=calculate_monthly_metrics(records),
            settings=Settings(),
            window=["2024-01", "2024-02"],
        )
        result = run_all_analyses(context)
        coverage = next(r for r in result if r.name == "upload_coverage")
        assert coverage.metadata["completion_rate"] == 100.0
        assert coverage.sheet_name == "Coverage"
        comparison = next(r for r in result if r.name == "processor_comparison")
        assert list(comparison.df["processor"]) == ["Clearent"]
