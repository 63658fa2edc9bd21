"""Tests for revenue_analysis.processors."""

from __future__ import annotations

import pytest

from revenue_analysis.processors import (
    ALL_PROCESSORS,
    Processor,
    detect_processor,
    parse_processor,
    parse_scope,
)


class TestDetectProcessor:
    @pytest.mark.parametrize(
        ("filename", "expected"),
        [
            ("Clearent_Residuals_2024-01.xlsx", Processor.CLEARENT),
            ("pb_aug2025.xlsx", Processor.PAYBRIGHT),
            ("PayBright August.csv", Processor.PAYBRIGHT),
            ("trx_june_2025.xlsx", Processor.TRX),
            ("Shift4 payouts.csv", Processor.SHIFT4),
            ("shift 4 payouts.csv", Processor.SHIFT4),
            ("ML_2025-01.csv", Processor.ML),
            ("tsys-feb.csv", Processor.TSYS),
            ("micamp.xlsx", Processor.MICAMP),
            ("Payment Advisors Jan.xlsx", Processor.PAYMENT_ADVISORS),
        ],
    )
    def test_keywords(self, filename, expected):
        assert detect_processor(filename) is expected

    def test_unmatched_returns_none(self):
        assert detect_processor("residuals_january.csv") is None

    def test_ambiguous_returns_none(self):
        assert detect_processor("clearent_vs_tsys.csv") is None

    def test_ml_inside_word_not_detected(self):
        assert detect_processor("html_export.csv") is None

    def test_uses_file_name_only(self):
        assert detect_processor("/data/clearent/export_tsys.csv") is Processor.TSYS


class TestParseProcessor:
    def test_case_insensitive(self):
        assert parse_processor("clearent") is Processor.CLEARENT
        assert parse_processor("payment  advisors") is Processor.PAYMENT_ADVISORS

    def test_enum_name(self):
        assert parse_processor("SHIFT4") is Processor.SHIFT4

    def test_passthrough(self):
        assert parse_processor(Processor.ML) is Processor.ML

    def test_unknown_raises(self):
        with pytest.raises(ValueError, match="Unknown processor"):
            parse_processor("Square")


class TestParseScope:
    def test_all(self):
        assert parse_scope("all") == ALL_PROCESSORS

    def test_processor(self):
        assert parse_scope("shift4") == "Shift4"

    def test_str_of_enum(self):
        assert str(Processor.PAYBRIGHT) == "PayBright"
