"""Tests for monthly summary history normalization."""

from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest

from kasku_core.history import (
    normalize_summary_history,
    parse_summary_row,
    resolve_month_index,
)
from kasku_core.results import Invalid, Parsed


class TestResolveMonthIndex:
    """Test suite for month name resolution."""

    @pytest.mark.parametrize(
        "label,expected",
        [
            ("Januari", 0),
            ("feb", 1),
            ("  MARET ", 2),
            ("may", 4),
            ("Mei", 4),
            ("agu", 7),
            ("August", 7),
            ("okt", 9),
            ("October", 9),
            ("des", 11),
        ],
    )
    def test_known_names(self, label, expected):
        assert resolve_month_index(label) == expected

    @pytest.mark.parametrize("label", ["", "Bulan 13", "10", None, 3])
    def test_unknown_names(self, label):
        assert resolve_month_index(label) is None


class TestParseSummaryRow:
    """Test suite for single-row parsing."""

    def test_mapping_row(self):
        outcome = parse_summary_row(
            {
                "month": "Oktober",
                "year": "2026",
                "total_income": "1500000",
                "total_expense": "500000.50",
                "balance": "999999.50",
                "created_at": "2026-10-31T10:00:00Z",
            }
        )

        assert isinstance(outcome, Parsed)
        point = outcome.value
        assert (point.year, point.month_index) == (2026, 9)
        assert point.income == Decimal("1500000")
        assert point.expense == Decimal("500000.50")
        assert point.created_at_epoch > 0

    def test_attribute_row_uses_updated_at_when_created_missing(self):
        row = SimpleNamespace(
            month="jan",
            year=2025,
            total_income=100,
            total_expense=50,
            balance=50,
            created_at=None,
            updated_at=datetime(2025, 1, 31),
        )

        outcome = parse_summary_row(row)

        assert outcome.ok
        assert outcome.value.created_at_epoch > 0

    def test_unparsable_numbers_become_zero(self):
        outcome = parse_summary_row(
            {"month": "Mei", "year": "2026", "total_income": "banyak", "balance": None}
        )

        assert outcome.ok
        assert outcome.value.income == Decimal("0")
        assert outcome.value.balance == Decimal("0")
        assert outcome.value.created_at_epoch == 0

    def test_unknown_month_is_invalid(self):
        outcome = parse_summary_row({"month": "Smarch", "year": "2026"})

        assert isinstance(outcome, Invalid)
        assert "month" in outcome.reason

    @pytest.mark.parametrize("year", ["dua ribu", None, "2026.5"])
    def test_non_numeric_year_is_invalid(self, year):
        outcome = parse_summary_row({"month": "Juni", "year": year})

        assert isinstance(outcome, Invalid)

    def test_none_row_is_invalid(self):
        assert isinstance(parse_summary_row(None), Invalid)


class TestNormalizeSummaryHistory:
    """Test suite for deduplication and ordering."""

    def test_sorted_chronologically(self):
        rows = [
            {"month": "Maret", "year": "2026", "balance": "3"},
            {"month": "Desember", "year": "2025", "balance": "1"},
            {"month": "Januari", "year": "2026", "balance": "2"},
        ]

        points = normalize_summary_history(rows)

        assert [p.balance for p in points] == [Decimal("1"), Decimal("2"), Decimal("3")]
        assert [p.sort_key for p in points] == sorted(p.sort_key for p in points)

    def test_duplicate_month_keeps_latest_timestamp(self):
        rows = [
            {"month": "Oktober", "year": "2026", "balance": "200", "created_at": "2026-10-20T00:00:00"},
            {"month": "okt", "year": "2026", "balance": "100", "created_at": "2026-10-05T00:00:00"},
        ]

        points = normalize_summary_history(rows)

        assert len(points) == 1
        assert points[0].balance == Decimal("200")

    def test_duplicate_month_equal_timestamps_keeps_later_row(self):
        rows = [
            {"month": "Oktober", "year": "2026", "balance": "100"},
            {"month": "October", "year": "2026", "balance": "300"},
        ]

        points = normalize_summary_history(rows)

        assert len(points) == 1
        assert points[0].balance == Decimal("300")

    def test_unique_month_keys(self):
        rows = [{"month": m, "year": "2026"} for m in ["jan", "Januari", "feb", "Februari", "mar"]]

        points = normalize_summary_history(rows)

        assert len({p.month_key for p in points}) == len(points) == 3

    def test_unparsable_rows_are_skipped(self):
        rows = [
            {"month": "???", "year": "2026"},
            {"month": "Juli", "year": "2026", "total_income": "10"},
        ]

        points = normalize_summary_history(rows)

        assert len(points) == 1
        assert points[0].month_key == "2026-07"

    @pytest.mark.parametrize("rows", [None, [], [{"month": "x", "year": "y"}]])
    def test_empty_or_unusable_input(self, rows):
        assert normalize_summary_history(rows) == []
