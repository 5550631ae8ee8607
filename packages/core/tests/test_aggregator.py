"""Tests for monthly statistics aggregation."""

from datetime import datetime
from decimal import Decimal

import pytest

from kasku_core.aggregator import (
    aggregate_monthly_stats,
    calculate_health_score,
    detect_recent_trend,
    health_status_for,
    month_window,
)
from kasku_core.models import HealthStatus, Transaction, TransactionType, TrendDirection


class TestMonthWindow:
    def test_covers_whole_month(self, now):
        start, end = month_window(now)

        assert start == datetime(2026, 10, 1)
        assert end.date() == datetime(2026, 10, 31).date()
        assert end.hour == 23 and end.minute == 59

    def test_february_leap_year(self):
        _, end = month_window(datetime(2028, 2, 10))
        assert end.day == 29


class TestAggregateMonthlyStats:
    """Test suite for aggregate_monthly_stats."""

    def test_totals(self, surplus_stats):
        assert surplus_stats.total_income == Decimal("10000000")
        assert surplus_stats.total_expense == Decimal("6000000")
        assert surplus_stats.balance == Decimal("4000000")
        assert surplus_stats.transaction_count == 4
        assert surplus_stats.income_count == 1
        assert surplus_stats.expense_count == 3
        assert surplus_stats.active_days_count == 4

    def test_month_labels(self, surplus_stats):
        assert surplus_stats.month == "Oktober"
        assert surplus_stats.year == "2026"
        assert surplus_stats.days_in_month == 31
        assert surplus_stats.current_day == 20

    def test_weekly_buckets_and_halves(self, surplus_stats):
        assert surplus_stats.weekly_expense == (
            Decimal("2000000"),
            Decimal("1000000"),
            Decimal("3000000"),
            Decimal("0"),
            Decimal("0"),
        )
        assert surplus_stats.first_half_expense == Decimal("3000000")
        assert surplus_stats.second_half_expense == Decimal("3000000")

    def test_last_days_fall_in_fifth_bucket(self, now):
        stats = aggregate_monthly_stats(
            [Transaction(type="expense", amount="10", date="2026-10-31")], now
        )
        assert stats.weekly_expense[4] == Decimal("10")
        assert stats.second_half_expense == Decimal("10")

    def test_ratios(self, surplus_stats):
        assert surplus_stats.expense_to_income_ratio == Decimal("60")
        assert surplus_stats.saving_rate == Decimal("40")

    def test_top_categories(self, surplus_stats):
        categories = [(c.category, c.amount) for c in surplus_stats.top_expense_categories]

        assert categories == [("Makan", Decimal("5000000")), ("Transport", Decimal("1000000"))]
        assert surplus_stats.top_expense_category_share.quantize(Decimal("0.01")) == Decimal("83.33")

    def test_largest_transactions(self, surplus_stats):
        assert surplus_stats.max_income_tx.amount == Decimal("10000000")
        assert surplus_stats.max_income_tx.category == "Gaji"
        assert surplus_stats.max_expense_tx.amount == Decimal("3000000")
        assert surplus_stats.max_expense_tx.date == "2026-10-17"

    def test_largest_tie_keeps_first(self, now):
        stats = aggregate_monthly_stats(
            [
                Transaction(type="expense", amount="500", date="2026-10-01", category="A"),
                Transaction(type="expense", amount="500", date="2026-10-02", category="B"),
            ],
            now,
        )
        assert stats.max_expense_tx.category == "A"

    def test_missing_category_defaults(self, now):
        stats = aggregate_monthly_stats(
            [
                Transaction(type="income", amount="100", date="2026-10-01"),
                Transaction(type="expense", amount="50", date="2026-10-01", category="  "),
            ],
            now,
        )

        assert stats.max_income_tx.category == "Tanpa kategori"
        assert stats.top_expense_categories[0].category == "Lainnya"
        assert stats.transactions_for_ai[0].category == "Pemasukan Lainnya"
        assert stats.transactions_for_ai[1].category == "Pengeluaran Lainnya"

    def test_projection(self, surplus_stats):
        assert surplus_stats.elapsed_days == 20
        assert surplus_stats.projected_expense == Decimal("9300000")
        assert surplus_stats.projected_balance == Decimal("700000")

    def test_health(self, surplus_stats):
        # 70 base, +12 for a 40% saving rate
        assert surplus_stats.health_score == 82
        assert surplus_stats.health_status == HealthStatus.HEALTHY

    def test_recent_trend(self, surplus_stats):
        assert surplus_stats.recent_expense_trend == TrendDirection.UP

    def test_undated_transaction_skips_bucket_accounting(self, now):
        stats = aggregate_monthly_stats(
            [Transaction(type="expense", amount="100", date="bukan tanggal")], now
        )

        assert stats.total_expense == Decimal("100")
        assert sum(stats.weekly_expense) == Decimal("0")
        assert stats.first_half_expense == stats.second_half_expense == Decimal("0")
        assert stats.active_days_count == 0
        assert stats.transactions_for_ai[0].date == "-"

    def test_absurd_amount_counts_as_zero(self, now):
        stats = aggregate_monthly_stats(
            [
                Transaction(type="expense", amount="1e30", date="2026-10-03"),
                Transaction(type="income", amount="500000", date="2026-10-04"),
            ],
            now,
        )

        assert stats.total_expense == Decimal("0")
        assert stats.total_income == Decimal("500000")
        assert stats.transactions_for_ai[0].amount == Decimal("0")

    def test_large_amounts_do_not_trap(self, now):
        transactions = [
            Transaction(type="expense", amount=Decimal("9e17"), date="2026-10-03")
            for _ in range(3)
        ] + [Transaction(type="income", amount="0.01", date="2026-10-04")]

        stats = aggregate_monthly_stats(transactions, now)

        assert stats.total_expense == Decimal("2.7e18")
        assert stats.health_score == 0
        assert stats.health_status == HealthStatus.CRITICAL

    def test_digests_keep_last_sixty(self, now):
        transactions = [
            Transaction(type="expense", amount=str(i), date="2026-10-05", note="x" * 100)
            for i in range(1, 71)
        ]

        stats = aggregate_monthly_stats(transactions, now)

        assert len(stats.transactions_for_ai) == 60
        assert stats.transactions_for_ai[0].amount == Decimal("11")
        assert len(stats.transactions_for_ai[0].note) == 60
        assert stats.transactions_for_ai[0].type == TransactionType.EXPENSE

    def test_no_transactions(self, empty_stats):
        assert empty_stats.total_income == Decimal("0")
        assert empty_stats.total_expense == Decimal("0")
        assert empty_stats.expense_to_income_ratio is None
        assert empty_stats.saving_rate is None
        assert empty_stats.top_expense_category_share is None
        assert empty_stats.max_expense_tx is None
        assert empty_stats.health_score == 70
        assert empty_stats.health_status == HealthStatus.CAUTION

    def test_deficit(self, deficit_stats):
        assert deficit_stats.balance == Decimal("-2000000")
        assert deficit_stats.health_score == 0
        assert deficit_stats.health_status == HealthStatus.CRITICAL


class TestHealthScore:
    """Test suite for the health score rules."""

    def test_base_score(self):
        score = calculate_health_score(
            balance=Decimal("0"),
            projected_balance=Decimal("0"),
            expense_to_income_ratio=None,
            saving_rate=None,
        )
        assert score == 70

    @pytest.mark.parametrize(
        "ratio,expected",
        [
            (Decimal("101"), 45),
            (Decimal("95"), 52),
            (Decimal("85"), 58),
            (Decimal("70"), 70),
            (Decimal("59"), 78),
        ],
    )
    def test_ratio_adjustments(self, ratio, expected):
        score = calculate_health_score(
            balance=Decimal("1"),
            projected_balance=Decimal("1"),
            expense_to_income_ratio=ratio,
            saving_rate=None,
        )
        assert score == expected

    def test_clamped_at_zero(self):
        score = calculate_health_score(
            balance=Decimal("-1"),
            projected_balance=Decimal("-1"),
            expense_to_income_ratio=Decimal("150"),
            saving_rate=Decimal("-50"),
        )
        assert score == 0

    def test_clamped_at_hundred_range(self):
        score = calculate_health_score(
            balance=Decimal("1"),
            projected_balance=Decimal("1"),
            expense_to_income_ratio=Decimal("10"),
            saving_rate=Decimal("90"),
        )
        assert score == 90
        assert 0 <= score <= 100

    @pytest.mark.parametrize(
        "score,status",
        [(100, HealthStatus.HEALTHY), (75, HealthStatus.HEALTHY), (74, HealthStatus.CAUTION),
         (50, HealthStatus.CAUTION), (49, HealthStatus.CRITICAL), (0, HealthStatus.CRITICAL)],
    )
    def test_status_thresholds(self, score, status):
        assert health_status_for(score) == status


class TestDetectRecentTrend:
    def test_needs_two_active_weeks(self):
        assert detect_recent_trend([Decimal("100"), 0, 0, 0, 0]) == TrendDirection.STABLE

    def test_down(self):
        assert detect_recent_trend([Decimal("100"), Decimal("80"), 0, 0, 0]) == TrendDirection.DOWN

    def test_within_ten_percent_is_stable(self):
        assert detect_recent_trend([Decimal("100"), Decimal("110"), 0, 0, 0]) == TrendDirection.STABLE

    def test_skips_empty_weeks(self):
        trend = detect_recent_trend([Decimal("100"), 0, Decimal("200"), 0, 0])
        assert trend == TrendDirection.UP
