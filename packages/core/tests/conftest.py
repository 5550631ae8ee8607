"""Shared fixtures for kasku-core tests."""

from datetime import datetime
from decimal import Decimal

import pytest

from kasku_core.aggregator import aggregate_monthly_stats
from kasku_core.models import HistoryPoint, MonthlyStats, Transaction


@pytest.fixture
def now() -> datetime:
    """A fixed moment on day 20 of a 31-day month."""
    return datetime(2026, 10, 20, 12, 0, 0)


@pytest.fixture
def october_transactions() -> list[Transaction]:
    """One salary and three expenses, ordered by date."""
    return [
        Transaction(type="income", amount="10000000", date="2026-10-01T08:00:00", category="Gaji"),
        Transaction(
            type="expense",
            amount="2000000",
            date="2026-10-03T12:00:00",
            category="Makan",
            note="belanja bulanan",
        ),
        Transaction(type="expense", amount="1000000", date="2026-10-10T09:00:00", category="Transport"),
        Transaction(type="expense", amount="3000000", date="2026-10-17T19:00:00", category="Makan"),
    ]


@pytest.fixture
def surplus_stats(october_transactions, now) -> MonthlyStats:
    return aggregate_monthly_stats(october_transactions, now)


@pytest.fixture
def deficit_stats(now) -> MonthlyStats:
    """Expense exceeds income; the uncategorized expense lands in Lainnya."""
    transactions = [
        Transaction(type="income", amount="5000000", date="2026-10-01", category="Gaji"),
        Transaction(type="expense", amount="7000000", date="2026-10-02"),
    ]
    return aggregate_monthly_stats(transactions, now)


@pytest.fixture
def empty_stats(now) -> MonthlyStats:
    return aggregate_monthly_stats([], now)


@pytest.fixture
def steady_history() -> list[HistoryPoint]:
    """Three identical months ending in December 2025."""
    return [
        HistoryPoint(
            year=2025,
            month_index=month_index,
            income=Decimal("10000000"),
            expense=Decimal("6000000"),
            balance=Decimal("4000000"),
        )
        for month_index in (9, 10, 11)
    ]
