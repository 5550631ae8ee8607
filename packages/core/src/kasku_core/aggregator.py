"""Monthly statistics over one calendar month of transactions.

The aggregation is a single linear pass over the month's transactions
(ordered by date ascending). It never raises: a month without transactions
yields all-zero totals and a valid health score.
"""

import calendar
from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal
from typing import Optional

import structlog

from kasku_core.formatting import ZERO, format_rupiah, month_name
from kasku_core.models import (
    CategoryTotal,
    HealthStatus,
    LargestTransaction,
    MonthlyStats,
    Transaction,
    TransactionDigest,
    TransactionType,
    TrendDirection,
)

logger = structlog.get_logger()

HUNDRED = Decimal("100")
WEEK_BUCKETS = 5
FIRST_HALF_LAST_DAY = 15
TOP_CATEGORY_LIMIT = 3
AI_TRANSACTION_LIMIT = 60
NOTE_LIMIT = 60
TREND_THRESHOLD = Decimal("0.1")


def month_window(now: datetime) -> tuple[datetime, datetime]:
    """Return the inclusive ``[start, end]`` datetimes of ``now``'s month."""
    days_in_month = calendar.monthrange(now.year, now.month)[1]
    start = datetime(now.year, now.month, 1, tzinfo=now.tzinfo)
    end = datetime(
        now.year, now.month, days_in_month, 23, 59, 59, 999999, tzinfo=now.tzinfo
    )
    return start, end


def calculate_health_score(
    *,
    balance: Decimal,
    projected_balance: Decimal,
    expense_to_income_ratio: Optional[Decimal],
    saving_rate: Optional[Decimal],
) -> int:
    """
    Score the month's financial condition on a 0-100 scale.

    Scoring:
    - Base: 70
    - -25 if the balance is negative, -20 if the projected balance is
    - Expense/income ratio: >100 -25, >90 -18, >80 -12, <60 +8
    - Saving rate: >=20 +12, >=10 +6, <0 -10
    - Rounded and clamped to [0, 100]
    """
    score = 70

    if balance < 0:
        score -= 25
    if projected_balance < 0:
        score -= 20

    if expense_to_income_ratio is not None:
        if expense_to_income_ratio > 100:
            score -= 25
        elif expense_to_income_ratio > 90:
            score -= 18
        elif expense_to_income_ratio > 80:
            score -= 12
        elif expense_to_income_ratio < 60:
            score += 8

    if saving_rate is not None:
        if saving_rate >= 20:
            score += 12
        elif saving_rate >= 10:
            score += 6
        elif saving_rate < 0:
            score -= 10

    return max(0, min(100, score))


def health_status_for(score: int) -> HealthStatus:
    if score >= 75:
        return HealthStatus.HEALTHY
    if score >= 50:
        return HealthStatus.CAUTION
    return HealthStatus.CRITICAL


def detect_recent_trend(weekly_expense: Iterable[Decimal]) -> TrendDirection:
    """Compare the last two weeks that had any spending."""
    active = [amount for amount in weekly_expense if amount > 0]
    if len(active) < 2:
        return TrendDirection.STABLE

    previous, latest = active[-2], active[-1]
    if latest > previous * (1 + TREND_THRESHOLD):
        return TrendDirection.UP
    if latest < previous * (1 - TREND_THRESHOLD):
        return TrendDirection.DOWN
    return TrendDirection.STABLE


def _digest(tx: Transaction, date_label: str) -> TransactionDigest:
    default_category = (
        "Pemasukan Lainnya" if tx.type == TransactionType.INCOME else "Pengeluaran Lainnya"
    )
    note = tx.note.strip()[:NOTE_LIMIT] if tx.note and tx.note.strip() else "-"
    return TransactionDigest(
        date=date_label,
        type=tx.type,
        amount=tx.amount,
        amount_rupiah=format_rupiah(tx.amount),
        category=tx.category_name or default_category,
        note=note,
    )


def aggregate_monthly_stats(
    transactions: Iterable[Transaction],
    now: datetime,
) -> MonthlyStats:
    """
    Aggregate one month of transactions into MonthlyStats.

    Args:
        transactions: The month's transactions, ordered by date ascending.
        now: Current moment; defines the month and the elapsed-day count.

    Returns:
        Immutable MonthlyStats snapshot.
    """
    days_in_month = calendar.monthrange(now.year, now.month)[1]

    total_income = ZERO
    total_expense = ZERO
    income_count = 0
    expense_count = 0
    transaction_count = 0
    first_half_expense = ZERO
    second_half_expense = ZERO

    active_days: set[str] = set()
    expense_by_category: dict[str, Decimal] = {}
    weekly_expense = [ZERO] * WEEK_BUCKETS
    digests: list[TransactionDigest] = []

    max_income_tx: Optional[LargestTransaction] = None
    max_expense_tx: Optional[LargestTransaction] = None

    for tx in transactions:
        transaction_count += 1
        amount = tx.amount
        date_label = tx.date.date().isoformat() if tx.date else "-"
        if tx.date:
            active_days.add(date_label)

        digests.append(_digest(tx, date_label))

        if tx.type == TransactionType.INCOME:
            total_income += amount
            income_count += 1

            if max_income_tx is None or amount > max_income_tx.amount:
                max_income_tx = LargestTransaction(
                    amount=amount,
                    date=date_label,
                    category=tx.category_name or "Tanpa kategori",
                )

        elif tx.type == TransactionType.EXPENSE:
            total_expense += amount
            expense_count += 1

            category = tx.category_name or "Lainnya"
            expense_by_category[category] = expense_by_category.get(category, ZERO) + amount

            if tx.date:
                day = tx.date.day
                weekly_expense[min(WEEK_BUCKETS - 1, (day - 1) // 7)] += amount
                if day <= FIRST_HALF_LAST_DAY:
                    first_half_expense += amount
                else:
                    second_half_expense += amount

            if max_expense_tx is None or amount > max_expense_tx.amount:
                max_expense_tx = LargestTransaction(
                    amount=amount,
                    date=date_label,
                    category=category,
                )

    balance = total_income - total_expense
    expense_to_income_ratio = (
        total_expense / total_income * HUNDRED if total_income > 0 else None
    )
    saving_rate = balance / total_income * HUNDRED if total_income > 0 else None

    # Stable sort keeps first-seen order between equal category totals.
    top_categories = tuple(
        CategoryTotal(category=name, amount=amount)
        for name, amount in sorted(
            expense_by_category.items(), key=lambda item: item[1], reverse=True
        )[:TOP_CATEGORY_LIMIT]
    )
    top_share = (
        top_categories[0].amount / total_expense * HUNDRED
        if total_expense > 0 and top_categories
        else None
    )

    elapsed_days = max(1, min(now.day, days_in_month))
    projected_expense = total_expense / elapsed_days * days_in_month
    projected_balance = total_income - projected_expense

    health_score = calculate_health_score(
        balance=balance,
        projected_balance=projected_balance,
        expense_to_income_ratio=expense_to_income_ratio,
        saving_rate=saving_rate,
    )

    stats = MonthlyStats(
        month=month_name(now.month - 1),
        year=str(now.year),
        total_income=total_income,
        total_expense=total_expense,
        balance=balance,
        transaction_count=transaction_count,
        income_count=income_count,
        expense_count=expense_count,
        active_days_count=len(active_days),
        weekly_expense=tuple(weekly_expense),
        first_half_expense=first_half_expense,
        second_half_expense=second_half_expense,
        expense_to_income_ratio=expense_to_income_ratio,
        saving_rate=saving_rate,
        average_income=total_income / income_count if income_count else ZERO,
        average_expense=total_expense / expense_count if expense_count else ZERO,
        max_income_tx=max_income_tx,
        max_expense_tx=max_expense_tx,
        top_expense_categories=top_categories,
        top_expense_category_share=top_share,
        days_in_month=days_in_month,
        current_day=now.day,
        elapsed_days=elapsed_days,
        projected_expense=projected_expense,
        projected_balance=projected_balance,
        recent_expense_trend=detect_recent_trend(weekly_expense),
        health_score=health_score,
        health_status=health_status_for(health_score),
        transactions_for_ai=tuple(digests[-AI_TRANSACTION_LIMIT:]),
    )

    logger.info(
        "monthly_stats_aggregated",
        month=stats.month,
        year=stats.year,
        transactions=transaction_count,
        health_score=health_score,
        trend=stats.recent_expense_trend.value,
    )
    return stats


__all__ = [
    "month_window",
    "calculate_health_score",
    "health_status_for",
    "detect_recent_trend",
    "aggregate_monthly_stats",
]
