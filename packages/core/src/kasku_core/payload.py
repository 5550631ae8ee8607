"""Coercion and evaluation of the client-supplied ``data_keuangan`` snapshot.

The web client may attach its own summary of the month to an insight
request. Nothing about its shape is trusted: every field is coerced to a
number or string with a safe default and every list is truncated, keeping
the most recent entries. The evaluated snapshot is only used when it refers
to the current month and carries data.
"""

from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

import structlog

from kasku_core.formatting import ZERO, quantize_half_up, to_decimal
from kasku_core.models import (
    PAYLOAD_ACCEPTED,
    PAYLOAD_EMPTY,
    PAYLOAD_NOT_PROVIDED,
    PAYLOAD_STALE_PREFIX,
    BackendGap,
    FinancialPayload,
    MonthlyStats,
    PayloadEvaluation,
)

logger = structlog.get_logger()

CHART_POINT_LIMIT = 20
TRANSACTION_LIMIT = 80
TRANSACTION_NOTE_LIMIT = 80
DAILY_POINT_LIMIT = 45
WEEKLY_POINT_LIMIT = 12
MONTHLY_POINT_LIMIT = 12

_CENT = Decimal("0.01")


def _obj(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _text(value: Any, default: str = "-") -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _recent(value: Any, limit: int) -> list[Mapping[str, Any]]:
    items = value if isinstance(value, list) else []
    return [_obj(item) for item in items[-limit:]]


def _series_totals(block: Mapping[str, Any]) -> dict[str, Decimal]:
    return {
        "total_points": to_decimal(block.get("total_points")),
        "total_income": to_decimal(block.get("total_income")),
        "total_expense": to_decimal(block.get("total_expense")),
        "net_flow": to_decimal(block.get("net_flow")),
    }


def _flow(item: Mapping[str, Any]) -> dict[str, Decimal]:
    return {
        "income": to_decimal(item.get("income")),
        "expense": to_decimal(item.get("expense")),
        "net": to_decimal(item.get("net")),
    }


def normalize_financial_payload(raw: Any) -> Optional[FinancialPayload]:
    """
    Coerce a raw client snapshot into a FinancialPayload.

    Returns:
        FinancialPayload, or None when ``raw`` is not an object.
    """
    if not isinstance(raw, Mapping):
        return None

    summary = _obj(raw.get("summary"))
    chart = _obj(raw.get("chart"))
    transactions = _obj(raw.get("transactions"))
    insights = _obj(raw.get("insights"))
    period = _obj(raw.get("period"))
    daily = _obj(raw.get("daily"))
    weekly = _obj(raw.get("weekly"))
    monthly = _obj(raw.get("monthly"))

    return FinancialPayload.model_validate(
        {
            "generated_at": _text(raw.get("generated_at")),
            "source": _text(raw.get("source")),
            "period": {
                "reference_month": _text(period.get("reference_month"), ""),
                "start_date": _text(period.get("start_date"), ""),
                "end_date": _text(period.get("end_date"), ""),
            },
            "summary": {
                key: to_decimal(summary.get(key))
                for key in (
                    "balance",
                    "income",
                    "expense",
                    "saving",
                    "remaining_money",
                    "expense_ratio_percent",
                )
            },
            "chart": {
                "total_points": to_decimal(chart.get("total_points")),
                "total_income": to_decimal(chart.get("total_income")),
                "total_expense": to_decimal(chart.get("total_expense")),
                "net_flow": to_decimal(chart.get("net_flow")),
                "peak_income": to_decimal(chart.get("peak_income")),
                "peak_expense": to_decimal(chart.get("peak_expense")),
                "points": [
                    {"date": _text(item.get("date")), **_flow(item)}
                    for item in _recent(chart.get("points"), CHART_POINT_LIMIT)
                ],
            },
            "transactions": {
                "total_count": to_decimal(transactions.get("total_count")),
                "income_count": to_decimal(transactions.get("income_count")),
                "expense_count": to_decimal(transactions.get("expense_count")),
                "total_amount": to_decimal(transactions.get("total_amount")),
                "average_amount": to_decimal(transactions.get("average_amount")),
                "items": [
                    {
                        "id": to_decimal(item.get("id")),
                        "date": _text(item.get("date")),
                        "category": _text(item.get("category"), "Lainnya"),
                        "type": "income" if item.get("type") == "income" else "expense",
                        "amount": to_decimal(item.get("amount")),
                        "note": _text(item.get("note"))[:TRANSACTION_NOTE_LIMIT],
                    }
                    for item in _recent(transactions.get("items"), TRANSACTION_LIMIT)
                ],
            },
            "insights": {
                "recommended_saving": to_decimal(insights.get("recommended_saving")),
                "saving_gap": to_decimal(insights.get("saving_gap")),
                "saving_status": "good"
                if insights.get("saving_status") == "good"
                else "warning",
            },
            "daily": {
                **_series_totals(daily),
                "points": [
                    {
                        "date": _text(item.get("date")),
                        **_flow(item),
                        "transaction_count": to_decimal(item.get("transaction_count")),
                    }
                    for item in _recent(daily.get("points"), DAILY_POINT_LIMIT)
                ],
            },
            "weekly": {
                **_series_totals(weekly),
                "points": [
                    {
                        "week_label": _text(item.get("week_label")),
                        "start_date": _text(item.get("start_date")),
                        "end_date": _text(item.get("end_date")),
                        **_flow(item),
                        "transaction_count": to_decimal(item.get("transaction_count")),
                    }
                    for item in _recent(weekly.get("points"), WEEKLY_POINT_LIMIT)
                ],
            },
            "monthly": {
                **_series_totals(monthly),
                "points": [
                    {
                        "month": _text(item.get("month")),
                        **_flow(item),
                        "transaction_count": to_decimal(item.get("transaction_count")),
                    }
                    for item in _recent(monthly.get("points"), MONTHLY_POINT_LIMIT)
                ],
            },
        }
    )


def _gap_percent(gap: Decimal, backend_total: Decimal) -> Decimal:
    if backend_total <= 0:
        return ZERO
    return quantize_half_up(gap / backend_total * 100, _CENT)


def build_backend_gap(stats: MonthlyStats, payload: FinancialPayload) -> BackendGap:
    """Client totals minus backend totals, with percentages of the backend figure."""
    income_gap = payload.summary.income - stats.total_income
    expense_gap = payload.summary.expense - stats.total_expense
    return BackendGap(
        income_gap=income_gap,
        expense_gap=expense_gap,
        balance_gap=payload.summary.balance - stats.balance,
        income_gap_percent=_gap_percent(income_gap, stats.total_income),
        expense_gap_percent=_gap_percent(expense_gap, stats.total_expense),
    )


def evaluate_financial_payload(
    stats: MonthlyStats,
    payload: Optional[FinancialPayload],
    now: datetime,
) -> PayloadEvaluation:
    """
    Decide whether a client snapshot may be used for the current month.

    Returns:
        PayloadEvaluation whose ``status`` is ``not_provided``,
        ``stale_period_<YYYY-MM>``, ``empty_payload`` or ``accepted``.
        Only an accepted evaluation carries the payload and its gap.
    """
    if payload is None:
        return PayloadEvaluation(status=PAYLOAD_NOT_PROVIDED)

    reference_month = payload.period.reference_month
    current_month = f"{now.year}-{now.month:02d}"
    if reference_month and reference_month != current_month:
        logger.info(
            "financial_payload_stale",
            reference_month=reference_month,
            current_month=current_month,
        )
        return PayloadEvaluation(status=f"{PAYLOAD_STALE_PREFIX}{reference_month}")

    has_summary_numbers = payload.summary.has_numbers
    if not has_summary_numbers and not payload.has_activity:
        return PayloadEvaluation(status=PAYLOAD_EMPTY)

    return PayloadEvaluation(
        status=PAYLOAD_ACCEPTED,
        usable=payload,
        gap=build_backend_gap(stats, payload),
        has_summary_numbers=has_summary_numbers,
    )


__all__ = [
    "normalize_financial_payload",
    "evaluate_financial_payload",
    "build_backend_gap",
]
