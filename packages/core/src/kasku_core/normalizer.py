"""Validation of parsed language-model replies into typed results.

Both normalizers accept the loosely shaped dict recovered by
``parse_llm_json`` and either produce a fully valid result or an Invalid
with the reason. Callers fall back on Invalid; nothing here raises.
"""

import re
from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Optional

import structlog

from kasku_core.forecaster import confidence_label
from kasku_core.formatting import ZERO, exceeds_magnitude, round_half_up, to_decimal
from kasku_core.models import (
    ForecastRange,
    ForecastResult,
    ForecastSource,
    InsightResult,
    KeyNumber,
)
from kasku_core.results import Invalid, Parsed, ParseResult
from kasku_core.sanitizer import sanitize_html, sanitize_plain_text, strip_html

logger = structlog.get_logger()

MAX_RECOMMENDATIONS = 6
MIN_RECOMMENDATIONS = 3
MAX_KEY_NUMBERS = 8
MAX_ACTION_ITEMS = 4
MIN_AI_CONFIDENCE = 35
MAX_AI_CONFIDENCE = 95

_SENTENCE_BREAK = re.compile(r"[.!?]\s+")


def _first_present(item: Mapping[str, Any], *keys: str) -> str:
    for key in keys:
        value = item.get(key)
        if value not in (None, "", 0, False):
            return str(value)
    return ""


def _split_lines(value: Any) -> list[Any]:
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        return value.split("\n")
    return []


def _key_numbers(raw: Any) -> list[KeyNumber]:
    if not isinstance(raw, list):
        return []

    numbers = []
    for item in raw:
        if not isinstance(item, Mapping):
            continue
        label = sanitize_html(_first_present(item, "label", "metric", "name"))
        value = sanitize_html(_first_present(item, "value", "amount"))
        insight = sanitize_html(_first_present(item, "insight", "note", "reason"))
        if label and value:
            numbers.append(KeyNumber(label=label, value=value, insight=insight))
    return numbers[:MAX_KEY_NUMBERS]


def normalize_insight_response(payload: Any) -> ParseResult[InsightResult]:
    """
    Validate an insight reply into an InsightResult.

    Every text field is sanitized. A missing trend analysis falls back to the
    summary and missing recommendations fall back to the trend, then the
    list is topped up to three items from the summary's sentences.

    Returns:
        Parsed(InsightResult), or Invalid when summary, recommendations or
        trend are still empty.
    """
    if not isinstance(payload, Mapping):
        return Invalid("reply is not an object")

    raw_summary = payload.get("summary")
    summary = sanitize_html(raw_summary) if isinstance(raw_summary, str) else ""

    recommendations = [
        cleaned
        for cleaned in (
            sanitize_html(str(item)) for item in _split_lines(payload.get("recommendations"))
        )
        if cleaned
    ][:MAX_RECOMMENDATIONS]

    raw_trend = payload.get("trend_analysis")
    trend = sanitize_html(raw_trend) if isinstance(raw_trend, str) else ""
    if not trend and summary:
        trend = summary

    if not recommendations and trend:
        recommendations.append(trend)

    if len(recommendations) < MIN_RECOMMENDATIONS and summary:
        for sentence in _SENTENCE_BREAK.split(strip_html(summary)):
            if len(recommendations) >= MIN_RECOMMENDATIONS:
                break
            cleaned = sanitize_html(sentence.strip())
            if cleaned:
                recommendations.append(cleaned)

    if not summary:
        return Invalid("summary is empty")
    if not recommendations:
        return Invalid("recommendations are empty")
    if not trend:
        return Invalid("trend_analysis is empty")

    return Parsed(
        InsightResult(
            summary=summary,
            recommendations=recommendations[:MAX_RECOMMENDATIONS],
            trend_analysis=trend,
            key_numbers=_key_numbers(payload.get("key_numbers")),
        )
    )


def _pick(payload: Mapping[str, Any], snake: str, camel: str) -> Any:
    value = payload.get(snake)
    return payload.get(camel) if value is None else value


def _parse_range(
    range_value: Any,
    min_value: Any,
    max_value: Any,
    fallback: ForecastRange,
    allow_negative: bool,
) -> ForecastRange:
    low, high = fallback.min, fallback.max

    if isinstance(range_value, (list, tuple)) and len(range_value) >= 2:
        low = to_decimal(range_value[0], default=low)
        high = to_decimal(range_value[1], default=high)
    elif isinstance(range_value, Mapping):
        low = to_decimal(range_value.get("min"), default=low)
        high = to_decimal(range_value.get("max"), default=high)

    low = to_decimal(min_value, default=low)
    high = to_decimal(max_value, default=high)

    if not allow_negative:
        low = max(ZERO, low)
        high = max(ZERO, high)
    if low > high:
        low, high = high, low

    return ForecastRange(min=round_half_up(low), max=round_half_up(high))


_FORECAST_NUMBER_KEYS = (
    ("predicted_income", "predictedIncome"),
    ("predicted_expense", "predictedExpense"),
    ("predicted_balance", "predictedBalance"),
    ("confidence", "confidence"),
    ("income_range_min", "income_range_min"),
    ("income_range_max", "income_range_max"),
    ("expense_range_min", "expense_range_min"),
    ("expense_range_max", "expense_range_max"),
    ("balance_range_min", "balance_range_min"),
    ("balance_range_max", "balance_range_max"),
)
_FORECAST_RANGE_KEYS = (
    ("income_range", "incomeRange"),
    ("expense_range", "expenseRange"),
    ("balance_range", "balanceRange"),
)


def _oversized_field(payload: Mapping[str, Any]) -> Optional[str]:
    """Name of the first numeric field too large to be a real figure."""
    for snake, camel in _FORECAST_NUMBER_KEYS:
        if exceeds_magnitude(_pick(payload, snake, camel)):
            return snake
    for snake, camel in _FORECAST_RANGE_KEYS:
        value = _pick(payload, snake, camel)
        if isinstance(value, Mapping):
            bounds = [value.get("min"), value.get("max")]
        elif isinstance(value, (list, tuple)):
            bounds = list(value[:2])
        else:
            continue
        if any(exceeds_magnitude(bound) for bound in bounds):
            return snake
    return None


def _text(value: Any, fallback: str = "") -> str:
    if isinstance(value, str) and value.strip():
        return sanitize_plain_text(value) or fallback
    return fallback


def normalize_forecast_response(
    payload: Any,
    baseline: ForecastResult,
    model: Optional[str] = None,
) -> ParseResult[ForecastResult]:
    """
    Overlay a forecast reply onto the statistical baseline.

    Keys may be snake_case or camelCase. Any value that is missing or not
    numeric keeps the baseline's. Income and expense are clamped at zero,
    every range is ordered, and confidence is clamped to [35, 95].

    Args:
        payload: Object recovered from the model reply.
        baseline: Statistical forecast used for fallbacks and labels.
        model: Model id recorded on the overlaid result.

    Returns:
        Parsed(ForecastResult) with ``source=ai+statistical``, or Invalid
        when the reply is not an object or carries an out-of-range number.
    """
    if not isinstance(payload, Mapping):
        return Invalid("reply is not an object")

    oversized = _oversized_field(payload)
    if oversized is not None:
        return Invalid(f"{oversized} is out of range")

    raw_income = to_decimal(
        _pick(payload, "predicted_income", "predictedIncome"),
        default=baseline.predicted_income,
    )
    raw_expense = to_decimal(
        _pick(payload, "predicted_expense", "predictedExpense"),
        default=baseline.predicted_expense,
    )
    income = round_half_up(max(ZERO, raw_income))
    expense = round_half_up(max(ZERO, raw_expense))
    balance = round_half_up(
        to_decimal(
            _pick(payload, "predicted_balance", "predictedBalance"),
            default=income - expense,
        )
    )

    raw_confidence = to_decimal(
        payload.get("confidence"), default=Decimal(baseline.confidence)
    )
    confidence = int(round_half_up(raw_confidence))
    confidence = max(MIN_AI_CONFIDENCE, min(MAX_AI_CONFIDENCE, confidence))

    action_items = [
        cleaned
        for cleaned in (_text(item) for item in _split_lines(payload.get("action_items")))
        if cleaned
    ][:MAX_ACTION_ITEMS]

    result = baseline.model_copy(
        update={
            "predicted_income": income,
            "predicted_expense": expense,
            "predicted_balance": balance,
            "income_range": _parse_range(
                _pick(payload, "income_range", "incomeRange"),
                payload.get("income_range_min"),
                payload.get("income_range_max"),
                baseline.income_range,
                allow_negative=False,
            ),
            "expense_range": _parse_range(
                _pick(payload, "expense_range", "expenseRange"),
                payload.get("expense_range_min"),
                payload.get("expense_range_max"),
                baseline.expense_range,
                allow_negative=False,
            ),
            "balance_range": _parse_range(
                _pick(payload, "balance_range", "balanceRange"),
                payload.get("balance_range_min"),
                payload.get("balance_range_max"),
                baseline.balance_range,
                allow_negative=True,
            ),
            "confidence": confidence,
            "confidence_label": confidence_label(confidence),
            "insight": _text(payload.get("insight"), baseline.insight),
            "action_items": action_items or list(baseline.action_items),
            "source": ForecastSource.AI_STATISTICAL,
            "model": model,
        }
    )

    logger.debug(
        "forecast_overlay_normalized",
        confidence=confidence,
        action_items=len(result.action_items),
    )
    return Parsed(result)


__all__ = [
    "normalize_insight_response",
    "normalize_forecast_response",
]
