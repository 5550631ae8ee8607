"""Statistical next-month forecast from monthly history.

Pure functions over Decimal series with no network dependency. The
forecast is a recency-weighted average nudged by momentum and slope, with a
band derived from recent volatility. The same inputs always give the same
ForecastResult.
"""

from collections.abc import Sequence
from decimal import Decimal

import structlog

from kasku_core.exceptions import InsufficientDataError
from kasku_core.formatting import (
    ZERO,
    format_month_year_label,
    format_rupiah,
    round_half_up,
)
from kasku_core.models import (
    ConfidenceLabel,
    ForecastRange,
    ForecastResult,
    ForecastSource,
    HistoryPoint,
    HistoryPointView,
)

logger = structlog.get_logger()

WEIGHTED_WINDOW = 4
RANGE_WINDOW = 6
HISTORY_VIEW_LIMIT = 12
MOMENTUM_WEIGHT = Decimal("0.35")
SLOPE_WEIGHT = Decimal("0.2")
STD_BAND_FACTOR = Decimal("0.85")
MOMENTUM_BAND_FACTOR = Decimal("0.35")
PREDICTION_BAND_FACTOR = Decimal("0.08")
SAMPLE_WEIGHT = Decimal("0.6")
STABILITY_WEIGHT = Decimal("0.4")
MIN_CONFIDENCE = 40
MAX_CONFIDENCE = 95
BUDGET_CAP_FACTOR = Decimal("0.95")
SAVING_FACTOR = Decimal("0.2")


def calculate_std_dev(values: Sequence[Decimal]) -> Decimal:
    """Population standard deviation; 0 for fewer than two values."""
    if len(values) <= 1:
        return ZERO

    mean = sum(values, ZERO) / len(values)
    variance = sum(((value - mean) ** 2 for value in values), ZERO) / len(values)
    return max(ZERO, variance).sqrt()


def forecast_metric(series: Sequence[Decimal], allow_negative: bool = False) -> Decimal:
    """
    Predict the next value of a monthly series.

    Takes the last four points weighted 1..k (newest heaviest), then adds
    0.35 x momentum (last - previous) and 0.2 x slope ((last - third last) / 2,
    or momentum with only two points). Clamped at zero unless
    ``allow_negative``.
    """
    if not series:
        return ZERO
    if len(series) == 1:
        return series[0]

    recent = series[-WEIGHTED_WINDOW:]
    total_weight = sum(range(1, len(recent) + 1))
    weighted_average = (
        sum((value * (idx + 1) for idx, value in enumerate(recent)), ZERO) / total_weight
    )

    momentum = series[-1] - series[-2]
    slope = (series[-1] - series[-3]) / 2 if len(series) >= 3 else momentum

    prediction = weighted_average + momentum * MOMENTUM_WEIGHT + slope * SLOPE_WEIGHT
    if not allow_negative:
        prediction = max(ZERO, prediction)
    return prediction


def build_forecast_range(
    prediction: Decimal,
    series: Sequence[Decimal],
    allow_negative: bool = False,
) -> ForecastRange:
    """
    Build an integer ``[min, max]`` band around a prediction.

    The half-width is the largest of 0.85 x std dev of the last six points,
    0.35 x |latest momentum| and 8% of |prediction|.
    """
    recent = list(series[-RANGE_WINDOW:])
    std = calculate_std_dev(recent)
    momentum = recent[-1] - recent[-2] if len(recent) >= 2 else ZERO
    band = max(
        std * STD_BAND_FACTOR,
        abs(momentum) * MOMENTUM_BAND_FACTOR,
        abs(prediction) * PREDICTION_BAND_FACTOR,
    )

    low = prediction - band
    high = prediction + band
    if not allow_negative:
        low = max(ZERO, low)
        high = max(ZERO, high)

    return ForecastRange(min=round_half_up(low), max=round_half_up(high))


def calculate_confidence(balance_series: Sequence[Decimal], sample_size: int) -> int:
    """
    Confidence score in [40, 95].

    Blends sample coverage (60%, saturating at six months) with balance
    stability (40%, one minus the coefficient of variation of the last six
    balances).
    """
    recent = list(balance_series[-RANGE_WINDOW:])
    abs_mean = sum((abs(v) for v in recent), ZERO) / len(recent) if recent else ZERO
    volatility = calculate_std_dev(recent) / abs_mean if abs_mean > 0 else ZERO

    sample_score = min(Decimal("1"), Decimal(sample_size) / RANGE_WINDOW)
    stability_score = max(ZERO, 1 - min(volatility, Decimal("1")))

    raw = round_half_up((sample_score * SAMPLE_WEIGHT + stability_score * STABILITY_WEIGHT) * 100)
    return max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, int(raw)))


def confidence_label(confidence: int) -> ConfidenceLabel:
    if confidence >= 80:
        return ConfidenceLabel.HIGH
    if confidence >= 60:
        return ConfidenceLabel.MEDIUM
    return ConfidenceLabel.LOW


def next_month_label(last_point: HistoryPoint) -> str:
    """Label of the month following ``last_point``, e.g. ``Januari 2025``."""
    return format_month_year_label(last_point.month_index + 1, last_point.year)


def build_forecast_insight(
    *,
    next_month: str,
    predicted_income: Decimal,
    predicted_expense: Decimal,
    predicted_balance: Decimal,
) -> str:
    """One-paragraph surplus or deficit reading of the forecast."""
    income_text = format_rupiah(predicted_income)
    expense_text = format_rupiah(predicted_expense)

    if predicted_balance >= 0:
        return (
            f"Forecast {next_month}: pemasukan {income_text}, pengeluaran {expense_text}, "
            f"dan saldo berpotensi surplus {format_rupiah(predicted_balance)}. "
            "Prioritas utama adalah menjaga disiplin pengeluaran agar surplus tetap konsisten."
        )

    return (
        f"Forecast {next_month}: pemasukan {income_text}, pengeluaran {expense_text}, "
        f"dan saldo berpotensi defisit {format_rupiah(abs(predicted_balance))}. "
        "Fokuskan kontrol biaya variabel dan perkuat buffer kas sejak awal bulan."
    )


def build_forecast_action_items(
    *,
    predicted_income: Decimal,
    predicted_expense: Decimal,
    predicted_balance: Decimal,
) -> list[str]:
    """Three concrete budget actions derived from the forecast."""
    budget_limit = max(ZERO, round_half_up(predicted_expense * BUDGET_CAP_FACTOR))
    weekly_budget = round_half_up(budget_limit / 4)

    if predicted_balance >= 0:
        saving_target = max(round_half_up(predicted_income * SAVING_FACTOR), ZERO)
        return [
            f"Pasang batas pengeluaran bulanan maksimal {format_rupiah(budget_limit)} "
            "agar saldo tetap aman.",
            f"Kunci alokasi tabungan otomatis minimal {format_rupiah(saving_target)} "
            "pada awal bulan.",
            f"Pantau realisasi mingguan dengan batas sekitar {format_rupiah(weekly_budget)} "
            "per minggu.",
        ]

    return [
        f"Turunkan pengeluaran ke kisaran {format_rupiah(budget_limit)} "
        "untuk mengurangi risiko defisit.",
        f"Tetapkan plafon belanja mingguan maksimal {format_rupiah(max(ZERO, weekly_budget))} "
        "sampai arus kas kembali positif.",
        "Tunda pengeluaran non-prioritas selama 30 hari untuk mempercepat pemulihan saldo.",
    ]


def history_view(points: Sequence[HistoryPoint]) -> list[HistoryPointView]:
    """The last twelve history points in response form."""
    return [
        HistoryPointView(
            month=format_month_year_label(point.month_index, point.year),
            year=point.year,
            total_income=point.income,
            total_expense=point.expense,
            balance=point.balance,
        )
        for point in points[-HISTORY_VIEW_LIMIT:]
    ]


def build_statistical_forecast(points: Sequence[HistoryPoint]) -> ForecastResult:
    """
    Build the network-independent baseline forecast.

    Args:
        points: Chronologically sorted, deduplicated history.

    Returns:
        ForecastResult with ``source=statistical``.

    Raises:
        InsufficientDataError: If ``points`` is empty.
    """
    if not points:
        raise InsufficientDataError(
            "Belum ada data summary bulanan untuk membuat forecast.",
            operation="forecast",
        )

    income_series = [point.income for point in points]
    expense_series = [point.expense for point in points]
    balance_series = [point.balance for point in points]

    predicted_income = round_half_up(forecast_metric(income_series))
    predicted_expense = round_half_up(forecast_metric(expense_series))
    predicted_balance = round_half_up(forecast_metric(balance_series, allow_negative=True))

    confidence = calculate_confidence(balance_series, len(points))
    label = next_month_label(points[-1])

    result = ForecastResult(
        next_month_label=label,
        predicted_income=predicted_income,
        predicted_expense=predicted_expense,
        predicted_balance=predicted_balance,
        income_range=build_forecast_range(predicted_income, income_series),
        expense_range=build_forecast_range(predicted_expense, expense_series),
        balance_range=build_forecast_range(
            predicted_balance, balance_series, allow_negative=True
        ),
        confidence=confidence,
        confidence_label=confidence_label(confidence),
        insight=build_forecast_insight(
            next_month=label,
            predicted_income=predicted_income,
            predicted_expense=predicted_expense,
            predicted_balance=predicted_balance,
        ),
        action_items=build_forecast_action_items(
            predicted_income=predicted_income,
            predicted_expense=predicted_expense,
            predicted_balance=predicted_balance,
        ),
        source=ForecastSource.STATISTICAL,
        sample_size=len(points),
        history_points=history_view(points),
    )

    logger.info(
        "statistical_forecast_built",
        next_month=label,
        sample_size=len(points),
        confidence=confidence,
    )
    return result


__all__ = [
    "calculate_std_dev",
    "forecast_metric",
    "build_forecast_range",
    "calculate_confidence",
    "confidence_label",
    "next_month_label",
    "build_forecast_insight",
    "build_forecast_action_items",
    "history_view",
    "build_statistical_forecast",
]
