"""Kasku Core - Monthly statistics, forecasting and insight construction."""

__version__ = "0.1.0"

from .aggregator import aggregate_monthly_stats, month_window
from .forecaster import build_statistical_forecast
from .history import normalize_summary_history
from .insights import append_key_numbers_to_summary, build_fallback_insight
from .models import ForecastResult, InsightResult, MonthlyStats, Transaction

__all__ = [
    "aggregate_monthly_stats",
    "month_window",
    "build_statistical_forecast",
    "normalize_summary_history",
    "append_key_numbers_to_summary",
    "build_fallback_insight",
    "ForecastResult",
    "InsightResult",
    "MonthlyStats",
    "Transaction",
]
