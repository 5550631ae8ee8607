"""Data models for kasku-core.

This package provides:
- Transaction, history and monthly statistics models (financial.py)
- Forecast and insight result models (financial.py)
- Client-supplied financial snapshot models (payload.py)
"""

from kasku_core.models.payload import (
    PAYLOAD_ACCEPTED,
    PAYLOAD_EMPTY,
    PAYLOAD_NOT_PROVIDED,
    PAYLOAD_STALE_PREFIX,
    BackendGap,
    ChartPoint,
    DailyPoint,
    FinancialPayload,
    MonthlyPoint,
    PayloadChart,
    PayloadDaily,
    PayloadEvaluation,
    PayloadInsights,
    PayloadMonthly,
    PayloadPeriod,
    PayloadSummary,
    PayloadTransactionItem,
    PayloadTransactions,
    PayloadWeekly,
    WeeklyPoint,
)
from kasku_core.models.financial import (
    # Enumerations
    ConfidenceLabel,
    DataSource,
    ForecastSource,
    HealthStatus,
    InsightSource,
    TransactionType,
    TrendDirection,
    # Inputs
    Transaction,
    HistoryPoint,
    # Monthly statistics
    CategoryTotal,
    LargestTransaction,
    TransactionDigest,
    MonthlyStats,
    # Results
    ForecastRange,
    HistoryPointView,
    ForecastResult,
    KeyNumber,
    InsightResult,
    GeneratedInsight,
    MonthlySummaryRecord,
)

__all__ = [
    # Enumerations
    "ConfidenceLabel",
    "DataSource",
    "ForecastSource",
    "HealthStatus",
    "InsightSource",
    "TransactionType",
    "TrendDirection",
    # Inputs
    "Transaction",
    "HistoryPoint",
    # Monthly statistics
    "CategoryTotal",
    "LargestTransaction",
    "TransactionDigest",
    "MonthlyStats",
    # Results
    "ForecastRange",
    "HistoryPointView",
    "ForecastResult",
    "KeyNumber",
    "InsightResult",
    "GeneratedInsight",
    "MonthlySummaryRecord",
    # Client payload
    "PAYLOAD_ACCEPTED",
    "PAYLOAD_EMPTY",
    "PAYLOAD_NOT_PROVIDED",
    "PAYLOAD_STALE_PREFIX",
    "BackendGap",
    "ChartPoint",
    "DailyPoint",
    "FinancialPayload",
    "MonthlyPoint",
    "PayloadChart",
    "PayloadDaily",
    "PayloadEvaluation",
    "PayloadInsights",
    "PayloadMonthly",
    "PayloadPeriod",
    "PayloadSummary",
    "PayloadTransactionItem",
    "PayloadTransactions",
    "PayloadWeekly",
    "WeeklyPoint",
]
