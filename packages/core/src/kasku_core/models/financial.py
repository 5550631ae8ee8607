"""Core financial data models for forecasting and insight generation.

This module provides the typed structures that flow through the engine:
- Transactions read from the external store
- Monthly history points derived from persisted summaries
- The aggregated statistics of the current month
- Forecast and insight results, and the persisted summary record

All money values are Decimal. Aggregates are frozen once built.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from kasku_core.formatting import to_decimal
from kasku_core.models.payload import BackendGap, FinancialPayload


class TransactionType(str, Enum):
    """Direction of a transaction."""

    INCOME = "income"
    EXPENSE = "expense"


class TrendDirection(str, Enum):
    """Direction of the most recent weekly expense movement."""

    UP = "naik"
    DOWN = "turun"
    STABLE = "stabil"


class HealthStatus(str, Enum):
    """Bucketed financial health derived from the health score."""

    HEALTHY = "sehat"
    CAUTION = "waspada"
    CRITICAL = "kritis"


class ConfidenceLabel(str, Enum):
    """Bucketed forecast confidence."""

    HIGH = "tinggi"
    MEDIUM = "menengah"
    LOW = "rendah"


class ForecastSource(str, Enum):
    """Which tier produced a forecast."""

    STATISTICAL = "statistical"
    AI_STATISTICAL = "ai+statistical"


class InsightSource(str, Enum):
    """Which tier produced an insight report."""

    AI = "ai"
    STATISTICAL = "statistical"


class DataSource(str, Enum):
    """Where the persisted totals of a generated summary came from."""

    BACKEND = "backend"
    FRONTEND = "frontend"
    FRONTEND_AND_BACKEND = "frontend+backend"


class Transaction(BaseModel):
    """A single income or expense transaction from the store.

    Amounts coerce to zero and dates to ``None`` when unparsable so that the
    aggregation pass never fails part-way through a month.
    """

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "type": "expense",
                    "amount": "45000",
                    "date": "2026-10-03T12:30:00",
                    "category": "Makan",
                    "note": "makan siang",
                }
            ]
        }
    }

    type: TransactionType = Field(description="income or expense")
    amount: Decimal = Field(default=Decimal("0"), description="Transaction amount")
    date: Optional[datetime] = Field(
        default=None,
        description="When the transaction happened; None when unknown",
    )
    category: Optional[str] = Field(default=None, description="Category name")
    note: Optional[str] = Field(default=None, description="Free-text note")

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v):
        """Accept case and whitespace variations of the type name."""
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("amount", mode="before")
    @classmethod
    def coerce_amount_to_decimal(cls, v):
        """Coerce amounts to Decimal, zero when unparsable."""
        return to_decimal(v)

    @field_validator("date", mode="before")
    @classmethod
    def coerce_date(cls, v):
        """Coerce dates and ISO strings to datetime, None when unparsable."""
        if isinstance(v, datetime):
            return v
        if isinstance(v, date):
            return datetime(v.year, v.month, v.day)
        if isinstance(v, str):
            try:
                return datetime.fromisoformat(v.strip())
            except ValueError:
                return None
        return None

    @property
    def category_name(self) -> Optional[str]:
        """Category with blank names treated as missing."""
        if self.category and self.category.strip():
            return self.category.strip()
        return None


class HistoryPoint(BaseModel):
    """One month of aggregated totals derived from a persisted summary row."""

    model_config = {"frozen": True}

    year: int
    month_index: int = Field(ge=0, le=11, description="0-based month")
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")
    created_at_epoch: int = Field(default=0, description="Row timestamp in ms")

    @property
    def sort_key(self) -> int:
        return self.year * 12 + self.month_index

    @property
    def month_key(self) -> str:
        """Deduplication key, e.g. ``2026-03``."""
        return f"{self.year}-{self.month_index + 1:02d}"


class CategoryTotal(BaseModel):
    category: str
    amount: Decimal


class LargestTransaction(BaseModel):
    amount: Decimal
    date: str
    category: str


class TransactionDigest(BaseModel):
    """Compact transaction line kept for prompt construction."""

    date: str
    type: TransactionType
    amount: Decimal
    amount_rupiah: str
    category: str
    note: str = "-"


class MonthlyStats(BaseModel):
    """Read-only statistics of one calendar month of transactions."""

    model_config = {"frozen": True}

    month: str = Field(description="Indonesian month name")
    year: str
    total_income: Decimal = Decimal("0")
    total_expense: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")
    transaction_count: int = 0
    income_count: int = 0
    expense_count: int = 0
    active_days_count: int = 0
    weekly_expense: tuple[Decimal, ...] = (Decimal("0"),) * 5
    first_half_expense: Decimal = Decimal("0")
    second_half_expense: Decimal = Decimal("0")
    expense_to_income_ratio: Optional[Decimal] = None
    saving_rate: Optional[Decimal] = None
    average_income: Decimal = Decimal("0")
    average_expense: Decimal = Decimal("0")
    max_income_tx: Optional[LargestTransaction] = None
    max_expense_tx: Optional[LargestTransaction] = None
    top_expense_categories: tuple[CategoryTotal, ...] = ()
    top_expense_category_share: Optional[Decimal] = None
    days_in_month: int = 30
    current_day: int = 1
    elapsed_days: int = 1
    projected_expense: Decimal = Decimal("0")
    projected_balance: Decimal = Decimal("0")
    recent_expense_trend: TrendDirection = TrendDirection.STABLE
    health_score: int = Field(default=70, ge=0, le=100)
    health_status: HealthStatus = HealthStatus.CAUTION
    transactions_for_ai: tuple[TransactionDigest, ...] = ()


class ForecastRange(BaseModel):
    """Closed interval ``[min, max]`` around a prediction."""

    min: Decimal
    max: Decimal

    @model_validator(mode="after")
    def check_ordered(self) -> "ForecastRange":
        if self.min > self.max:
            raise ValueError("range min must not exceed max")
        return self


class HistoryPointView(BaseModel):
    """History point as returned alongside a forecast."""

    month: str
    year: int
    total_income: Decimal
    total_expense: Decimal
    balance: Decimal


class ForecastResult(BaseModel):
    """Next-month forecast with ranges, confidence and guidance."""

    next_month_label: str
    predicted_income: Decimal
    predicted_expense: Decimal
    predicted_balance: Decimal
    income_range: ForecastRange
    expense_range: ForecastRange
    balance_range: ForecastRange
    confidence: int = Field(ge=0, le=100)
    confidence_label: ConfidenceLabel
    insight: str
    action_items: list[str] = Field(default_factory=list)
    source: ForecastSource = ForecastSource.STATISTICAL
    sample_size: int = Field(default=0, ge=0)
    model: Optional[str] = Field(
        default=None,
        description="LLM model id when the AI overlay was applied",
    )
    history_points: list[HistoryPointView] = Field(default_factory=list)


class KeyNumber(BaseModel):
    label: str
    value: str
    insight: str = ""


class InsightResult(BaseModel):
    """Sanitized insight report.

    ``summary`` and ``trend_analysis`` are never empty; a deterministic
    template is used whenever the language model cannot provide them.
    """

    summary: str = Field(min_length=1)
    recommendations: list[str] = Field(min_length=1, max_length=6)
    trend_analysis: str = Field(min_length=1)
    key_numbers: list[KeyNumber] = Field(default_factory=list)


class GeneratedInsight(InsightResult):
    """Insight report returned by ``generate`` with provenance fields."""

    source: InsightSource = InsightSource.STATISTICAL
    resolved_by: str = Field(description="deep, compact or template")
    sumber_data: DataSource = DataSource.BACKEND
    frontend_payload_status: str = "not_provided"
    frontend_backend_gap: Optional[BackendGap] = None
    data_keuangan_dipakai: Optional[FinancialPayload] = None


class MonthlySummaryRecord(BaseModel):
    """Row persisted by the upsert keyed on (user_id, month, year)."""

    user_id: Any
    month: str
    year: str
    total_income: str = "0"
    total_expense: str = "0"
    balance: str = "0"
    ai_summary: str = ""
    ai_recommendation: str = ""

    @property
    def key(self) -> tuple[str, str, str]:
        return (str(self.user_id), self.month, self.year)
