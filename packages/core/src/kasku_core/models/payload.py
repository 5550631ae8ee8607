"""Client-supplied financial snapshot models.

The web client may send a ``data_keuangan`` document with its own view of
the month: summary totals, chart points, recent transactions and
daily/weekly/monthly aggregates. These models hold the defensively coerced
form of that document (see ``kasku_core.payload`` for the coercion rules).
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

PAYLOAD_NOT_PROVIDED = "not_provided"
PAYLOAD_EMPTY = "empty_payload"
PAYLOAD_ACCEPTED = "accepted"
PAYLOAD_STALE_PREFIX = "stale_period_"


class PayloadPeriod(BaseModel):
    """Reference period of the client snapshot."""

    reference_month: str = Field(default="", description="Month as YYYY-MM")
    start_date: str = ""
    end_date: str = ""


class PayloadSummary(BaseModel):
    """Headline totals computed by the client."""

    balance: Decimal = Decimal("0")
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")
    saving: Decimal = Decimal("0")
    remaining_money: Decimal = Decimal("0")
    expense_ratio_percent: Decimal = Decimal("0")

    @property
    def has_numbers(self) -> bool:
        """True when any headline figure is non-zero."""
        return self.income > 0 or self.expense > 0 or self.balance != 0


class ChartPoint(BaseModel):
    date: str = "-"
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")
    net: Decimal = Decimal("0")


class PayloadChart(BaseModel):
    points: list[ChartPoint] = Field(default_factory=list)
    total_points: Decimal = Decimal("0")
    total_income: Decimal = Decimal("0")
    total_expense: Decimal = Decimal("0")
    net_flow: Decimal = Decimal("0")
    peak_income: Decimal = Decimal("0")
    peak_expense: Decimal = Decimal("0")


class PayloadTransactionItem(BaseModel):
    id: Decimal = Decimal("0")
    date: str = "-"
    category: str = "Lainnya"
    type: str = "expense"
    amount: Decimal = Decimal("0")
    note: str = "-"


class PayloadTransactions(BaseModel):
    items: list[PayloadTransactionItem] = Field(default_factory=list)
    total_count: Decimal = Decimal("0")
    income_count: Decimal = Decimal("0")
    expense_count: Decimal = Decimal("0")
    total_amount: Decimal = Decimal("0")
    average_amount: Decimal = Decimal("0")


class PayloadInsights(BaseModel):
    recommended_saving: Decimal = Decimal("0")
    saving_gap: Decimal = Decimal("0")
    saving_status: str = "warning"


class DailyPoint(BaseModel):
    date: str = "-"
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")
    net: Decimal = Decimal("0")
    transaction_count: Decimal = Decimal("0")


class WeeklyPoint(BaseModel):
    week_label: str = "-"
    start_date: str = "-"
    end_date: str = "-"
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")
    net: Decimal = Decimal("0")
    transaction_count: Decimal = Decimal("0")


class MonthlyPoint(BaseModel):
    month: str = "-"
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")
    net: Decimal = Decimal("0")
    transaction_count: Decimal = Decimal("0")


class PayloadSeries(BaseModel):
    """Totals shared by the daily, weekly and monthly blocks."""

    total_points: Decimal = Decimal("0")
    total_income: Decimal = Decimal("0")
    total_expense: Decimal = Decimal("0")
    net_flow: Decimal = Decimal("0")


class PayloadDaily(PayloadSeries):
    points: list[DailyPoint] = Field(default_factory=list)


class PayloadWeekly(PayloadSeries):
    points: list[WeeklyPoint] = Field(default_factory=list)


class PayloadMonthly(PayloadSeries):
    points: list[MonthlyPoint] = Field(default_factory=list)


class BackendGap(BaseModel):
    """Difference between client totals and backend-computed totals.

    Percentages are relative to the backend figure and are 0 when the
    backend figure is 0.
    """

    income_gap: Decimal
    expense_gap: Decimal
    balance_gap: Decimal
    income_gap_percent: Decimal
    expense_gap_percent: Decimal


class FinancialPayload(BaseModel):
    """Normalized client financial snapshot.

    ``payload_status`` and ``backend_gap`` are filled in by the orchestrator
    once the payload has been evaluated, so that prompt construction can
    mention them.
    """

    generated_at: str = "-"
    source: str = "-"
    period: PayloadPeriod = Field(default_factory=PayloadPeriod)
    summary: PayloadSummary = Field(default_factory=PayloadSummary)
    chart: PayloadChart = Field(default_factory=PayloadChart)
    transactions: PayloadTransactions = Field(default_factory=PayloadTransactions)
    insights: PayloadInsights = Field(default_factory=PayloadInsights)
    daily: PayloadDaily = Field(default_factory=PayloadDaily)
    weekly: PayloadWeekly = Field(default_factory=PayloadWeekly)
    monthly: PayloadMonthly = Field(default_factory=PayloadMonthly)

    payload_status: Optional[str] = None
    backend_gap: Optional[BackendGap] = None

    @property
    def has_activity(self) -> bool:
        """True when the client reports any transactions or daily/weekly points."""
        return (
            self.transactions.total_count > 0
            or self.daily.total_points > 0
            or self.weekly.total_points > 0
        )


class PayloadEvaluation(BaseModel):
    """Outcome of checking a client payload for freshness and content."""

    status: str
    usable: Optional[FinancialPayload] = None
    gap: Optional[BackendGap] = None
    has_summary_numbers: bool = False

    @property
    def accepted(self) -> bool:
        return self.usable is not None


__all__ = [
    "PAYLOAD_NOT_PROVIDED",
    "PAYLOAD_EMPTY",
    "PAYLOAD_ACCEPTED",
    "PAYLOAD_STALE_PREFIX",
    "PayloadPeriod",
    "PayloadSummary",
    "ChartPoint",
    "PayloadChart",
    "PayloadTransactionItem",
    "PayloadTransactions",
    "PayloadInsights",
    "DailyPoint",
    "WeeklyPoint",
    "MonthlyPoint",
    "PayloadSeries",
    "PayloadDaily",
    "PayloadWeekly",
    "PayloadMonthly",
    "BackendGap",
    "FinancialPayload",
    "PayloadEvaluation",
]
