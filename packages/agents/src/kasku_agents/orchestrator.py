"""Insight and forecast orchestration over the degradation chain.

The orchestrator owns every decision about which tier answers a request:

    generate:      LLM (deep prompt) -> LLM (compact prompt) -> template
    get_forecast:  statistical baseline -> optional LLM overlay

LLM failures never reach the caller. Missing data raises
InsufficientDataError and store failures raise PersistenceError.

Example:
    store = InMemorySummaryStore()
    config = KaskuConfig()
    orchestrator = InsightOrchestrator(
        store=store,
        llm_client=create_llm_client(config.llm),
        config=config,
    )
    insight = orchestrator.generate(user_id=7, request_body={"data_keuangan": {...}})
"""

import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

import structlog

from kasku_agents.config import KaskuConfig
from kasku_agents.interfaces import (
    AttemptResult,
    AttemptStatus,
    LLMClientProtocol,
    SummaryStoreProtocol,
)
from kasku_core.aggregator import aggregate_monthly_stats, month_window
from kasku_core.exceptions import (
    ExternalServiceDegradedError,
    InsufficientDataError,
    PersistenceError,
    ValidationError,
)
from kasku_core.forecaster import build_statistical_forecast
from kasku_core.history import normalize_summary_history
from kasku_core.insights import (
    append_key_numbers_to_summary,
    build_fallback_insight,
)
from kasku_core.models import (
    DataSource,
    FinancialPayload,
    ForecastResult,
    GeneratedInsight,
    InsightResult,
    InsightSource,
    MonthlyStats,
    MonthlySummaryRecord,
    PayloadEvaluation,
)
from kasku_core.normalizer import (
    normalize_forecast_response,
    normalize_insight_response,
)
from kasku_core.payload import (
    evaluate_financial_payload,
    normalize_financial_payload,
)
from kasku_core.prompts import (
    FORECAST_SYSTEM_PROMPT,
    INSIGHT_SYSTEM_PROMPT,
    build_compact_insight_prompt,
    build_deep_insight_prompt,
    build_forecast_prompt,
)
from kasku_core.results import Invalid, ParseResult
from kasku_core.sanitizer import parse_llm_json

logger = structlog.get_logger()

NO_TRANSACTIONS_MESSAGE = "Belum ada transaksi bulan ini untuk dibuatkan ringkasan."
NO_HISTORY_MESSAGE = "Belum ada data summary bulanan untuk membuat forecast."


class InsightStage(str, Enum):
    """Where a ``generate`` request currently is in the degradation chain."""

    NO_DATA = "no_data"
    BASELINE_ONLY = "baseline_only"
    AI_ATTEMPT_1 = "ai_attempt_1"
    AI_ATTEMPT_2 = "ai_attempt_2"
    RESOLVED = "resolved"


@dataclass(frozen=True)
class InsightAttempt:
    """One entry of the ordered attempt list."""

    name: str
    stage: InsightStage
    build_prompt: Callable[[MonthlyStats, Optional[FinancialPayload]], str]
    timeout: float


def _numeric_string(value: Decimal) -> str:
    """Plain numeric string for persistence, e.g. ``1250000`` or ``-12.5``."""
    if value == value.to_integral_value():
        return str(int(value))
    return format(value.normalize(), "f")


class InsightOrchestrator:
    """
    Coordinate aggregation, LLM attempts, fallbacks and persistence.

    Args:
        store: Transaction and monthly-summary persistence.
        llm_client: Configured client, or None to run without an LLM.
        config: Engine settings; timeouts and sampling come from here.
        clock: Returns the current moment; defines "this month".
    """

    def __init__(
        self,
        store: SummaryStoreProtocol,
        llm_client: Optional[LLMClientProtocol],
        config: KaskuConfig,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.llm_client = llm_client
        self.config = config
        self.clock = clock

    @property
    def insight_attempts(self) -> list[InsightAttempt]:
        """Ordered LLM attempts tried before the template."""
        return [
            InsightAttempt(
                name="deep",
                stage=InsightStage.AI_ATTEMPT_1,
                build_prompt=build_deep_insight_prompt,
                timeout=self.config.insight.deep_timeout,
            ),
            InsightAttempt(
                name="compact",
                stage=InsightStage.AI_ATTEMPT_2,
                build_prompt=build_compact_insight_prompt,
                timeout=self.config.insight.compact_timeout,
            ),
        ]

    # ------------------------------------------------------------------
    # Store access
    # ------------------------------------------------------------------

    def _load_transactions(self, user_id: Any, now: datetime):
        start, end = month_window(now)
        try:
            return list(self.store.find_transactions(user_id, start, end))
        except Exception as e:
            raise PersistenceError(
                f"Failed to read transactions: {e}",
                operation="find_transactions",
            ) from e

    def _load_history(self, user_id: Any):
        try:
            return list(self.store.find_monthly_history(user_id))
        except Exception as e:
            raise PersistenceError(
                f"Failed to read monthly history: {e}",
                operation="find_monthly_history",
            ) from e

    def _save_summary(self, record: MonthlySummaryRecord) -> None:
        try:
            self.store.upsert_monthly_summary(record)
        except Exception as e:
            raise PersistenceError(
                f"Failed to save monthly summary: {e}",
                operation="upsert_monthly_summary",
            ) from e

    # ------------------------------------------------------------------
    # Insight
    # ------------------------------------------------------------------

    def _evaluate_payload(
        self, stats: MonthlyStats, request_body: Optional[Mapping[str, Any]], now: datetime
    ) -> PayloadEvaluation:
        if request_body is None:
            raw = None
        elif isinstance(request_body, Mapping):
            raw = request_body.get("data_keuangan")
        else:
            raise ValidationError(
                "Request body must be an object",
                field="request_body",
                constraint="mapping",
            )
        return evaluate_financial_payload(stats, normalize_financial_payload(raw), now)

    @staticmethod
    def _interpret(
        content: str, normalize: Callable[[Any], ParseResult[Any]]
    ) -> ParseResult[Any]:
        """Parse and normalize a reply; unexpected value errors become Invalid."""
        try:
            outcome = parse_llm_json(content)
            if isinstance(outcome, Invalid):
                return outcome
            return normalize(outcome.value)
        except (ValueError, ArithmeticError) as e:
            return Invalid(f"reply could not be normalized: {type(e).__name__}")

    def _try_insight(
        self,
        attempt: InsightAttempt,
        stats: MonthlyStats,
        payload: Optional[FinancialPayload],
    ) -> tuple[AttemptResult, Optional[InsightResult]]:
        started = time.perf_counter()

        def _elapsed() -> float:
            return (time.perf_counter() - started) * 1000

        try:
            content = self.llm_client.complete(
                INSIGHT_SYSTEM_PROMPT,
                attempt.build_prompt(stats, payload),
                timeout=attempt.timeout,
                temperature=self.config.insight.insight_temperature,
                max_tokens=self.config.insight.insight_max_tokens,
            )
        except ExternalServiceDegradedError as e:
            logger.warning(
                "llm_attempt_failed",
                attempt=attempt.name,
                error=e.message,
                status_code=e.status_code,
            )
            return AttemptResult(
                name=attempt.name,
                status=AttemptStatus.DEGRADED,
                reason=e.message,
                duration_ms=_elapsed(),
            ), None

        outcome = self._interpret(content, normalize_insight_response)
        if isinstance(outcome, Invalid):
            logger.warning("llm_reply_rejected", attempt=attempt.name, reason=outcome.reason)
            return AttemptResult(
                name=attempt.name,
                status=AttemptStatus.INVALID,
                reason=outcome.reason,
                duration_ms=_elapsed(),
            ), None

        return AttemptResult(
            name=attempt.name,
            status=AttemptStatus.SUCCESS,
            duration_ms=_elapsed(),
        ), outcome.value

    def generate(
        self,
        user_id: Any,
        request_body: Optional[Mapping[str, Any]] = None,
    ) -> GeneratedInsight:
        """
        Generate, persist and return this month's insight report.

        Args:
            user_id: The user to summarize.
            request_body: Optional request document; its ``data_keuangan``
                entry is the client snapshot.

        Returns:
            GeneratedInsight with provenance fields.

        Raises:
            InsufficientDataError: No transactions and no usable snapshot.
            ValidationError: ``request_body`` is not a mapping.
            PersistenceError: The store failed.
        """
        now = self.clock()
        log = logger.bind(user_id=user_id)

        stats = aggregate_monthly_stats(self._load_transactions(user_id, now), now)
        evaluation = self._evaluate_payload(stats, request_body, now)

        payload = None
        if evaluation.usable is not None:
            payload = evaluation.usable.model_copy(
                update={"payload_status": evaluation.status, "backend_gap": evaluation.gap}
            )

        if stats.transaction_count == 0 and payload is None:
            log.info("insight_stage", stage=InsightStage.NO_DATA.value, payload=evaluation.status)
            raise InsufficientDataError(
                NO_TRANSACTIONS_MESSAGE, user_id=user_id, operation="generate"
            )

        attempts: list[AttemptResult] = []
        insight: Optional[InsightResult] = None
        resolved_by = "template"

        if self.llm_client is None or not self.config.insight.enable_ai_insight:
            log.info("insight_stage", stage=InsightStage.BASELINE_ONLY.value)
            attempts.append(AttemptResult(name="llm", status=AttemptStatus.SKIPPED))
        else:
            for attempt in self.insight_attempts:
                log.info("insight_stage", stage=attempt.stage.value, timeout=attempt.timeout)
                result, insight = self._try_insight(attempt, stats, payload)
                attempts.append(result)
                if insight is not None:
                    resolved_by = attempt.name
                    break

        if insight is None:
            insight = build_fallback_insight(stats)

        summary = append_key_numbers_to_summary(insight.summary, insight.key_numbers)
        ai_recommendation = "\n".join(
            item for item in [*insight.recommendations, insight.trend_analysis] if item
        )

        frontend_primary = stats.transaction_count == 0 and evaluation.has_summary_numbers
        if frontend_primary:
            data_source = DataSource.FRONTEND
            totals = payload.summary.income, payload.summary.expense, payload.summary.balance
        else:
            data_source = DataSource.FRONTEND_AND_BACKEND if payload else DataSource.BACKEND
            totals = stats.total_income, stats.total_expense, stats.balance

        self._save_summary(
            MonthlySummaryRecord(
                user_id=user_id,
                month=stats.month,
                year=stats.year,
                total_income=_numeric_string(totals[0]),
                total_expense=_numeric_string(totals[1]),
                balance=_numeric_string(totals[2]),
                ai_summary=summary,
                ai_recommendation=ai_recommendation,
            )
        )

        log.info(
            "insight_resolved",
            stage=InsightStage.RESOLVED.value,
            resolved_by=resolved_by,
            sumber_data=data_source.value,
            payload=evaluation.status,
            attempts=[(a.name, a.status.value) for a in attempts],
        )

        return GeneratedInsight(
            summary=summary,
            recommendations=insight.recommendations,
            trend_analysis=insight.trend_analysis,
            key_numbers=insight.key_numbers,
            source=InsightSource.STATISTICAL if resolved_by == "template" else InsightSource.AI,
            resolved_by=resolved_by,
            sumber_data=data_source,
            frontend_payload_status=evaluation.status,
            frontend_backend_gap=evaluation.gap,
            data_keuangan_dipakai=payload,
        )

    # ------------------------------------------------------------------
    # Forecast
    # ------------------------------------------------------------------

    def _try_forecast_overlay(
        self, points: Sequence[Any], baseline: ForecastResult
    ) -> Optional[ForecastResult]:
        try:
            content = self.llm_client.complete(
                FORECAST_SYSTEM_PROMPT,
                build_forecast_prompt(points, baseline),
                timeout=self.config.insight.forecast_timeout,
                temperature=self.config.insight.forecast_temperature,
                max_tokens=self.config.insight.forecast_max_tokens,
            )
        except ExternalServiceDegradedError as e:
            logger.warning(
                "forecast_overlay_failed",
                error=e.message,
                status_code=e.status_code,
            )
            return None

        outcome = self._interpret(
            content,
            lambda payload: normalize_forecast_response(
                payload, baseline, model=self.llm_client.model
            ),
        )
        if isinstance(outcome, Invalid):
            logger.warning("forecast_overlay_rejected", reason=outcome.reason)
            return None
        return outcome.value

    def get_forecast(self, user_id: Any) -> ForecastResult:
        """
        Forecast next month from the user's monthly summary history.

        Raises:
            InsufficientDataError: No parsable summary history.
            PersistenceError: The store failed.
        """
        points = normalize_summary_history(self._load_history(user_id))
        if not points:
            raise InsufficientDataError(NO_HISTORY_MESSAGE, user_id=user_id, operation="forecast")

        baseline = build_statistical_forecast(points)

        forecast = None
        if self.llm_client is not None and self.config.insight.enable_ai_forecast:
            forecast = self._try_forecast_overlay(points, baseline)

        result = forecast or baseline
        logger.info(
            "forecast_resolved",
            user_id=user_id,
            source=result.source.value,
            confidence=result.confidence,
            sample_size=result.sample_size,
        )
        return result


__all__ = [
    "InsightStage",
    "InsightAttempt",
    "InsightOrchestrator",
]
