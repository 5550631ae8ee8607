"""Collaborator protocols and attempt results for the orchestrator.

The orchestrator never talks to a database or an HTTP API directly. It is
handed objects satisfying these protocols, so any class with matching
method signatures is compatible, with no inheritance required.

Example Usage:
    ```python
    class PostgresSummaryStore:
        def find_monthly_history(self, user_id): ...
        def find_transactions(self, user_id, start, end): ...
        def upsert_monthly_summary(self, record): ...

    # PostgresSummaryStore satisfies SummaryStoreProtocol structurally
    ```
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, Field

from kasku_core.models import MonthlySummaryRecord, Transaction


# =============================================================================
# ENUMERATIONS
# =============================================================================

class AttemptStatus(str, Enum):
    """Outcome of one LLM attempt."""

    SUCCESS = "success"
    """Reply parsed and validated."""

    DEGRADED = "degraded"
    """The provider failed: timeout, transport error, non-2xx or empty reply."""

    INVALID = "invalid"
    """The provider answered but the reply did not validate."""

    SKIPPED = "skipped"
    """No client is configured or AI is disabled."""


# =============================================================================
# RESULT MODELS
# =============================================================================

class AttemptResult(BaseModel):
    """Record of one tier of the degradation chain.

    Attributes:
        name: Attempt name (deep, compact, forecast).
        status: How the attempt ended.
        reason: Failure reason for non-successful attempts.
        duration_ms: Wall time spent in the attempt.
    """

    name: str
    status: AttemptStatus
    reason: Optional[str] = None
    duration_ms: Optional[float] = Field(default=None, ge=0)

    @property
    def is_success(self) -> bool:
        return self.status == AttemptStatus.SUCCESS


# =============================================================================
# COLLABORATOR PROTOCOLS
# =============================================================================

@runtime_checkable
class LLMClientProtocol(Protocol):
    """A chat-style language-model client.

    Implementations return the raw text of the first completion and raise
    ``ExternalServiceDegradedError`` on timeout, transport error, non-2xx
    status or an empty reply. They never retry.
    """

    model: str

    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        timeout: float,
        temperature: float,
        max_tokens: int,
    ) -> str:
        ...


@runtime_checkable
class SummaryStoreProtocol(Protocol):
    """Persistence boundary for transactions and monthly summaries.

    ``find_monthly_history`` returns rows in creation order; each row is a
    mapping or object with ``month``, ``year``, ``total_income``,
    ``total_expense``, ``balance`` and ``created_at``/``updated_at``.
    """

    def find_monthly_history(self, user_id: Any) -> Sequence[Any]:
        ...

    def find_transactions(
        self, user_id: Any, start: datetime, end: datetime
    ) -> Sequence[Transaction]:
        ...

    def upsert_monthly_summary(self, record: MonthlySummaryRecord) -> Any:
        ...
