"""Collaborator interfaces for the orchestrator.

Available Interfaces:
    LLMClientProtocol: Chat-completion client contract
    SummaryStoreProtocol: Transaction and monthly-summary persistence
    AttemptResult: Record of one LLM attempt
    AttemptStatus: Enum of attempt outcomes
"""

from kasku_agents.interfaces.base import (
    # Enumerations
    AttemptStatus,
    # Result models
    AttemptResult,
    # Protocols
    LLMClientProtocol,
    SummaryStoreProtocol,
)

__all__ = [
    "AttemptStatus",
    "AttemptResult",
    "LLMClientProtocol",
    "SummaryStoreProtocol",
]
