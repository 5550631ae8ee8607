"""Kasku Agents - LLM clients, persistence seams and insight orchestration."""

from kasku_agents.config import (
    InsightConfig,
    KaskuConfig,
    LLMConfig,
    LLMProvider,
)
from kasku_agents.llm_client import create_llm_client
from kasku_agents.orchestrator import InsightOrchestrator, InsightStage
from kasku_agents.store import InMemorySummaryStore

__version__ = "0.1.0"

__all__ = [
    "InsightConfig",
    "KaskuConfig",
    "LLMConfig",
    "LLMProvider",
    "create_llm_client",
    "InsightOrchestrator",
    "InsightStage",
    "InMemorySummaryStore",
]
