"""Shared fixtures for kasku-agents tests."""

import os
from datetime import datetime

import pytest

from kasku_agents.config import InsightConfig, KaskuConfig, LLMConfig
from kasku_agents.store import InMemorySummaryStore
from kasku_core.models import Transaction


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Keep KASKU_* variables and any local .env out of the tests."""
    for name in list(os.environ):
        if name.startswith("KASKU_"):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)


class FakeLLMClient:
    """Scripted LLMClientProtocol implementation.

    Each ``complete`` call pops the next reply; an exception instance in the
    script is raised instead of returned.
    """

    def __init__(self, *replies, model="fake/model"):
        self.model = model
        self.replies = list(replies)
        self.calls = []

    def complete(self, system_prompt, user_prompt, *, timeout, temperature, max_tokens):
        self.calls.append(
            {
                "system_prompt": system_prompt,
                "user_prompt": user_prompt,
                "timeout": timeout,
                "temperature": temperature,
                "max_tokens": max_tokens,
            }
        )
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def now():
    return datetime(2026, 10, 20, 12, 0, 0)


@pytest.fixture
def config():
    return KaskuConfig(llm=LLMConfig(api_key="test-key"), insight=InsightConfig())


@pytest.fixture
def october_transactions():
    return [
        Transaction(type="income", amount="10000000", date="2026-10-01T08:00:00", category="Gaji"),
        Transaction(type="expense", amount="2000000", date="2026-10-03T12:00:00", category="Makan"),
        Transaction(type="expense", amount="1000000", date="2026-10-10T09:00:00", category="Transport"),
        Transaction(type="expense", amount="3000000", date="2026-10-17T19:00:00", category="Makan"),
    ]


@pytest.fixture
def store(october_transactions):
    previous_month = Transaction(type="expense", amount="999", date="2026-09-30T23:00:00")
    return InMemorySummaryStore(transactions={7: [*october_transactions, previous_month]})


@pytest.fixture
def empty_store():
    return InMemorySummaryStore()


@pytest.fixture
def fake_llm():
    """Factory for scripted LLM clients."""
    return FakeLLMClient
