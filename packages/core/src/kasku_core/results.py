"""Tagged results for parse and normalization stages.

Untrusted inputs (stored summary rows, LLM responses, client payloads) are
parsed stage by stage. Each stage returns either ``Parsed(value)`` or
``Invalid(reason)`` so that fallback decisions branch on an explicit tag
instead of on ``None`` checks.

Example:
    outcome = parse_llm_json(content)
    if isinstance(outcome, Invalid):
        logger.info("llm_content_rejected", reason=outcome.reason)
        return outcome
    payload = outcome.value
"""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Parsed(Generic[T]):
    """A stage produced a usable value."""

    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Invalid:
    """A stage rejected its input."""

    reason: str

    @property
    def ok(self) -> bool:
        return False


ParseResult = Union[Parsed[T], Invalid]


__all__ = ["Parsed", "Invalid", "ParseResult"]
