"""Language-model clients for the insight and forecast calls.

Two providers are supported behind LLMClientProtocol:
- ChatCompletionClient: OpenAI-compatible chat-completions over httpx
  (OpenRouter by default)
- AnthropicClient: the anthropic SDK's Messages API

Clients make exactly one request per ``complete`` call and never retry;
the orchestrator owns the attempt list. Every failure is raised as
ExternalServiceDegradedError.
"""

from typing import Any, Optional

import anthropic
import httpx
import structlog

from kasku_agents.config import LLMConfig, LLMProvider
from kasku_core.exceptions import ConfigurationError, ExternalServiceDegradedError

logger = structlog.get_logger()


def _api_error_message(response: httpx.Response) -> str:
    """Best-effort extraction of ``error.message`` from an error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str):
            return error
    return response.text[:200]


class ChatCompletionClient:
    """
    OpenAI-compatible chat-completions client.

    Sends ``{model, temperature, max_tokens, messages}`` with bearer auth and
    the ``HTTP-Referer``/``X-Title`` attribution headers OpenRouter expects.

    A client created here owns its ``httpx.Client``; close it with ``close()``
    or use the instance as a context manager. An injected ``http_client``
    stays open and belongs to the caller.
    """

    provider = LLMProvider.OPENROUTER.value

    def __init__(
        self,
        api_key: str,
        model: str,
        *,
        base_url: str,
        referer: str = "http://localhost:5001",
        app_title: str = "Budget Tracker Backend",
        http_client: Optional[httpx.Client] = None,
    ):
        if not api_key:
            raise ValueError("api_key is required")

        self.model = model
        self.base_url = base_url
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": referer,
            "X-Title": app_title,
        }
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "ChatCompletionClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        timeout: float,
        temperature: float,
        max_tokens: int,
    ) -> str:
        """
        Request one completion and return its text.

        Raises:
            ExternalServiceDegradedError: On timeout, transport error,
                non-2xx status, unreadable body or empty content.
        """
        payload = {
            "model": self.model,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        }

        try:
            response = self._client.post(
                self.base_url,
                json=payload,
                headers=self._headers,
                timeout=timeout,
            )
        except httpx.TimeoutException as e:
            raise ExternalServiceDegradedError(
                f"LLM request timed out after {timeout}s",
                provider=self.provider,
                api_error=str(e) or type(e).__name__,
            ) from e
        except httpx.HTTPError as e:
            raise ExternalServiceDegradedError(
                "LLM transport error",
                provider=self.provider,
                api_error=str(e) or type(e).__name__,
            ) from e

        if not response.is_success:
            raise ExternalServiceDegradedError(
                f"LLM request failed with status {response.status_code}",
                provider=self.provider,
                status_code=response.status_code,
                api_error=_api_error_message(response),
            )

        try:
            body = response.json()
        except ValueError as e:
            raise ExternalServiceDegradedError(
                "LLM response body is not JSON",
                provider=self.provider,
                status_code=response.status_code,
            ) from e

        content = _first_choice_content(body)
        if not content:
            raise ExternalServiceDegradedError(
                "LLM response has no content",
                provider=self.provider,
                status_code=response.status_code,
            )
        return content


def _first_choice_content(body: Any) -> Optional[str]:
    """``choices[0].message.content`` when it is a non-blank string."""
    if not isinstance(body, dict):
        return None
    choices = body.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None
    message = choices[0].get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    if isinstance(content, str) and content.strip():
        return content
    return None


class AnthropicClient:
    """Messages API client with the same contract as ChatCompletionClient."""

    provider = LLMProvider.ANTHROPIC.value

    def __init__(self, api_key: str, model: str, *, client: Optional[Any] = None):
        if not api_key:
            raise ValueError("api_key is required")
        self.model = model
        # Retries are owned by the orchestrator's attempt list
        self._client = client or anthropic.Anthropic(api_key=api_key, max_retries=0)

    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        timeout: float,
        temperature: float,
        max_tokens: int,
    ) -> str:
        try:
            response = self._client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=temperature,
                system=system_prompt,
                messages=[{"role": "user", "content": user_prompt}],
                timeout=timeout,
            )
        except anthropic.APITimeoutError as e:
            raise ExternalServiceDegradedError(
                f"LLM request timed out after {timeout}s",
                provider=self.provider,
                api_error=str(e),
            ) from e
        except anthropic.APIStatusError as e:
            raise ExternalServiceDegradedError(
                f"LLM request failed with status {e.status_code}",
                provider=self.provider,
                status_code=e.status_code,
                api_error=str(e),
            ) from e
        except anthropic.APIError as e:
            raise ExternalServiceDegradedError(
                "LLM transport error",
                provider=self.provider,
                api_error=str(e),
            ) from e

        text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
        if not text.strip():
            raise ExternalServiceDegradedError(
                "LLM response has no content",
                provider=self.provider,
            )
        return text


def create_llm_client(config: LLMConfig, **kwargs: Any):
    """
    Factory function to create the configured LLM client.

    Returns None when no API key is configured. This allows graceful
    degradation to the statistical and template tiers.
    The caller owns the returned client and closes it when done.

    Raises:
        ConfigurationError: If the provider is not supported.
    """
    if not config.is_configured:
        logger.info("llm_client_disabled", reason="no_api_key", provider=config.provider.value)
        return None

    if config.provider == LLMProvider.OPENROUTER:
        return ChatCompletionClient(
            config.api_key,
            config.model,
            base_url=config.base_url,
            referer=config.referer,
            app_title=config.app_title,
            http_client=kwargs.get("http_client"),
        )
    if config.provider == LLMProvider.ANTHROPIC:
        return AnthropicClient(config.api_key, config.model, client=kwargs.get("client"))

    raise ConfigurationError(
        "Unsupported LLM provider",
        config_key="KASKU_LLM_PROVIDER",
        expected="openrouter or anthropic",
        actual=config.provider,
    )


__all__ = [
    "ChatCompletionClient",
    "AnthropicClient",
    "create_llm_client",
]
