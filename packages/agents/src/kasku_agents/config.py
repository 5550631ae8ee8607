"""Configuration system for Kasku Agents.

This module provides Pydantic Settings-based configuration with environment
variable support and sensible defaults for the insight and forecast engine.
Nothing is read at import time: callers build a KaskuConfig and pass it to
the orchestrator explicitly.

Usage:
    from kasku_agents.config import KaskuConfig

    # Load from environment variables and .env file
    config = KaskuConfig()

    # Access LLM settings
    print(config.llm.model)
    print(config.insight.deep_timeout)
"""

from enum import Enum
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

OPENROUTER_CHAT_URL = "https://openrouter.ai/api/v1/chat/completions"
DEFAULT_OPENROUTER_MODEL = "meta-llama/llama-3.3-8b-instruct:free"


class LLMProvider(str, Enum):
    """Supported LLM providers."""

    OPENROUTER = "openrouter"
    ANTHROPIC = "anthropic"


class LLMConfig(BaseSettings):
    """LLM connection settings.

    Supports environment variables with the prefix KASKU_LLM_.

    Environment Variables:
        KASKU_LLM_PROVIDER: LLM provider (openrouter, anthropic)
        KASKU_LLM_MODEL: Model identifier
        KASKU_LLM_API_KEY: API key; when unset every call degrades to templates
        KASKU_LLM_BASE_URL: Chat-completions endpoint (openrouter only)
        KASKU_LLM_REFERER: Value of the HTTP-Referer header
        KASKU_LLM_APP_TITLE: Value of the X-Title header
    """

    model_config = SettingsConfigDict(
        env_prefix="KASKU_LLM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    provider: LLMProvider = Field(
        default=LLMProvider.OPENROUTER,
        description="LLM provider to use",
    )
    model: str = Field(
        default=DEFAULT_OPENROUTER_MODEL,
        description="Model identifier for the LLM",
    )
    api_key: Optional[str] = Field(
        default=None,
        description="API key for the LLM provider",
    )
    base_url: str = Field(
        default=OPENROUTER_CHAT_URL,
        description="Chat-completions endpoint URL",
    )
    referer: str = Field(
        default="http://localhost:5001",
        description="Sent as the HTTP-Referer header",
    )
    app_title: str = Field(
        default="Budget Tracker Backend",
        description="Sent as the X-Title header",
    )

    @field_validator("model")
    @classmethod
    def validate_model(cls, v: str) -> str:
        """Ensure model name is not empty."""
        if not v or not v.strip():
            raise ValueError("Model name cannot be empty")
        return v.strip()

    @field_validator("api_key")
    @classmethod
    def blank_key_is_missing(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()

    @property
    def is_configured(self) -> bool:
        """True when an API key is available."""
        return self.api_key is not None


class InsightConfig(BaseSettings):
    """Timeouts and sampling settings of the insight and forecast calls.

    Environment Variables:
        KASKU_INSIGHT_DEEP_TIMEOUT: First (deep prompt) attempt timeout, seconds
        KASKU_INSIGHT_COMPACT_TIMEOUT: Second (compact prompt) attempt timeout
        KASKU_INSIGHT_FORECAST_TIMEOUT: Forecast overlay call timeout
        KASKU_INSIGHT_INSIGHT_TEMPERATURE / KASKU_INSIGHT_INSIGHT_MAX_TOKENS
        KASKU_INSIGHT_FORECAST_TEMPERATURE / KASKU_INSIGHT_FORECAST_MAX_TOKENS
        KASKU_INSIGHT_ENABLE_AI_INSIGHT: Allow LLM calls for insights
        KASKU_INSIGHT_ENABLE_AI_FORECAST: Allow the LLM forecast overlay
    """

    model_config = SettingsConfigDict(
        env_prefix="KASKU_INSIGHT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    deep_timeout: float = Field(default=45.0, gt=0, description="Deep attempt timeout (s)")
    compact_timeout: float = Field(default=30.0, gt=0, description="Compact attempt timeout (s)")
    forecast_timeout: float = Field(default=30.0, gt=0, description="Forecast call timeout (s)")
    insight_temperature: float = Field(default=0.15, ge=0.0, le=2.0)
    insight_max_tokens: int = Field(default=1400, gt=0, le=200000)
    forecast_temperature: float = Field(default=0.2, ge=0.0, le=2.0)
    forecast_max_tokens: int = Field(default=900, gt=0, le=200000)
    enable_ai_insight: bool = Field(
        default=True,
        description="Try the LLM before the template insight",
    )
    enable_ai_forecast: bool = Field(
        default=True,
        description="Try the LLM overlay on the statistical forecast",
    )


class KaskuConfig(BaseSettings):
    """Root configuration for Kasku Agents.

    Environment Variables:
        KASKU_ENV: Environment name (development, staging, production, test)
        KASKU_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)

    Example:
        config = KaskuConfig(
            llm=LLMConfig(api_key="sk-or-..."),
            insight=InsightConfig(enable_ai_forecast=False),
        )
    """

    model_config = SettingsConfigDict(
        env_prefix="KASKU_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    env: str = Field(
        default="development",
        description="Environment name (development, staging, production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )

    llm: LLMConfig = Field(default_factory=LLMConfig)
    insight: InsightConfig = Field(default_factory=InsightConfig)

    @field_validator("env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment name."""
        valid_envs = {"development", "staging", "production", "test"}
        v_lower = v.lower().strip()
        if v_lower not in valid_envs:
            raise ValueError(f"Invalid environment: {v}. Must be one of: {valid_envs}")
        return v_lower

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper().strip()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of: {valid_levels}")
        return v_upper

    @property
    def is_production(self) -> bool:
        return self.env == "production"
