"""Custom exceptions for the Kasku application.

This module provides a hierarchy of exception classes for consistent error
handling across the forecasting and insight engine. All exceptions inherit
from KaskuError, making it easy to catch all application-specific errors.

Only data absence and store failures are meant to reach the caller. LLM
failures are raised as ExternalServiceDegradedError by the clients and
absorbed by the orchestrator, which moves on to the next degradation tier.

Example:
    try:
        insight = orchestrator.generate(user_id)
    except InsufficientDataError as e:
        return {"success": False, "message": e.message}, 400
    except PersistenceError:
        raise
"""

from typing import Any, Optional


class KaskuError(Exception):
    """Base exception for all Kasku application errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context.
        recoverable: Whether the error is potentially recoverable.

    Example:
        >>> raise KaskuError("Something went wrong", details={"code": 500})
        KaskuError: Something went wrong
    """

    def __init__(
        self,
        message: str,
        *,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        """Initialize KaskuError.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional context about the error.
            recoverable: Whether the error is potentially recoverable through
                retry or alternative approaches. Defaults to False.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        """Return string representation of the error."""
        return self.message

    def __repr__(self) -> str:
        """Return detailed representation of the error."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"recoverable={self.recoverable!r})"
        )


class InsufficientDataError(KaskuError):
    """Error raised when there is not enough data to forecast or summarize.

    Raised when a user has no usable monthly summary history (forecast) or
    no transactions this month and no usable client payload (insight).
    Surfaced to the caller as a 400-equivalent and never retried.

    Attributes:
        user_id: The user whose data was insufficient.
        operation: The operation that needed the data ("forecast", "generate").

    Example:
        >>> raise InsufficientDataError(
        ...     "Belum ada transaksi bulan ini untuk dibuatkan ringkasan.",
        ...     user_id=42,
        ...     operation="generate",
        ... )
        InsufficientDataError: Belum ada transaksi bulan ini untuk dibuatkan ringkasan.
    """

    def __init__(
        self,
        message: str,
        *,
        user_id: Optional[Any] = None,
        operation: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        """Initialize InsufficientDataError.

        Args:
            message: Human-readable error description.
            user_id: Identifier of the user whose data was insufficient.
            operation: The operation that required the missing data.
            details: Optional dictionary with additional context.
            recoverable: Defaults to False; the user must record data first.
        """
        super().__init__(message, details=details, recoverable=recoverable)
        self.user_id = user_id
        self.operation = operation

        if user_id is not None:
            self.details["user_id"] = user_id
        if operation:
            self.details["operation"] = operation


class ValidationError(KaskuError):
    """Error raised when a request has a malformed shape.

    Attributes:
        field: The field that failed validation.
        value: The invalid value (if safe to include).
        constraint: The validation constraint that was violated.

    Example:
        >>> raise ValidationError(
        ...     "Request body must be an object",
        ...     field="request_body",
        ...     constraint="mapping",
        ... )
        ValidationError: Request body must be an object
    """

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        constraint: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = True,
    ) -> None:
        """Initialize ValidationError.

        Args:
            message: Human-readable error description.
            field: The name of the field that failed validation.
            value: The invalid value (avoid including sensitive data).
            constraint: Description of the validation rule violated.
            details: Optional dictionary with additional context.
            recoverable: Whether the error can be fixed by the caller.
        """
        super().__init__(message, details=details, recoverable=recoverable)
        self.field = field
        self.value = value
        self.constraint = constraint

        if field:
            self.details["field"] = field
        if value is not None:
            self.details["value"] = value
        if constraint:
            self.details["constraint"] = constraint


class ExternalServiceDegradedError(KaskuError):
    """Error raised when the language model collaborator is unusable.

    Covers timeouts, transport failures, non-2xx responses and empty or
    malformed content. The orchestrator catches this, logs it and falls
    through to the next degradation tier.

    Attributes:
        provider: The LLM provider that failed.
        operation: The operation being attempted ("insight_deep", "forecast").
        status_code: HTTP status code, when the provider answered at all.
        api_error: The underlying error message.

    Example:
        >>> raise ExternalServiceDegradedError(
        ...     "LLM request timed out",
        ...     provider="openrouter",
        ...     operation="insight_deep",
        ... )
        ExternalServiceDegradedError: LLM request timed out
    """

    def __init__(
        self,
        message: str,
        *,
        provider: Optional[str] = None,
        operation: Optional[str] = None,
        status_code: Optional[int] = None,
        api_error: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = True,
    ) -> None:
        """Initialize ExternalServiceDegradedError.

        Args:
            message: Human-readable error description.
            provider: Identifier of the LLM provider.
            operation: The operation being attempted.
            status_code: HTTP status code returned by the provider, if any.
            api_error: The underlying API error message.
            details: Optional dictionary with additional context.
            recoverable: Defaults to True; a fallback tier is always available.
        """
        super().__init__(message, details=details, recoverable=recoverable)
        self.provider = provider
        self.operation = operation
        self.status_code = status_code
        self.api_error = api_error

        if provider:
            self.details["provider"] = provider
        if operation:
            self.details["operation"] = operation
        if status_code is not None:
            self.details["status_code"] = status_code
        if api_error:
            self.details["api_error"] = api_error


class PersistenceError(KaskuError):
    """Error raised when the summary/transaction store is unavailable.

    This is a fatal request failure and is surfaced to the caller.

    Attributes:
        operation: The store operation that failed.
    """

    def __init__(
        self,
        message: str,
        *,
        operation: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message, details=details, recoverable=recoverable)
        self.operation = operation

        if operation:
            self.details["operation"] = operation


class ConfigurationError(KaskuError):
    """Error raised when configuration is invalid or missing.

    Attributes:
        config_key: The configuration key that is problematic.
        expected: Description of the expected value or format.
        actual: The actual value found (if any).

    Example:
        >>> raise ConfigurationError(
        ...     "Unsupported LLM provider",
        ...     config_key="KASKU_LLM_PROVIDER",
        ...     expected="openrouter or anthropic",
        ... )
        ConfigurationError: Unsupported LLM provider
    """

    def __init__(
        self,
        message: str,
        *,
        config_key: Optional[str] = None,
        expected: Optional[str] = None,
        actual: Optional[Any] = None,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message, details=details, recoverable=recoverable)
        self.config_key = config_key
        self.expected = expected
        self.actual = actual

        if config_key:
            self.details["config_key"] = config_key
        if expected:
            self.details["expected"] = expected
        if actual is not None:
            self.details["actual"] = actual


__all__ = [
    "KaskuError",
    "InsufficientDataError",
    "ValidationError",
    "ExternalServiceDegradedError",
    "PersistenceError",
    "ConfigurationError",
]
