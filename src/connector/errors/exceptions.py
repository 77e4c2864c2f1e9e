"""
Unified exception hierarchy for the connector pipeline.

Provides typed exceptions with retry classification so the retry policy,
the long-running-operation poller and callers can tell transient failures,
terminal failures and operation outcomes apart.
"""

import builtins
import errno

from connector.types import ErrorCategory


class ConnectorError(Exception):
    """
    Base exception for all connector errors.

    Attributes:
        message: Human-readable error description
        category: Error classification for retry decisions
        cause: Original exception if wrapping
        context: Additional context dict for debugging
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(
        self,
        message: str,
        cause: BaseException | None = None,
        context: dict | None = None,
    ):
        self.message = message
        self.cause = cause
        self.context = context or {}
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        return self.category == ErrorCategory.TRANSIENT

    def __str__(self) -> str:
        parts = [self.message]
        if self.cause:
            parts.append(f"Caused by: {self.cause}")
        return " | ".join(parts)


class HttpResponseError(ConnectorError):
    """
    Mixin-style base for errors raised from a non-success HTTP response.

    Attributes:
        status_code: HTTP status returned by the service
        response_body: Raw (truncated) response text
        error_payload: Parsed JSON error body, if the service sent one
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
        error_payload: dict | None = None,
        cause: BaseException | None = None,
        context: dict | None = None,
    ):
        super().__init__(message, cause, context)
        self.status_code = status_code
        self.response_body = response_body
        self.error_payload = error_payload


# =============================================================================
# Authentication Errors
# =============================================================================


class AuthError(HttpResponseError):
    """Credentials were rejected or could not be attached. Never retried here."""

    category = ErrorCategory.AUTH


# =============================================================================
# Transient Errors
# =============================================================================


class TransientError(HttpResponseError):
    """Base class for transient/retriable errors."""

    category = ErrorCategory.TRANSIENT


class ConnectionError(TransientError):
    """Network-level failure before a response was received."""


class TimeoutError(TransientError):
    """A single round trip exceeded its request timeout."""


class ServerError(TransientError):
    """5xx response from the service."""


class ThrottlingError(TransientError):
    """Rate limited (429) - should back off."""

    def __init__(
        self,
        message: str,
        retry_after: float | None = None,
        status_code: int | None = 429,
        response_body: str | None = None,
        error_payload: dict | None = None,
        cause: BaseException | None = None,
        context: dict | None = None,
    ):
        super().__init__(
            message,
            status_code=status_code,
            response_body=response_body,
            error_payload=error_payload,
            cause=cause,
            context=context,
        )
        self.retry_after = retry_after  # Seconds to wait if provided


# =============================================================================
# Permanent Errors (Don't Retry)
# =============================================================================


class PermanentError(HttpResponseError):
    """Base class for permanent/non-retriable errors."""

    category = ErrorCategory.PERMANENT


class ClientRequestError(PermanentError):
    """4xx response other than 401 and 429."""


class MalformedResponseError(PermanentError):
    """Response body or headers did not have the expected shape."""


# =============================================================================
# Long-running operation outcomes
# =============================================================================


class OperationError(ConnectorError):
    """Base class for long-running operation outcomes other than success."""

    category = ErrorCategory.PERMANENT

    def __init__(
        self,
        message: str,
        location: str | None = None,
        cause: BaseException | None = None,
        context: dict | None = None,
    ):
        super().__init__(message, cause, context)
        self.location = location


class OperationFailedError(OperationError):
    """The service reported the operation as Failed."""

    def __init__(self, message: str, location: str | None = None, error: object = None):
        super().__init__(message, location)
        self.error = error


class OperationTimeoutError(OperationError):
    """The client gave up waiting before the operation reached a terminal state."""

    def __init__(self, message: str, location: str | None = None, timeout: float | None = None):
        super().__init__(message, location)
        self.timeout = timeout


class OperationCanceledError(OperationError):
    """
    The operation was canceled.

    ``by_caller`` distinguishes a caller-requested stop of polling from a
    Canceled status reported by the service.
    """

    def __init__(self, message: str, location: str | None = None, by_caller: bool = False):
        super().__init__(message, location)
        self.by_caller = by_caller


# =============================================================================
# Error Classification Utilities
# =============================================================================


def classify_http_status(status_code: int) -> ErrorCategory:
    """Classify HTTP status code into error category."""
    if 200 <= status_code < 300:
        return ErrorCategory.UNKNOWN  # Not an error

    if status_code == 401:
        return ErrorCategory.AUTH

    if status_code == 429:
        return ErrorCategory.TRANSIENT  # Rate limited

    if 400 <= status_code < 500:
        return ErrorCategory.PERMANENT

    if status_code >= 500:
        return ErrorCategory.TRANSIENT

    return ErrorCategory.UNKNOWN


def classify_exception(exc: BaseException) -> ErrorCategory:
    """Classify an exception into error category."""
    if isinstance(exc, ConnectorError):
        return exc.category

    if isinstance(exc, builtins.TimeoutError):
        return ErrorCategory.TRANSIENT

    if isinstance(exc, builtins.ConnectionError):
        return ErrorCategory.TRANSIENT

    if isinstance(exc, OSError):
        permanent_errnos = (errno.EACCES, errno.EPERM)
        if exc.errno in permanent_errnos:
            return ErrorCategory.PERMANENT
        return ErrorCategory.TRANSIENT

    exc_type = type(exc).__name__.lower()
    if "timeout" in exc_type:
        return ErrorCategory.TRANSIENT
    if "connection" in exc_type or "disconnect" in exc_type:
        return ErrorCategory.TRANSIENT

    return ErrorCategory.UNKNOWN


def wrap_exception(exc: BaseException, context: dict | None = None) -> ConnectorError:
    """Wrap a foreign exception in the matching ConnectorError subclass."""
    if isinstance(exc, ConnectorError):
        if context:
            exc.context.update(context)
        return exc

    category = classify_exception(exc)
    message = str(exc) or type(exc).__name__

    if category == ErrorCategory.TRANSIENT:
        exc_type = type(exc).__name__.lower()
        if isinstance(exc, builtins.TimeoutError) or "timeout" in exc_type:
            return TimeoutError(message, cause=exc, context=context)
        return ConnectionError(message, cause=exc, context=context)

    if category == ErrorCategory.PERMANENT:
        return PermanentError(message, cause=exc, context=context)

    return ConnectorError(message, cause=exc, context=context)


def is_retryable_error(exc: BaseException) -> bool:
    """Check if exception is transient and worth another attempt."""
    if isinstance(exc, ConnectorError):
        return exc.is_retryable
    return classify_exception(exc) == ErrorCategory.TRANSIENT
