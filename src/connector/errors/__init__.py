"""
Error classification and exception hierarchy.

Provides:
- ConnectorError hierarchy for typed exceptions
- Long-running operation outcome errors
- HTTP status mapping and classification utilities
"""

from connector.errors.exceptions import (
    AuthError,
    ClientRequestError,
    ConnectionError,
    ConnectorError,
    HttpResponseError,
    MalformedResponseError,
    OperationCanceledError,
    OperationError,
    OperationFailedError,
    OperationTimeoutError,
    PermanentError,
    ServerError,
    ThrottlingError,
    TimeoutError,
    TransientError,
    classify_exception,
    classify_http_status,
    is_retryable_error,
    wrap_exception,
)
from connector.errors.http import classify_api_error, parse_retry_after, raise_for_status
from connector.types import ErrorCategory

__all__ = [
    # Enums
    "ErrorCategory",
    # Base classes
    "ConnectorError",
    "HttpResponseError",
    "AuthError",
    "TransientError",
    "PermanentError",
    # Transient errors
    "ConnectionError",
    "TimeoutError",
    "ServerError",
    "ThrottlingError",
    # Permanent errors
    "ClientRequestError",
    "MalformedResponseError",
    # Operation outcomes
    "OperationError",
    "OperationFailedError",
    "OperationTimeoutError",
    "OperationCanceledError",
    # Classification utilities
    "classify_http_status",
    "classify_exception",
    "wrap_exception",
    "is_retryable_error",
    "classify_api_error",
    "parse_retry_after",
    "raise_for_status",
]
