"""
Retry policies and the retry runner used by every outbound call.

Uses the exception hierarchy to make retry decisions:
- Transient errors (network, timeout, 5xx, 429): retry with exponential backoff
- Auth errors: fail immediately, refreshing credentials is not our job
- Permanent errors (4xx, malformed responses): fail immediately
- Exhausted attempts: the most recent error is re-raised unchanged
"""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Protocol, TypeVar, runtime_checkable

from connector.errors.exceptions import (
    ThrottlingError,
    classify_exception,
    is_retryable_error,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryDecision:
    """Outcome of evaluating one failed attempt."""

    should_retry: bool
    delay: float = 0.0
    attempts: int = 0


@runtime_checkable
class RetryPolicy(Protocol):
    """
    Strategy deciding whether a failed call is attempted again.

    ``attempts`` is the number of dispatches made so far for the call (1 after
    the first attempt). ``error`` is the most recent failure, or None when the
    attempt succeeded. Policies must not keep per-call state: one instance is
    shared by every call a client issues.
    """

    def evaluate(self, attempts: int, error: BaseException | None) -> RetryDecision: ...


def _coerce_bool(value) -> bool:
    # bool('false') would be True, so strings need explicit handling
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


@dataclass
class ExponentialBackoffRetryPolicy:
    """
    Default policy: bounded retries of transient failures with jittered backoff.

    Delay for retry ``n`` (0-indexed) is ``base_delay * exponential_base**n``
    with equal jitter (half fixed, half random), capped at ``max_delay``. A
    server-provided Retry-After on a 429 takes precedence when
    ``respect_retry_after`` is set.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    exponential_base: float = 2.0

    # If True, use retry_after from ThrottlingError when available
    respect_retry_after: bool = True

    # Optional exception types to always retry (overrides classification)
    always_retry: set[type[BaseException]] = field(default_factory=set)

    # Optional exception types to never retry (overrides classification)
    never_retry: set[type[BaseException]] = field(default_factory=set)

    def __post_init__(self):
        """Ensure proper types from YAML/env vars."""
        self.max_attempts = int(self.max_attempts)
        self.base_delay = float(self.base_delay)
        self.max_delay = float(self.max_delay)
        self.exponential_base = float(self.exponential_base)
        self.respect_retry_after = _coerce_bool(self.respect_retry_after)
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("Retry delays must be non-negative")

    def get_delay(self, retry_index: int, error: BaseException | None = None) -> float:
        """
        Calculate delay with equal jitter to prevent thundering herd.

        Args:
            retry_index: 0-indexed retry number (0 before the second attempt)
            error: Optional exception to check for retry_after

        Returns:
            Delay in seconds
        """
        if (
            self.respect_retry_after
            and isinstance(error, ThrottlingError)
            and error.retry_after is not None
        ):
            return min(error.retry_after, self.max_delay)

        base_delay = self.base_delay * (self.exponential_base**retry_index)
        jitter = random.uniform(0, base_delay / 2)
        return min((base_delay / 2) + jitter, self.max_delay)

    def is_retryable(self, error: BaseException) -> bool:
        if self.never_retry and isinstance(error, tuple(self.never_retry)):
            return False
        if self.always_retry and isinstance(error, tuple(self.always_retry)):
            return True
        return is_retryable_error(error)

    def evaluate(self, attempts: int, error: BaseException | None) -> RetryDecision:
        if error is None:
            return RetryDecision(False, 0.0, attempts)
        if attempts >= self.max_attempts or not self.is_retryable(error):
            return RetryDecision(False, 0.0, attempts)
        return RetryDecision(True, self.get_delay(attempts - 1, error), attempts)


@dataclass
class FixedIntervalRetryPolicy:
    """Retry transient failures a fixed number of times at a constant interval."""

    max_attempts: int = 3
    interval: float = 1.0

    def __post_init__(self):
        self.max_attempts = int(self.max_attempts)
        self.interval = float(self.interval)

    def evaluate(self, attempts: int, error: BaseException | None) -> RetryDecision:
        if error is None or attempts >= self.max_attempts or not is_retryable_error(error):
            return RetryDecision(False, 0.0, attempts)
        return RetryDecision(True, self.interval, attempts)


class NoRetryPolicy:
    """Never retry; every call gets exactly one attempt."""

    def evaluate(self, attempts: int, error: BaseException | None) -> RetryDecision:
        return RetryDecision(False, 0.0, attempts)

    def __repr__(self) -> str:
        return "NoRetryPolicy()"


def _error_category(error: BaseException) -> str:
    return classify_exception(error).value


def _log_retry_failure(operation: str, error: BaseException, attempts: int) -> None:
    """Log a terminal error or exhausted retries."""
    error_category = _error_category(error)
    if not is_retryable_error(error):
        logger.warning(
            "Non-retryable error for %s, not retrying: %s",
            operation,
            str(error)[:200],
            extra={
                "operation": operation,
                "attempt": attempts,
                "error_type": type(error).__name__,
                "error_category": error_category,
                "error_message": str(error)[:200],
            },
        )
        return

    logger.error(
        "Retries exhausted for %s after %d attempts: %s",
        operation,
        attempts,
        str(error)[:200],
        extra={
            "operation": operation,
            "total_attempts": attempts,
            "error_type": type(error).__name__,
            "error_category": error_category,
            "error_message": str(error)[:200],
        },
    )


def _log_retry_attempt(operation: str, error: BaseException, decision: RetryDecision) -> None:
    log_extras: dict[str, object] = {
        "operation": operation,
        "attempt": decision.attempts,
        "error_category": _error_category(error),
        "delay_seconds": round(decision.delay, 2),
        "error_message": str(error)[:200],
    }
    if isinstance(error, ThrottlingError) and error.retry_after is not None:
        log_extras["server_retry_after"] = error.retry_after
        log_extras["delay_source"] = "server"
    else:
        log_extras["delay_source"] = "policy"

    logger.warning("Retryable error for %s, will retry", operation, extra=log_extras)


async def execute_with_retry(
    send: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    operation: str,
    retryable: bool = True,
) -> T:
    """
    Run ``send`` until it succeeds or ``policy`` stops retrying.

    Attempts are strictly sequential. Backoff waits use ``asyncio.sleep`` so an
    enclosing ``asyncio.timeout`` or task cancellation interrupts them.

    Args:
        send: Zero-argument coroutine factory performing one dispatch
        policy: Retry policy consulted after each failure
        operation: Name used in log records
        retryable: False forces a single attempt (non-idempotent requests)

    Returns:
        The value returned by the successful attempt

    Raises:
        The most recent exception raised by ``send``, unchanged
    """
    attempts = 0
    while True:
        attempts += 1
        try:
            result = await send()
        except Exception as e:
            decision = (
                policy.evaluate(attempts, e)
                if retryable
                else RetryDecision(False, 0.0, attempts)
            )
            if not decision.should_retry:
                _log_retry_failure(operation, e, attempts)
                raise
            _log_retry_attempt(operation, e, decision)
            await asyncio.sleep(decision.delay)
            continue

        if attempts > 1:
            logger.info(
                "Retry succeeded for %s after %d attempts",
                operation,
                attempts,
                extra={"operation": operation, "total_attempts": attempts},
            )
        return result


DEFAULT_RETRY_POLICY = ExponentialBackoffRetryPolicy()

__all__ = [
    "RetryDecision",
    "RetryPolicy",
    "ExponentialBackoffRetryPolicy",
    "FixedIntervalRetryPolicy",
    "NoRetryPolicy",
    "execute_with_retry",
    "DEFAULT_RETRY_POLICY",
]
