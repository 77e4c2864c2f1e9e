"""
Resilience patterns module.

Components:
    - RetryPolicy: Pluggable retry strategy protocol
    - ExponentialBackoffRetryPolicy: Default policy, backoff with equal jitter
    - FixedIntervalRetryPolicy / NoRetryPolicy: Alternative strategies
    - execute_with_retry: Sequential retry runner used by the pipeline
"""

from .retry import (
    DEFAULT_RETRY_POLICY,
    ExponentialBackoffRetryPolicy,
    FixedIntervalRetryPolicy,
    NoRetryPolicy,
    RetryDecision,
    RetryPolicy,
    execute_with_retry,
)

__all__ = [
    "RetryDecision",
    "RetryPolicy",
    "ExponentialBackoffRetryPolicy",
    "FixedIntervalRetryPolicy",
    "NoRetryPolicy",
    "execute_with_retry",
    "DEFAULT_RETRY_POLICY",
]
