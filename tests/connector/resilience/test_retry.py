"""
Tests for retry policies and the retry runner.

Covers:
    - Equal-jitter exponential backoff
    - Retry-After precedence on throttling
    - Transient vs terminal classification
    - Sequential attempts and unchanged final error
"""

from unittest.mock import AsyncMock, patch

import pytest

from connector.errors import (
    AuthError,
    ClientRequestError,
    ConnectionError,
    MalformedResponseError,
    ServerError,
    ThrottlingError,
    TimeoutError,
)
from connector.resilience.retry import (
    DEFAULT_RETRY_POLICY,
    ExponentialBackoffRetryPolicy,
    FixedIntervalRetryPolicy,
    NoRetryPolicy,
    RetryDecision,
    RetryPolicy,
    execute_with_retry,
)


class TestExponentialBackoffRetryPolicy:

    def test_default_values(self):
        policy = ExponentialBackoffRetryPolicy()
        assert policy.max_attempts == 3
        assert policy.base_delay == 1.0
        assert policy.max_delay == 30.0
        assert policy.exponential_base == 2.0
        assert policy.respect_retry_after is True
        assert policy.always_retry == set()
        assert policy.never_retry == set()

    def test_type_conversion_from_strings(self):
        """Config values from YAML/env vars may arrive as strings."""
        policy = ExponentialBackoffRetryPolicy(
            max_attempts="5",
            base_delay="2.5",
            max_delay="60",
            exponential_base="3",
            respect_retry_after="false",
        )
        assert policy.max_attempts == 5
        assert policy.base_delay == 2.5
        assert policy.max_delay == 60.0
        assert policy.exponential_base == 3.0
        assert policy.respect_retry_after is False

    def test_rejects_invalid_values(self):
        with pytest.raises(ValueError):
            ExponentialBackoffRetryPolicy(max_attempts=0)
        with pytest.raises(ValueError):
            ExponentialBackoffRetryPolicy(base_delay=-1)

    def test_exponential_backoff_calculation(self):
        policy = ExponentialBackoffRetryPolicy(base_delay=1.0, exponential_base=2.0, max_delay=30.0)

        assert 0.5 <= policy.get_delay(0) <= 1.0  # Equal jitter: [0.5, 1.0]
        assert 1.0 <= policy.get_delay(1) <= 2.0
        assert 2.0 <= policy.get_delay(2) <= 4.0

    def test_jitter_prevents_thundering_herd(self):
        policy = ExponentialBackoffRetryPolicy(base_delay=10.0, max_delay=100.0)
        delays = {policy.get_delay(1) for _ in range(50)}
        assert len(delays) > 1

    def test_max_delay_cap(self):
        policy = ExponentialBackoffRetryPolicy(base_delay=10.0, max_delay=15.0)
        assert policy.get_delay(10) <= 15.0

    def test_respects_retry_after(self):
        policy = ExponentialBackoffRetryPolicy(respect_retry_after=True)
        assert policy.get_delay(0, ThrottlingError("slow down", retry_after=4.0)) == 4.0

    def test_retry_after_is_capped(self):
        policy = ExponentialBackoffRetryPolicy(max_delay=10.0)
        assert policy.get_delay(0, ThrottlingError("slow down", retry_after=120.0)) == 10.0

    def test_ignores_retry_after_when_disabled(self):
        policy = ExponentialBackoffRetryPolicy(base_delay=1.0, respect_retry_after=False)
        delay = policy.get_delay(0, ThrottlingError("slow down", retry_after=20.0))
        assert 0.5 <= delay <= 1.0

    @pytest.mark.parametrize(
        "error",
        [ConnectionError("reset"), TimeoutError("slow"), ServerError("503"), ThrottlingError("429")],
    )
    def test_transient_errors_are_retried(self, error):
        decision = ExponentialBackoffRetryPolicy().evaluate(1, error)
        assert decision.should_retry is True
        assert decision.attempts == 1
        assert decision.delay > 0

    @pytest.mark.parametrize(
        "error",
        [
            ClientRequestError("400"),
            MalformedResponseError("garbage"),
            AuthError("401"),
            ValueError("unclassified"),
        ],
    )
    def test_terminal_errors_are_not_retried(self, error):
        decision = ExponentialBackoffRetryPolicy().evaluate(1, error)
        assert decision.should_retry is False

    def test_stops_at_max_attempts(self):
        policy = ExponentialBackoffRetryPolicy(max_attempts=3)
        assert policy.evaluate(2, ServerError("x")).should_retry is True
        assert policy.evaluate(3, ServerError("x")).should_retry is False

    def test_success_is_never_retried(self):
        assert ExponentialBackoffRetryPolicy().evaluate(1, None).should_retry is False

    def test_always_retry_override(self):
        policy = ExponentialBackoffRetryPolicy(always_retry={ValueError})
        assert policy.evaluate(1, ValueError("x")).should_retry is True

    def test_never_retry_override(self):
        policy = ExponentialBackoffRetryPolicy(never_retry={ServerError})
        assert policy.evaluate(1, ServerError("x")).should_retry is False


class TestAlternativePolicies:

    def test_fixed_interval(self):
        policy = FixedIntervalRetryPolicy(max_attempts=4, interval=0.25)
        decision = policy.evaluate(3, ServerError("x"))
        assert decision == RetryDecision(True, 0.25, 3)
        assert policy.evaluate(4, ServerError("x")).should_retry is False
        assert policy.evaluate(1, ClientRequestError("x")).should_retry is False

    def test_no_retry(self):
        assert NoRetryPolicy().evaluate(1, ServerError("x")).should_retry is False

    def test_policies_satisfy_protocol(self):
        for policy in (DEFAULT_RETRY_POLICY, FixedIntervalRetryPolicy(), NoRetryPolicy()):
            assert isinstance(policy, RetryPolicy)


class TestExecuteWithRetry:

    @pytest.fixture
    def policy(self):
        return ExponentialBackoffRetryPolicy(max_attempts=3, base_delay=0.0, max_delay=0.0)

    @pytest.mark.asyncio
    async def test_success_first_attempt(self, policy):
        send = AsyncMock(return_value="ok")
        assert await execute_with_retry(send, policy, operation="test") == "ok"
        assert send.await_count == 1

    @pytest.mark.asyncio
    async def test_transient_then_success(self, policy):
        send = AsyncMock(side_effect=[ServerError("503"), ConnectionError("reset"), "ok"])
        assert await execute_with_retry(send, policy, operation="test") == "ok"
        assert send.await_count == 3

    @pytest.mark.asyncio
    async def test_exhaustion_reraises_last_error_unchanged(self, policy):
        last = ServerError("third")
        send = AsyncMock(side_effect=[ServerError("first"), ServerError("second"), last])
        with pytest.raises(ServerError) as exc_info:
            await execute_with_retry(send, policy, operation="test")
        assert exc_info.value is last
        assert send.await_count == 3

    @pytest.mark.asyncio
    async def test_terminal_error_single_attempt(self, policy):
        error = ClientRequestError("400")
        send = AsyncMock(side_effect=error)
        with pytest.raises(ClientRequestError) as exc_info:
            await execute_with_retry(send, policy, operation="test")
        assert exc_info.value is error
        assert send.await_count == 1

    @pytest.mark.asyncio
    async def test_not_retryable_forces_single_attempt(self, policy):
        send = AsyncMock(side_effect=ServerError("503"))
        with pytest.raises(ServerError):
            await execute_with_retry(send, policy, operation="test", retryable=False)
        assert send.await_count == 1

    @pytest.mark.asyncio
    async def test_sleeps_for_decided_delay(self):
        policy = FixedIntervalRetryPolicy(max_attempts=3, interval=1.5)
        send = AsyncMock(side_effect=[ServerError("x"), ServerError("x"), "ok"])
        with patch("connector.resilience.retry.asyncio.sleep", new=AsyncMock()) as sleep:
            await execute_with_retry(send, policy, operation="test")
        assert [c.args[0] for c in sleep.await_args_list] == [1.5, 1.5]

    @pytest.mark.asyncio
    async def test_uses_server_retry_after(self):
        policy = ExponentialBackoffRetryPolicy(max_attempts=2)
        send = AsyncMock(side_effect=[ThrottlingError("429", retry_after=3.0), "ok"])
        with patch("connector.resilience.retry.asyncio.sleep", new=AsyncMock()) as sleep:
            await execute_with_retry(send, policy, operation="test")
        sleep.assert_awaited_once_with(3.0)

    @pytest.mark.asyncio
    async def test_logs_retry_and_exhaustion(self, policy, caplog):
        send = AsyncMock(side_effect=ServerError("503"))
        with caplog.at_level("WARNING", logger="connector.resilience.retry"):
            with pytest.raises(ServerError):
                await execute_with_retry(send, policy, operation="conversations.get")

        messages = [r.getMessage() for r in caplog.records]
        assert any("will retry" in m for m in messages)
        assert any("Retries exhausted for conversations.get after 3 attempts" in m for m in messages)
