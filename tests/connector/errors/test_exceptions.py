"""
Tests for exception hierarchy and error classification.
"""

import builtins
import errno

from connector.errors import (
    AuthError,
    ClientRequestError,
    ConnectionError,
    ConnectorError,
    ErrorCategory,
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


class TestErrorCategory:
    """Test ErrorCategory enum."""

    def test_all_categories_exist(self):
        assert ErrorCategory.TRANSIENT.value == "transient"
        assert ErrorCategory.AUTH.value == "auth"
        assert ErrorCategory.PERMANENT.value == "permanent"
        assert ErrorCategory.UNKNOWN.value == "unknown"


class TestConnectorError:
    """Test base ConnectorError class."""

    def test_basic_error(self):
        err = ConnectorError("Something went wrong")
        assert err.message == "Something went wrong"
        assert err.cause is None
        assert err.context == {}
        assert err.category == ErrorCategory.UNKNOWN
        assert err.is_retryable is False

    def test_error_with_cause(self):
        cause = ValueError("Invalid value")
        err = ConnectorError("Wrapper message", cause=cause)
        assert err.cause is cause
        assert "Caused by: Invalid value" in str(err)

    def test_error_with_context(self):
        err = ConnectorError("Failed", context={"conversation_id": "c-1"})
        assert err.context == {"conversation_id": "c-1"}


class TestHierarchy:

    def test_transient_errors_are_retryable(self):
        for cls in (ConnectionError, TimeoutError, ServerError, ThrottlingError):
            err = cls("boom")
            assert isinstance(err, TransientError)
            assert err.category == ErrorCategory.TRANSIENT
            assert err.is_retryable is True

    def test_permanent_errors_are_not_retryable(self):
        for cls in (ClientRequestError, MalformedResponseError):
            err = cls("bad")
            assert isinstance(err, PermanentError)
            assert err.is_retryable is False

    def test_auth_error_is_not_retryable(self):
        err = AuthError("Unauthorized", status_code=401)
        assert err.category == ErrorCategory.AUTH
        assert err.is_retryable is False
        assert err.status_code == 401

    def test_connector_timeout_is_not_builtin_timeout(self):
        # Keeps asyncio deadline handling separate from per-request timeouts
        assert not issubclass(TimeoutError, builtins.TimeoutError)

    def test_throttling_error_carries_retry_after(self):
        err = ThrottlingError("Rate limited", retry_after=7.5)
        assert err.retry_after == 7.5
        assert err.status_code == 429

    def test_http_error_attributes(self):
        err = ClientRequestError(
            "Bad request (400)",
            status_code=400,
            response_body='{"error": {"code": "BadArgument"}}',
            error_payload={"error": {"code": "BadArgument"}},
        )
        assert err.status_code == 400
        assert err.error_payload["error"]["code"] == "BadArgument"


class TestOperationErrors:

    def test_failed_carries_error_payload(self):
        err = OperationFailedError("failed", location="https://x/op", error={"code": "Conflict"})
        assert isinstance(err, OperationError)
        assert err.error == {"code": "Conflict"}
        assert err.location == "https://x/op"
        assert err.is_retryable is False

    def test_timeout_is_distinct_from_failure(self):
        err = OperationTimeoutError("too slow", timeout=2)
        assert not isinstance(err, OperationFailedError)
        assert err.timeout == 2

    def test_canceled_by_caller_flag(self):
        assert OperationCanceledError("stop", by_caller=True).by_caller is True
        assert OperationCanceledError("service").by_caller is False


class TestClassifyHttpStatus:

    def test_success_is_unknown(self):
        assert classify_http_status(200) == ErrorCategory.UNKNOWN

    def test_401_is_auth(self):
        assert classify_http_status(401) == ErrorCategory.AUTH

    def test_429_is_transient(self):
        assert classify_http_status(429) == ErrorCategory.TRANSIENT

    def test_4xx_is_permanent(self):
        for status in (400, 403, 404, 409, 422):
            assert classify_http_status(status) == ErrorCategory.PERMANENT

    def test_5xx_is_transient(self):
        for status in (500, 502, 503, 504):
            assert classify_http_status(status) == ErrorCategory.TRANSIENT


class TestClassifyException:

    def test_connector_error_uses_its_category(self):
        assert classify_exception(AuthError("x")) == ErrorCategory.AUTH

    def test_builtin_timeout_is_transient(self):
        assert classify_exception(builtins.TimeoutError()) == ErrorCategory.TRANSIENT

    def test_builtin_connection_error_is_transient(self):
        assert classify_exception(ConnectionResetError()) == ErrorCategory.TRANSIENT

    def test_permission_oserror_is_permanent(self):
        exc = OSError(errno.EACCES, "Permission denied")
        assert classify_exception(exc) == ErrorCategory.PERMANENT

    def test_type_name_markers(self):
        class ReadTimeoutSomething(Exception):
            pass

        assert classify_exception(ReadTimeoutSomething()) == ErrorCategory.TRANSIENT

    def test_unclassified_is_unknown(self):
        assert classify_exception(ValueError("nope")) == ErrorCategory.UNKNOWN


class TestWrapException:

    def test_returns_connector_error_unchanged(self):
        err = ServerError("boom")
        assert wrap_exception(err, {"k": "v"}) is err
        assert err.context == {"k": "v"}

    def test_wraps_timeout(self):
        wrapped = wrap_exception(builtins.TimeoutError("slow"))
        assert isinstance(wrapped, TimeoutError)
        assert isinstance(wrapped.cause, builtins.TimeoutError)

    def test_wraps_connection_error(self):
        wrapped = wrap_exception(ConnectionRefusedError("refused"))
        assert isinstance(wrapped, ConnectionError)

    def test_wraps_unknown_as_base(self):
        wrapped = wrap_exception(ValueError("odd"))
        assert type(wrapped) is ConnectorError
        assert wrapped.is_retryable is False


class TestIsRetryableError:

    def test_transient(self):
        assert is_retryable_error(ServerError("x")) is True
        assert is_retryable_error(builtins.TimeoutError()) is True

    def test_terminal(self):
        assert is_retryable_error(ClientRequestError("x")) is False
        assert is_retryable_error(AuthError("x")) is False
        assert is_retryable_error(ValueError("x")) is False
