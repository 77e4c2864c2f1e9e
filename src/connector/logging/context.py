"""Context variables for structured logging."""

from contextvars import ContextVar
from typing import Dict, Optional

_client_request_id: ContextVar[str] = ContextVar("client_request_id", default="")
_operation: ContextVar[str] = ContextVar("operation", default="")
_operation_location: ContextVar[str] = ContextVar("operation_location", default="")


def set_log_context(
    client_request_id: Optional[str] = None,
    operation: Optional[str] = None,
    operation_location: Optional[str] = None,
) -> None:
    if client_request_id is not None:
        _client_request_id.set(client_request_id)
    if operation is not None:
        _operation.set(operation)
    if operation_location is not None:
        _operation_location.set(operation_location)


def get_log_context() -> Dict[str, str]:
    return {
        "client_request_id": _client_request_id.get(),
        "operation": _operation.get(),
        "operation_location": _operation_location.get(),
    }


def clear_log_context() -> None:
    _client_request_id.set("")
    _operation.set("")
    _operation_location.set("")


class LogContext:
    """
    Context manager for temporary log context.

    Usage:
        with LogContext(operation="conversations.send_to_conversation"):
            # All logs in this block will carry the operation name
            await send()
    """

    def __init__(
        self,
        client_request_id: Optional[str] = None,
        operation: Optional[str] = None,
        operation_location: Optional[str] = None,
    ):
        self.new_context = {
            "client_request_id": client_request_id,
            "operation": operation,
            "operation_location": operation_location,
        }
        self.old_context: Dict[str, str] = {}

    def __enter__(self) -> "LogContext":
        self.old_context = get_log_context()
        set_log_context(**self.new_context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        # Restore old context
        set_log_context(**self.old_context)
        return False
