"""Long-running operation tracking."""

from connector.lro.models import (
    OPERATION_LOCATION_HEADERS,
    OperationHandle,
    OperationState,
    OperationStatus,
)
from connector.lro.poller import (
    LongRunningOperationPoller,
    create_handle,
    derive_poll_interval,
    get_operation_location,
    read_poll_response,
)

__all__ = [
    "OPERATION_LOCATION_HEADERS",
    "OperationHandle",
    "OperationState",
    "OperationStatus",
    "LongRunningOperationPoller",
    "create_handle",
    "derive_poll_interval",
    "get_operation_location",
    "read_poll_response",
]
