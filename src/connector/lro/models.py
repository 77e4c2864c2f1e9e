"""
Long-running operation models.

OperationHandle tracks one server-side operation from the accepted response
to a terminal state. OperationStatus is the validated shape of a poll body:

    {"status": "InProgress"}
    {"status": "Succeeded", "result": {...}}
    {"status": "Failed", "error": {"code": "...", "message": "..."}}
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from connector.errors.exceptions import MalformedResponseError

# Headers carrying the operation location on a 202 response, by precedence
OPERATION_LOCATION_HEADERS = ("Azure-AsyncOperation", "Operation-Location", "Location")


class OperationState(str, Enum):
    ACCEPTED = "Accepted"
    IN_PROGRESS = "InProgress"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    CANCELED = "Canceled"

    @property
    def is_terminal(self) -> bool:
        return self in (
            OperationState.SUCCEEDED,
            OperationState.FAILED,
            OperationState.CANCELED,
        )

    @classmethod
    def parse(cls, value: str) -> "OperationState":
        """Map a service status string (case-insensitive, with aliases) to a state."""
        key = (value or "").replace("_", "").replace("-", "").replace(" ", "").lower()
        state = _STATUS_ALIASES.get(key)
        if state is None:
            raise MalformedResponseError(f"Unknown operation status: {value!r}")
        return state


_STATUS_ALIASES: dict[str, OperationState] = {
    "accepted": OperationState.ACCEPTED,
    "notstarted": OperationState.ACCEPTED,
    "inprogress": OperationState.IN_PROGRESS,
    "running": OperationState.IN_PROGRESS,
    "succeeded": OperationState.SUCCEEDED,
    "failed": OperationState.FAILED,
    "canceled": OperationState.CANCELED,
    "cancelled": OperationState.CANCELED,
}


class OperationStatus(BaseModel):
    """Body of a poll response."""

    model_config = ConfigDict(extra="allow")

    status: str = Field(min_length=1)
    result: Any = None
    error: Any = None

    @property
    def state(self) -> OperationState:
        return OperationState.parse(self.status)


@dataclass
class OperationHandle:
    """
    A server-side operation being tracked by the poller.

    Attributes:
        location: URL returned by the initiating response
        state: Current state, starts at ACCEPTED
        created_at: When the accepted response was received
        last_polled_at: Time of the most recent poll response
        poll_count: Poll responses received (the initiating call excluded)
        result: Result payload once SUCCEEDED
        error: Error payload once FAILED
        retry_after: Server-suggested delay before the first poll
    """

    location: str
    state: OperationState = OperationState.ACCEPTED
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    last_polled_at: datetime | None = None
    poll_count: int = 0
    result: Any = None
    error: Any = None
    retry_after: float | None = None

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal


__all__ = [
    "OPERATION_LOCATION_HEADERS",
    "OperationState",
    "OperationStatus",
    "OperationHandle",
]
