"""Per-call request and response objects that flow through the pipeline."""

import json
from dataclasses import dataclass, field
from typing import Any

from connector.errors.exceptions import MalformedResponseError
from connector.errors.http import parse_retry_after

# Methods that may be repeated without changing the outcome on the server
IDEMPOTENT_METHODS = frozenset({"GET", "HEAD", "OPTIONS", "PUT", "DELETE"})


@dataclass
class OutboundRequest:
    """
    A single logical call to the connector service.

    Created fresh per call and mutated only while the pipeline decorates it.
    All retry attempts of the call dispatch this same object, so headers set
    during decoration (correlation id included) are shared across attempts.

    Attributes:
        method: HTTP method
        path: Path relative to the client base URL, or an absolute URL
        headers: Outbound headers
        body: JSON-serializable payload, or None
        params: Query string parameters
        idempotent: Explicit idempotency declaration; None derives it from the method
        expect_json: Whether the caller expects a JSON body back
        operation: Name used in logs (e.g. "conversations.send_to_conversation")
    """

    method: str
    path: str
    headers: dict[str, str] = field(default_factory=dict)
    body: Any = None
    params: dict[str, str] | None = None
    idempotent: bool | None = None
    expect_json: bool = True
    operation: str = ""

    def __post_init__(self):
        self.method = self.method.upper()
        if not self.operation:
            self.operation = f"{self.method} {self.path}"

    @property
    def is_idempotent(self) -> bool:
        if self.idempotent is not None:
            return self.idempotent
        return self.method in IDEMPOTENT_METHODS

    def get_header(self, name: str) -> str | None:
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None


@dataclass
class HttpResponse:
    """Fully-read HTTP response returned by the transport."""

    status: int
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    url: str = ""

    def get_header(self, name: str) -> str | None:
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None

    @property
    def retry_after(self) -> float | None:
        return parse_retry_after(self.get_header("Retry-After"))

    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        """
        Decode the body as JSON.

        Raises:
            MalformedResponseError: If the body is empty or not valid JSON
        """
        if not self.body:
            raise MalformedResponseError(
                f"Expected JSON body but response was empty: {self.url}",
                status_code=self.status,
            )
        try:
            return json.loads(self.body)
        except ValueError as e:
            raise MalformedResponseError(
                f"Response body is not valid JSON: {self.url}",
                status_code=self.status,
                response_body=self.text()[:500],
                cause=e,
            ) from e


__all__ = ["IDEMPOTENT_METHODS", "OutboundRequest", "HttpResponse"]
