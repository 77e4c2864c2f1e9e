"""
pytest configuration for connector tests.

Adds src directory to Python path for imports and provides a scripted
transport that replays canned responses instead of touching the network.
"""

import inspect
import json
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

# Add src directory to Python path
src_dir = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_dir))

from connector.auth.credentials import StaticTokenCredentials  # noqa: E402
from connector.config import ClientConfiguration  # noqa: E402
from connector.logging.context import clear_log_context  # noqa: E402
from connector.pipeline.request import HttpResponse, OutboundRequest  # noqa: E402
from connector.resilience.retry import ExponentialBackoffRetryPolicy  # noqa: E402

BASE_URL = "https://connector.test"
OPERATION_URL = f"{BASE_URL}/v3/operations/op-1"


class FixedVersion:
    """Build metadata stub returning a known version."""

    def __init__(self, version: str = "4.2.0"):
        self.version = version

    def get_version(self) -> str:
        return self.version


def json_response(
    status: int = 200,
    payload: Any = None,
    headers: dict[str, str] | None = None,
    url: str = BASE_URL,
) -> HttpResponse:
    body = json.dumps(payload).encode() if payload is not None else b""
    all_headers = {"Content-Type": "application/json"} if payload is not None else {}
    all_headers.update(headers or {})
    return HttpResponse(status=status, headers=all_headers, body=body, url=url)


def accepted_response(location: str = OPERATION_URL, retry_after: str | None = None) -> HttpResponse:
    headers = {"Location": location}
    if retry_after is not None:
        headers["Retry-After"] = retry_after
    return HttpResponse(status=202, headers=headers, url=BASE_URL)


def status_response(status: str, **fields: Any) -> HttpResponse:
    return json_response(200, {"status": status, **fields}, url=OPERATION_URL)


@dataclass
class SentRequest:
    method: str
    url: str
    headers: dict[str, str]
    body: Any = None
    params: dict[str, str] | None = None


@dataclass
class ScriptedTransport:
    """
    Transport replaying a script of responses and exceptions in order.

    Steps are HttpResponse objects, exceptions to raise, or callables taking
    the request (sync or async) that return either. Each ``send`` records a
    snapshot of the request as dispatched.
    """

    script: list[Any] = field(default_factory=list)
    sent: list[SentRequest] = field(default_factory=list)
    closed: bool = False

    def add(self, *steps: Any) -> "ScriptedTransport":
        self.script.extend(steps)
        return self

    async def send(self, request: OutboundRequest, url: str) -> HttpResponse:
        self.sent.append(SentRequest(request.method, url, dict(request.headers), request.body, request.params))
        if not self.script:
            raise AssertionError(f"Unexpected request: {request.method} {url}")
        step = self.script.pop(0)
        if callable(step):
            step = step(request)
            if inspect.isawaitable(step):
                step = await step
        if isinstance(step, BaseException):
            raise step
        return step

    async def close(self) -> None:
        self.closed = True


@pytest.fixture(autouse=True)
def clear_context():
    clear_log_context()
    yield
    clear_log_context()


@pytest.fixture
def transport():
    return ScriptedTransport()


@pytest.fixture
def fast_retry_policy():
    """Default policy shape with zero backoff so tests do not sleep."""
    return ExponentialBackoffRetryPolicy(max_attempts=3, base_delay=0.0, max_delay=0.0)


@pytest.fixture
def configuration(fast_retry_policy):
    return ClientConfiguration(
        credentials=StaticTokenCredentials("test-token"),
        base_url=BASE_URL,
        retry_policy=fast_retry_policy,
        lro_poll_interval=0.01,
        build_metadata=FixedVersion(),
    )
