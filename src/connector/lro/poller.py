"""
Long-running operation poller.

State machine over OperationHandle:

    ACCEPTED --(non-terminal poll)--> IN_PROGRESS
    ACCEPTED | IN_PROGRESS --> SUCCEEDED | FAILED | CANCELED

The whole wait runs under one deadline (the client's long-running operation
timeout). Polls go through the caller-supplied ``poll`` function, which is
expected to apply the client's retry policy, so a transient blip during
polling does not end the operation.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from connector.errors.exceptions import (
    MalformedResponseError,
    OperationCanceledError,
    OperationFailedError,
    OperationTimeoutError,
)
from connector.logging.context import set_log_context
from connector.lro.models import (
    OPERATION_LOCATION_HEADERS,
    OperationHandle,
    OperationState,
    OperationStatus,
)
from connector.pipeline.request import HttpResponse

logger = logging.getLogger(__name__)

MIN_POLL_INTERVAL = 0.1
MAX_DERIVED_POLL_INTERVAL = 5.0

PollFunction = Callable[[str], Awaitable[HttpResponse]]


def derive_poll_interval(timeout: float) -> float:
    """Default interval when neither the server nor the caller suggests one."""
    return min(MAX_DERIVED_POLL_INTERVAL, max(MIN_POLL_INTERVAL, timeout / 10))


def get_operation_location(response: HttpResponse) -> str | None:
    for header in OPERATION_LOCATION_HEADERS:
        value = response.get_header(header)
        if value:
            return value
    return None


def create_handle(response: HttpResponse) -> OperationHandle:
    """
    Build a handle from a 202 Accepted response.

    Raises:
        MalformedResponseError: If the response carries no operation location
    """
    location = get_operation_location(response)
    if not location:
        raise MalformedResponseError(
            f"Accepted response carries no operation location: {response.url}",
            status_code=response.status,
        )
    return OperationHandle(location=location, retry_after=response.retry_after)


def read_poll_response(response: HttpResponse) -> tuple[OperationState, Any, Any]:
    """
    Interpret a poll response as (state, result, error).

    A body with a ``status`` field is authoritative. Without one, an empty 202
    means still running and a 200/201/204 means done with the body as result.
    """
    if response.status == 204:
        return OperationState.SUCCEEDED, None, None
    if response.status == 202 and not response.body:
        return OperationState.IN_PROGRESS, None, None

    payload = response.json()
    if isinstance(payload, dict) and "status" in payload:
        try:
            status = OperationStatus.model_validate(payload)
        except ValidationError as e:
            raise MalformedResponseError(
                f"Invalid operation status body: {response.url}",
                status_code=response.status,
                response_body=response.text()[:500],
                cause=e,
            ) from e
        state = status.state
        result = status.result if status.result is not None else payload
        return state, result, status.error

    if response.status in (200, 201):
        return OperationState.SUCCEEDED, payload, None

    raise MalformedResponseError(
        f"Poll response has no status field: {response.url}",
        status_code=response.status,
        response_body=response.text()[:500],
    )


class LongRunningOperationPoller:
    """
    Drives OperationHandles to a terminal state.

    Holds no per-operation state; one instance serves every concurrent call
    of a client. Each ``wait`` call owns its handle and its poll function.
    """

    async def wait(
        self,
        handle: OperationHandle,
        poll: PollFunction,
        *,
        timeout: float,
        poll_interval: float | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> Any:
        """
        Poll until the operation is terminal.

        Args:
            handle: Operation to track; mutated in place
            poll: Issues one GET to the operation location (with retries)
            timeout: Overall deadline in seconds
            poll_interval: Interval when the server sends no Retry-After;
                derived from ``timeout`` when None
            cancel_event: Set by the caller to stop polling

        Returns:
            The result payload of a SUCCEEDED operation

        Raises:
            OperationFailedError: Service reported Failed
            OperationCanceledError: Service reported Canceled, or the caller set cancel_event
            OperationTimeoutError: Deadline passed before a terminal state
        """
        interval = poll_interval if poll_interval is not None else derive_poll_interval(timeout)
        set_log_context(operation_location=handle.location)
        loop = asyncio.get_running_loop()
        started = loop.time()

        logger.info(
            "Waiting for long-running operation",
            extra={
                "operation_state": handle.state.value,
                "timeout_seconds": timeout,
                "poll_interval_seconds": interval,
            },
        )

        deadline = asyncio.timeout(timeout)
        try:
            async with deadline:
                delay = handle.retry_after if handle.retry_after is not None else interval
                while True:
                    await self._run_cancellable(asyncio.sleep(delay), handle, cancel_event)
                    response = await self._run_cancellable(
                        poll(handle.location), handle, cancel_event
                    )
                    self._apply(handle, response)

                    if handle.state is OperationState.SUCCEEDED:
                        return handle.result
                    if handle.state is OperationState.FAILED:
                        raise OperationFailedError(
                            f"Operation failed: {handle.location}",
                            location=handle.location,
                            error=handle.error,
                        )
                    if handle.state is OperationState.CANCELED:
                        raise OperationCanceledError(
                            f"Operation was canceled by the service: {handle.location}",
                            location=handle.location,
                            by_caller=False,
                        )

                    server_delay = response.retry_after
                    delay = server_delay if server_delay is not None else interval
        except TimeoutError as e:
            if not deadline.expired():
                raise
            elapsed = loop.time() - started
            logger.warning(
                "Long-running operation timed out",
                extra={
                    "operation_state": handle.state.value,
                    "poll_count": handle.poll_count,
                    "timeout_seconds": timeout,
                    "elapsed_seconds": round(elapsed, 3),
                },
            )
            raise OperationTimeoutError(
                f"Operation did not complete within {timeout}s: {handle.location}",
                location=handle.location,
                timeout=timeout,
            ) from e

    async def _run_cancellable(
        self,
        coro: Coroutine[Any, Any, Any],
        handle: OperationHandle,
        cancel_event: asyncio.Event | None,
    ) -> Any:
        """Await ``coro`` unless ``cancel_event`` fires first."""
        if cancel_event is None:
            return await coro
        if cancel_event.is_set():
            coro.close()
            raise self._canceled_by_caller(handle)

        work = asyncio.ensure_future(coro)
        waiter = asyncio.ensure_future(cancel_event.wait())
        try:
            await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            work.cancel()
            waiter.cancel()
            await asyncio.gather(work, waiter, return_exceptions=True)
            raise

        waiter.cancel()
        if cancel_event.is_set():
            work.cancel()
            await asyncio.gather(work, waiter, return_exceptions=True)
            raise self._canceled_by_caller(handle)

        await asyncio.gather(waiter, return_exceptions=True)
        return work.result()

    def _canceled_by_caller(self, handle: OperationHandle) -> OperationCanceledError:
        logger.info(
            "Polling canceled by caller",
            extra={"operation_state": handle.state.value, "poll_count": handle.poll_count},
        )
        return OperationCanceledError(
            f"Polling canceled by caller: {handle.location}",
            location=handle.location,
            by_caller=True,
        )

    def _apply(self, handle: OperationHandle, response: HttpResponse) -> None:
        state, result, error = read_poll_response(response)
        previous = handle.state
        handle.poll_count += 1
        handle.last_polled_at = datetime.now(UTC)

        # Any non-terminal poll answer means the operation is in progress
        if not state.is_terminal:
            state = OperationState.IN_PROGRESS

        handle.state = state
        if state is OperationState.SUCCEEDED:
            handle.result = result
        elif state is OperationState.FAILED:
            handle.error = error

        if state is not previous:
            logger.info(
                "Operation state changed",
                extra={
                    "previous_state": previous.value,
                    "operation_state": state.value,
                    "poll_count": handle.poll_count,
                },
            )
        else:
            logger.debug(
                "Operation still pending",
                extra={"operation_state": state.value, "poll_count": handle.poll_count},
            )


__all__ = [
    "LongRunningOperationPoller",
    "PollFunction",
    "create_handle",
    "derive_poll_interval",
    "get_operation_location",
    "read_poll_response",
]
