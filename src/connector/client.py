"""
Connector service client.

Every call flows through the same pipeline:

    decorate (credentials, client request id, Accept-Language, User-Agent)
      -> retry runner -> transport -> status classification
      -> [202 Accepted with an operation location] -> long-running operation poller

The client holds one configuration snapshot at a time. Setters swap the
snapshot; a call reads it once when it starts, so changing a setting never
affects calls already in flight.
"""

import asyncio
import logging
from typing import Any

from connector.config import DEFAULT_BASE_URL, ClientConfiguration
from connector.errors.exceptions import AuthError
from connector.errors.exceptions import TimeoutError as RequestTimeoutError
from connector.errors.http import raise_for_status
from connector.logging.context import LogContext
from connector.lro.models import OperationHandle
from connector.lro.poller import (
    LongRunningOperationPoller,
    PollFunction,
    create_handle,
    get_operation_location,
)
from connector.operations.attachments import Attachments
from connector.operations.conversations import Conversations
from connector.pipeline.correlation import CorrelationIdInjector
from connector.pipeline.language import LanguageNegotiator
from connector.pipeline.request import HttpResponse, OutboundRequest
from connector.pipeline.user_agent import USER_AGENT_HEADER
from connector.resilience.retry import RetryPolicy, execute_with_retry
from connector.transport import HttpTransport, Transport
from connector.types import CredentialProvider

logger = logging.getLogger(__name__)


class ConnectorClient:
    """
    Async client for the connector service.

    Construct with credentials (and optionally a base URL), or with a full
    ClientConfiguration. A custom transport (any object with ``send`` and
    ``close``) may be injected; otherwise an aiohttp transport is created from
    ``configuration.transport`` and opened lazily on the first call.

    Usage:
        async with ConnectorClient(StaticTokenCredentials(token)) as client:
            await client.conversations.send_to_conversation(conversation_id, activity)
    """

    def __init__(
        self,
        credentials: CredentialProvider | None = None,
        base_url: str = DEFAULT_BASE_URL,
        *,
        configuration: ClientConfiguration | None = None,
        transport: Transport | None = None,
    ):
        if configuration is None:
            if credentials is None:
                raise ValueError("ConnectorClient requires credentials or a configuration")
            configuration = ClientConfiguration(credentials=credentials, base_url=base_url)
        elif credentials is not None:
            raise ValueError("Pass credentials inside the configuration, not both")

        self._configuration = configuration
        self._transport = transport or HttpTransport(configuration.transport)
        self._owns_transport = transport is None

        self._correlation = CorrelationIdInjector()
        self._language = LanguageNegotiator()
        self._poller = LongRunningOperationPoller()

        self.conversations = Conversations(self)
        self.attachments = Attachments(self)

        logger.info(
            "ConnectorClient initialized",
            extra={
                "base_url": configuration.base_url,
                "user_agent": configuration.user_agent,
                "accept_language": configuration.accept_language,
            },
        )

    async def __aenter__(self) -> "ConnectorClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_transport:
            await self._transport.close()

    # -- configuration -----------------------------------------------------

    @property
    def configuration(self) -> ClientConfiguration:
        return self._configuration

    @property
    def base_url(self) -> str:
        return self._configuration.base_url

    @property
    def user_agent(self) -> str:
        return self._configuration.user_agent

    @property
    def accept_language(self) -> str:
        return self._configuration.accept_language

    @accept_language.setter
    def accept_language(self, value: str) -> None:
        self._configuration = self._configuration.with_changes(accept_language=value)

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._configuration.retry_policy

    @retry_policy.setter
    def retry_policy(self, value: RetryPolicy) -> None:
        self._configuration = self._configuration.with_changes(retry_policy=value)

    @property
    def long_running_operation_timeout(self) -> int:
        return self._configuration.long_running_operation_timeout

    @long_running_operation_timeout.setter
    def long_running_operation_timeout(self, value: int) -> None:
        self._configuration = self._configuration.with_changes(
            long_running_operation_timeout=value
        )

    @property
    def generate_client_request_id(self) -> bool:
        return self._configuration.generate_client_request_id

    @generate_client_request_id.setter
    def generate_client_request_id(self, value: bool) -> None:
        self._configuration = self._configuration.with_changes(generate_client_request_id=value)

    # -- pipeline ----------------------------------------------------------

    async def _decorate(self, request: OutboundRequest, config: ClientConfiguration) -> str | None:
        """Attach auth, client request id, language and user agent. Returns the request id."""
        try:
            await config.credentials.sign_request(request)
        except AuthError:
            raise
        except Exception as e:
            raise AuthError(
                f"Credential provider failed to sign {request.operation}", cause=e
            ) from e

        request_id = self._correlation.apply(request, config.generate_client_request_id)
        self._language.apply(request, config.accept_language)
        request.headers[USER_AGENT_HEADER] = config.user_agent
        return request_id

    @staticmethod
    def _url_for(path: str, config: ClientConfiguration) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{config.base_url}/{path.lstrip('/')}"

    async def _execute(self, request: OutboundRequest, config: ClientConfiguration) -> HttpResponse:
        request_id = await self._decorate(request, config)
        url = self._url_for(request.path, config)

        # The client request id lets the service deduplicate a repeated POST
        retryable = request.is_idempotent or request_id is not None
        if not retryable:
            logger.debug(
                "Non-idempotent request without client request id, single attempt",
                extra={
                    "http_method": request.method,
                    "api_path": request.path,
                    "idempotent": request.is_idempotent,
                },
            )

        async def attempt() -> HttpResponse:
            response = await self._transport.send(request, url)
            raise_for_status(response)
            return response

        return await execute_with_retry(
            attempt,
            config.retry_policy,
            operation=request.operation,
            retryable=retryable,
        )

    @staticmethod
    def _read_body(request: OutboundRequest, response: HttpResponse) -> Any:
        if not response.body:
            return None
        if not request.expect_json:
            return response.body
        return response.json()

    def _poll_function(self, config: ClientConfiguration) -> PollFunction:
        async def poll(location: str) -> HttpResponse:
            request = OutboundRequest("GET", location, operation="operation.poll")
            return await self._execute(request, config)

        return poll

    async def send(self, request: OutboundRequest, *, timeout: float | None = None) -> HttpResponse:
        """
        Issue one logical call (with retries) and return the successful response.

        Args:
            request: Fresh request; decorated in place
            timeout: Optional deadline in seconds over all attempts and backoff

        Raises:
            ConnectorError: The classified failure of the last attempt
        """
        config = self._configuration
        with LogContext(operation=request.operation):
            if timeout is None:
                return await self._execute(request, config)

            deadline = asyncio.timeout(timeout)
            try:
                async with deadline:
                    return await self._execute(request, config)
            except TimeoutError as e:
                if not deadline.expired():
                    raise
                raise RequestTimeoutError(
                    f"{request.operation} did not complete within {timeout}s", cause=e
                ) from e

    async def send_json(
        self,
        method: str,
        path: str,
        *,
        body: Any = None,
        params: dict[str, str] | None = None,
        idempotent: bool | None = None,
        expect_json: bool = True,
        operation: str = "",
        timeout: float | None = None,
    ) -> Any:
        """Send a request and return the decoded response body (None when empty)."""
        request = OutboundRequest(
            method,
            path,
            body=body,
            params=params,
            idempotent=idempotent,
            expect_json=expect_json,
            operation=operation,
        )
        response = await self.send(request, timeout=timeout)
        return self._read_body(request, response)

    async def begin_operation(self, request: OutboundRequest) -> OperationHandle | HttpResponse:
        """
        Issue an initiating call.

        Returns an OperationHandle when the service answers 202 Accepted with an
        operation location, otherwise the completed response.
        """
        response = await self.send(request)
        if response.status == 202 and get_operation_location(response):
            handle = create_handle(response)
            logger.info(
                "Operation accepted",
                extra={"operation": request.operation, "operation_state": handle.state.value},
            )
            return handle
        return response

    async def wait_for_operation(
        self,
        handle: OperationHandle,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> Any:
        """Poll ``handle`` until terminal under the long-running operation timeout."""
        config = self._configuration
        with LogContext(operation_location=handle.location):
            return await self._poller.wait(
                handle,
                self._poll_function(config),
                timeout=config.long_running_operation_timeout,
                poll_interval=config.lro_poll_interval,
                cancel_event=cancel_event,
            )

    async def send_and_wait(
        self,
        request: OutboundRequest,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> Any:
        """
        Issue a call and, if the service accepts it as a long-running
        operation, poll it to completion.

        Returns:
            The operation result, or the decoded body of an immediate response

        Raises:
            OperationFailedError: The service reported the operation failed
            OperationTimeoutError: No terminal state within the timeout
            OperationCanceledError: Canceled by the service or via cancel_event
        """
        config = self._configuration
        with LogContext(operation=request.operation):
            response = await self._execute(request, config)
            if response.status != 202 or not get_operation_location(response):
                return self._read_body(request, response)

            handle = create_handle(response)
            with LogContext(operation_location=handle.location):
                return await self._poller.wait(
                    handle,
                    self._poll_function(config),
                    timeout=config.long_running_operation_timeout,
                    poll_interval=config.lro_poll_interval,
                    cancel_event=cancel_event,
                )

    def __repr__(self) -> str:
        return f"ConnectorClient(base_url={self.base_url!r})"


__all__ = ["ConnectorClient"]
