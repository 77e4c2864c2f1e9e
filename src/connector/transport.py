"""
HTTP transport built on aiohttp.

Performs exactly one round trip per ``send`` call: no retry, no decoration.
The response body is read inside the ``async with`` block so the connection
goes back to the pool on every exit path, including cancellation.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol

import aiohttp

from connector.errors.exceptions import ConnectionError, TimeoutError
from connector.pipeline.request import HttpResponse, OutboundRequest

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_TIMEOUT = 100.0
DEFAULT_MAX_CONNECTIONS = 100


@dataclass(frozen=True)
class TransportSettings:
    """
    Connection settings for the default aiohttp transport.

    Attributes:
        request_timeout: Total seconds allowed for one round trip
        connect_timeout: Seconds allowed to establish a connection (None = no limit)
        max_connections: Connection pool size
        proxy: Proxy URL, e.g. "http://proxy.local:8080"
        proxy_username / proxy_password: Optional proxy basic auth
        verify_ssl: Verify server certificates
    """

    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    connect_timeout: float | None = None
    max_connections: int = DEFAULT_MAX_CONNECTIONS
    proxy: str | None = None
    proxy_username: str | None = None
    proxy_password: str | None = None
    verify_ssl: bool = True


class Transport(Protocol):
    """Anything able to perform one HTTP round trip."""

    async def send(self, request: OutboundRequest, url: str) -> HttpResponse: ...

    async def close(self) -> None: ...


class HttpTransport:
    """Default transport: one shared aiohttp session per client."""

    def __init__(
        self,
        settings: TransportSettings | None = None,
        session: aiohttp.ClientSession | None = None,
    ):
        self.settings = settings or TransportSettings()
        self._session = session
        self._owns_session = session is None
        self._closed = False

    async def __aenter__(self) -> "HttpTransport":
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._closed:
            raise RuntimeError("HttpTransport is closed, cannot create new session")
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=self.settings.max_connections,
                limit_per_host=self.settings.max_connections,
            )
            self._session = aiohttp.ClientSession(connector=connector)
            self._owns_session = True
        return self._session

    def _request_kwargs(self, request: OutboundRequest) -> dict:
        kwargs: dict = {
            "headers": request.headers,
            "params": request.params,
            "timeout": aiohttp.ClientTimeout(
                total=self.settings.request_timeout,
                connect=self.settings.connect_timeout,
            ),
        }
        if request.body is not None:
            if isinstance(request.body, (bytes, bytearray)):
                kwargs["data"] = request.body
            else:
                kwargs["json"] = request.body
        if self.settings.proxy:
            kwargs["proxy"] = self.settings.proxy
            if self.settings.proxy_username:
                kwargs["proxy_auth"] = aiohttp.BasicAuth(
                    self.settings.proxy_username, self.settings.proxy_password or ""
                )
        if not self.settings.verify_ssl:
            kwargs["ssl"] = False
        return kwargs

    async def send(self, request: OutboundRequest, url: str) -> HttpResponse:
        session = await self._ensure_session()
        loop = asyncio.get_running_loop()
        start_time = loop.time()

        try:
            async with session.request(
                request.method, url, **self._request_kwargs(request)
            ) as response:
                body = await response.read()
                duration = loop.time() - start_time
                logger.debug(
                    "HTTP round trip completed",
                    extra={
                        "http_method": request.method,
                        "http_url": url,
                        "http_status": response.status,
                        "duration_ms": round(duration * 1000, 1),
                    },
                )
                return HttpResponse(
                    status=response.status,
                    headers=dict(response.headers),
                    body=body,
                    url=str(response.url),
                )

        except asyncio.TimeoutError as e:
            raise TimeoutError(
                f"Timeout after {self.settings.request_timeout}s: {request.method} {url}",
                cause=e,
            ) from e

        except aiohttp.ClientError as e:
            raise ConnectionError(
                f"Connection error: {request.method} {url}: {e}",
                cause=e,
            ) from e

    async def close(self) -> None:
        self._closed = True
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
            await asyncio.sleep(0)
        self._session = None


__all__ = ["TransportSettings", "Transport", "HttpTransport"]
