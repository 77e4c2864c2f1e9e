"""
Credential providers that attach authentication to outbound requests.

The pipeline only consumes the ``sign_request`` capability; acquiring and
refreshing tokens belongs to the provider behind it (for example an OAuth2
token manager passed to ``TokenProviderCredentials``).
"""

import logging

from connector.errors.exceptions import AuthError
from connector.pipeline.request import OutboundRequest
from connector.types import TokenProvider

logger = logging.getLogger(__name__)

AUTHORIZATION_HEADER = "Authorization"
DEFAULT_SCOPES = ["https://api.botframework.com/.default"]


def _mask_token(token: str) -> str:
    if len(token) <= 8:
        return "***"
    return f"{token[:4]}...{token[-4:]}"


class StaticTokenCredentials:
    """Attaches a fixed token, e.g. ``Authorization: Bearer <token>``."""

    def __init__(self, token: str, scheme: str = "Bearer"):
        if not token:
            raise ValueError("StaticTokenCredentials requires a non-empty token")
        self._token = token
        self.scheme = scheme

    async def sign_request(self, request: OutboundRequest) -> None:
        request.headers[AUTHORIZATION_HEADER] = f"{self.scheme} {self._token}"

    def __repr__(self) -> str:
        return f"StaticTokenCredentials(scheme={self.scheme!r}, token={_mask_token(self._token)!r})"


class TokenProviderCredentials:
    """
    Adapts any ``TokenProvider`` (``async get_token(scopes)``) to the pipeline.

    Token caching and refresh are the provider's concern; this adapter asks
    for a token on every call and turns provider failures into ``AuthError``.
    """

    def __init__(
        self,
        token_provider: TokenProvider,
        scopes: list[str] | None = None,
        scheme: str = "Bearer",
    ):
        self.token_provider = token_provider
        self.scopes = list(scopes or DEFAULT_SCOPES)
        self.scheme = scheme

    async def sign_request(self, request: OutboundRequest) -> None:
        try:
            token = await self.token_provider.get_token(self.scopes)
        except AuthError:
            raise
        except Exception as e:
            logger.error(
                "Token provider failed to supply a token: %s",
                e,
                extra={"error_type": type(e).__name__},
            )
            raise AuthError(f"Failed to acquire token for scopes {self.scopes}", cause=e) from e

        if not token:
            raise AuthError(f"Token provider returned an empty token for scopes {self.scopes}")
        request.headers[AUTHORIZATION_HEADER] = f"{self.scheme} {token}"


class AnonymousCredentials:
    """Attaches nothing. For local emulators that accept unauthenticated calls."""

    async def sign_request(self, request: OutboundRequest) -> None:
        return None

    def __repr__(self) -> str:
        return "AnonymousCredentials()"
