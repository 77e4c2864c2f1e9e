"""
Core types and protocols used across modules.

This module provides the enums and protocol definitions shared by the
request pipeline so that every component classifies failures the same way
and depends only on capabilities, never on concrete providers.
"""

from enum import Enum
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from connector.pipeline.request import OutboundRequest


class ErrorCategory(Enum):
    """
    Classification of error types for handling decisions.

    Categories:
        TRANSIENT: Temporary failures that may succeed on retry
                   (e.g., connection resets, timeouts, 429/5xx responses)
        AUTH: Authentication failures. Never retried by the pipeline;
              refreshing credentials is the credential provider's job.
        PERMANENT: Failures that won't succeed on retry
                   (e.g., 400/404, malformed response bodies)
        UNKNOWN: Unclassified errors, not retried by the default policy
    """

    TRANSIENT = "transient"
    AUTH = "auth"
    PERMANENT = "permanent"
    UNKNOWN = "unknown"


class CredentialProvider(Protocol):
    """
    Capability that attaches authentication material to a request.

    Implementations mutate ``request.headers`` (typically ``Authorization``).
    Acquiring or refreshing the underlying token is out of the pipeline's
    hands: a provider that cannot authenticate should raise.
    """

    async def sign_request(self, request: "OutboundRequest") -> None: ...


class TokenProvider(Protocol):
    """
    Protocol for access token sources (OAuth2 managers, Azure AD clients, ...).
    """

    async def get_token(self, scopes: list[str]) -> str:
        """
        Get an access token for the specified scopes.

        Args:
            scopes: OAuth scopes to request

        Returns:
            Access token string
        """
        ...


class BuildMetadataProvider(Protocol):
    """Source of the client build version used in the User-Agent header."""

    def get_version(self) -> str: ...


__all__ = [
    "ErrorCategory",
    "CredentialProvider",
    "TokenProvider",
    "BuildMetadataProvider",
]
