"""Credential providers consumed by the request pipeline."""

from connector.auth.credentials import (
    AUTHORIZATION_HEADER,
    AnonymousCredentials,
    StaticTokenCredentials,
    TokenProviderCredentials,
)

__all__ = [
    "AUTHORIZATION_HEADER",
    "AnonymousCredentials",
    "StaticTokenCredentials",
    "TokenProviderCredentials",
]
