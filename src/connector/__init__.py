"""
Connector request pipeline.

Async client for the Bot Framework connector service: credential
attachment, client request ids, language negotiation, user-agent stamping,
retry with backoff and long-running operation polling.
"""

from connector.auth.credentials import (
    AnonymousCredentials,
    StaticTokenCredentials,
    TokenProviderCredentials,
)
from connector.client import ConnectorClient
from connector.config import ClientConfiguration, load_configuration
from connector.lro.models import OperationHandle, OperationState
from connector.pipeline.request import HttpResponse, OutboundRequest
from connector.resilience.retry import (
    ExponentialBackoffRetryPolicy,
    FixedIntervalRetryPolicy,
    NoRetryPolicy,
)
from connector.transport import HttpTransport, TransportSettings

__version__ = "4.0.0"

__all__ = [
    "ConnectorClient",
    "ClientConfiguration",
    "load_configuration",
    "StaticTokenCredentials",
    "TokenProviderCredentials",
    "AnonymousCredentials",
    "OutboundRequest",
    "HttpResponse",
    "OperationHandle",
    "OperationState",
    "ExponentialBackoffRetryPolicy",
    "FixedIntervalRetryPolicy",
    "NoRetryPolicy",
    "HttpTransport",
    "TransportSettings",
    "__version__",
]
