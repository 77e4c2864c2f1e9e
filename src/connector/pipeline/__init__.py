"""
Request decoration components.

Each component mutates an OutboundRequest during the decoration phase, before
the first dispatch attempt.
"""

from connector.pipeline.correlation import (
    CLIENT_REQUEST_ID_HEADER,
    CorrelationIdInjector,
    generate_client_request_id,
)
from connector.pipeline.language import (
    ACCEPT_LANGUAGE_HEADER,
    DEFAULT_ACCEPT_LANGUAGE,
    LanguageNegotiator,
)
from connector.pipeline.request import HttpResponse, OutboundRequest
from connector.pipeline.user_agent import (
    FALLBACK_VERSION,
    PRODUCT_NAME,
    USER_AGENT_HEADER,
    PackageMetadataProvider,
    UserAgentBuilder,
    build_user_agent,
)

__all__ = [
    "OutboundRequest",
    "HttpResponse",
    "CorrelationIdInjector",
    "CLIENT_REQUEST_ID_HEADER",
    "generate_client_request_id",
    "LanguageNegotiator",
    "ACCEPT_LANGUAGE_HEADER",
    "DEFAULT_ACCEPT_LANGUAGE",
    "UserAgentBuilder",
    "PackageMetadataProvider",
    "build_user_agent",
    "PRODUCT_NAME",
    "FALLBACK_VERSION",
    "USER_AGENT_HEADER",
]
