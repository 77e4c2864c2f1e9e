"""Accept-Language negotiation."""

from connector.pipeline.request import OutboundRequest

ACCEPT_LANGUAGE_HEADER = "Accept-Language"
DEFAULT_ACCEPT_LANGUAGE = "en-US"


class LanguageNegotiator:
    """Stamps the preferred response language on every outbound request."""

    def apply(self, request: OutboundRequest, accept_language: str | None) -> None:
        request.headers[ACCEPT_LANGUAGE_HEADER] = accept_language or DEFAULT_ACCEPT_LANGUAGE
