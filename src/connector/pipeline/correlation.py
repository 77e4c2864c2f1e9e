"""Client request id injection."""

import logging
from uuid import uuid4

from connector.logging.context import set_log_context
from connector.pipeline.request import OutboundRequest

logger = logging.getLogger(__name__)

CLIENT_REQUEST_ID_HEADER = "x-ms-client-request-id"


def generate_client_request_id() -> str:
    """Return a fresh 128-bit random identifier."""
    return str(uuid4())


class CorrelationIdInjector:
    """
    Attaches one client request id per logical call.

    Called once during decoration, before the first dispatch. Retries reuse
    the request object, so every attempt carries the same id. A request that
    already has the header keeps it.
    """

    def __init__(self, header_name: str = CLIENT_REQUEST_ID_HEADER):
        self.header_name = header_name

    def apply(self, request: OutboundRequest, enabled: bool) -> str | None:
        if not enabled:
            return None

        existing = request.get_header(self.header_name)
        if existing:
            set_log_context(client_request_id=existing)
            return existing

        request_id = generate_client_request_id()
        request.headers[self.header_name] = request_id
        set_log_context(client_request_id=request_id)
        return request_id
