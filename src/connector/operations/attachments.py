"""Attachment operations (``/v3/attachments``)."""

import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

if TYPE_CHECKING:
    from connector.client import ConnectorClient

logger = logging.getLogger(__name__)


class Attachments:
    """Read-only access to attachments stored by the connector service."""

    def __init__(self, client: "ConnectorClient"):
        self._client = client

    async def get_attachment_info(self, attachment_id: str) -> dict[str, Any]:
        """Get the name, type and available views of an attachment."""
        return await self._client.send_json(
            "GET",
            f"v3/attachments/{quote(attachment_id, safe='')}",
            operation="attachments.get_attachment_info",
        )

    async def get_attachment(self, attachment_id: str, view_id: str) -> bytes:
        """Download one view (e.g. "original", "thumbnail") of an attachment."""
        path = f"v3/attachments/{quote(attachment_id, safe='')}/views/{quote(view_id, safe='')}"
        content = await self._client.send_json(
            "GET",
            path,
            expect_json=False,
            operation="attachments.get_attachment",
        )
        logger.debug("Downloaded attachment view", extra={"api_path": path})
        return content or b""
