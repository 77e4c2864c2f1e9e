"""
Conversation operations (``/v3/conversations``).

Payloads (activities, conversation parameters, transcripts) are plain dicts
in the service's JSON shape. Each operation declares whether it is safe to
repeat; POSTs that create something rely on the client request id for
deduplication when retried.
"""

from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from connector.pipeline.request import OutboundRequest

if TYPE_CHECKING:
    from connector.client import ConnectorClient

CONVERSATIONS_PATH = "v3/conversations"


def _segment(value: str, name: str) -> str:
    if not value:
        raise ValueError(f"{name} is required")
    return quote(value, safe="")


class Conversations:
    """Operations on conversations, their activities and members."""

    def __init__(self, client: "ConnectorClient"):
        self._client = client

    def _conversation_path(self, conversation_id: str, *parts: str) -> str:
        return "/".join([CONVERSATIONS_PATH, _segment(conversation_id, "conversation_id"), *parts])

    async def get_conversations(self, continuation_token: str | None = None) -> dict[str, Any]:
        """List conversations the bot has participated in, one page at a time."""
        params = {"continuationToken": continuation_token} if continuation_token else None
        return await self._client.send_json(
            "GET",
            CONVERSATIONS_PATH,
            params=params,
            operation="conversations.get_conversations",
        )

    async def create_conversation(self, parameters: dict[str, Any]) -> dict[str, Any]:
        """
        Create a new conversation.

        The service may answer 202 Accepted and finish asynchronously; in that
        case the call polls until the conversation resource is ready.
        """
        request = OutboundRequest(
            "POST",
            CONVERSATIONS_PATH,
            body=parameters,
            idempotent=False,
            operation="conversations.create_conversation",
        )
        return await self._client.send_and_wait(request)

    async def send_to_conversation(
        self, conversation_id: str, activity: dict[str, Any]
    ) -> dict[str, Any] | None:
        return await self._client.send_json(
            "POST",
            self._conversation_path(conversation_id, "activities"),
            body=activity,
            idempotent=False,
            operation="conversations.send_to_conversation",
        )

    async def send_conversation_history(
        self, conversation_id: str, transcript: dict[str, Any]
    ) -> dict[str, Any] | None:
        """Upload a transcript of historic activities into the conversation."""
        return await self._client.send_json(
            "POST",
            self._conversation_path(conversation_id, "activities", "history"),
            body=transcript,
            idempotent=False,
            operation="conversations.send_conversation_history",
        )

    async def reply_to_activity(
        self, conversation_id: str, activity_id: str, activity: dict[str, Any]
    ) -> dict[str, Any] | None:
        return await self._client.send_json(
            "POST",
            self._conversation_path(
                conversation_id, "activities", _segment(activity_id, "activity_id")
            ),
            body=activity,
            idempotent=False,
            operation="conversations.reply_to_activity",
        )

    async def update_activity(
        self, conversation_id: str, activity_id: str, activity: dict[str, Any]
    ) -> dict[str, Any] | None:
        # PUT replaces the activity, repeating it is harmless
        return await self._client.send_json(
            "PUT",
            self._conversation_path(
                conversation_id, "activities", _segment(activity_id, "activity_id")
            ),
            body=activity,
            operation="conversations.update_activity",
        )

    async def delete_activity(self, conversation_id: str, activity_id: str) -> None:
        await self._client.send_json(
            "DELETE",
            self._conversation_path(
                conversation_id, "activities", _segment(activity_id, "activity_id")
            ),
            operation="conversations.delete_activity",
        )

    async def get_conversation_members(self, conversation_id: str) -> list[dict[str, Any]]:
        return await self._client.send_json(
            "GET",
            self._conversation_path(conversation_id, "members"),
            operation="conversations.get_conversation_members",
        )

    async def get_activity_members(
        self, conversation_id: str, activity_id: str
    ) -> list[dict[str, Any]]:
        return await self._client.send_json(
            "GET",
            self._conversation_path(
                conversation_id, "activities", _segment(activity_id, "activity_id"), "members"
            ),
            operation="conversations.get_activity_members",
        )

    async def delete_conversation_member(self, conversation_id: str, member_id: str) -> None:
        await self._client.send_json(
            "DELETE",
            self._conversation_path(conversation_id, "members", _segment(member_id, "member_id")),
            operation="conversations.delete_conversation_member",
        )

    async def upload_attachment(
        self, conversation_id: str, attachment_upload: dict[str, Any]
    ) -> dict[str, Any]:
        """Store an attachment in the channel's blob storage; returns its resource id."""
        return await self._client.send_json(
            "POST",
            self._conversation_path(conversation_id, "attachments"),
            body=attachment_upload,
            idempotent=False,
            operation="conversations.upload_attachment",
        )
