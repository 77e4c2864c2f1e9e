"""Resource operations bound to a ConnectorClient."""

from connector.operations.attachments import Attachments
from connector.operations.conversations import Conversations

__all__ = ["Attachments", "Conversations"]
