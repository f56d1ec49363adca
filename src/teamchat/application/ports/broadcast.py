from __future__ import annotations

from typing import Any, Protocol

from teamchat.domain.events.message_created import MessageCreated
from teamchat.domain.events.message_deleted import MessageDeleted
from teamchat.domain.events.message_updated import MessageUpdated

MessageEvent = MessageCreated | MessageUpdated | MessageDeleted


class MessageBroadcaster(Protocol):
    async def publish(self, event: MessageEvent) -> int:
        """Push *event* to live subscribers of its scope. Returns deliveries made locally."""
        ...


class RelayPublisher(Protocol):
    """Cross-process transport used when several API processes share viewers."""

    async def publish(self, channel: str, event_type: str, payload: dict[str, Any]) -> int:
        """Returns how many processes received the frame."""
        ...
