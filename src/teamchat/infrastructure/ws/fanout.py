"""Push canonical messages to live subscribers.

Delivery is best-effort and at-most-once per connection: no retry, no queue,
no acknowledgement. A viewer that misses a push catches up from history.
"""
from __future__ import annotations

import logging

from teamchat.application.ports.broadcast import MessageEvent, RelayPublisher
from teamchat.domain.events.message_created import MessageCreated
from teamchat.domain.events.message_deleted import MessageDeleted
from teamchat.domain.events.message_updated import MessageUpdated
from teamchat.domain.value_objects.scope import Scope
from teamchat.infrastructure.ws.protocol import (
    DeletedData,
    MessageDeletedPush,
    MessagePayload,
    MessageUpdatedPush,
    NewDirectMessagePush,
    NewMessagePush,
    WireModel,
)
from teamchat.infrastructure.ws.registry import Connection, ConnectionRegistry

logger = logging.getLogger(__name__)


def build_push(event: MessageEvent) -> tuple[Scope, WireModel]:
    """Map a domain event to its scope and wire envelope."""
    if isinstance(event, MessageCreated):
        data = MessagePayload.from_message(event.message, event.author)
        if event.message.is_direct:
            return event.message.scope, NewDirectMessagePush(data=data)
        return event.message.scope, NewMessagePush(data=data)
    if isinstance(event, MessageUpdated):
        data = MessagePayload.from_message(event.message, event.author)
        return event.message.scope, MessageUpdatedPush(data=data)
    if isinstance(event, MessageDeleted):
        return event.scope, MessageDeletedPush(
            data=DeletedData(id=event.message_id, scope=event.scope.key),
        )
    raise TypeError(f"Unsupported event: {type(event).__name__}")


class LocalFanout:
    """Implements application.ports.broadcast.MessageBroadcaster for this process."""

    def __init__(self, registry: ConnectionRegistry) -> None:
        self._registry = registry

    @property
    def registry(self) -> ConnectionRegistry:
        return self._registry

    async def publish(self, event: MessageEvent) -> int:
        scope, envelope = build_push(event)
        return await self.deliver(scope, envelope)

    async def deliver(
        self,
        scope: Scope,
        envelope: WireModel | str,
        *,
        exclude: Connection | None = None,
    ) -> int:
        """Send *envelope* to every open subscriber of *scope*. Returns deliveries made."""
        raw = envelope if isinstance(envelope, str) else envelope.to_json()
        delivered = 0
        for conn in self._registry.list_subscribers(scope):
            if conn is exclude:
                continue
            if await self._send_raw(conn, raw):
                delivered += 1
        logger.debug("Fan-out to %s: %d delivered", scope.key, delivered)
        return delivered

    async def send(self, conn: Connection, envelope: WireModel) -> bool:
        return await self._send_raw(conn, envelope.to_json())

    async def _send_raw(self, conn: Connection, raw: str) -> bool:
        if not conn.is_open:
            return False
        try:
            await conn.socket.send_text(raw)
        except Exception:
            logger.debug("WS send failed, dropping %s", conn.id, exc_info=True)
            self._registry.unregister(conn)
            return False
        return True


class RedisRelayBroadcaster:
    """Relays message events through Redis Pub/Sub.

    Every process runs a subscriber that hands relayed envelopes to its own
    LocalFanout, this one included, so a push is sent once per process.
    """

    def __init__(self, publisher: RelayPublisher, channel: str) -> None:
        self._publisher = publisher
        self._channel = channel

    async def publish(self, event: MessageEvent) -> int:
        scope, envelope = build_push(event)
        await self._publisher.publish(
            self._channel,
            envelope.type,  # type: ignore[attr-defined]
            {"scope": scope.key, "push": envelope.model_dump(mode="json", by_alias=True)},
        )
        return 0
