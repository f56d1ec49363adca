"""Redis Pub/Sub transport for the cross-process fan-out relay."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine

import redis.asyncio as aioredis
from redis.exceptions import ConnectionError as RedisConnectionError

from teamchat.infrastructure.bus.serializer import deserialize_event, serialize_event

logger = logging.getLogger(__name__)

RECONNECT_INITIAL_SECONDS = 0.5
RECONNECT_MAX_SECONDS = 30.0


class RedisPubSubPublisher:
    """Implements application.ports.broadcast.RelayPublisher."""

    def __init__(self, redis: aioredis.Redis) -> None:
        self._redis = redis

    async def publish(self, channel: str, event_type: str, payload: dict[str, Any]) -> int:
        receivers = await self._redis.publish(channel, serialize_event(event_type, payload))
        if receivers == 0:
            # our own subscriber counts as one, so nobody delivers this push
            logger.warning("No relay subscriber on %s, %s dropped", channel, event_type)
        return receivers


OnEventCallback = Callable[[str, dict[str, Any]], Coroutine[Any, Any, None]]


class RedisPubSubSubscriber:
    """Background task feeding relayed pushes to this process.

    Pub/Sub keeps no backlog, so pushes published while the connection is down
    are lost for this process. Viewers recover them from history.
    """

    def __init__(
        self,
        redis: aioredis.Redis,
        channel: str,
        callback: OnEventCallback,
    ) -> None:
        self._redis = redis
        self._channel = channel
        self._callback = callback
        self._task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        self._task = asyncio.create_task(self._run(), name="redis-fanout-relay")
        logger.info("Fan-out relay subscribed to channel=%s", self._channel)

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            logger.info("Fan-out relay stopped")

    async def _run(self) -> None:
        delay = RECONNECT_INITIAL_SECONDS
        while True:
            try:
                await self._listen()
            except RedisConnectionError as exc:
                logger.warning("Fan-out relay lost redis (%s), retrying in %.1fs", exc, delay)
                await asyncio.sleep(delay)
                delay = min(delay * 2, RECONNECT_MAX_SECONDS)
            else:
                delay = RECONNECT_INITIAL_SECONDS

    async def _listen(self) -> None:
        pubsub = self._redis.pubsub(ignore_subscribe_messages=True)
        await pubsub.subscribe(self._channel)
        try:
            async for message in pubsub.listen():
                if message["type"] != "message":
                    continue
                await self._dispatch(message["data"])
        finally:
            await pubsub.aclose()

    async def _dispatch(self, raw: str | bytes) -> None:
        try:
            event_type, data = deserialize_event(raw)
        except (ValueError, KeyError):
            logger.warning("Dropping malformed relay frame: %.200r", raw)
            return
        try:
            await self._callback(event_type, data)
        except Exception:
            logger.exception("Error relaying %s", event_type)
