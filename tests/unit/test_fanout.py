from __future__ import annotations

import json

import pytest

from teamchat.domain.entities.author import Author
from teamchat.domain.events.message_created import MessageCreated
from teamchat.domain.events.message_deleted import MessageDeleted
from teamchat.domain.events.message_updated import MessageUpdated
from teamchat.domain.value_objects.scope import GENERAL_CHANNEL_ID, ChannelScope, DirectScope
from teamchat.infrastructure.bus.serializer import deserialize_event
from teamchat.infrastructure.ws.fanout import LocalFanout, RedisRelayBroadcaster, build_push
from teamchat.infrastructure.ws.registry import ConnectionRegistry
from tests.conftest import FakeSocket, make_message

GENERAL = ChannelScope(GENERAL_CHANNEL_ID)
ALICE = Author(42, "Alice")


@pytest.fixture
def fanout() -> LocalFanout:
    return LocalFanout(ConnectionRegistry())


def _join(fanout: LocalFanout, scope, user_id: int | None = None, *, fail: bool = False):
    sock = FakeSocket(fail=fail)
    conn = fanout.registry.register(sock)
    if user_id is not None:
        fanout.registry.announce(conn, user_id, "ws")
    fanout.registry.subscribe(conn, scope)
    return conn, sock


@pytest.mark.asyncio
async def test_new_message_reaches_every_channel_subscriber(fanout):
    _, own_tab = _join(fanout, GENERAL, 42)
    _, other = _join(fanout, GENERAL, 7)
    _, elsewhere = _join(fanout, DirectScope.between(1, 2), 1)

    msg = make_message()
    delivered = await fanout.publish(MessageCreated(msg, ALICE))

    assert delivered == 2
    assert own_tab.types() == ["new_message"]
    assert other.frames[0]["data"]["id"] == str(msg.id)
    assert elsewhere.sent == []


@pytest.mark.asyncio
async def test_direct_message_uses_direct_push_type(fanout):
    _, recipient = _join(fanout, GENERAL, 7)

    await fanout.publish(MessageCreated(make_message(author_id=42, recipient_id=7), ALICE))

    assert recipient.types() == ["new_direct_message"]


@pytest.mark.asyncio
async def test_failed_send_unregisters_and_continues(fanout):
    dead, _ = _join(fanout, GENERAL, fail=True)
    _, alive = _join(fanout, GENERAL)

    delivered = await fanout.publish(MessageCreated(make_message(), ALICE))

    assert delivered == 1
    assert dead not in fanout.registry
    assert alive.types() == ["new_message"]


@pytest.mark.asyncio
async def test_deliver_excludes_sender(fanout):
    sender, sender_sock = _join(fanout, GENERAL)
    _, other = _join(fanout, GENERAL)

    await fanout.deliver(GENERAL, '{"type": "heartbeat"}', exclude=sender)

    assert sender_sock.sent == []
    assert other.types() == ["heartbeat"]


def test_build_push_for_edit_and_delete():
    msg = make_message()
    scope, push = build_push(MessageUpdated(msg, ALICE))
    assert scope == GENERAL
    assert push.type == "message_updated"

    scope, push = build_push(MessageDeleted(msg.id, DirectScope(1, 2)))
    assert scope == DirectScope(1, 2)
    assert json.loads(push.to_json())["data"] == {"id": str(msg.id), "scope": "dm:1:2"}


class RecordingPublisher:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str, dict]] = []

    async def publish(self, channel, event_type, payload) -> int:
        self.calls.append((channel, event_type, payload))
        return 1


@pytest.mark.asyncio
async def test_redis_relay_publishes_scope_and_envelope():
    publisher = RecordingPublisher()
    relay = RedisRelayBroadcaster(publisher, "teamchat.test")
    msg = make_message()

    await relay.publish(MessageCreated(msg, ALICE))

    channel, event_type, payload = publisher.calls[0]
    assert channel == "teamchat.test"
    assert event_type == "new_message"
    assert payload["scope"] == GENERAL.key
    assert payload["push"]["data"]["authorId"] == 42


def test_relay_frame_version_checked():
    with pytest.raises(ValueError):
        deserialize_event('{"v": 99, "event": "x", "data": {}}')
    assert deserialize_event('{"v": 1, "event": "x", "data": {"a": 1}}') == ("x", {"a": 1})
