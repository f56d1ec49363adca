"""Shared test fixtures."""
from __future__ import annotations

import dataclasses
import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

import pytest
from starlette.websockets import WebSocketState

from teamchat.application.dto.principal import Principal
from teamchat.application.ports.broadcast import MessageEvent
from teamchat.domain.entities.author import Author
from teamchat.domain.entities.message import Message
from teamchat.domain.value_objects.enums import MessageType
from teamchat.domain.value_objects.scope import GENERAL_CHANNEL_ID
from teamchat.infrastructure.db.repositories._cursor import decode_cursor

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def alice() -> Principal:
    return Principal(user_id=42, roles=[], display_name="Alice", email="alice@example.com")


@pytest.fixture
def bob() -> Principal:
    return Principal(user_id=7, roles=[], display_name="Bob")


def make_message(
    *,
    content: str = "hello",
    author_id: int = 42,
    channel_id: UUID | None = GENERAL_CHANNEL_ID,
    recipient_id: int | None = None,
    client_msg_id: UUID | None = None,
    created_at: datetime | None = None,
) -> Message:
    if recipient_id is not None:
        channel_id = None
    return Message(
        id=uuid.uuid4(),
        content=content,
        author_id=author_id,
        channel_id=channel_id,
        recipient_id=recipient_id,
        message_type=MessageType.TEXT,
        attachment=None,
        reply_to_id=None,
        client_msg_id=client_msg_id,
        created_at=created_at or datetime.now(timezone.utc),
    )


class FakeClock:
    def __init__(self, start: datetime = T0) -> None:
        self._now = start

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now += timedelta(seconds=seconds)


class FakeSocket:
    """Stands in for a Starlette WebSocket on the push side."""

    def __init__(self, *, fail: bool = False) -> None:
        self.application_state = WebSocketState.CONNECTED
        self.sent: list[str] = []
        self.fail = fail

    async def send_text(self, data: str) -> None:
        if self.fail:
            raise RuntimeError("socket is gone")
        self.sent.append(data)

    @property
    def frames(self) -> list[dict[str, Any]]:
        return [json.loads(s) for s in self.sent]

    def types(self) -> list[str]:
        return [f["type"] for f in self.frames]


@dataclass
class FakeMessageReader:
    _messages: list[Message] = field(default_factory=list)

    async def get_by_id(self, message_id: UUID) -> Message | None:
        return next((m for m in self._messages if m.id == message_id), None)

    async def list_for_channel(
        self, channel_id: UUID, *, before: str | None = None, limit: int = 50,
    ) -> list[Message]:
        return self._page([m for m in self._messages if m.channel_id == channel_id], before, limit)

    async def list_direct(
        self, user_a: int, user_b: int, *, before: str | None = None, limit: int = 50,
    ) -> list[Message]:
        pair = {user_a, user_b}
        rows = [
            m for m in self._messages
            if m.is_direct and {m.author_id, m.recipient_id} == pair
        ]
        return self._page(rows, before, limit)

    @staticmethod
    def _page(rows: list[Message], before: str | None, limit: int) -> list[Message]:
        rows = sorted(rows, key=lambda m: (m.created_at, m.id))
        if before:
            ts, mid = decode_cursor(before)
            rows = [m for m in rows if (m.created_at, m.id) < (ts, mid)]
        return rows[-limit:]


@dataclass
class FakeMessageWriter:
    _reader: FakeMessageReader

    async def create_if_not_exists(self, message: Message) -> tuple[Message, bool]:
        if message.client_msg_id is not None:
            existing = await self.get_by_client_msg_id(message.author_id, message.client_msg_id)
            if existing is not None:
                return existing, False
        self._reader._messages.append(message)
        return message, True

    async def get_by_client_msg_id(self, author_id: int, client_msg_id: UUID) -> Message | None:
        for m in self._reader._messages:
            if m.author_id == author_id and m.client_msg_id == client_msg_id:
                return m
        return None

    async def update_content(self, message_id: UUID, content: str, edited_at: datetime) -> Message | None:
        for i, m in enumerate(self._reader._messages):
            if m.id == message_id:
                updated = dataclasses.replace(m, content=content, edited_at=edited_at)
                self._reader._messages[i] = updated
                return updated
        return None

    async def delete(self, message_id: UUID) -> bool:
        before = len(self._reader._messages)
        self._reader._messages = [m for m in self._reader._messages if m.id != message_id]
        return len(self._reader._messages) < before


@dataclass
class FakeUserReader:
    _authors: dict[int, Author] = field(default_factory=dict)

    async def get_by_id(self, user_id: int) -> Author | None:
        return self._authors.get(user_id)

    async def get_many(self, user_ids: set[int]) -> dict[int, Author]:
        return {uid: a for uid, a in self._authors.items() if uid in user_ids}


@dataclass
class FakeUoW:
    """In-memory UoW for unit tests."""
    messages: FakeMessageReader = field(default_factory=FakeMessageReader)
    messages_w: FakeMessageWriter | None = None
    users: FakeUserReader = field(default_factory=FakeUserReader)
    _committed: bool = False
    commits: int = 0

    def __post_init__(self) -> None:
        if self.messages_w is None:
            self.messages_w = FakeMessageWriter(self.messages)

    async def commit(self) -> None:
        self._committed = True
        self.commits += 1

    async def rollback(self) -> None:
        pass


@dataclass
class FakeBroadcaster:
    events: list[MessageEvent] = field(default_factory=list)
    fail: bool = False

    async def publish(self, event: MessageEvent) -> int:
        if self.fail:
            raise ConnectionError("relay down")
        self.events.append(event)
        return 1
