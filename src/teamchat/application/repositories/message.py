from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from teamchat.domain.entities.message import Message


class MessageReader(Protocol):
    async def get_by_id(self, message_id: UUID) -> Message | None: ...

    async def list_for_channel(
        self,
        channel_id: UUID,
        *,
        before: str | None = None,
        limit: int = 50,
    ) -> list[Message]:
        """Newest *limit* messages (older than *before*), oldest first."""
        ...

    async def list_direct(
        self,
        user_a: int,
        user_b: int,
        *,
        before: str | None = None,
        limit: int = 50,
    ) -> list[Message]: ...


class MessageWriter(Protocol):
    async def create_if_not_exists(self, message: Message) -> tuple[Message, bool]:
        """Insert message. Return (message, created). If conflict on (author_id, client_msg_id) → return existing."""
        ...

    async def get_by_client_msg_id(
        self,
        author_id: int,
        client_msg_id: UUID,
    ) -> Message | None: ...

    async def update_content(
        self,
        message_id: UUID,
        content: str,
        edited_at: datetime,
    ) -> Message | None: ...

    async def delete(self, message_id: UUID) -> bool: ...
