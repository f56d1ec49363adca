from __future__ import annotations

from typing import Protocol

from teamchat.application.repositories.message import MessageReader, MessageWriter
from teamchat.application.repositories.user import UserReader


class UnitOfWork(Protocol):
    """Repositories sharing one transaction.

    `messages_w` is kept apart from `messages` so read-only paths (history)
    never see the writer.
    """

    messages: MessageReader
    messages_w: MessageWriter
    users: UserReader

    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...
