from __future__ import annotations

import logging
from types import TracebackType
from typing import Self

from sqlalchemy.ext.asyncio import AsyncSession

from teamchat.infrastructure.db.repositories.message import (
    MessageReaderRepo,
    MessageWriterRepo,
)
from teamchat.infrastructure.db.repositories.user import UserReaderRepo

logger = logging.getLogger(__name__)


class SqlAlchemyUoW:
    """One request's messages and author lookups over a single AsyncSession.

    Services commit explicitly once a message write is final. Leaving the
    block with an exception rolls back whatever is still pending, so a
    failed send never leaves a half-written row behind.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self.messages = MessageReaderRepo(session)
        self.messages_w = MessageWriterRepo(session)
        self.users = UserReaderRepo(session)

    async def commit(self) -> None:
        await self._session.commit()

    async def rollback(self) -> None:
        await self._session.rollback()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_type is None:
            return
        if self._session.in_transaction():
            logger.debug("Rolling back after %s", exc_type.__name__)
            await self.rollback()
