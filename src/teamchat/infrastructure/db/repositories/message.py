from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import and_, delete, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from teamchat.domain.entities.message import Message
from teamchat.infrastructure.db.mappers import message as mapper
from teamchat.infrastructure.db.models.message import MessageModel
from teamchat.infrastructure.db.repositories._cursor import decode_cursor


class MessageReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, message_id: UUID) -> Message | None:
        model = await self._session.get(MessageModel, message_id)
        return mapper.model_to_entity(model) if model else None

    async def list_for_channel(
        self,
        channel_id: UUID,
        *,
        before: str | None = None,
        limit: int = 50,
    ) -> list[Message]:
        stmt = select(MessageModel).where(MessageModel.channel_id == channel_id)
        return await self._latest_page(stmt, before, limit)

    async def list_direct(
        self,
        user_a: int,
        user_b: int,
        *,
        before: str | None = None,
        limit: int = 50,
    ) -> list[Message]:
        stmt = select(MessageModel).where(
            MessageModel.channel_id.is_(None),
            or_(
                and_(MessageModel.author_id == user_a, MessageModel.recipient_id == user_b),
                and_(MessageModel.author_id == user_b, MessageModel.recipient_id == user_a),
            ),
        )
        return await self._latest_page(stmt, before, limit)

    async def _latest_page(
        self,
        stmt: Select[tuple[MessageModel]],
        before: str | None,
        limit: int,
    ) -> list[Message]:
        if before:
            ts, mid = decode_cursor(before)
            stmt = stmt.where(
                (MessageModel.created_at < ts)
                | ((MessageModel.created_at == ts) & (MessageModel.id < mid))
            )
        stmt = stmt.order_by(MessageModel.created_at.desc(), MessageModel.id.desc()).limit(limit)
        result = await self._session.execute(stmt)
        rows = [mapper.model_to_entity(m) for m in result.scalars().all()]
        rows.reverse()
        return rows


class MessageWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create_if_not_exists(self, message: Message) -> tuple[Message, bool]:
        """Insert message idempotently. Returns (message, created_flag)."""
        stmt = (
            pg_insert(MessageModel)
            .values(**mapper.entity_to_values(message))
            .on_conflict_do_nothing(constraint="uq_message_idempotency")
            .returning(MessageModel)
        )
        result = await self._session.execute(stmt)
        row = result.scalar_one_or_none()

        if row is not None:
            return mapper.model_to_entity(row), True

        # conflict is only possible when a token was supplied
        assert message.client_msg_id is not None
        existing = await self.get_by_client_msg_id(message.author_id, message.client_msg_id)
        assert existing is not None
        return existing, False

    async def get_by_client_msg_id(
        self,
        author_id: int,
        client_msg_id: UUID,
    ) -> Message | None:
        stmt = select(MessageModel).where(
            MessageModel.author_id == author_id,
            MessageModel.client_msg_id == client_msg_id,
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def update_content(
        self,
        message_id: UUID,
        content: str,
        edited_at: datetime,
    ) -> Message | None:
        stmt = (
            update(MessageModel)
            .where(MessageModel.id == message_id)
            .values(content=content, edited_at=edited_at)
            .returning(MessageModel)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def delete(self, message_id: UUID) -> bool:
        result = await self._session.execute(
            delete(MessageModel).where(MessageModel.id == message_id)
        )
        return result.rowcount > 0
