from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from teamchat.domain.entities.author import Author
from teamchat.infrastructure.db.mappers.user import model_to_author
from teamchat.infrastructure.db.models.user import UserModel


class UserReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, user_id: int) -> Author | None:
        model = await self._session.get(UserModel, user_id)
        return model_to_author(model) if model else None

    async def get_many(self, user_ids: set[int]) -> dict[int, Author]:
        if not user_ids:
            return {}
        result = await self._session.execute(
            select(UserModel).where(UserModel.id.in_(user_ids))
        )
        return {m.id: model_to_author(m) for m in result.scalars().all()}
