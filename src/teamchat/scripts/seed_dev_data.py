"""Seed development data: creates the tables, a few users and a short #general history."""
from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy.dialects.postgresql import insert as pg_insert

from teamchat.domain.entities.message import Message
from teamchat.domain.value_objects.enums import MessageType
from teamchat.domain.value_objects.scope import GENERAL_CHANNEL_ID
from teamchat.infrastructure.db.base import Base
from teamchat.infrastructure.db.models import UserModel
from teamchat.infrastructure.db.session import AsyncSessionLocal, engine
from teamchat.infrastructure.db.uow import SqlAlchemyUoW

logger = logging.getLogger(__name__)

USERS = [
    (1, "ada@example.com", "Ada", "Lovelace"),
    (2, "grace@example.com", "Grace", "Hopper"),
    (3, "linus@example.com", "Linus", "Torvalds"),
]

GENERAL_HISTORY = [
    (1, "Morning all, standup in ten minutes."),
    (2, "On my way."),
    (3, "Running late, start without me."),
    (1, "Notes are pinned in the channel."),
]


async def seed() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as session:
        uow = SqlAlchemyUoW(session)
        await session.execute(
            pg_insert(UserModel)
            .values([
                {"id": uid, "email": email, "first_name": first, "last_name": last}
                for uid, email, first, last in USERS
            ])
            .on_conflict_do_nothing(index_elements=["id"])
        )

        start = datetime.now(timezone.utc) - timedelta(minutes=len(GENERAL_HISTORY))
        created = 0
        for i, (author_id, content) in enumerate(GENERAL_HISTORY):
            msg = Message(
                id=uuid.uuid4(),
                content=content,
                author_id=author_id,
                channel_id=GENERAL_CHANNEL_ID,
                recipient_id=None,
                message_type=MessageType.TEXT,
                attachment=None,
                reply_to_id=None,
                # stable tokens keep reseeding idempotent
                client_msg_id=uuid.uuid5(GENERAL_CHANNEL_ID, f"seed-{i}"),
                created_at=start + timedelta(minutes=i),
            )
            _stored, was_created = await uow.messages_w.create_if_not_exists(msg)
            created += was_created

        await uow.commit()
        logger.info("Seeded %d users and %d new #general messages", len(USERS), created)


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    asyncio.run(seed())


if __name__ == "__main__":
    main()
