from __future__ import annotations

import logging
import uuid

from teamchat.application.dto.message import MessageDraft, MessageWithAuthor
from teamchat.application.dto.principal import Principal
from teamchat.application.exceptions import ConflictError, NotFoundError, ValidationError
from teamchat.application.policies.permissions import assert_author
from teamchat.application.ports.broadcast import MessageBroadcaster, MessageEvent
from teamchat.application.ports.clock import Clock, SystemClock
from teamchat.application.uow import UnitOfWork
from teamchat.config import settings
from teamchat.domain.entities.author import Author
from teamchat.domain.entities.message import Message
from teamchat.domain.events.message_created import MessageCreated
from teamchat.domain.events.message_deleted import MessageDeleted
from teamchat.domain.events.message_updated import MessageUpdated
from teamchat.domain.value_objects.enums import MessageType
from teamchat.domain.value_objects.scope import resolve_channel_ref
from teamchat.infrastructure.db.repositories._cursor import encode_cursor

logger = logging.getLogger(__name__)

_clock: Clock = SystemClock()


def parse_channel_ref(ref: str) -> uuid.UUID:
    try:
        return resolve_channel_ref(ref)
    except ValueError as exc:
        raise ValidationError(f"Malformed channel identifier: {ref!r}") from exc


def _validate_content(content: str) -> None:
    if not content or not content.strip():
        raise ValidationError("Message content must not be empty")
    if len(content) > settings.MESSAGE_MAX_LENGTH:
        raise ValidationError(
            f"Message content exceeds {settings.MESSAGE_MAX_LENGTH} characters"
        )


async def resolve_author(principal: Principal, uow: UnitOfWork) -> Author:
    """Snapshot from the user directory, falling back to token claims."""
    author = await uow.users.get_by_id(principal.user_id)
    if author is not None:
        return author
    return Author(
        id=principal.user_id,
        display_name=principal.display_name or f"User {principal.user_id}",
        email=principal.email,
    )


async def _fan_out(broadcaster: MessageBroadcaster, event: MessageEvent) -> None:
    # The message is already committed; a missed push is recovered from history.
    try:
        await broadcaster.publish(event)
    except Exception:
        logger.exception("Fan-out failed for %s", type(event).__name__)


async def send_channel_message(
    channel_ref: str,
    author: Principal,
    draft: MessageDraft,
    uow: UnitOfWork,
    broadcaster: MessageBroadcaster,
) -> tuple[MessageWithAuthor, bool]:
    """Persist a channel message and push it to the channel's viewers.

    Returns (message, created). When the draft carries a client_msg_id that
    was already stored, the stored message is returned with created=False and
    nothing is pushed a second time.
    """
    channel_id = parse_channel_ref(channel_ref)
    if draft.recipient_id is not None:
        raise ValidationError("A channel message cannot also have a recipient")
    # body scope is optional, but must agree with the path once aliases are resolved
    if draft.channel_ref is not None and parse_channel_ref(draft.channel_ref) != channel_id:
        raise ValidationError("Channel in body does not match the channel in the path")

    message = _new_message(author, draft, channel_id=channel_id, recipient_id=None)
    return await _persist(message, author, uow, broadcaster)


async def send_direct_message(
    recipient_id: int,
    author: Principal,
    draft: MessageDraft,
    uow: UnitOfWork,
    broadcaster: MessageBroadcaster,
) -> tuple[MessageWithAuthor, bool]:
    if recipient_id <= 0:
        raise ValidationError("Malformed recipient identifier")
    if draft.channel_ref is not None:
        raise ValidationError("A direct message cannot also target a channel")
    if draft.recipient_id is not None and draft.recipient_id != recipient_id:
        raise ValidationError("Recipient in body does not match the recipient in the path")

    message = _new_message(author, draft, channel_id=None, recipient_id=recipient_id)
    return await _persist(message, author, uow, broadcaster)


def _new_message(
    author: Principal,
    draft: MessageDraft,
    *,
    channel_id: uuid.UUID | None,
    recipient_id: int | None,
) -> Message:
    _validate_content(draft.content)
    return Message(
        id=uuid.uuid4(),
        content=draft.content,
        author_id=author.user_id,
        channel_id=channel_id,
        recipient_id=recipient_id,
        message_type=MessageType.FILE if draft.attachment else MessageType.TEXT,
        attachment=draft.attachment,
        reply_to_id=draft.reply_to_id,
        client_msg_id=draft.client_msg_id,
        created_at=_clock.now(),
    )


async def _persist(
    message: Message,
    principal: Principal,
    uow: UnitOfWork,
    broadcaster: MessageBroadcaster,
) -> tuple[MessageWithAuthor, bool]:
    stored, created = await uow.messages_w.create_if_not_exists(message)

    if not created and (stored.scope != message.scope or stored.content != message.content):
        raise ConflictError("clientMsgId was already used for a different message")

    author = await resolve_author(principal, uow)
    if created:
        await uow.commit()
        logger.info(
            "Message %s stored in %s by user %s",
            stored.id, stored.scope.key, stored.author_id,
        )
        await _fan_out(broadcaster, MessageCreated(message=stored, author=author))
    else:
        logger.info("Replayed clientMsgId %s → message %s", message.client_msg_id, stored.id)

    return MessageWithAuthor(message=stored, author=author), created


async def _with_authors(messages: list[Message], uow: UnitOfWork) -> list[MessageWithAuthor]:
    authors = await uow.users.get_many({m.author_id for m in messages})
    return [
        MessageWithAuthor(
            message=m,
            author=authors.get(m.author_id) or Author(id=m.author_id, display_name=f"User {m.author_id}"),
        )
        for m in messages
    ]


async def list_channel_messages(
    channel_ref: str,
    before: str | None,
    limit: int,
    uow: UnitOfWork,
) -> list[MessageWithAuthor]:
    channel_id = parse_channel_ref(channel_ref)
    messages = await uow.messages.list_for_channel(channel_id, before=before, limit=limit)
    return await _with_authors(messages, uow)


def next_page_cursor(page: list[MessageWithAuthor], limit: int) -> str | None:
    """Cursor for the page older than *page*, or None when history is exhausted."""
    if not page or len(page) < limit:
        return None
    oldest = page[0].message
    return encode_cursor(oldest.created_at, oldest.id)


async def list_direct_messages(
    principal: Principal,
    peer_id: int,
    before: str | None,
    limit: int,
    uow: UnitOfWork,
) -> list[MessageWithAuthor]:
    if peer_id <= 0:
        raise ValidationError("Malformed recipient identifier")
    messages = await uow.messages.list_direct(
        principal.user_id, peer_id, before=before, limit=limit,
    )
    return await _with_authors(messages, uow)


async def edit_message(
    message_id: uuid.UUID,
    principal: Principal,
    content: str,
    uow: UnitOfWork,
    broadcaster: MessageBroadcaster,
) -> MessageWithAuthor:
    _validate_content(content)
    assert_author(principal, await uow.messages.get_by_id(message_id))

    updated = await uow.messages_w.update_content(message_id, content, _clock.now())
    if updated is None:
        # removed between the read and the write
        raise NotFoundError("Message not found")
    await uow.commit()

    author = await resolve_author(principal, uow)
    await _fan_out(broadcaster, MessageUpdated(message=updated, author=author))
    return MessageWithAuthor(message=updated, author=author)


async def delete_message(
    message_id: uuid.UUID,
    principal: Principal,
    uow: UnitOfWork,
    broadcaster: MessageBroadcaster,
) -> None:
    existing = assert_author(principal, await uow.messages.get_by_id(message_id))
    await uow.messages_w.delete(message_id)
    await uow.commit()
    await _fan_out(broadcaster, MessageDeleted(message_id=existing.id, scope=existing.scope))
