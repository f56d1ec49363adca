from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from teamchat.domain.entities.author import Author
from teamchat.domain.entities.message import Attachment, Message


@dataclass(frozen=True, slots=True)
class MessageDraft:
    """What a client submits; scope comes from the route."""

    content: str
    channel_ref: str | None = None
    recipient_id: int | None = None
    reply_to_id: UUID | None = None
    client_msg_id: UUID | None = None
    attachment: Attachment | None = None


@dataclass(frozen=True, slots=True)
class MessageWithAuthor:
    message: Message
    author: Author
