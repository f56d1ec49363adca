from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from teamchat.domain.value_objects.enums import MessageType
from teamchat.domain.value_objects.scope import ChannelScope, DirectScope, Scope


@dataclass(frozen=True, slots=True)
class Attachment:
    url: str
    name: str
    mime_type: str | None = None
    size: int | None = None


@dataclass(frozen=True, slots=True)
class Message:
    id: UUID
    content: str
    author_id: int
    channel_id: UUID | None
    recipient_id: int | None
    message_type: str
    attachment: Attachment | None
    reply_to_id: UUID | None
    client_msg_id: UUID | None
    created_at: datetime
    edited_at: datetime | None = None

    def __post_init__(self) -> None:
        # A message lives in a channel or in a direct conversation, never both.
        if (self.channel_id is None) == (self.recipient_id is None):
            raise ValueError("Message must belong to exactly one scope")

    @property
    def scope(self) -> Scope:
        if self.channel_id is not None:
            return ChannelScope(self.channel_id)
        assert self.recipient_id is not None
        return DirectScope.between(self.author_id, self.recipient_id)

    @property
    def is_direct(self) -> bool:
        return self.recipient_id is not None

    @property
    def is_file(self) -> bool:
        return self.message_type == MessageType.FILE
