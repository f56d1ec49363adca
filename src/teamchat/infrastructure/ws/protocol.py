"""Realtime wire format.

Both directions are closed tagged unions keyed on ``type``. JSON field names
are camelCase to match the browser client.
"""
from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from teamchat.application.exceptions import ProtocolError
from teamchat.domain.entities.author import Author
from teamchat.domain.entities.message import Attachment, Message
from teamchat.domain.value_objects.enums import ControlType, PushType


class WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


# ── payloads ──────────────────────────────────────────────────────


class AuthorPayload(WireModel):
    id: int
    display_name: str
    email: str | None = None

    @classmethod
    def from_author(cls, author: Author) -> AuthorPayload:
        return cls(id=author.id, display_name=author.display_name, email=author.email)


class AttachmentPayload(WireModel):
    url: str
    name: str
    mime_type: str | None = None
    size: int | None = Field(default=None, ge=0)

    @classmethod
    def from_attachment(cls, attachment: Attachment) -> AttachmentPayload:
        return cls(
            url=attachment.url,
            name=attachment.name,
            mime_type=attachment.mime_type,
            size=attachment.size,
        )

    def to_attachment(self) -> Attachment:
        return Attachment(url=self.url, name=self.name, mime_type=self.mime_type, size=self.size)


class MessagePayload(WireModel):
    """Canonical message joined with its author snapshot."""

    id: UUID
    content: str
    author_id: int
    channel_id: UUID | None = None
    recipient_id: int | None = None
    message_type: str = "text"
    attachment: AttachmentPayload | None = None
    reply_to_id: UUID | None = None
    client_msg_id: UUID | None = None
    created_at: datetime
    edited_at: datetime | None = None
    author: AuthorPayload

    @classmethod
    def from_message(cls, message: Message, author: Author) -> MessagePayload:
        return cls(
            id=message.id,
            content=message.content,
            author_id=message.author_id,
            channel_id=message.channel_id,
            recipient_id=message.recipient_id,
            message_type=message.message_type,
            attachment=(
                AttachmentPayload.from_attachment(message.attachment)
                if message.attachment else None
            ),
            reply_to_id=message.reply_to_id,
            client_msg_id=message.client_msg_id,
            created_at=message.created_at,
            edited_at=message.edited_at,
            author=AuthorPayload.from_author(author),
        )


# ── client → server ───────────────────────────────────────────────


class JoinWorkspace(WireModel):
    type: Literal["join_workspace"]
    workspace_id: str
    user_id: int


class JoinChannel(WireModel):
    type: Literal["join_channel"]
    channel_id: str


class JoinDirect(WireModel):
    type: Literal["join_direct"]
    peer_user_id: int


class Typing(WireModel):
    type: Literal["typing"]
    # informational; the server uses the connection's own scope and identity
    channel_id: str | None = None
    user_id: int | None = None


class StopTyping(WireModel):
    type: Literal["stop_typing"]
    channel_id: str | None = None
    user_id: int | None = None


class Ping(WireModel):
    type: Literal["ping"]


ControlMessage = Annotated[
    Union[JoinWorkspace, JoinChannel, JoinDirect, Typing, StopTyping, Ping],
    Field(discriminator="type"),
]

_control_adapter: TypeAdapter[ControlMessage] = TypeAdapter(ControlMessage)
_CONTROL_TYPES = frozenset(t.value for t in ControlType)


class WsInbound(BaseModel):
    """Loose envelope used to read the tag before strict validation."""

    model_config = ConfigDict(extra="allow")

    type: str


def parse_control(raw: str | bytes) -> ControlMessage | None:
    """Parse one control frame.

    Returns None for unknown types (ignored for forward compatibility).
    Raises ProtocolError when the frame is not JSON or a known type is malformed.
    """
    try:
        envelope = WsInbound.model_validate_json(raw)
    except PydanticValidationError as exc:
        raise ProtocolError(f"invalid envelope: {exc.error_count()} error(s)") from exc

    if envelope.type not in _CONTROL_TYPES:
        return None

    try:
        return _control_adapter.validate_json(raw)
    except PydanticValidationError as exc:
        raise ProtocolError(f"invalid {envelope.type}: {exc.error_count()} error(s)") from exc


# ── server → client ───────────────────────────────────────────────


class NewMessagePush(WireModel):
    type: Literal["new_message"] = "new_message"
    data: MessagePayload


class NewDirectMessagePush(WireModel):
    type: Literal["new_direct_message"] = "new_direct_message"
    data: MessagePayload


class MessageUpdatedPush(WireModel):
    type: Literal["message_updated"] = "message_updated"
    data: MessagePayload


class DeletedData(WireModel):
    id: UUID
    scope: str


class MessageDeletedPush(WireModel):
    type: Literal["message_deleted"] = "message_deleted"
    data: DeletedData


class UserTypingPush(WireModel):
    type: Literal["user_typing"] = "user_typing"
    user_id: int
    channel_id: UUID | None = None
    scope: str


class UserStopTypingPush(WireModel):
    type: Literal["user_stop_typing"] = "user_stop_typing"
    user_id: int
    channel_id: UUID | None = None
    scope: str


class PongPush(WireModel):
    type: Literal["pong"] = "pong"


class HeartbeatPush(WireModel):
    type: Literal["heartbeat"] = "heartbeat"


PushMessage = Annotated[
    Union[
        NewMessagePush,
        NewDirectMessagePush,
        MessageUpdatedPush,
        MessageDeletedPush,
        UserTypingPush,
        UserStopTypingPush,
        PongPush,
        HeartbeatPush,
    ],
    Field(discriminator="type"),
]

_push_adapter: TypeAdapter[PushMessage] = TypeAdapter(PushMessage)
_PUSH_TYPES = frozenset(t.value for t in PushType)


def parse_push(raw: str | bytes | dict[str, Any]) -> PushMessage | None:
    """Client-side counterpart of parse_control. Unknown push types → None."""
    try:
        envelope = (
            WsInbound.model_validate(raw) if isinstance(raw, dict)
            else WsInbound.model_validate_json(raw)
        )
    except PydanticValidationError as exc:
        raise ProtocolError(f"invalid push envelope: {exc.error_count()} error(s)") from exc

    if envelope.type not in _PUSH_TYPES:
        return None

    try:
        if isinstance(raw, dict):
            return _push_adapter.validate_python(raw)
        return _push_adapter.validate_json(raw)
    except PydanticValidationError as exc:
        raise ProtocolError(f"invalid {envelope.type}: {exc.error_count()} error(s)") from exc
