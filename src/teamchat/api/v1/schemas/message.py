from __future__ import annotations

from uuid import UUID

from pydantic import Field

from teamchat.api.v1.schemas.common import CamelModel
from teamchat.application.dto.message import MessageDraft, MessageWithAuthor
from teamchat.infrastructure.ws.protocol import AttachmentPayload, MessagePayload


class SendMessageRequest(CamelModel):
    content: str
    # accepted for compatibility with older clients; identity comes from the session
    author_id: int | None = None
    channel_id: str | None = None
    recipient_id: int | None = None
    reply_to_id: UUID | None = None
    client_msg_id: UUID | None = None
    attachment: AttachmentPayload | None = None

    def to_draft(self) -> MessageDraft:
        return MessageDraft(
            content=self.content,
            channel_ref=self.channel_id,
            recipient_id=self.recipient_id,
            reply_to_id=self.reply_to_id,
            client_msg_id=self.client_msg_id,
            attachment=self.attachment.to_attachment() if self.attachment else None,
        )


class EditMessageRequest(CamelModel):
    content: str = Field(min_length=1)


class MessageResponse(MessagePayload):
    @classmethod
    def from_view(cls, view: MessageWithAuthor) -> MessageResponse:
        return cls.model_validate(
            MessagePayload.from_message(view.message, view.author).model_dump()
        )
