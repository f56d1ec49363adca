from __future__ import annotations

from typing import Any

from teamchat.domain.entities.message import Attachment, Message
from teamchat.infrastructure.db.models.message import MessageModel


def _attachment_to_json(attachment: Attachment | None) -> dict[str, Any] | None:
    if attachment is None:
        return None
    return {
        "url": attachment.url,
        "name": attachment.name,
        "mime_type": attachment.mime_type,
        "size": attachment.size,
    }


def _attachment_from_json(raw: dict[str, Any] | None) -> Attachment | None:
    if not raw:
        return None
    return Attachment(
        url=raw["url"],
        name=raw["name"],
        mime_type=raw.get("mime_type"),
        size=raw.get("size"),
    )


def model_to_entity(model: MessageModel) -> Message:
    return Message(
        id=model.id,
        content=model.content,
        author_id=model.author_id,
        channel_id=model.channel_id,
        recipient_id=model.recipient_id,
        message_type=model.message_type,
        attachment=_attachment_from_json(model.attachment),
        reply_to_id=model.reply_to_id,
        client_msg_id=model.client_msg_id,
        created_at=model.created_at,
        edited_at=model.edited_at,
    )


def entity_to_values(entity: Message) -> dict[str, Any]:
    return {
        "id": entity.id,
        "content": entity.content,
        "author_id": entity.author_id,
        "channel_id": entity.channel_id,
        "recipient_id": entity.recipient_id,
        "message_type": entity.message_type,
        "attachment": _attachment_to_json(entity.attachment),
        "reply_to_id": entity.reply_to_id,
        "client_msg_id": entity.client_msg_id,
        "created_at": entity.created_at,
        "edited_at": entity.edited_at,
    }
