from __future__ import annotations

from teamchat.application.dto.principal import Principal
from teamchat.application.exceptions import ForbiddenError, NotFoundError
from teamchat.domain.entities.message import Message


def assert_author(principal: Principal, message: Message | None) -> Message:
    """Raise if the message doesn't exist or wasn't written by principal."""
    if message is None:
        raise NotFoundError("Message not found")
    if message.author_id != principal.user_id:
        raise ForbiddenError("Only the author can change this message")
    return message
