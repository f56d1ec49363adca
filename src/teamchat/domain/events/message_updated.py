from __future__ import annotations

from dataclasses import dataclass

from teamchat.domain.entities.author import Author
from teamchat.domain.entities.message import Message


@dataclass(frozen=True, slots=True)
class MessageUpdated:
    message: Message
    author: Author
