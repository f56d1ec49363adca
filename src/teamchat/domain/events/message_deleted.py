from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from teamchat.domain.value_objects.scope import Scope


@dataclass(frozen=True, slots=True)
class MessageDeleted:
    message_id: UUID
    scope: Scope
