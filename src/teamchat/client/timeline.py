"""Client-side view of one scope's messages with optimistic inserts.

A message the user submits shows up at once as a *provisional* entry keyed by
its idempotency token. It becomes *confirmed* when either the HTTP response
or the realtime push for it arrives, whichever is first; the second one is
recognised and dropped, so the canonical message is never shown twice.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Iterable
from uuid import UUID

from teamchat.infrastructure.ws.protocol import MessagePayload

logger = logging.getLogger(__name__)


class EntryState(StrEnum):
    PROVISIONAL = "provisional"
    CONFIRMED = "confirmed"


@dataclass(slots=True)
class TimelineEntry:
    local_id: str
    message: MessagePayload
    state: EntryState

    @property
    def is_provisional(self) -> bool:
        return self.state is EntryState.PROVISIONAL


class MessageTimeline:
    def __init__(self) -> None:
        self._entries: dict[str, TimelineEntry] = {}

    def add_provisional(self, local_id: str, message: MessagePayload) -> TimelineEntry:
        entry = TimelineEntry(local_id, message, EntryState.PROVISIONAL)
        self._entries[local_id] = entry
        return entry

    def confirm(self, local_id: str, canonical: MessagePayload) -> bool:
        """Apply the HTTP response for *local_id*. Returns False if it was a no-op."""
        entry = self._entries.get(local_id)
        if entry is not None and not entry.is_provisional:
            # push got here first
            return False

        if self._shown_by(canonical.id, other_than=local_id) is not None:
            self._entries.pop(local_id, None)
            return False

        if entry is None:
            logger.debug("Confirmation for unknown entry %s ignored", local_id)
            return False

        entry.message = canonical
        entry.state = EntryState.CONFIRMED
        return True

    def apply_push(self, canonical: MessagePayload) -> bool:
        """Apply a realtime push. Returns False if the message was already shown."""
        if self._shown_by(canonical.id) is not None:
            return False

        token = str(canonical.client_msg_id) if canonical.client_msg_id else None
        entry = self._entries.get(token) if token else None
        if entry is not None and entry.is_provisional:
            entry.message = canonical
            entry.state = EntryState.CONFIRMED
            return True

        key = str(canonical.id)
        self._entries[key] = TimelineEntry(key, canonical, EntryState.CONFIRMED)
        return True

    def rollback(self, local_id: str) -> bool:
        entry = self._entries.get(local_id)
        if entry is None or not entry.is_provisional:
            return False
        del self._entries[local_id]
        return True

    def apply_edit(self, canonical: MessagePayload) -> bool:
        entry = self._shown_by(canonical.id)
        if entry is None:
            return False
        entry.message = canonical
        return True

    def apply_delete(self, message_id: UUID) -> bool:
        entry = self._shown_by(message_id)
        if entry is None:
            return False
        del self._entries[entry.local_id]
        return True

    def load_history(self, messages: Iterable[MessagePayload]) -> int:
        """Merge a history page. Provisional entries are kept. Returns entries added."""
        added = 0
        for message in messages:
            shown = self._shown_by(message.id)
            if shown is not None:
                shown.message = message
            elif self.apply_push(message):
                added += 1
        return added

    def visible(self) -> list[TimelineEntry]:
        return sorted(
            self._entries.values(),
            key=lambda e: (e.message.created_at, str(e.message.id)),
        )

    def __len__(self) -> int:
        return len(self._entries)

    def _shown_by(self, message_id: UUID, *, other_than: str | None = None) -> TimelineEntry | None:
        for entry in self._entries.values():
            if entry.local_id == other_than or entry.is_provisional:
                continue
            if entry.message.id == message_id:
                return entry
        return None
