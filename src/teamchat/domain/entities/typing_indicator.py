"""Ephemeral "who is typing" state.

Indicators expire by age alone. An explicit stop clears one early, but a lost
stop signal is harmless because nothing older than the liveness window is
ever reported.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

LIVENESS_WINDOW = timedelta(seconds=5)


@dataclass(frozen=True, slots=True)
class TypingIndicator:
    user_id: int
    scope_key: str
    last_seen_at: datetime

    def is_live(self, now: datetime, window: timedelta = LIVENESS_WINDOW) -> bool:
        return now - self.last_seen_at < window


class TypingBoard:
    def __init__(self, window: timedelta = LIVENESS_WINDOW) -> None:
        self._window = window
        self._indicators: dict[tuple[int, str], TypingIndicator] = {}

    @property
    def window(self) -> timedelta:
        return self._window

    def refresh(self, user_id: int, scope_key: str, now: datetime) -> TypingIndicator:
        indicator = TypingIndicator(user_id=user_id, scope_key=scope_key, last_seen_at=now)
        self._indicators[(user_id, scope_key)] = indicator
        return indicator

    def clear(self, user_id: int, scope_key: str) -> bool:
        return self._indicators.pop((user_id, scope_key), None) is not None

    def purge(self, now: datetime) -> None:
        expired = [
            key for key, ind in self._indicators.items()
            if not ind.is_live(now, self._window)
        ]
        for key in expired:
            del self._indicators[key]

    def active(self, scope_key: str, now: datetime) -> list[int]:
        """User ids typing in *scope_key*, oldest signal first."""
        self.purge(now)
        live = [ind for ind in self._indicators.values() if ind.scope_key == scope_key]
        live.sort(key=lambda ind: ind.last_seen_at)
        return [ind.user_id for ind in live]

    def __len__(self) -> int:
        return len(self._indicators)
