"""Typing indicators on the client: emitting our own, displaying others'."""
from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from typing import Awaitable, Callable

from teamchat.application.ports.clock import Clock, SystemClock
from teamchat.domain.entities.typing_indicator import LIVENESS_WINDOW, TypingBoard
from teamchat.infrastructure.ws.protocol import (
    StopTyping,
    Typing,
    UserStopTypingPush,
    UserTypingPush,
    WireModel,
)

logger = logging.getLogger(__name__)

RealtimeSender = Callable[[WireModel], Awaitable[None]]

IDLE_SECONDS = 2.0


class TypingNotifier:
    """Emits ``typing`` on keystrokes and ``stop_typing`` after an idle pause."""

    def __init__(self, send: RealtimeSender, idle_seconds: float = IDLE_SECONDS) -> None:
        self._send = send
        self._idle_seconds = idle_seconds
        self._timer: asyncio.Task[None] | None = None
        self.channel_id: str | None = None
        self.user_id: int | None = None

    @property
    def active(self) -> bool:
        return self._timer is not None and not self._timer.done()

    async def keystroke(self) -> None:
        self._cancel_timer()
        await self._send(Typing(type="typing", channel_id=self.channel_id, user_id=self.user_id))
        self._timer = asyncio.create_task(self._idle(), name="typing-idle")

    async def stop(self) -> None:
        """Cancel the idle timer and emit ``stop_typing`` now, if typing was signalled."""
        if not self.active:
            return
        self._cancel_timer()
        await self._emit_stop()

    async def _idle(self) -> None:
        await asyncio.sleep(self._idle_seconds)
        self._timer = None
        await self._emit_stop()

    async def _emit_stop(self) -> None:
        try:
            await self._send(
                StopTyping(type="stop_typing", channel_id=self.channel_id, user_id=self.user_id)
            )
        except Exception:
            # advisory signal; the receiver's liveness window covers a lost stop
            logger.debug("stop_typing not sent", exc_info=True)

    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None


class TypingDisplay:
    """Who else is typing in the scope being viewed."""

    def __init__(
        self,
        viewer_id: int,
        window: timedelta = LIVENESS_WINDOW,
        clock: Clock | None = None,
    ) -> None:
        self._viewer_id = viewer_id
        self._board = TypingBoard(window)
        self._clock = clock or SystemClock()

    def on_push(self, push: UserTypingPush | UserStopTypingPush, scope_key: str | None) -> bool:
        """Apply a typing push for the viewed *scope_key*. Returns False if ignored."""
        if push.user_id == self._viewer_id or push.scope != scope_key:
            return False
        if isinstance(push, UserTypingPush):
            self._board.refresh(push.user_id, push.scope, self._clock.now())
        else:
            self._board.clear(push.user_id, push.scope)
        return True

    def typists(self, scope_key: str | None) -> list[int]:
        if scope_key is None:
            return []
        return self._board.active(scope_key, self._clock.now())
