"""Applies realtime control messages to the connection registry.

One call handles one frame; the WebSocket read loop awaits each call before
reading the next frame, which keeps per-connection processing in arrival order.
"""
from __future__ import annotations

import logging

from teamchat.application.exceptions import ProtocolError
from teamchat.application.ports.clock import Clock, SystemClock
from teamchat.domain.entities.typing_indicator import TypingBoard
from teamchat.domain.value_objects.scope import (
    ChannelScope,
    DirectScope,
    Scope,
    resolve_channel_ref,
)
from teamchat.infrastructure.ws.fanout import LocalFanout
from teamchat.infrastructure.ws.protocol import (
    ControlMessage,
    JoinChannel,
    JoinDirect,
    JoinWorkspace,
    Ping,
    PongPush,
    StopTyping,
    Typing,
    UserStopTypingPush,
    UserTypingPush,
    parse_control,
)
from teamchat.infrastructure.ws.registry import Connection

logger = logging.getLogger(__name__)


class PresenceService:
    def __init__(
        self,
        fanout: LocalFanout,
        typing_board: TypingBoard,
        clock: Clock | None = None,
    ) -> None:
        self._fanout = fanout
        self._registry = fanout.registry
        self._typing = typing_board
        self._clock = clock or SystemClock()

    async def handle_frame(self, conn: Connection, raw: str | bytes) -> None:
        """Parse and apply one frame. Malformed frames are logged and dropped."""
        try:
            msg = parse_control(raw)
            if msg is None:
                return
            await self.handle(conn, msg)
        except ProtocolError as exc:
            logger.warning("Dropped control message on %s: %s", conn.id, exc.detail)

    async def handle(self, conn: Connection, msg: ControlMessage) -> None:
        if isinstance(msg, JoinWorkspace):
            self._registry.announce(conn, msg.user_id, msg.workspace_id)

        elif isinstance(msg, JoinChannel):
            try:
                channel_id = resolve_channel_ref(msg.channel_id)
            except ValueError as exc:
                raise ProtocolError(f"invalid channelId {msg.channel_id!r}") from exc
            await self._join(conn, ChannelScope(channel_id))

        elif isinstance(msg, JoinDirect):
            if conn.user_id is None:
                raise ProtocolError("join_direct before join_workspace")
            await self._join(conn, DirectScope.between(conn.user_id, msg.peer_user_id))

        elif isinstance(msg, Typing):
            await self._typing_changed(conn, typing=True)

        elif isinstance(msg, StopTyping):
            await self._typing_changed(conn, typing=False)

        elif isinstance(msg, Ping):
            await self._fanout.send(conn, PongPush())

    async def disconnect(self, conn: Connection) -> None:
        self._registry.unregister(conn)
        await self._leave_current_scope(conn)

    async def _join(self, conn: Connection, scope: Scope) -> None:
        if conn.scope != scope:
            await self._leave_current_scope(conn)
        self._registry.subscribe(conn, scope)
        # late joiners see who is already typing
        channel_id = scope.channel_id if isinstance(scope, ChannelScope) else None
        for user_id in self.typing_in(conn):
            if user_id != conn.user_id:
                await self._fanout.send(
                    conn, UserTypingPush(user_id=user_id, channel_id=channel_id, scope=scope.key),
                )

    async def _leave_current_scope(self, conn: Connection) -> None:
        """Drop the user's indicator in the scope *conn* is leaving.

        Another open connection of the same user in that scope keeps it.
        """
        user_id, scope = conn.user_id, conn.scope
        if user_id is None or scope is None:
            return
        if any(
            c is not conn and c.user_id == user_id and c.scope == scope
            for c in self._registry.list_subscribers(scope)
        ):
            return
        if self._typing.clear(user_id, scope.key):
            channel_id = scope.channel_id if isinstance(scope, ChannelScope) else None
            await self._fanout.deliver(
                scope,
                UserStopTypingPush(user_id=user_id, channel_id=channel_id, scope=scope.key),
                exclude=conn,
            )

    async def _typing_changed(self, conn: Connection, *, typing: bool) -> None:
        if conn.user_id is None or conn.scope is None:
            raise ProtocolError("typing signal before join")
        scope = conn.scope
        channel_id = scope.channel_id if isinstance(scope, ChannelScope) else None
        if typing:
            self._typing.refresh(conn.user_id, scope.key, self._clock.now())
            push: UserTypingPush | UserStopTypingPush = UserTypingPush(
                user_id=conn.user_id, channel_id=channel_id, scope=scope.key,
            )
        else:
            self._typing.clear(conn.user_id, scope.key)
            push = UserStopTypingPush(
                user_id=conn.user_id, channel_id=channel_id, scope=scope.key,
            )
        await self._fanout.deliver(scope, push, exclude=conn)

    def typing_in(self, conn: Connection) -> list[int]:
        """Users currently typing in the connection's scope, per the liveness window."""
        if conn.scope is None:
            return []
        return self._typing.active(conn.scope.key, self._clock.now())
