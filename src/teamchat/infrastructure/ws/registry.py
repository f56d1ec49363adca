"""In-process registry of live realtime connections.

Every method is synchronous, so each call is atomic with respect to the event
loop: a registration, scope switch or close can never interleave with another
one halfway through. ``list_subscribers`` hands out a snapshot, which lets a
fan-out keep iterating while connections close underneath it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol
from uuid import UUID, uuid4

from starlette.websockets import WebSocketState

from teamchat.application.exceptions import ProtocolError
from teamchat.domain.value_objects.scope import ChannelScope, DirectScope, Scope

logger = logging.getLogger(__name__)


class PushSocket(Protocol):
    application_state: WebSocketState

    async def send_text(self, data: str) -> None: ...


@dataclass(eq=False)
class Connection:
    """One client socket and the identity/scope it has announced."""

    socket: PushSocket
    id: UUID = field(default_factory=uuid4)
    # identity proven by a bearer token at connect time, if any
    pinned_user_id: int | None = None
    user_id: int | None = None
    workspace_id: str | None = None
    scope: Scope | None = None
    closed: bool = False

    @property
    def is_open(self) -> bool:
        return not self.closed and self.socket.application_state == WebSocketState.CONNECTED

    def describe(self) -> dict[str, Any]:
        return {
            "connection_id": str(self.id),
            "user_id": self.user_id,
            "scope": self.scope.key if self.scope else None,
        }


class ConnectionRegistry:
    def __init__(self) -> None:
        self._connections: dict[UUID, Connection] = {}

    def register(self, socket: PushSocket, *, pinned_user_id: int | None = None) -> Connection:
        conn = Connection(socket=socket, pinned_user_id=pinned_user_id)
        self._connections[conn.id] = conn
        logger.debug("WS registered: %s (total=%d)", conn.id, len(self._connections))
        return conn

    def announce(self, conn: Connection, user_id: int, workspace_id: str) -> None:
        """Record who is on the other end. Does not subscribe to anything."""
        if conn.pinned_user_id is not None and conn.pinned_user_id != user_id:
            raise ProtocolError(
                f"connection authenticated as {conn.pinned_user_id} announced {user_id}"
            )
        conn.user_id = user_id
        conn.workspace_id = workspace_id

    def subscribe(self, conn: Connection, scope: Scope) -> Scope | None:
        """Make *scope* the connection's only scope. Returns the scope it replaced."""
        previous = conn.scope
        conn.scope = scope
        if previous is not None and previous != scope:
            logger.debug("WS %s switched %s -> %s", conn.id, previous.key, scope.key)
        return previous

    def unregister(self, conn: Connection) -> None:
        conn.closed = True
        if self._connections.pop(conn.id, None) is not None:
            logger.debug("WS unregistered: %s (total=%d)", conn.id, len(self._connections))

    def list_subscribers(self, scope: Scope) -> tuple[Connection, ...]:
        """Open connections that should see traffic for *scope*, as of now."""
        if isinstance(scope, ChannelScope):
            return tuple(
                c for c in self._connections.values()
                if c.is_open and c.scope == scope
            )
        assert isinstance(scope, DirectScope)
        members = scope.members
        return tuple(
            c for c in self._connections.values()
            if c.is_open and (c.scope == scope or c.user_id in members)
        )

    def online_user_ids(self) -> set[int]:
        return {c.user_id for c in self._connections.values() if c.user_id is not None}

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, conn: object) -> bool:
        return isinstance(conn, Connection) and conn.id in self._connections
