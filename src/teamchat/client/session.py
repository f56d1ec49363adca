"""Chat client: one user viewing one scope at a time.

HTTP (via httpx) is the only path for sending messages. The realtime socket
carries control messages out and pushes in; the caller owns the socket and
hands this class a coroutine that sends one control message, then feeds every
received frame to ``handle_push``.
"""
from __future__ import annotations

import asyncio
import logging
from uuid import UUID

import httpx

from teamchat.application.exceptions import ProtocolError
from teamchat.application.ports.clock import Clock, SystemClock
from teamchat.client.compose import ComposeBox
from teamchat.client.timeline import MessageTimeline
from teamchat.client.typing import RealtimeSender, TypingDisplay, TypingNotifier
from teamchat.domain.value_objects.scope import (
    ChannelScope,
    DirectScope,
    Scope,
    resolve_channel_ref,
)
from teamchat.infrastructure.ws.protocol import (
    AuthorPayload,
    JoinChannel,
    JoinDirect,
    JoinWorkspace,
    MessageDeletedPush,
    MessagePayload,
    MessageUpdatedPush,
    NewDirectMessagePush,
    NewMessagePush,
    UserStopTypingPush,
    UserTypingPush,
    parse_push,
)

logger = logging.getLogger(__name__)

SUBMIT_TIMEOUT_SECONDS = 15.0


class SubmitError(Exception):
    """A send did not complete. The compose box already holds the text again."""


def scope_of(message: MessagePayload) -> Scope:
    if message.channel_id is not None:
        return ChannelScope(message.channel_id)
    assert message.recipient_id is not None
    return DirectScope.between(message.author_id, message.recipient_id)


class ChatClient:
    def __init__(
        self,
        http: httpx.AsyncClient,
        send: RealtimeSender,
        *,
        user_id: int,
        workspace_id: str,
        display_name: str | None = None,
        submit_timeout: float = SUBMIT_TIMEOUT_SECONDS,
        typing_idle_seconds: float = 2.0,
        clock: Clock | None = None,
    ) -> None:
        self._http = http
        self._send = send
        self.user_id = user_id
        self.workspace_id = workspace_id
        self.display_name = display_name or f"User {user_id}"
        self.submit_timeout = submit_timeout
        self._clock = clock or SystemClock()

        self.scope: Scope | None = None
        # oldest-page cursor from the last history load; None once history is exhausted
        self.history_cursor: str | None = None
        self.timeline = MessageTimeline()
        self.compose = ComposeBox()
        self.typing = TypingNotifier(send, idle_seconds=typing_idle_seconds)
        self.typing.user_id = user_id
        self.typing_display = TypingDisplay(user_id, clock=self._clock)

    # ── joining a view ────────────────────────────────────────────

    async def join_channel(self, channel_ref: str) -> ChannelScope:
        scope = ChannelScope(resolve_channel_ref(channel_ref))
        await self._switch(scope, JoinChannel(type="join_channel", channel_id=channel_ref))
        self.typing.channel_id = str(scope.channel_id)
        return scope

    async def join_direct(self, peer_user_id: int) -> DirectScope:
        scope = DirectScope.between(self.user_id, peer_user_id)
        await self._switch(scope, JoinDirect(type="join_direct", peer_user_id=peer_user_id))
        self.typing.channel_id = None
        return scope

    async def _switch(self, scope: Scope, join: JoinChannel | JoinDirect) -> None:
        await self.typing.stop()
        self.scope = scope
        self.timeline = MessageTimeline()
        self.history_cursor = None
        await self._send(
            JoinWorkspace(type="join_workspace", workspace_id=self.workspace_id, user_id=self.user_id)
        )
        await self._send(join)
        logger.debug("Viewing %s", scope.key)

    def _messages_path(self) -> str:
        if isinstance(self.scope, ChannelScope):
            return f"/api/v1/channels/{self.scope.channel_id}/messages"
        if isinstance(self.scope, DirectScope):
            return f"/api/v1/users/{self.scope.peer_of(self.user_id)}/messages"
        raise RuntimeError("join a channel or conversation first")

    async def load_history(self, limit: int = 50, before: str | None = None) -> int:
        params: dict[str, str | int] = {"limit": limit}
        if before is not None:
            params["before"] = before
        resp = await self._http.get(self._messages_path(), params=params)
        resp.raise_for_status()
        page = [MessagePayload.model_validate(item) for item in resp.json()]
        self.history_cursor = resp.headers.get("X-Next-Cursor")
        return self.timeline.load_history(page)

    # ── composing and sending ────────────────────────────────────

    async def keystroke(self, text: str) -> None:
        self.compose.edit(text)
        if text:
            await self.typing.keystroke()

    async def submit(self) -> MessagePayload | None:
        """Send the compose box contents. Returns None when there was nothing to send.

        Raises SubmitError after rolling back the provisional entry and
        restoring the text, on any HTTP error, transport error, timeout or
        unreadable response body.
        """
        path = self._messages_path()
        taken = self.compose.take()
        if taken is None:
            return None
        text, token = taken
        local_id = str(token)

        self.timeline.add_provisional(local_id, self._provisional(text, token))
        body: dict[str, object] = {"content": text, "clientMsgId": local_id}
        try:
            async with asyncio.timeout(self.submit_timeout):
                resp = await self._http.post(path, json=body)
            resp.raise_for_status()
            canonical = MessagePayload.model_validate(resp.json())
        # ValueError: a 2xx body that is not JSON, e.g. a proxy error page
        except (httpx.HTTPError, TimeoutError, ValueError) as exc:
            logger.warning("Send failed (%s): %s", type(exc).__name__, exc)
            self.timeline.rollback(local_id)
            self.compose.restore(text, token)
            raise SubmitError(str(exc) or type(exc).__name__) from exc

        self.timeline.confirm(local_id, canonical)
        self.compose.succeeded()
        await self.typing.stop()
        return canonical

    def _provisional(self, text: str, token: UUID) -> MessagePayload:
        scope = self.scope
        return MessagePayload(
            id=token,
            content=text,
            author_id=self.user_id,
            channel_id=scope.channel_id if isinstance(scope, ChannelScope) else None,
            recipient_id=(
                scope.peer_of(self.user_id) if isinstance(scope, DirectScope) else None
            ),
            client_msg_id=token,
            created_at=self._clock.now(),
            author=AuthorPayload(id=self.user_id, display_name=self.display_name),
        )

    # ── incoming pushes ──────────────────────────────────────────

    async def handle_push(self, raw: str | bytes) -> bool:
        """Apply one realtime frame to the current view. Returns True if it changed anything."""
        try:
            push = parse_push(raw)
        except ProtocolError as exc:
            logger.warning("Dropped push: %s", exc.detail)
            return False
        if push is None or self.scope is None:
            return False

        if isinstance(push, (NewMessagePush, NewDirectMessagePush)):
            if scope_of(push.data) != self.scope:
                return False
            return self.timeline.apply_push(push.data)

        if isinstance(push, MessageUpdatedPush):
            if scope_of(push.data) != self.scope:
                return False
            return self.timeline.apply_edit(push.data)

        if isinstance(push, MessageDeletedPush):
            if push.data.scope != self.scope.key:
                return False
            return self.timeline.apply_delete(push.data.id)

        if isinstance(push, (UserTypingPush, UserStopTypingPush)):
            return self.typing_display.on_push(push, self.scope.key)

        # pong / heartbeat
        return False

    def typists(self) -> list[int]:
        return self.typing_display.typists(self.scope.key if self.scope else None)
