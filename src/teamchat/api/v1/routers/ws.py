from __future__ import annotations

import asyncio
import logging

import jwt
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from teamchat.api.deps import get_verifier
from teamchat.api.middleware.correlation_id import correlation_id_ctx
from teamchat.application.dto.principal import Principal
from teamchat.config import settings
from teamchat.infrastructure.ws.fanout import LocalFanout
from teamchat.infrastructure.ws.protocol import HeartbeatPush
from teamchat.infrastructure.ws.registry import Connection
from teamchat.services.presence_service import PresenceService

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])


async def _authenticate(token: str) -> Principal | None:
    try:
        return await get_verifier().verify(token)
    except (jwt.PyJWTError, KeyError, ValueError):
        logger.debug("WS auth failed", exc_info=True)
        return None


@router.websocket("/ws")
async def ws_endpoint(
    websocket: WebSocket,
    token: str | None = Query(None),
) -> None:
    principal: Principal | None = None
    if token is not None:
        principal = await _authenticate(token)
        if principal is None:
            await websocket.close(code=4001, reason="Authentication failed")
            return
    elif settings.WS_REQUIRE_TOKEN:
        await websocket.close(code=4001, reason="Authentication required")
        return

    state = websocket.app.state
    fanout: LocalFanout = state.fanout
    presence: PresenceService = state.presence

    await websocket.accept()
    conn = fanout.registry.register(
        websocket, pinned_user_id=principal.user_id if principal else None,
    )
    # every log line for this socket, heartbeat task included, carries its id
    cid_token = correlation_id_ctx.set(f"ws-{conn.id.hex[:12]}")
    logger.info("WS connected: %s", conn.describe())

    heartbeat_task = asyncio.create_task(
        _heartbeat(fanout, conn), name=f"ws-heartbeat-{conn.id}",
    )
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))
            # text and binary frames carry the same JSON control messages
            raw = message.get("text") or message.get("bytes")
            if raw:
                await presence.handle_frame(conn, raw)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error for %s", conn.id)
        if conn.is_open:
            await websocket.close(code=1011)
    finally:
        heartbeat_task.cancel()
        await presence.disconnect(conn)
        logger.info("WS disconnected: %s", conn.describe())
        correlation_id_ctx.reset(cid_token)


async def _heartbeat(fanout: LocalFanout, conn: Connection) -> None:
    interval = settings.WS_HEARTBEAT_SECONDS
    while conn.is_open:
        await asyncio.sleep(interval)
        if not await fanout.send(conn, HeartbeatPush()):
            return
