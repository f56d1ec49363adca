from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any, AsyncIterator

import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from teamchat.api.middleware.correlation_id import CorrelationIdMiddleware
from teamchat.api.middleware.metrics import RequestTimingMiddleware
from teamchat.api.v1.routers import (
    channel_messages,
    direct_messages,
    health,
    messages,
    ws,
)
from teamchat.application.exceptions import AppError
from teamchat.config import settings
from teamchat.domain.entities.typing_indicator import TypingBoard
from teamchat.domain.value_objects.scope import parse_scope_key
from teamchat.infrastructure.bus.redis_pubsub import (
    OnEventCallback,
    RedisPubSubPublisher,
    RedisPubSubSubscriber,
)
from teamchat.infrastructure.db.session import dispose_engine
from teamchat.infrastructure.ws.fanout import LocalFanout, RedisRelayBroadcaster
from teamchat.infrastructure.ws.registry import ConnectionRegistry
from teamchat.services.presence_service import PresenceService

logger = logging.getLogger(__name__)


def _relay_to(fanout: LocalFanout) -> OnEventCallback:
    async def _on_relay_event(event_type: str, data: dict[str, Any]) -> None:
        """Deliver a relayed push envelope to this process's own subscribers."""
        scope = parse_scope_key(data["scope"])
        await fanout.deliver(scope, json.dumps(data["push"]))
        logger.debug("Relayed %s to %s", event_type, scope.key)

    return _on_relay_event


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    if settings.FANOUT_BACKEND != "redis":
        logger.info("Fan-out backend: local")
        yield
        await dispose_engine()
        return

    app.state.redis = aioredis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
    )
    logger.info("Redis connection pool created")

    subscriber = RedisPubSubSubscriber(
        app.state.redis,
        settings.REDIS_PUBSUB_CHANNEL,
        _relay_to(app.state.fanout),
    )
    await subscriber.start()
    app.state.broadcaster = RedisRelayBroadcaster(
        RedisPubSubPublisher(app.state.redis),
        settings.REDIS_PUBSUB_CHANNEL,
    )
    logger.info("Fan-out backend: redis (%s)", settings.REDIS_PUBSUB_CHANNEL)

    yield

    await subscriber.stop()
    app.state.broadcaster = app.state.fanout
    await app.state.redis.aclose()
    logger.info("Redis connection pool closed")
    await dispose_engine()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Teamchat Messaging Service",
        version="0.1.0",
        lifespan=lifespan,
    )

    registry = ConnectionRegistry()
    fanout = LocalFanout(registry)
    typing_board = TypingBoard(timedelta(seconds=settings.TYPING_LIVENESS_SECONDS))
    app.state.registry = registry
    app.state.fanout = fanout
    app.state.broadcaster = fanout
    app.state.typing_board = typing_board
    app.state.presence = PresenceService(fanout, typing_board)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestTimingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(channel_messages.router)
    app.include_router(direct_messages.router)
    app.include_router(messages.router)
    app.include_router(ws.router)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def _app_error(_req: Request, exc: AppError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("Unhandled %s: %s", type(exc).__name__, exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail, "code": exc.code},
        )

    @app.exception_handler(SQLAlchemyError)
    async def _storage(_req: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.error("Storage failure: %s", exc)
        return JSONResponse(status_code=500, content={"detail": "Storage failure"})
