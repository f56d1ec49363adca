from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from teamchat.config import settings
from teamchat.infrastructure.db.session import AsyncSessionLocal

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

PROBE_TIMEOUT_SECONDS = 2.0


@router.get("/healthz")
async def healthz(request: Request) -> dict[str, Any]:
    registry = request.app.state.registry
    return {
        "status": "ok",
        "fanout": settings.FANOUT_BACKEND,
        "connections": len(registry),
        "online_users": len(registry.online_user_ids()),
    }


async def _select_one() -> None:
    async with AsyncSessionLocal() as session:
        await session.execute(text("SELECT 1"))


async def _probe(name: str, check: Awaitable[Any]) -> str | None:
    try:
        async with asyncio.timeout(PROBE_TIMEOUT_SECONDS):
            await check
    except TimeoutError:
        logger.warning("Readiness probe %s timed out", name)
        return f"{name}: timed out"
    except Exception as exc:  # noqa: BLE001
        logger.warning("Readiness probe %s failed: %s", name, exc)
        return f"{name}: {exc}"
    return None


@router.get("/readyz")
async def readyz(request: Request) -> JSONResponse:
    probes = [_probe("postgres", _select_one())]
    # the relay is only a dependency when it carries fan-out
    if settings.FANOUT_BACKEND == "redis":
        probes.append(_probe("redis", request.app.state.redis.ping()))

    errors = [e for e in await asyncio.gather(*probes) if e is not None]
    if errors:
        return JSONResponse(
            status_code=503,
            content={"status": "unavailable", "errors": errors},
        )
    return JSONResponse(content={"status": "ready"})
