"""FastAPI dependency injection helpers."""
from __future__ import annotations

import logging
from typing import Annotated, AsyncIterator

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from teamchat.application.dto.principal import Principal
from teamchat.application.ports.auth import TokenVerifier
from teamchat.application.ports.broadcast import MessageBroadcaster
from teamchat.config import settings
from teamchat.infrastructure.auth.hs256_verifier import HS256Verifier
from teamchat.infrastructure.auth.jwks_verifier import JWKSVerifier
from teamchat.infrastructure.db.session import AsyncSessionLocal
from teamchat.infrastructure.db.uow import SqlAlchemyUoW

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)


async def get_uow() -> AsyncIterator[SqlAlchemyUoW]:
    async with AsyncSessionLocal() as session, SqlAlchemyUoW(session) as uow:
        yield uow


UoWDep = Annotated[SqlAlchemyUoW, Depends(get_uow)]


def _get_verifier() -> TokenVerifier:
    if settings.JWT_VERIFY_MODE == "jwks":
        if not settings.JWKS_URL:
            raise RuntimeError("JWKS_URL must be set when JWT_VERIFY_MODE=jwks")
        return JWKSVerifier(settings.JWKS_URL, leeway=settings.JWT_LEEWAY_SECONDS)
    if not settings.JWT_SECRET:
        raise RuntimeError("JWT_SECRET must be set when JWT_VERIFY_MODE=hs256")
    return HS256Verifier(
        settings.JWT_SECRET, settings.JWT_ALGORITHM, leeway=settings.JWT_LEEWAY_SECONDS,
    )


_verifier: TokenVerifier | None = None


def get_verifier() -> TokenVerifier:
    global _verifier  # noqa: PLW0603
    if _verifier is None:
        _verifier = _get_verifier()
    return _verifier


async def authenticate(token: str) -> Principal:
    """Verify a bearer token. Raises HTTP 401 on any verification failure."""
    try:
        return await get_verifier().verify(token)
    except (jwt.PyJWTError, KeyError, ValueError) as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc) or "Invalid token",
        ) from exc


async def get_optional_principal(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer_scheme)],
) -> Principal | None:
    if credentials is None:
        return None
    return await authenticate(credentials.credentials)


OptionalPrincipal = Annotated[Principal | None, Depends(get_optional_principal)]


async def get_current_principal(principal: OptionalPrincipal) -> Principal:
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return principal


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]


async def get_message_author(principal: OptionalPrincipal) -> Principal:
    """Session identity, or the configured development author when there is none."""
    if principal is not None:
        return principal
    if settings.DEV_FALLBACK_AUTHOR_ID is not None:
        logger.warning(
            "No session on message send; using development author %s",
            settings.DEV_FALLBACK_AUTHOR_ID,
        )
        return Principal.development(settings.DEV_FALLBACK_AUTHOR_ID)
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
    )


MessageAuthor = Annotated[Principal, Depends(get_message_author)]


def get_broadcaster(request: Request) -> MessageBroadcaster:
    return request.app.state.broadcaster


BroadcasterDep = Annotated[MessageBroadcaster, Depends(get_broadcaster)]
