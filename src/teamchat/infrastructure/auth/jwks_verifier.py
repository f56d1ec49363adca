from __future__ import annotations

import asyncio
import logging

import jwt
from jwt import PyJWKClient

from teamchat.application.dto.principal import Principal
from teamchat.infrastructure.auth.claims import principal_from_claims

logger = logging.getLogger(__name__)

ALGORITHMS = ["RS256", "ES256"]


class JWKSVerifier:
    """Tokens signed by an identity provider that publishes a JWKS document."""

    def __init__(self, jwks_url: str, *, leeway: int = 0) -> None:
        self._jwk_client = PyJWKClient(jwks_url, cache_keys=True)
        self._leeway = leeway

    async def verify(self, token: str) -> Principal:
        # key lookup may hit the network through blocking urllib
        signing_key = await asyncio.to_thread(self._jwk_client.get_signing_key_from_jwt, token)
        payload = jwt.decode(
            token,
            signing_key.key,
            algorithms=ALGORITHMS,
            leeway=self._leeway,
            options={"require": ["sub"]},
        )
        logger.debug("JWKS token accepted for sub=%s kid=%s", payload["sub"], signing_key.key_id)
        return principal_from_claims(payload)
