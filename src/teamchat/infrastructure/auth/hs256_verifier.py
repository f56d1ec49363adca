from __future__ import annotations

import jwt

from teamchat.application.dto.principal import Principal
from teamchat.infrastructure.auth.claims import principal_from_claims


class HS256Verifier:
    """Shared-secret tokens, as minted by the workspace login service."""

    def __init__(self, secret: str, algorithm: str = "HS256", *, leeway: int = 0) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self._leeway = leeway

    async def verify(self, token: str) -> Principal:
        payload = jwt.decode(
            token,
            self._secret,
            algorithms=[self._algorithm],
            leeway=self._leeway,
            options={"require": ["sub"]},
        )
        return principal_from_claims(payload)
