from __future__ import annotations

from typing import Protocol

from teamchat.application.dto.principal import Principal


class TokenVerifier(Protocol):
    async def verify(self, token: str) -> Principal:
        """Resolve a bearer token to its user.

        Raises jwt.PyJWTError for a bad signature or expiry, and KeyError or
        ValueError when the claims do not name a numeric user.
        """
        ...
