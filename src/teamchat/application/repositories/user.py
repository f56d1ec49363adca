from __future__ import annotations

from typing import Protocol

from teamchat.domain.entities.author import Author


class UserReader(Protocol):
    """Read-only view of the external user directory."""

    async def get_by_id(self, user_id: int) -> Author | None: ...

    async def get_many(self, user_ids: set[int]) -> dict[int, Author]: ...
