from __future__ import annotations

from typing import Any

from teamchat.application.dto.principal import Principal


def principal_from_claims(payload: dict[str, Any]) -> Principal:
    """Build a Principal from decoded JWT claims. ``sub`` must be a user id."""
    roles = payload.get("roles", [])
    if isinstance(roles, str):
        roles = [roles]
    return Principal(
        user_id=int(payload["sub"]),
        roles=list(roles),
        display_name=payload.get("name"),
        email=payload.get("email"),
    )
