from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Author:
    """Denormalized author snapshot sent alongside every message."""

    id: int
    display_name: str
    email: str | None = None
