from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated caller identity extracted from JWT."""

    user_id: int
    roles: list[str] = field(default_factory=list)
    display_name: str | None = None
    email: str | None = None
    # True only for the opt-in development author used when no session exists.
    is_development: bool = False

    @property
    def is_admin(self) -> bool:
        return "admin" in self.roles

    @classmethod
    def development(cls, user_id: int) -> Principal:
        return cls(
            user_id=user_id,
            display_name="Development User",
            is_development=True,
        )
