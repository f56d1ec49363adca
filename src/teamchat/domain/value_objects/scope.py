"""Message audiences and the keys used to route fan-out.

Scope key format:
    channel:<channel uuid>
    dm:<lower user id>:<higher user id>
"""
from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

# Legacy default-channel alias accepted at every entry point.
GENERAL_CHANNEL_ALIAS = "general"
GENERAL_CHANNEL_ID = UUID("550e8400-e29b-41d4-a716-446655440000")


@dataclass(frozen=True, slots=True)
class ChannelScope:
    channel_id: UUID

    @property
    def key(self) -> str:
        return f"channel:{self.channel_id}"


@dataclass(frozen=True, slots=True)
class DirectScope:
    """Unordered pair of users; always stored as (low, high)."""

    low: int
    high: int

    def __post_init__(self) -> None:
        if self.low > self.high:
            raise ValueError("DirectScope members must be ordered, use DirectScope.between()")

    @classmethod
    def between(cls, user_a: int, user_b: int) -> DirectScope:
        return cls(min(user_a, user_b), max(user_a, user_b))

    @property
    def key(self) -> str:
        return f"dm:{self.low}:{self.high}"

    @property
    def members(self) -> frozenset[int]:
        return frozenset((self.low, self.high))

    def peer_of(self, user_id: int) -> int:
        if user_id == self.low:
            return self.high
        if user_id == self.high:
            return self.low
        raise ValueError(f"user {user_id} is not a member of {self.key}")


Scope = ChannelScope | DirectScope


def resolve_channel_ref(ref: str | UUID) -> UUID:
    """Translate a client-visible channel reference to its channel id.

    Raises ValueError for anything that is neither the alias nor a UUID.
    """
    if isinstance(ref, UUID):
        return ref
    ref = ref.strip()
    if ref == GENERAL_CHANNEL_ALIAS:
        return GENERAL_CHANNEL_ID
    return UUID(ref)


def parse_scope_key(key: str) -> Scope:
    kind, _, rest = key.partition(":")
    if kind == "channel":
        return ChannelScope(UUID(rest))
    if kind == "dm":
        low, _, high = rest.partition(":")
        return DirectScope.between(int(low), int(high))
    raise ValueError(f"Unknown scope key: {key!r}")
