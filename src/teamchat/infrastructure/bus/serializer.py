"""Relay frame codec: {"v": 1, "event": <push type>, "data": {"scope": ..., "push": {...}}}."""
from __future__ import annotations

import json
from datetime import datetime
from typing import Any
from uuid import UUID

RELAY_VERSION = 1


class _Encoder(json.JSONEncoder):
    def default(self, o: object) -> Any:
        if isinstance(o, UUID):
            return str(o)
        if isinstance(o, datetime):
            return o.isoformat()
        return super().default(o)


def serialize_event(event_type: str, payload: dict[str, Any]) -> str:
    envelope = {"v": RELAY_VERSION, "event": event_type, "data": payload}
    return json.dumps(envelope, cls=_Encoder)


def deserialize_event(raw: str | bytes) -> tuple[str, dict[str, Any]]:
    frame = json.loads(raw)
    if not isinstance(frame, dict):
        raise ValueError("Relay frame is not an object")
    if frame.get("v") != RELAY_VERSION:
        raise ValueError(f"Unsupported relay frame version: {frame.get('v')!r}")
    return frame["event"], frame["data"]
