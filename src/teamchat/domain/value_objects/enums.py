from __future__ import annotations

from enum import StrEnum


class MessageType(StrEnum):
    TEXT = "text"
    FILE = "file"


class ControlType(StrEnum):
    """Client → Server realtime control messages."""

    JOIN_WORKSPACE = "join_workspace"
    JOIN_CHANNEL = "join_channel"
    JOIN_DIRECT = "join_direct"
    TYPING = "typing"
    STOP_TYPING = "stop_typing"
    PING = "ping"


class PushType(StrEnum):
    """Server → Client realtime pushes."""

    NEW_MESSAGE = "new_message"
    NEW_DIRECT_MESSAGE = "new_direct_message"
    MESSAGE_UPDATED = "message_updated"
    MESSAGE_DELETED = "message_deleted"
    USER_TYPING = "user_typing"
    USER_STOP_TYPING = "user_stop_typing"
    PONG = "pong"
    HEARTBEAT = "heartbeat"
