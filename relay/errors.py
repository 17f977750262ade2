"""
Relay Error Taxonomy
====================

Every error a client can trigger is a ``RelayError``. Errors are scoped to
the connection that caused them: the message router turns a raised error
into an ``error`` envelope for the originating session and never closes the
connection or touches other sessions.
"""

from typing import Iterable, List


class RelayError(Exception):
    """Base class for client-facing relay errors."""

    code: str = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MalformedEnvelope(RelayError):
    code = "malformed"

    def __init__(self):
        super().__init__("Invalid JSON")


class ValidationError(RelayError):
    """Required envelope fields are missing, not strings, or blank."""

    code = "validation_error"

    def __init__(self, fields: Iterable[str]):
        self.fields: List[str] = list(fields)
        super().__init__(f"Missing or invalid fields: {', '.join(self.fields)}")


class UnknownKind(RelayError):
    code = "unknown_kind"

    def __init__(self, kind):
        self.kind = kind
        super().__init__(f"Unknown message type: {kind}")


class RoomExists(RelayError):
    code = "room_exists"

    def __init__(self, room: str):
        self.room = room
        super().__init__("Room already exists")


class RoomNotFound(RelayError):
    code = "room_not_found"

    def __init__(self, room: str):
        self.room = room
        super().__init__(f'Room "{room}" does not exist')


class Muted(RelayError):
    code = "muted"

    def __init__(self, room: str):
        self.room = room
        super().__init__("You are muted in this room")


class NotAdmin(RelayError):
    code = "not_admin"

    def __init__(self, room: str):
        self.room = room
        super().__init__("You are not an admin in this room")


class UnknownModerationAction(RelayError):
    code = "unknown_action"

    def __init__(self, action: str):
        self.action = action
        super().__init__("Unknown moderation action")


__all__ = [
    "RelayError",
    "MalformedEnvelope",
    "ValidationError",
    "UnknownKind",
    "RoomExists",
    "RoomNotFound",
    "Muted",
    "NotAdmin",
    "UnknownModerationAction",
]
