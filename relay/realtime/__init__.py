"""
Realtime Package

This package contains the in-memory room state machine and the WebSocket
surface that drives it.

Modules:
- session: Per-connection state (identity, joined rooms, outbound send)
- registry: Rooms, permissions, typing sets and per-room locking
- throttle: Rate limiting of typing indicator updates
- router: Envelope dispatch, validation and moderation
- ws: FastAPI WebSocket endpoint and status route
"""

from .registry import Room, RoomRegistry
from .router import MessageRouter
from .session import Session
from .throttle import TypingThrottle
from .ws import realtime_router

__all__ = [
    "MessageRouter",
    "Room",
    "RoomRegistry",
    "Session",
    "TypingThrottle",
    "realtime_router",
]
