"""
Shared fixtures for relay tests.

Unit tests drive the MessageRouter with FakeTransport objects that record
every outbound envelope instead of writing to a real WebSocket.
"""

import asyncio
import json
from typing import Any, Dict, List, Optional

import pytest

from relay.realtime import MessageRouter, RoomRegistry, Session, TypingThrottle


class FakeTransport:
    """
    Records outbound frames; can be told to fail like a dropped socket.

    Every write suspends once, like a real socket write, so concurrent
    operations interleave. Setting ``gate`` to an unset asyncio.Event holds
    writes until the event is set.
    """

    def __init__(self):
        self.sent: List[Dict[str, Any]] = []
        self.fail = False
        self.closed = False
        self.gate: Optional[asyncio.Event] = None

    async def send_text(self, text: str) -> None:
        if self.gate is not None:
            await self.gate.wait()
        await asyncio.sleep(0)
        if self.fail:
            raise RuntimeError("connection closed")
        self.sent.append(json.loads(text))

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.closed = True

    def of_type(self, envelope_type: str) -> List[Dict[str, Any]]:
        return [m for m in self.sent if m["type"] == envelope_type]

    def types(self) -> List[str]:
        return [m["type"] for m in self.sent]

    def clear(self) -> None:
        self.sent.clear()


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry(clock):
    return RoomRegistry(throttle=TypingThrottle(window_seconds=2.0, clock=clock))


@pytest.fixture
def router(registry):
    return MessageRouter(registry)


@pytest.fixture
def make_session():
    """Factory: a detached session with an identity already claimed."""
    def _make_session(identity):
        session = Session(FakeTransport())
        session.identity = identity
        return session
    return _make_session


@pytest.fixture
def connect(router):
    """Factory: open a new session on the router backed by a FakeTransport."""
    def _connect():
        return router.connect(FakeTransport())
    return _connect


@pytest.fixture
def send(router):
    """Factory: deliver one envelope (given as keyword fields) from a session."""
    async def _send(session, **fields):
        await router.handle(session, json.dumps(fields))
    return _send
