"""
Unit Tests for Typing Indicators
================================

Tests for relay/realtime/throttle.py and the router's typing handling.

Test Coverage:
--------------
1. TypingThrottle window per (identity, room)
2. One broadcast per window; a second after the window elapses
3. Start/stop updates the room's typing set
4. Sessions without identity or membership are ignored
5. Throttle records are dropped with their room

Run tests:
----------
    pytest relay/tests/test_typing.py -v
"""

import pytest

from relay.realtime import TypingThrottle


# ============================================================================
# TypingThrottle
# ============================================================================

def test_throttle_accepts_first_update_and_drops_within_window(clock):
    throttle = TypingThrottle(window_seconds=2.0, clock=clock)

    assert throttle.accept("alice", "lobby") is True
    clock.advance(1.5)
    assert throttle.accept("alice", "lobby") is False
    clock.advance(0.5)
    assert throttle.accept("alice", "lobby") is True


def test_throttle_keys_are_independent(clock):
    """Different identities and different rooms do not share a window"""
    throttle = TypingThrottle(window_seconds=2.0, clock=clock)

    assert throttle.accept("alice", "lobby")
    assert throttle.accept("bob", "lobby")
    assert throttle.accept("alice", "games")
    assert not throttle.accept("alice", "lobby")


def test_dropped_update_does_not_extend_window(clock):
    throttle = TypingThrottle(window_seconds=2.0, clock=clock)

    throttle.accept("alice", "lobby")
    clock.advance(1.5)
    throttle.accept("alice", "lobby")
    clock.advance(0.5)

    assert throttle.accept("alice", "lobby")


def test_forget_room_drops_only_that_room(clock):
    throttle = TypingThrottle(window_seconds=2.0, clock=clock)
    throttle.accept("alice", "lobby")
    throttle.accept("bob", "lobby")
    throttle.accept("alice", "games")

    throttle.forget_room("lobby")

    assert len(throttle) == 1
    assert throttle.accept("alice", "lobby")
    assert not throttle.accept("alice", "games")


# ============================================================================
# Router Typing Handling
# ============================================================================

@pytest.mark.asyncio
async def test_rapid_typing_updates_broadcast_once_per_window(connect, send, clock):
    """Two updates within 2000 ms yield one broadcast; a third after it yields another"""
    a = connect()
    b = connect()
    await send(a, type="create", room="lobby", sender="A")
    await send(b, type="join", room="lobby", sender="B")

    await send(a, type="typing", room="lobby", typing=True)
    clock.advance(0.5)
    await send(a, type="typing", room="lobby", typing=True)
    assert len(b.transport.of_type("typing")) == 1

    clock.advance(2.0)
    await send(a, type="typing", room="lobby", typing=True)

    updates = b.transport.of_type("typing")
    assert len(updates) == 2
    assert updates[-1] == {"type": "typing", "room": "lobby", "typingUsers": ["A"]}
    assert a.transport.of_type("typing") == updates


@pytest.mark.asyncio
async def test_typing_stop_removes_identity(router, connect, send, clock):
    a = connect()
    b = connect()
    await send(a, type="create", room="lobby", sender="A")
    await send(b, type="join", room="lobby", sender="B")
    await send(a, type="typing", room="lobby", typing=True)
    await send(b, type="typing", room="lobby", typing=True)
    assert router.registry.get("lobby").typing == {"A", "B"}

    clock.advance(2.0)
    await send(a, type="typing", room="lobby", typing=False)

    assert router.registry.get("lobby").typing == {"B"}
    assert b.transport.of_type("typing")[-1]["typingUsers"] == ["B"]


@pytest.mark.asyncio
async def test_throttled_update_sends_nothing_to_sender(connect, send):
    """Rate limiting is silent: no error envelope"""
    a = connect()
    await send(a, type="create", room="lobby", sender="A")
    await send(a, type="typing", room="lobby", typing=True)
    a.transport.clear()

    await send(a, type="typing", room="lobby", typing=False)

    assert a.transport.sent == []


@pytest.mark.asyncio
async def test_typing_from_non_member_is_ignored(router, connect, send):
    a = connect()
    outsider = connect()
    await send(a, type="create", room="lobby", sender="A")
    await send(outsider, type="join", room="elsewhere", sender="O")
    a.transport.clear()

    await send(outsider, type="typing", room="lobby", typing=True)

    assert a.transport.sent == []
    assert router.registry.get("lobby").typing == set()
    assert len(router.registry.throttle) == 0


@pytest.mark.asyncio
async def test_typing_without_identity_is_ignored(router, connect, send):
    anonymous = connect()

    await send(anonymous, type="typing", room="lobby", typing=True)

    assert anonymous.transport.sent == []
    assert len(router.registry.throttle) == 0


@pytest.mark.asyncio
async def test_typing_missing_room_is_a_validation_error(connect, send):
    a = connect()

    await send(a, type="typing", typing=True)

    assert a.transport.sent[-1]["code"] == "validation_error"


@pytest.mark.asyncio
async def test_throttle_records_are_dropped_with_room(router, connect, send):
    a = connect()
    await send(a, type="create", room="lobby", sender="A")
    await send(a, type="typing", room="lobby", typing=True)
    assert len(router.registry.throttle) == 1

    await send(a, type="leave", room="lobby")

    assert len(router.registry.throttle) == 0
