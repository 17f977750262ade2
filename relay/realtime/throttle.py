"""
Typing Indicator Throttle

Rate limits typing broadcasts per (identity, room). Callers hold the room's
lock while consulting the throttle, so it keeps no lock of its own.
"""

import logging
import time
from typing import Callable, Dict, Tuple

logger = logging.getLogger("relay.realtime.throttle")


class TypingThrottle:
    """
    In-memory record of the last accepted typing update per identity and room.
    """

    def __init__(self, window_seconds: float = 2.0, clock: Callable[[], float] = time.monotonic):
        """
        Initialize typing throttle.

        Args:
            window_seconds: Minimum interval between accepted updates (default: 2)
            clock: Monotonic time source, injectable for tests
        """
        self._last_accepted: Dict[Tuple[str, str], float] = {}
        self._window_seconds = window_seconds
        self._clock = clock

    def accept(self, identity: str, room: str) -> bool:
        """
        Record an update if the window for this key has elapsed.

        Returns:
            True if the update should be applied, False if it is dropped
        """
        key = (identity, room)
        now = self._clock()
        last = self._last_accepted.get(key)

        if last is not None and now - last < self._window_seconds:
            logger.debug(f"Throttled typing update from {identity} in room {room}")
            return False

        self._last_accepted[key] = now
        return True

    def forget_room(self, room: str) -> None:
        """Drop every record for a room that no longer exists."""
        for key in [key for key in self._last_accepted if key[1] == room]:
            del self._last_accepted[key]

    def __len__(self) -> int:
        return len(self._last_accepted)
