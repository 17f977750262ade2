"""
Room Registry
=============

Owns every live room: its member sessions, its permission sets (admins and
muted identities) and its typing set.

Concurrency:
    Each room name has its own asyncio.Lock. A compound operation (state
    mutation plus the broadcasts describing it) runs entirely under that
    lock, so no client ever observes a member list that did not exist.
    Operations on different rooms never wait on each other.

Lifecycle:
    A room is created by ``create_room`` with its creator already joined and
    is deregistered, with its permission, typing and throttle state, the
    moment its last member leaves.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Iterable, List, Optional, Set

from ..errors import RoomExists, RoomNotFound
from ..models import (
    OutboundEnvelope,
    PresenceUpdate,
    SystemNotice,
    TypingUpdate,
    UserJoined,
    UserLeft,
)
from .session import Session
from .throttle import TypingThrottle

logger = logging.getLogger("relay.realtime.registry")


class Room:
    """
    A named broadcast group with membership and permission state.

    Attributes:
        name: Unique room name
        members: Member sessions keyed by session id, in join order
        admins: Identities allowed to moderate this room
        muted: Identities barred from sending messages in this room
        typing: Identities currently shown as typing
    """

    def __init__(self, name: str, admins: Iterable[str] = ()):
        self.name = name
        self.members: Dict[str, Session] = {}
        self.admins: Set[str] = set(admins)
        self.muted: Set[str] = set()
        self.typing: Set[str] = set()

    def has_member(self, session: Session) -> bool:
        return session.id in self.members

    def find_member(self, identity: str) -> Optional[Session]:
        """Return the first open member session claiming ``identity``."""
        for session in self.members.values():
            if session.is_open and session.identity == identity:
                return session
        return None

    def is_admin(self, identity: Optional[str]) -> bool:
        return identity is not None and identity in self.admins

    def is_muted(self, identity: Optional[str]) -> bool:
        return identity is not None and identity in self.muted

    def presence(self) -> PresenceUpdate:
        users = [
            session.identity
            for session in self.members.values()
            if session.is_open and session.identity
        ]
        return PresenceUpdate(room=self.name, users=users)

    def typing_update(self) -> TypingUpdate:
        return TypingUpdate(room=self.name, typingUsers=sorted(self.typing))

    async def broadcast(self, envelope: OutboundEnvelope, exclude: Optional[Session] = None) -> int:
        """
        Send an envelope to every open member of the room.

        Args:
            envelope: Envelope to deliver
            exclude: Optional session to skip (the originator of a notice)

        Returns:
            int: Number of sessions that received the envelope
        """
        sent_count = 0

        for session in list(self.members.values()):
            if session is exclude or not session.is_open:
                continue
            if await session.send(envelope):
                sent_count += 1

        logger.debug(
            "Broadcast event",
            extra={
                "room": self.name,
                "event_type": getattr(envelope, "type", None),
                "recipients": sent_count,
            }
        )

        return sent_count


class RoomRegistry:
    """
    Registry of live rooms with per-room mutual exclusion.

    One instance is created per application and handed to the message
    router.
    """

    def __init__(self, throttle: Optional[TypingThrottle] = None):
        self._rooms: Dict[str, Room] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}
        self.throttle = throttle if throttle is not None else TypingThrottle()

        logger.info("RoomRegistry initialized")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, name: str) -> Optional[Room]:
        return self._rooms.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)

    @property
    def room_names(self) -> List[str]:
        return list(self._rooms)

    def presence_snapshot(self, name: str) -> List[str]:
        """Identities of the room's connected members; empty for unknown rooms."""
        room = self._rooms.get(name)
        if room is None:
            return []
        return room.presence().users

    # ------------------------------------------------------------------
    # Locking
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def locked(self, name: str) -> AsyncIterator[Optional[Room]]:
        """
        Hold the lock for a room name and yield the room, or None.

        The lock entry is dropped once no task holds or waits for it.
        """
        lock = self._locks.get(name)
        if lock is None:
            lock = self._locks[name] = asyncio.Lock()
            self._lock_users[name] = 0
        self._lock_users[name] += 1

        try:
            async with lock:
                yield self._rooms.get(name)
        finally:
            self._lock_users[name] -= 1
            if self._lock_users[name] == 0:
                del self._lock_users[name]
                del self._locks[name]

    # ------------------------------------------------------------------
    # Membership operations
    # ------------------------------------------------------------------

    async def create_room(self, session: Session, name: str, admins: Iterable[str] = ()) -> Room:
        """
        Register a room and join its creator to it in one step.

        Args:
            session: Creating session; its identity becomes the first admin
            name: Room name
            admins: Additional admin identities (e.g. from the admin directory)

        Returns:
            Room: The newly registered room

        Raises:
            RoomExists: If the name is already registered
        """
        async with self.locked(name) as room:
            if room is not None:
                raise RoomExists(name)

            seeded = {identity for identity in (session.identity, *admins) if identity}
            room = Room(name, admins=seeded)
            self._rooms[name] = room

            logger.info(
                "Room created",
                extra={"room": name, "creator": session.identity, "admins": sorted(seeded)}
            )

            await session.send(SystemNotice(content=f'Room "{name}" created', room=name))
            await self._join(room, session)

            return room

    async def join_room(self, session: Session, name: str) -> Room:
        """
        Add a session to an existing room.

        Raises:
            RoomNotFound: If the name is not registered
        """
        async with self.locked(name) as room:
            if room is None:
                raise RoomNotFound(name)

            await self._join(room, session)
            return room

    async def leave_room(self, session: Session, name: str) -> None:
        """Remove a session from a room; leaving a room one is not in is a no-op."""
        async with self.locked(name) as room:
            await self.leave_locked(name, room, session)

    async def leave_all(self, session: Session) -> None:
        """Leave every room the session occupies (used on disconnect)."""
        for name in sorted(session.rooms):
            await self.leave_room(session, name)

    async def broadcast(self, name: str, envelope: OutboundEnvelope, exclude: Optional[Session] = None) -> int:
        async with self.locked(name) as room:
            if room is None:
                return 0
            return await room.broadcast(envelope, exclude=exclude)

    async def _join(self, room: Room, session: Session) -> None:
        room.members[session.id] = session
        session.rooms.add(room.name)

        logger.info(
            "Session joined room",
            extra={
                "room": room.name,
                "session_id": session.id,
                "identity": session.identity,
                "room_size": len(room.members),
            }
        )

        await room.broadcast(UserJoined(room=room.name, sender=session.identity), exclude=session)
        await session.send(SystemNotice(content=f"Joined room: {room.name}", room=room.name))
        await room.broadcast(room.presence())

    async def leave_locked(self, name: str, room: Optional[Room], session: Session) -> None:
        """
        Leave sequence for a caller that already holds the room's lock.

        Used directly by moderation (kick) from inside its own locked step.
        """
        session.rooms.discard(name)

        if room is None or not room.has_member(session):
            await session.send(SystemNotice(content=f"Left room: {name}", room=name))
            return

        del room.members[session.id]

        if room.members:
            if session.identity in room.typing:
                room.typing.discard(session.identity)
                if room.typing:
                    await room.broadcast(room.typing_update())
            await room.broadcast(UserLeft(room=name, sender=session.identity), exclude=session)
        else:
            self._deregister(room)

        logger.info(
            "Session left room",
            extra={
                "room": name,
                "session_id": session.id,
                "identity": session.identity,
                "room_size": len(room.members),
            }
        )

        await session.send(SystemNotice(content=f"Left room: {name}", room=name))

        if room.members:
            await room.broadcast(room.presence())

    def _deregister(self, room: Room) -> None:
        del self._rooms[room.name]
        self.throttle.forget_room(room.name)
        logger.info("Room deregistered", extra={"room": room.name})
