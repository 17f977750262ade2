"""
Message Router
==============

Turns raw client frames into room operations.

Transport boundary:
    - connect(transport)      -> Session    (on WebSocket accept)
    - handle(session, raw)                  (on each text frame)
    - disconnect(session)                   (on close; leaves every room)

Client Messages:
    - {"type": "create", "room": "...", "sender": "..."}
    - {"type": "join", "room": "...", "sender": "..."}
    - {"type": "leave", "room": "..."}
    - {"type": "message", "room": "...", "content": "...", "timestamp"?, "reply"?}
    - {"type": "reaction", "room": "...", "target": "...", "emoji": "...", "timestamp"?}
    - {"type": "presence_request", "room": "..."}
    - {"type": "typing", "room": "...", "typing": true|false}
    - {"type": "moderate", "room": "...", "action": "mute|unmute|kick|promote|demote", "target": "..."}

Errors are reported to the originating session only, as
{"type": "error", "message": "...", "code": "..."}.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from ..directory import AdminDirectory
from ..errors import Muted, NotAdmin, RelayError, UnknownModerationAction
from ..models import (
    ChatMessage,
    CreateEnvelope,
    ErrorNotice,
    InboundEnvelope,
    JoinEnvelope,
    Kind,
    LeaveEnvelope,
    MessageEnvelope,
    ModerateEnvelope,
    ModerationAction,
    PresenceRequestEnvelope,
    Reaction,
    ReactionEnvelope,
    SystemNotice,
    TypingEnvelope,
    parse_envelope,
)
from .registry import RoomRegistry
from .session import Session

logger = logging.getLogger("relay.realtime.router")


def server_timestamp() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


class MessageRouter:
    """
    Dispatches inbound envelopes to room operations.

    Args:
        registry: Shared room registry
        directory: Optional admin directory consulted on ``create``
    """

    def __init__(self, registry: RoomRegistry, directory: Optional[AdminDirectory] = None):
        self.registry = registry
        self.directory = directory
        self.sessions: Set[Session] = set()
        self._cleanups: Set[asyncio.Future] = set()

        self._handlers: Dict[Kind, Callable[[Session, Any], Awaitable[None]]] = {
            Kind.CREATE: self._on_create,
            Kind.JOIN: self._on_join,
            Kind.LEAVE: self._on_leave,
            Kind.MESSAGE: self._on_message,
            Kind.REACTION: self._on_reaction,
            Kind.PRESENCE_REQUEST: self._on_presence_request,
            Kind.TYPING: self._on_typing,
            Kind.MODERATE: self._on_moderate,
        }

    # ------------------------------------------------------------------
    # Transport boundary
    # ------------------------------------------------------------------

    def connect(self, transport: Any) -> Session:
        session = Session(transport)
        self.sessions.add(session)

        logger.info(
            "Session connected",
            extra={"session_id": session.id, "total_connections": len(self.sessions)}
        )
        return session

    async def disconnect(self, session: Session) -> None:
        """
        Close a session and leave every room it occupied.

        The room cleanup runs in its own task and is shielded, so it
        completes even when the calling connection task is cancelled.
        Safe to call more than once; only the first call does any work.
        """
        session.closed = True
        if session not in self.sessions:
            return
        self.sessions.discard(session)

        cleanup = asyncio.ensure_future(self._vacate(session))
        self._cleanups.add(cleanup)
        cleanup.add_done_callback(self._cleanups.discard)

        await asyncio.shield(cleanup)

    async def wait_closed(self) -> None:
        """Wait for every pending disconnect cleanup to finish."""
        if self._cleanups:
            await asyncio.gather(*self._cleanups, return_exceptions=True)

    async def _vacate(self, session: Session) -> None:
        try:
            await self.registry.leave_all(session)
        except Exception as e:
            logger.error(
                f"Error leaving rooms on disconnect: {str(e)}",
                extra={"session_id": session.id},
                exc_info=True
            )
            raise

        logger.info(
            "Session disconnected",
            extra={
                "session_id": session.id,
                "identity": session.identity,
                "connected_at": session.connected_at,
                "total_connections": len(self.sessions),
            }
        )

    async def handle(self, session: Session, raw: str) -> None:
        """
        Process one raw frame from a client.

        Any RelayError is reported back to ``session`` as an error envelope.
        """
        try:
            envelope = parse_envelope(raw)
            await self.dispatch(session, envelope)
        except RelayError as e:
            logger.debug(
                f"Rejected envelope: {e.message}",
                extra={"session_id": session.id, "code": e.code}
            )
            await session.send(ErrorNotice(message=e.message, code=e.code))

    async def dispatch(self, session: Session, envelope: InboundEnvelope) -> None:
        await self._handlers[envelope.KIND](session, envelope)

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    async def _on_create(self, session: Session, envelope: CreateEnvelope) -> None:
        session.identity = envelope.sender

        admins = []
        if self.directory is not None and envelope.room not in self.registry:
            admins = await self.directory.fetch_admins(envelope.room)

        await self.registry.create_room(session, envelope.room, admins=admins)

    async def _on_join(self, session: Session, envelope: JoinEnvelope) -> None:
        session.identity = envelope.sender
        await self.registry.join_room(session, envelope.room)

    async def _on_leave(self, session: Session, envelope: LeaveEnvelope) -> None:
        await self.registry.leave_room(session, envelope.room)

    # ------------------------------------------------------------------
    # Room traffic
    # ------------------------------------------------------------------

    async def _on_message(self, session: Session, envelope: MessageEnvelope) -> None:
        async with self.registry.locked(envelope.room) as room:
            if room is None or not room.has_member(session):
                logger.debug("Ignoring message from non-member", extra={"room": envelope.room})
                return

            if room.is_muted(session.identity):
                raise Muted(envelope.room)

            await room.broadcast(ChatMessage(
                room=envelope.room,
                sender=session.identity,
                content=envelope.content,
                timestamp=envelope.timestamp or server_timestamp(),
                reply=envelope.reply or None,
            ))

    async def _on_reaction(self, session: Session, envelope: ReactionEnvelope) -> None:
        async with self.registry.locked(envelope.room) as room:
            if room is None or not room.has_member(session):
                logger.debug("Ignoring reaction from non-member", extra={"room": envelope.room})
                return

            await room.broadcast(Reaction(
                room=envelope.room,
                sender=session.identity,
                target=envelope.target,
                emoji=envelope.emoji,
                timestamp=envelope.timestamp or server_timestamp(),
            ))

    async def _on_presence_request(self, session: Session, envelope: PresenceRequestEnvelope) -> None:
        async with self.registry.locked(envelope.room) as room:
            if room is None or not room.has_member(session):
                return
            await room.broadcast(room.presence())

    async def _on_typing(self, session: Session, envelope: TypingEnvelope) -> None:
        identity = session.identity

        async with self.registry.locked(envelope.room) as room:
            if not identity or room is None or not room.has_member(session):
                return

            if not self.registry.throttle.accept(identity, envelope.room):
                return

            if envelope.typing:
                room.typing.add(identity)
            else:
                room.typing.discard(identity)

            await room.broadcast(room.typing_update())

    # ------------------------------------------------------------------
    # Moderation
    # ------------------------------------------------------------------

    async def _on_moderate(self, session: Session, envelope: ModerateEnvelope) -> None:
        actor = session.identity
        target = envelope.target

        async with self.registry.locked(envelope.room) as room:
            if room is None or not room.has_member(session):
                return

            if not room.is_admin(actor):
                raise NotAdmin(envelope.room)

            try:
                action = ModerationAction(envelope.action)
            except ValueError:
                raise UnknownModerationAction(envelope.action)

            if action is ModerationAction.MUTE:
                room.muted.add(target)
                await room.broadcast(SystemNotice(
                    content=f"{target} was muted by {actor}",
                    room=envelope.room,
                ))

            elif action is ModerationAction.UNMUTE:
                room.muted.discard(target)

            elif action is ModerationAction.KICK:
                victim = room.find_member(target)
                if victim is not None:
                    await self.registry.leave_locked(envelope.room, room, victim)

            elif action is ModerationAction.PROMOTE:
                room.admins.add(target)

            elif action is ModerationAction.DEMOTE:
                room.admins.discard(target)

            logger.info(
                "Moderation applied",
                extra={"room": envelope.room, "action": action.value, "actor": actor, "target": target}
            )
