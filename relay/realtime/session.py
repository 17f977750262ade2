"""
Per-connection session state.

A Session is created when a WebSocket is accepted and discarded when it
closes. It carries the self-asserted identity and the set of rooms the
connection currently belongs to.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional, Set

from ..models import OutboundEnvelope

logger = logging.getLogger("relay.realtime.session")


class Session:
    """
    Live state of one client connection.

    Attributes:
        id: Unique connection identifier
        identity: Display name claimed by the last create/join, if any
        rooms: Names of the rooms this connection is a member of
        transport: Object exposing ``async send_text(str)`` (a WebSocket)
        closed: True once the transport closed or a write failed
    """

    def __init__(self, transport: Any):
        self.id = str(uuid.uuid4())
        self.identity: Optional[str] = None
        self.rooms: Set[str] = set()
        self.transport = transport
        self.connected_at = datetime.now(timezone.utc).isoformat()
        self.closed = False

    @property
    def is_open(self) -> bool:
        return not self.closed

    async def send(self, envelope: OutboundEnvelope) -> bool:
        """
        Write one envelope to the client.

        A no-op for closed sessions. A failed write marks the session closed.

        Returns:
            bool: True if the envelope was written
        """
        if self.closed:
            return False

        try:
            await self.transport.send_text(envelope.to_json())
            return True
        except Exception as e:
            logger.warning(
                f"Failed to send to session: {str(e)}",
                extra={"session_id": self.id, "identity": self.identity}
            )
            self.closed = True
            return False

    def __repr__(self) -> str:
        return f"Session(id={self.id!r}, identity={self.identity!r})"
