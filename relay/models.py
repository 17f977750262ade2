"""
Envelope Models Module

This module defines the Pydantic models for every envelope that crosses the
WebSocket boundary, in both directions.

Models are organized by direction:
- Inbound envelopes: one model per client ``type``, with the required
  fields declared as required model fields
- Outbound envelopes: one model per server ``type``, with a fixed field set

``parse_envelope`` is the single entry point for raw client frames. It
rejects anything that does not match a known shape before dispatch.
"""

import json
from enum import Enum
from typing import Any, ClassVar, Dict, List, Literal, Optional, Type

from pydantic import BaseModel, ConfigDict, Field

from .errors import MalformedEnvelope, UnknownKind, ValidationError


# ============================================================================
# Inbound Envelopes (client -> server)
# ============================================================================

class Kind(str, Enum):
    """Discriminator values accepted from clients."""
    CREATE = "create"
    JOIN = "join"
    LEAVE = "leave"
    MESSAGE = "message"
    REACTION = "reaction"
    PRESENCE_REQUEST = "presence_request"
    TYPING = "typing"
    MODERATE = "moderate"


class ModerationAction(str, Enum):
    MUTE = "mute"
    UNMUTE = "unmute"
    KICK = "kick"
    PROMOTE = "promote"
    DEMOTE = "demote"


class InboundEnvelope(BaseModel):
    """
    Base class for client envelopes.

    Every required field of a subclass must be a non-blank string; optional
    fields are passed through as sent.
    """

    model_config = ConfigDict(extra="ignore")

    KIND: ClassVar[Kind]

    @classmethod
    def missing_fields(cls, data: Dict[str, Any]) -> List[str]:
        """
        Return the required fields that are absent, not strings, or blank.

        Args:
            data: Decoded envelope object

        Returns:
            Field names in declaration order, empty when the envelope is valid
        """
        missing = []
        for name, field in cls.model_fields.items():
            if not field.is_required():
                continue
            value = data.get(name)
            if not isinstance(value, str) or not value.strip():
                missing.append(name)
        return missing


class CreateEnvelope(InboundEnvelope):
    KIND: ClassVar[Kind] = Kind.CREATE
    room: str
    sender: str


class JoinEnvelope(InboundEnvelope):
    KIND: ClassVar[Kind] = Kind.JOIN
    room: str
    sender: str


class LeaveEnvelope(InboundEnvelope):
    KIND: ClassVar[Kind] = Kind.LEAVE
    room: str


class MessageEnvelope(InboundEnvelope):
    KIND: ClassVar[Kind] = Kind.MESSAGE
    room: str
    content: str
    timestamp: Any = Field(None, description="Client timestamp; server time when omitted")
    reply: Any = Field(None, description="Optional reference to the message being answered")


class ReactionEnvelope(InboundEnvelope):
    KIND: ClassVar[Kind] = Kind.REACTION
    room: str
    target: str
    emoji: str
    timestamp: Any = None


class PresenceRequestEnvelope(InboundEnvelope):
    KIND: ClassVar[Kind] = Kind.PRESENCE_REQUEST
    room: str


class TypingEnvelope(InboundEnvelope):
    KIND: ClassVar[Kind] = Kind.TYPING
    room: str
    typing: Any = Field(False, description="Truthy to start typing, falsy to stop")


class ModerateEnvelope(InboundEnvelope):
    KIND: ClassVar[Kind] = Kind.MODERATE
    room: str
    action: str
    target: str


INBOUND_MODELS: Dict[Kind, Type[InboundEnvelope]] = {
    model.KIND: model
    for model in (
        CreateEnvelope,
        JoinEnvelope,
        LeaveEnvelope,
        MessageEnvelope,
        ReactionEnvelope,
        PresenceRequestEnvelope,
        TypingEnvelope,
        ModerateEnvelope,
    )
}


def parse_envelope(raw: str) -> InboundEnvelope:
    """
    Decode and validate one raw client frame.

    The discriminator is read from ``type``; ``kind`` is accepted when
    ``type`` is absent.

    Args:
        raw: Text frame as received from the transport

    Returns:
        The typed envelope for the frame's kind

    Raises:
        MalformedEnvelope: Frame is not a JSON object
        UnknownKind: Discriminator is not a known kind
        ValidationError: Required fields are missing or blank
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        raise MalformedEnvelope()

    if not isinstance(data, dict):
        raise MalformedEnvelope()

    raw_kind = data.get("type", data.get("kind"))
    try:
        kind = Kind(raw_kind)
    except (TypeError, ValueError):
        raise UnknownKind(raw_kind)

    model = INBOUND_MODELS[kind]
    missing = model.missing_fields(data)
    if missing:
        raise ValidationError(missing)

    return model.model_validate(data)


# ============================================================================
# Outbound Envelopes (server -> client)
# ============================================================================

class OutboundEnvelope(BaseModel):
    """Base class for server envelopes; serialized as one JSON text frame."""

    def to_json(self) -> str:
        return self.model_dump_json()


class SystemNotice(OutboundEnvelope):
    type: Literal["system"] = "system"
    content: str
    room: Optional[str] = None


class ErrorNotice(OutboundEnvelope):
    type: Literal["error"] = "error"
    message: str
    code: str = "error"


class PresenceUpdate(OutboundEnvelope):
    type: Literal["presence"] = "presence"
    room: str
    users: List[str]


class UserJoined(OutboundEnvelope):
    type: Literal["user_joined"] = "user_joined"
    room: str
    sender: Optional[str]


class UserLeft(OutboundEnvelope):
    type: Literal["user_left"] = "user_left"
    room: str
    sender: Optional[str]


class ChatMessage(OutboundEnvelope):
    type: Literal["message"] = "message"
    room: str
    sender: Optional[str]
    content: str
    timestamp: Any
    reply: Any = None


class Reaction(OutboundEnvelope):
    type: Literal["reaction"] = "reaction"
    room: str
    sender: Optional[str]
    target: str
    emoji: str
    timestamp: Any


class TypingUpdate(OutboundEnvelope):
    type: Literal["typing"] = "typing"
    room: str
    typingUsers: List[str]
