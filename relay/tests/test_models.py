"""
Unit Tests for Envelope Models
==============================

Tests for relay/models.py

Test Coverage:
--------------
1. Malformed frames (invalid JSON, non-object JSON)
2. Unknown discriminators
3. Required field validation (absent, non-string, blank)
4. Typed envelopes for every kind
5. Outbound serialization shape

Run tests:
----------
    pytest relay/tests/test_models.py -v
"""

import json

import pytest

from relay.errors import MalformedEnvelope, UnknownKind, ValidationError
from relay.models import (
    ChatMessage,
    CreateEnvelope,
    ErrorNotice,
    Kind,
    MessageEnvelope,
    ModerateEnvelope,
    PresenceUpdate,
    TypingEnvelope,
    parse_envelope,
)


# ============================================================================
# Malformed / Unknown
# ============================================================================

@pytest.mark.parametrize("raw", ["not json", "{\"type\": ", "", "[1, 2]", "42", "null"])
def test_malformed_frames_are_rejected(raw):
    """Non-JSON input and JSON that is not an object are malformed"""
    with pytest.raises(MalformedEnvelope) as exc_info:
        parse_envelope(raw)

    assert exc_info.value.message == "Invalid JSON"
    assert exc_info.value.code == "malformed"


def test_unknown_kind_names_the_kind():
    """Test that an unrecognized type is reported by name"""
    with pytest.raises(UnknownKind) as exc_info:
        parse_envelope(json.dumps({"type": "shout", "room": "lobby"}))

    assert exc_info.value.message == "Unknown message type: shout"


def test_missing_type_is_unknown_kind():
    with pytest.raises(UnknownKind):
        parse_envelope(json.dumps({"room": "lobby"}))


def test_unhashable_type_is_unknown_kind():
    with pytest.raises(UnknownKind):
        parse_envelope(json.dumps({"type": ["create"]}))


# ============================================================================
# Required Field Validation
# ============================================================================

def test_missing_fields_are_listed_in_declaration_order():
    """Test that every missing required field is named"""
    with pytest.raises(ValidationError) as exc_info:
        parse_envelope(json.dumps({"type": "moderate", "room": "lobby"}))

    assert exc_info.value.fields == ["action", "target"]
    assert exc_info.value.message == "Missing or invalid fields: action, target"


@pytest.mark.parametrize("bad_value", ["", "   ", 5, None, ["lobby"], {"name": "lobby"}])
def test_blank_or_non_string_required_fields_are_invalid(bad_value):
    """Blank strings and non-strings fail the required field check"""
    with pytest.raises(ValidationError) as exc_info:
        parse_envelope(json.dumps({"type": "join", "room": bad_value, "sender": "alice"}))

    assert exc_info.value.fields == ["room"]


def test_optional_fields_are_not_required():
    envelope = parse_envelope(json.dumps({"type": "message", "room": "lobby", "content": "hi"}))

    assert isinstance(envelope, MessageEnvelope)
    assert envelope.timestamp is None
    assert envelope.reply is None


# ============================================================================
# Typed Envelopes
# ============================================================================

def test_create_envelope_is_typed():
    envelope = parse_envelope(json.dumps({"type": "create", "room": "lobby", "sender": "alice"}))

    assert isinstance(envelope, CreateEnvelope)
    assert envelope.KIND is Kind.CREATE
    assert envelope.room == "lobby"
    assert envelope.sender == "alice"


def test_kind_alias_is_accepted():
    """Test that 'kind' works as the discriminator when 'type' is absent"""
    envelope = parse_envelope(json.dumps({"kind": "leave", "room": "lobby"}))

    assert envelope.KIND is Kind.LEAVE


def test_extra_fields_are_ignored():
    envelope = parse_envelope(json.dumps({
        "type": "moderate",
        "room": "lobby",
        "action": "mute",
        "target": "bob",
        "reason": "spam",
    }))

    assert isinstance(envelope, ModerateEnvelope)
    assert not hasattr(envelope, "reason")


def test_typing_flag_defaults_to_false():
    envelope = parse_envelope(json.dumps({"type": "typing", "room": "lobby"}))

    assert isinstance(envelope, TypingEnvelope)
    assert not envelope.typing


def test_message_passes_client_timestamp_and_reply_through():
    envelope = parse_envelope(json.dumps({
        "type": "message",
        "room": "lobby",
        "content": "hi",
        "timestamp": 1700000000000,
        "reply": {"id": "m-1"},
    }))

    assert envelope.timestamp == 1700000000000
    assert envelope.reply == {"id": "m-1"}


# ============================================================================
# Outbound Envelopes
# ============================================================================

def test_outbound_envelopes_carry_their_type():
    presence = json.loads(PresenceUpdate(room="lobby", users=["alice"]).to_json())
    error = json.loads(ErrorNotice(message="nope", code="not_admin").to_json())

    assert presence == {"type": "presence", "room": "lobby", "users": ["alice"]}
    assert error == {"type": "error", "message": "nope", "code": "not_admin"}


def test_chat_message_serializes_null_reply():
    message = json.loads(ChatMessage(
        room="lobby", sender="alice", content="hi", timestamp=1
    ).to_json())

    assert message == {
        "type": "message",
        "room": "lobby",
        "sender": "alice",
        "content": "hi",
        "timestamp": 1,
        "reply": None,
    }
