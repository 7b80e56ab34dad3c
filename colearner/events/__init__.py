"""Event model: envelopes, payload variants, validators and topics."""

from colearner.events.models import Actor, EventEnvelope, EventType, build_event
from colearner.events.payloads import (
    decode_payload,
    payload_error,
    validate_event,
    validate_event_full,
    validate_payload,
)
from colearner.events.topics import Topic

__all__ = [
    "Actor",
    "EventEnvelope",
    "EventType",
    "Topic",
    "build_event",
    "decode_payload",
    "payload_error",
    "validate_event",
    "validate_event_full",
    "validate_payload",
]
