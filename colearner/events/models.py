"""Event envelope: the wire record shared by coach and student processes."""

import copy
import json
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

__all__ = ["Actor", "EventEnvelope", "EventType", "build_event"]


class Actor(StrEnum):
    """Authoring role of an envelope."""

    COACH = "coach"
    STUDENT = "student"


class EventType(StrEnum):
    """Closed set of event types. Stored records may still carry other values."""

    LEARNING_PLAN = "learning_plan"
    EXERCISE_ASSIGNED = "exercise_assigned"
    EXERCISE_ASSIGNED_ACK = "exercise_assigned_ack"
    EXERCISE_SUBMISSION = "exercise_submission"
    EXERCISE_SUBMISSION_ACK = "exercise_submission_ack"
    ASSESSMENT_FEEDBACK = "assessment_feedback"
    ASSESSMENT_FEEDBACK_ACK = "assessment_feedback_ack"
    PROGRESS_UPDATE = "progress_update"
    SESSION_STARTED = "session_started"
    SESSION_CLOSED = "session_closed"
    SESSION_HISTORY = "session_history"
    STUCK_REPORTED = "stuck_reported"
    COACH_HINT = "coach_hint"
    HINT_ACK = "hint_ack"
    EVIDENCE_SNAPSHOT = "evidence_snapshot"
    EVIDENCE_REQUEST = "evidence_request"
    SCOPE_POLICY = "scope_policy"
    LIFECYCLE = "lifecycle"


class EventEnvelope(BaseModel):
    """Immutable event record. Field names (by alias) are the JSON wire format.

    Fields are plain strings so that records written by older or foreign
    producers still parse; validate_event_full decides what is accepted.
    Reading .payload returns a deep copy; the stored body never changes.
    """

    model_config = ConfigDict(frozen=True)

    ts: str = ""
    actor: str = ""
    session_id: str = ""
    event_type: str = ""
    body: dict[str, Any] = Field(default_factory=dict, alias="payload")

    @property
    def payload(self) -> dict[str, Any]:
        """A fresh deep copy of the payload."""
        return copy.deepcopy(self.body)

    def to_json(self) -> str:
        """Serialize to a single JSON line (no trailing newline)."""
        return json.dumps(self.model_dump(by_alias=True), ensure_ascii=False)

    @classmethod
    def from_json(cls, raw: str | bytes) -> "EventEnvelope":
        """Parse one JSON record. Raises ValueError on malformed input."""
        return cls.model_validate_json(raw)


def _now_iso() -> str:
    return (
        datetime.now(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def build_event(
    actor: Actor | str,
    session_id: str,
    event_type: EventType | str,
    payload: dict[str, Any],
) -> EventEnvelope:
    """Create an envelope stamped with the current UTC time."""
    return EventEnvelope(
        ts=_now_iso(),
        actor=str(actor),
        session_id=session_id,
        event_type=str(event_type),
        payload=copy.deepcopy(payload),
    )
