"""Payload variants per event type and the envelope validators.

Each EventType maps to one pydantic model describing the fields it requires.
Unknown event types decode to UnknownPayload and always pass; stored logs
written by newer producers stay readable.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, StrictStr, ValidationError, model_validator

from colearner.events.models import EventEnvelope, EventType

__all__ = [
    "AckPayload",
    "AssessmentFeedbackPayload",
    "CoachHintPayload",
    "EventPayload",
    "EvidenceRequestPayload",
    "EvidenceSnapshotPayload",
    "ExerciseAssignedPayload",
    "ExerciseSubmissionPayload",
    "HintAckPayload",
    "LearningPlanPayload",
    "LifecyclePayload",
    "ProgressUpdatePayload",
    "ScopePolicyPayload",
    "SessionClosedPayload",
    "SessionHistoryPayload",
    "SessionStartedPayload",
    "StuckReportedPayload",
    "UnknownPayload",
    "decode_payload",
    "payload_error",
    "validate_event",
    "validate_event_full",
    "validate_payload",
]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class EventPayload(BaseModel):
    """Base for payload variants. Extra keys are kept; only required ones are checked."""

    model_config = ConfigDict(extra="allow", strict=True, frozen=True)

    student_id: Any = None

    @property
    def addressed_to(self) -> str | None:
        """Target student id, if the payload names one."""
        return self.student_id if isinstance(self.student_id, str) else None


class UnknownPayload(EventPayload):
    """Event type outside the known set: accepted as-is."""


class LearningPlanPayload(EventPayload):
    plan: list[Any]
    goals: Any = None


class ExerciseAssignedPayload(EventPayload):
    topic: StrictStr
    exercise: StrictStr


class AckPayload(EventPayload):
    """Shared shape of *_ack events."""

    status: StrictStr


class ExerciseSubmissionPayload(EventPayload):
    exercise_id: StrictStr


class AssessmentFeedbackPayload(EventPayload):
    grade: StrictStr
    confidence_delta: Any = 0

    @property
    def delta(self) -> float:
        """Numeric confidence delta; anything non-numeric counts as 0."""
        return float(self.confidence_delta) if _is_number(self.confidence_delta) else 0.0


class ProgressUpdatePayload(EventPayload):
    completed: Any = None
    confidence: Any = None

    @model_validator(mode="after")
    def _completed_or_confidence(self) -> "ProgressUpdatePayload":
        if not isinstance(self.completed, list) and not isinstance(self.confidence, dict):
            raise ValueError("progress_update needs a completed list or a confidence object")
        return self

    @property
    def completed_ids(self) -> list[str]:
        if not isinstance(self.completed, list):
            return []
        return [str(item) for item in self.completed]

    @property
    def confidence_scores(self) -> dict[str, float]:
        if not isinstance(self.confidence, dict):
            return {}
        return {str(k): float(v) for k, v in self.confidence.items() if _is_number(v)}


class SessionStartedPayload(EventPayload):
    session_id: Any = None

    @model_validator(mode="after")
    def _session_or_student(self) -> "SessionStartedPayload":
        if not isinstance(self.session_id, str) and not isinstance(self.student_id, str):
            raise ValueError("session_started needs session_id or student_id")
        return self


class SessionClosedPayload(EventPayload):
    session_id: Any = None
    summary: Any = None

    @model_validator(mode="after")
    def _session_or_summary(self) -> "SessionClosedPayload":
        if not isinstance(self.session_id, str) and not isinstance(self.summary, dict):
            raise ValueError("session_closed needs session_id or a summary object")
        return self


class SessionHistoryPayload(EventPayload):
    session_id: Any = None
    events: Any = None

    @model_validator(mode="after")
    def _session_or_events(self) -> "SessionHistoryPayload":
        if not isinstance(self.session_id, str) and not isinstance(self.events, list):
            raise ValueError("session_history needs session_id or an events list")
        return self


class StuckReportedPayload(EventPayload):
    session_id: StrictStr
    summary: StrictStr


class CoachHintPayload(EventPayload):
    session_id: StrictStr
    hint: StrictStr


class HintAckPayload(EventPayload):
    session_id: StrictStr
    note: StrictStr


class EvidenceSnapshotPayload(EventPayload):
    path: StrictStr
    note: Any = ""


class EvidenceRequestPayload(EventPayload):
    path: StrictStr
    reason: Any = ""

    @property
    def reason_text(self) -> str:
        return self.reason if isinstance(self.reason, str) else ""


class ScopePolicyPayload(EventPayload):
    scope: StrictStr


class LifecyclePayload(EventPayload):
    stage: StrictStr


def _variant_for(event_type: str) -> type[EventPayload]:
    try:
        kind = EventType(event_type)
    except ValueError:
        return UnknownPayload
    match kind:
        case EventType.LEARNING_PLAN:
            return LearningPlanPayload
        case EventType.EXERCISE_ASSIGNED:
            return ExerciseAssignedPayload
        case (
            EventType.EXERCISE_ASSIGNED_ACK
            | EventType.EXERCISE_SUBMISSION_ACK
            | EventType.ASSESSMENT_FEEDBACK_ACK
        ):
            return AckPayload
        case EventType.EXERCISE_SUBMISSION:
            return ExerciseSubmissionPayload
        case EventType.ASSESSMENT_FEEDBACK:
            return AssessmentFeedbackPayload
        case EventType.PROGRESS_UPDATE:
            return ProgressUpdatePayload
        case EventType.SESSION_STARTED:
            return SessionStartedPayload
        case EventType.SESSION_CLOSED:
            return SessionClosedPayload
        case EventType.SESSION_HISTORY:
            return SessionHistoryPayload
        case EventType.STUCK_REPORTED:
            return StuckReportedPayload
        case EventType.COACH_HINT:
            return CoachHintPayload
        case EventType.HINT_ACK:
            return HintAckPayload
        case EventType.EVIDENCE_SNAPSHOT:
            return EvidenceSnapshotPayload
        case EventType.EVIDENCE_REQUEST:
            return EvidenceRequestPayload
        case EventType.SCOPE_POLICY:
            return ScopePolicyPayload
        case EventType.LIFECYCLE:
            return LifecyclePayload


def decode_payload(event: EventEnvelope) -> EventPayload:
    """Decode the payload into its typed variant. Raises pydantic.ValidationError."""
    return _variant_for(event.event_type).model_validate(event.payload)


def payload_error(event: EventEnvelope) -> str | None:
    """Return why the payload does not fit its event type, or None if it does."""
    try:
        decode_payload(event)
    except ValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        field = ".".join(str(p) for p in first.get("loc", ())) or "payload"
        return f"{event.event_type}: {field}: {first.get('msg', str(e))}"
    return None


def validate_event(event: EventEnvelope) -> bool:
    """True iff the envelope header fields are all present and non-empty."""
    return bool(event.ts and event.actor and event.session_id and event.event_type)


def validate_payload(event: EventEnvelope) -> bool:
    return payload_error(event) is None


def validate_event_full(event: EventEnvelope) -> bool:
    """Gate applied before publish and before routing."""
    return validate_event(event) and validate_payload(event)
