"""Tests for the envelope model, payload variants and validators."""

import json
from datetime import datetime

import pytest
from pydantic import ValidationError

from colearner.events import (
    Actor,
    EventEnvelope,
    EventType,
    build_event,
    decode_payload,
    payload_error,
    validate_event,
    validate_event_full,
    validate_payload,
)
from colearner.events.payloads import (
    AckPayload,
    AssessmentFeedbackPayload,
    ProgressUpdatePayload,
    UnknownPayload,
)


def _event(event_type: str, payload: dict) -> EventEnvelope:
    return build_event(Actor.COACH, "s-1", event_type, payload)


class TestBuildEvent:
    def test_stamps_iso_timestamp(self) -> None:
        e = build_event(Actor.STUDENT, "s-1", EventType.LIFECYCLE, {"stage": "init"})
        assert e.ts.endswith("Z")
        datetime.fromisoformat(e.ts.replace("Z", "+00:00"))
        assert e.actor == "student"
        assert e.event_type == "lifecycle"

    def test_envelope_is_immutable(self) -> None:
        e = build_event(Actor.COACH, "s-1", EventType.LIFECYCLE, {"stage": "plan"})
        with pytest.raises(ValidationError):
            e.session_id = "other"  # type: ignore[misc]

    def test_payload_is_copied(self) -> None:
        payload = {"stage": "plan"}
        e = build_event(Actor.COACH, "s-1", EventType.LIFECYCLE, payload)
        payload["stage"] = "done"
        assert e.payload == {"stage": "plan"}

    def test_payload_cannot_be_mutated_through_envelope(self) -> None:
        e = build_event(Actor.COACH, "s-1", EventType.LIFECYCLE, {"stage": "plan", "tags": ["a"]})
        e.payload["stage"] = "done"
        e.payload["tags"].append("b")
        assert e.payload == {"stage": "plan", "tags": ["a"]}
        assert json.loads(e.to_json())["payload"] == {"stage": "plan", "tags": ["a"]}

    def test_payload_survives_json_round_trip(self) -> None:
        e = build_event(Actor.COACH, "s-1", EventType.LIFECYCLE, {"stage": "plan"})
        assert EventEnvelope.from_json(e.to_json()) == e

    def test_wire_format_field_names(self) -> None:
        e = build_event(Actor.COACH, "s-1", EventType.LIFECYCLE, {"stage": "plan"})
        data = json.loads(e.to_json())
        assert list(data) == ["ts", "actor", "session_id", "event_type", "payload"]

    def test_from_json_tolerates_missing_fields(self) -> None:
        e = EventEnvelope.from_json('{"actor": "coach", "payload": {}}')
        assert e.session_id == ""
        assert not validate_event(e)

    def test_from_json_rejects_garbage(self) -> None:
        with pytest.raises(ValueError):
            EventEnvelope.from_json("{not json")


class TestValidateEvent:
    def test_all_header_fields_required(self) -> None:
        ok = _event("lifecycle", {"stage": "plan"})
        assert validate_event(ok)
        for field in ("ts", "actor", "session_id", "event_type"):
            broken = ok.model_copy(update={field: ""})
            assert not validate_event(broken), field


class TestValidatePayload:
    @pytest.mark.parametrize(
        ("event_type", "payload"),
        [
            ("learning_plan", {"plan": []}),
            ("exercise_assigned", {"topic": "t", "exercise": "e"}),
            ("exercise_assigned_ack", {"status": "sent"}),
            ("exercise_submission", {"exercise_id": "ex-1"}),
            ("assessment_feedback", {"grade": "pass"}),
            ("progress_update", {"completed": ["a"]}),
            ("progress_update", {"confidence": {"a": 0.5}}),
            ("session_started", {"student_id": "stu-1"}),
            ("session_closed", {"summary": {}}),
            ("session_history", {"events": []}),
            ("stuck_reported", {"session_id": "s-1", "summary": "lost"}),
            ("coach_hint", {"session_id": "s-1", "hint": "look at x"}),
            ("hint_ack", {"session_id": "s-1", "note": "thanks"}),
            ("evidence_snapshot", {"path": "src/a.py"}),
            ("evidence_request", {"path": "src/a.py"}),
            ("scope_policy", {"scope": "repo"}),
            ("lifecycle", {"stage": "plan"}),
        ],
    )
    def test_valid_payloads(self, event_type: str, payload: dict) -> None:
        assert validate_payload(_event(event_type, payload))

    @pytest.mark.parametrize(
        ("event_type", "payload"),
        [
            ("learning_plan", {"plan": "not a list"}),
            ("exercise_assigned", {"topic": "t"}),
            ("assessment_feedback", {"mistakes": []}),
            ("assessment_feedback", {"grade": 3}),
            ("progress_update", {}),
            ("progress_update", {"completed": "a", "confidence": []}),
            ("progress_update", {"confidence": None}),
            ("session_closed", {"summary": ["done"]}),
            ("session_closed", {"summary": None}),
            ("stuck_reported", {"session_id": "s-1"}),
            ("evidence_request", {"reason": "why"}),
            ("lifecycle", {}),
        ],
    )
    def test_invalid_payloads(self, event_type: str, payload: dict) -> None:
        e = _event(event_type, payload)
        assert not validate_payload(e)
        assert payload_error(e)

    def test_unknown_event_type_passes(self) -> None:
        e = _event("tutor_joined", {})
        assert validate_payload(e)
        assert isinstance(decode_payload(e), UnknownPayload)

    def test_full_requires_both(self) -> None:
        assert validate_event_full(_event("assessment_feedback", {"grade": "pass"}))
        assert not validate_event_full(_event("assessment_feedback", {}))
        headerless = _event("assessment_feedback", {"grade": "pass"}).model_copy(update={"ts": ""})
        assert not validate_event_full(headerless)


class TestDecodePayload:
    def test_acks_share_variant(self) -> None:
        for kind in ("exercise_assigned_ack", "exercise_submission_ack", "assessment_feedback_ack"):
            assert isinstance(decode_payload(_event(kind, {"status": "sent"})), AckPayload)

    def test_feedback_delta(self) -> None:
        p = decode_payload(_event("assessment_feedback", {"grade": "ok", "confidence_delta": 0.2}))
        assert isinstance(p, AssessmentFeedbackPayload)
        assert p.delta == pytest.approx(0.2)
        p = decode_payload(_event("assessment_feedback", {"grade": "ok", "confidence_delta": "big"}))
        assert p.delta == 0.0

    def test_progress_helpers(self) -> None:
        p = decode_payload(
            _event("progress_update", {"completed": ["a", "b"], "confidence": {"a": 0.4, "b": "x"}})
        )
        assert isinstance(p, ProgressUpdatePayload)
        assert p.completed_ids == ["a", "b"]
        assert p.confidence_scores == {"a": 0.4}

    def test_addressed_to(self) -> None:
        p = decode_payload(_event("lifecycle", {"stage": "plan", "student_id": "stu-9"}))
        assert p.addressed_to == "stu-9"
        p = decode_payload(_event("lifecycle", {"stage": "plan", "student_id": 9}))
        assert p.addressed_to is None
