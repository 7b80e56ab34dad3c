"""Tests for line commands: what they publish, where, and what they print."""

import json

import pytest

from colearner.bus import TopicCursor
from colearner.bus.file_bus import FileEventBus
from colearner.commands import handle_command
from colearner.events import Topic
from colearner.lifecycle import read_lifecycle
from colearner.sync import SyncRouter


async def _read(bus: FileEventBus, topic: Topic) -> list:
    events, _ = await bus.read_new(topic, TopicCursor())
    return events


class TestPublishingCommands:
    @pytest.mark.asyncio
    async def test_assign_publishes_assignment_and_ack(
        self, bus: FileEventBus, coach: SyncRouter
    ) -> None:
        out = await handle_command(coach, "assign closures | write a counter | test_a, test_b")
        assert out == ["assignment sent"]
        (assignment,) = await _read(bus, Topic.ASSIGNMENTS)
        assert assignment.event_type == "exercise_assigned"
        assert assignment.actor == "coach"
        assert assignment.payload == {
            "topic": "closures",
            "exercise": "write a counter",
            "tests": ["test_a", "test_b"],
            "student_id": "stu-1",
        }
        mirror = await _read(bus, Topic.EVENTS)
        assert [e.event_type for e in mirror] == ["exercise_assigned", "exercise_assigned_ack"]

    @pytest.mark.asyncio
    async def test_feedback_defaults_grade(self, bus: FileEventBus, coach: SyncRouter) -> None:
        out = await handle_command(coach, "feedback | off-by-one | reread loops | -0.1")
        assert out == ["feedback sent"]
        (feedback,) = await _read(bus, Topic.FEEDBACK)
        assert feedback.payload["grade"] == "revise"
        assert feedback.payload["mistakes"] == ["off-by-one"]
        assert feedback.payload["confidence_delta"] == pytest.approx(-0.1)

    @pytest.mark.asyncio
    async def test_feedback_bad_delta(self, bus: FileEventBus, coach: SyncRouter) -> None:
        out = await handle_command(coach, "feedback pass | | | lots")
        assert out[0].startswith("invalid confidence delta")
        assert await _read(bus, Topic.FEEDBACK) == []

    @pytest.mark.asyncio
    async def test_submit_and_evidence_go_to_progress(
        self, bus: FileEventBus, student: SyncRouter
    ) -> None:
        await handle_command(student, "submit ex-1 | my answer")
        await handle_command(student, "evidence src/app.py | the handler")
        events = await _read(bus, Topic.PROGRESS)
        assert [e.event_type for e in events] == ["exercise_submission", "evidence_snapshot"]

    @pytest.mark.asyncio
    async def test_request_evidence_goes_to_assignments(
        self, bus: FileEventBus, coach: SyncRouter
    ) -> None:
        await handle_command(coach, "request-evidence src/app.py | show the handler")
        (request,) = await _read(bus, Topic.ASSIGNMENTS)
        assert request.payload["reason"] == "show the handler"

    @pytest.mark.asyncio
    async def test_progress_update(self, bus: FileEventBus, student: SyncRouter) -> None:
        out = await handle_command(student, "progress-update step-1, step-2 | step-1=0.8")
        assert out == ["progress sent"]
        (event,) = await _read(bus, Topic.PROGRESS)
        assert event.payload["completed"] == ["step-1", "step-2"]
        assert event.payload["confidence"] == {"step-1": 0.8}

    @pytest.mark.asyncio
    async def test_plan_records_lifecycle(self, bus: FileEventBus, student: SyncRouter) -> None:
        await handle_command(student, "plan repo overview, tests")
        (event,) = await _read(bus, Topic.PROGRESS)
        assert [s["status"] for s in event.payload["plan"]] == ["next", "pending"]
        stages = [e.stage for e in read_lifecycle(student.ctx.lifecycle_path)]
        assert stages == ["plan"]

    @pytest.mark.asyncio
    async def test_rejected_publish_is_reported(
        self, bus: FileEventBus, coach: SyncRouter
    ) -> None:
        coach.ctx.session_id = ""
        out = await handle_command(coach, "evidence src/app.py")
        assert out[0].startswith("rejected:")
        assert await _read(bus, Topic.PROGRESS) == []


class TestContextCommands:
    @pytest.mark.asyncio
    async def test_role_switch(self, student: SyncRouter) -> None:
        assert await handle_command(student, "role coach") == ["role set to coach"]
        assert student.ctx.role == "coach"
        out = await handle_command(student, "role admin")
        assert out[0].startswith("unknown role")
        assert student.ctx.role == "coach"

    @pytest.mark.asyncio
    async def test_session_and_student(self, student: SyncRouter) -> None:
        await handle_command(student, "session s-42")
        await handle_command(student, "student stu-7")
        assert student.ctx.session_id == "s-42"
        assert student.ctx.student_id == "stu-7"
        await handle_command(student, "session ")
        assert student.ctx.session_id == "s-42"

    @pytest.mark.asyncio
    async def test_lifecycle_and_history(self, bus: FileEventBus, student: SyncRouter) -> None:
        assert await handle_command(student, "lifecycle practice") == ["lifecycle: practice"]
        out = await handle_command(student, "lifecycle sleeping")
        assert out[0].startswith("unknown stage")
        (event,) = await _read(bus, Topic.EVENTS)
        assert event.payload["stage"] == "practice"
        (history,) = await handle_command(student, "history")
        assert [e["stage"] for e in json.loads(history)] == ["practice"]
        (other,) = await handle_command(student, "history s-999")
        assert json.loads(other) == []

    @pytest.mark.asyncio
    async def test_lifecycle_note_needs_text(self, bus: FileEventBus, student: SyncRouter) -> None:
        out = await handle_command(student, "lifecycle note")
        assert out[0].startswith("note needs text")
        assert await handle_command(student, "lifecycle note closures finally clicked") == [
            "lifecycle: note"
        ]
        (event,) = await _read(bus, Topic.EVENTS)
        assert event.payload["note"] == "closures finally clicked"
        (entry,) = read_lifecycle(student.ctx.lifecycle_path)
        assert entry.note == "closures finally clicked"

    @pytest.mark.asyncio
    async def test_progress_prints_state(self, student: SyncRouter) -> None:
        (out,) = await handle_command(student, "progress")
        assert json.loads(out)["progress"] == {"completed": [], "confidence": {}}

    @pytest.mark.asyncio
    async def test_unknown_and_empty(self, student: SyncRouter) -> None:
        out = await handle_command(student, "dance")
        assert out[0].startswith("unknown command")
        assert await handle_command(student, "   ") == []


class TestSyncCommand:
    @pytest.mark.asyncio
    async def test_coach_to_student_round_trip(
        self, coach: SyncRouter, student: SyncRouter
    ) -> None:
        await handle_command(coach, "assign closures | write a counter")
        lines = await handle_command(student, "sync")
        assert len(lines) == 1
        assert lines[0].startswith(f"[{Topic.ASSIGNMENTS}] exercise_assigned ")
        assert await handle_command(student, "sync") == []
