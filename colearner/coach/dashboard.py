"""Coach dashboard: per-student rollup built by replaying topics from the start."""

from dataclasses import dataclass, field
from typing import Any

from colearner.bus.contract import EventBus, TopicCursor
from colearner.events.models import EventEnvelope, EventType
from colearner.events.topics import Topic

DASHBOARD_TOPICS = (Topic.PROGRESS, Topic.FEEDBACK, Topic.ASSIGNMENTS)


@dataclass
class StudentRollup:
    sessions: list[str] = field(default_factory=list)
    completed: list[str] = field(default_factory=list)
    confidence: dict[str, float] = field(default_factory=dict)
    blockers: list[str] = field(default_factory=list)
    last_event_ts: str | None = None


@dataclass
class Dashboard:
    students: dict[str, StudentRollup] = field(default_factory=dict)

    @property
    def total_students(self) -> int:
        return len(self.students)

    @property
    def avg_confidence(self) -> float:
        values = [v for s in self.students.values() for v in s.confidence.values()]
        return round(sum(values) / len(values), 2) if values else 0.0

    @property
    def total_blockers(self) -> int:
        return sum(len(s.blockers) for s in self.students.values())


def _student_key(event: EventEnvelope, payload: dict[str, Any]) -> str:
    student_id = payload.get("student_id")
    if isinstance(student_id, str):
        return student_id
    return f"{event.actor}:{event.session_id}"


def _extend_unique(target: list[str], items: list[Any]) -> None:
    for item in items:
        value = str(item)
        if item and value not in target:
            target.append(value)


def _apply(rollup: StudentRollup, event: EventEnvelope, payload: dict[str, Any]) -> None:
    _extend_unique(rollup.sessions, [event.session_id])
    rollup.last_event_ts = event.ts
    match event.event_type:
        case EventType.PROGRESS_UPDATE:
            completed = payload.get("completed")
            if isinstance(completed, list):
                _extend_unique(rollup.completed, completed)
            confidence = payload.get("confidence")
            if isinstance(confidence, dict):
                rollup.confidence.update(
                    (str(k), float(v))
                    for k, v in confidence.items()
                    if isinstance(v, (int, float)) and not isinstance(v, bool)
                )
        case EventType.ASSESSMENT_FEEDBACK:
            mistakes = payload.get("mistakes")
            if isinstance(mistakes, list):
                _extend_unique(rollup.blockers, mistakes)


async def build_dashboard(bus: EventBus) -> Dashboard:
    """Replay progress, feedback and assignments from offset 0 and aggregate per student.

    Events are folded topic by topic in DASHBOARD_TOPICS order, so last_event_ts
    is the timestamp of the last event seen in that order, not the newest overall.
    """
    dashboard = Dashboard()
    for topic in DASHBOARD_TOPICS:
        events, _ = await bus.read_new(topic, TopicCursor())
        for event in events:
            payload = event.payload
            key = _student_key(event, payload)
            rollup = dashboard.students.setdefault(key, StudentRollup())
            _apply(rollup, event, payload)
    return dashboard


def format_dashboard(dashboard: Dashboard) -> list[str]:
    if not dashboard.students:
        return ["No student data found."]
    lines = [
        f"summary: students={dashboard.total_students} "
        f"avg_confidence={dashboard.avg_confidence} blockers={dashboard.total_blockers}"
    ]
    for student, data in dashboard.students.items():
        confidence = ", ".join(f"{k}={v}" for k, v in data.confidence.items())
        lines.extend([
            f"student: {student}",
            f"  sessions: {', '.join(data.sessions)}",
            f"  completed: {', '.join(data.completed) or 'none'}",
            f"  confidence: {confidence or 'none'}",
            f"  blockers: {', '.join(data.blockers) or 'none'}",
            f"  last: {data.last_event_ts or 'unknown'}",
        ])
    return lines
