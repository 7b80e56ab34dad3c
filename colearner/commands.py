"""Line commands that build, publish and read events for one coach/student process."""

import json
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from pathlib import Path

from colearner.bus.contract import Rejected
from colearner.coach.dashboard import build_dashboard, format_dashboard
from colearner.events.models import Actor, EventType, build_event
from colearner.events.topics import Topic
from colearner.learning.progress import load_state
from colearner.lifecycle import (
    DEFAULT_PATH,
    NOTE_STAGES,
    LifecycleEntry,
    Stage,
    append_lifecycle,
    read_lifecycle,
)
from colearner.sync.router import SyncRouter

logger = logging.getLogger(__name__)

Handler = Callable[[SyncRouter, str], Awaitable[list[str]]]


def _fields(arg: str, count: int) -> list[str]:
    """Split 'a | b | c' into exactly count stripped parts."""
    parts = [p.strip() for p in arg.split("|")]
    return (parts + [""] * count)[:count]


def _csv(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


def _lifecycle_path(router: SyncRouter) -> Path:
    return router.ctx.lifecycle_path or DEFAULT_PATH


async def _send(
    router: SyncRouter,
    topic: Topic,
    event_type: EventType,
    payload: dict,
    ok_line: str,
) -> list[str]:
    ctx = router.ctx
    event = build_event(ctx.role, ctx.session_id, event_type, {**payload, "student_id": ctx.student_id})
    outcome = await router.publish(topic, event)
    if isinstance(outcome, Rejected):
        return [f"rejected: {outcome.reason}"]
    return [ok_line]


async def _ack(router: SyncRouter, event_type: EventType) -> None:
    ctx = router.ctx
    ack = build_event(
        ctx.role, ctx.session_id, event_type, {"status": "sent", "student_id": ctx.student_id}
    )
    await router.publish(Topic.EVENTS, ack)


async def cmd_plan(router: SyncRouter, arg: str) -> list[str]:
    goals = _csv(arg)
    plan = [
        {"id": f"step-{i + 1}", "topic": goal, "status": "next" if i == 0 else "pending"}
        for i, goal in enumerate(goals)
    ]
    out = await _send(router, Topic.PROGRESS, EventType.LEARNING_PLAN, {"goals": goals, "plan": plan}, "plan sent")
    _record_stage(router, "plan")
    return out


async def cmd_assign(router: SyncRouter, arg: str) -> list[str]:
    topic, exercise, tests = _fields(arg, 3)
    out = await _send(
        router,
        Topic.ASSIGNMENTS,
        EventType.EXERCISE_ASSIGNED,
        {"topic": topic, "exercise": exercise, "tests": _csv(tests)},
        "assignment sent",
    )
    await _ack(router, EventType.EXERCISE_ASSIGNED_ACK)
    return out


async def cmd_submit(router: SyncRouter, arg: str) -> list[str]:
    exercise_id, response = _fields(arg, 2)
    out = await _send(
        router,
        Topic.PROGRESS,
        EventType.EXERCISE_SUBMISSION,
        {"exercise_id": exercise_id, "response": response},
        "submission sent",
    )
    await _ack(router, EventType.EXERCISE_SUBMISSION_ACK)
    return out


async def cmd_evidence(router: SyncRouter, arg: str) -> list[str]:
    path, note = _fields(arg, 2)
    return await _send(
        router, Topic.PROGRESS, EventType.EVIDENCE_SNAPSHOT, {"path": path, "note": note}, "evidence snapshot sent"
    )


async def cmd_request_evidence(router: SyncRouter, arg: str) -> list[str]:
    path, reason = _fields(arg, 2)
    return await _send(
        router, Topic.ASSIGNMENTS, EventType.EVIDENCE_REQUEST, {"path": path, "reason": reason}, "evidence request sent"
    )


async def cmd_feedback(router: SyncRouter, arg: str) -> list[str]:
    grade, mistakes, next_step, delta = _fields(arg, 4)
    try:
        confidence_delta = float(delta) if delta else 0.0
    except ValueError:
        return [f"invalid confidence delta: {delta!r}"]
    out = await _send(
        router,
        Topic.FEEDBACK,
        EventType.ASSESSMENT_FEEDBACK,
        {
            "grade": grade or "revise",
            "mistakes": _csv(mistakes),
            "next_step": next_step,
            "confidence_delta": confidence_delta,
        },
        "feedback sent",
    )
    await _ack(router, EventType.ASSESSMENT_FEEDBACK_ACK)
    return out


async def cmd_progress_update(router: SyncRouter, arg: str) -> list[str]:
    completed_raw, confidence_raw = _fields(arg, 2)
    confidence: dict[str, float] = {}
    for item in _csv(confidence_raw):
        key, _, value = item.partition("=")
        try:
            confidence[key.strip()] = float(value)
        except ValueError:
            return [f"invalid confidence entry: {item!r}"]
    return await _send(
        router,
        Topic.PROGRESS,
        EventType.PROGRESS_UPDATE,
        {"completed": _csv(completed_raw), "confidence": confidence},
        "progress sent",
    )


async def cmd_role(router: SyncRouter, arg: str) -> list[str]:
    try:
        router.ctx.role = Actor(arg.strip())
    except ValueError:
        return [f"unknown role: {arg.strip()!r} (coach or student)"]
    return [f"role set to {router.ctx.role}"]


async def cmd_student(router: SyncRouter, arg: str) -> list[str]:
    router.ctx.student_id = arg.strip() or router.ctx.student_id
    return [f"student set to {router.ctx.student_id}"]


async def cmd_session(router: SyncRouter, arg: str) -> list[str]:
    router.ctx.session_id = arg.strip() or router.ctx.session_id
    return [f"session set to {router.ctx.session_id}"]


def _record_stage(router: SyncRouter, stage: str, note: str | None = None) -> None:
    entry = LifecycleEntry(
        ts=datetime.now(timezone.utc).isoformat(),
        session_id=router.ctx.session_id,
        stage=stage,
        note=note,
    )
    append_lifecycle(entry, _lifecycle_path(router))


async def cmd_lifecycle(router: SyncRouter, arg: str) -> list[str]:
    """lifecycle <stage>, or lifecycle note|insight <text>."""
    stage, _, note = arg.strip().partition(" ")
    note = note.strip()
    if stage not in set(Stage):
        return [f"unknown stage: {stage!r} (one of: {', '.join(Stage)})"]
    if stage in NOTE_STAGES and not note:
        return [f"{stage} needs text: lifecycle {stage} <text>"]
    _record_stage(router, stage, note or None)
    payload = {"stage": stage, "note": note} if note else {"stage": stage}
    return await _send(router, Topic.EVENTS, EventType.LIFECYCLE, payload, f"lifecycle: {stage}")


async def cmd_history(router: SyncRouter, arg: str) -> list[str]:
    session_id = arg.strip() or router.ctx.session_id
    entries = read_lifecycle(_lifecycle_path(router), session_id=session_id)
    return [json.dumps([e.to_dict() for e in entries], indent=2)]


async def cmd_progress(router: SyncRouter, _arg: str) -> list[str]:
    return [load_state(router.ctx.state_path).model_dump_json(indent=2)]


async def cmd_sync(router: SyncRouter, _arg: str) -> list[str]:
    return await router.sync()


async def cmd_dashboard(router: SyncRouter, _arg: str) -> list[str]:
    """Full-history rollup per student; does not move sync cursors."""
    return format_dashboard(await build_dashboard(router.ctx.bus))


COMMANDS: dict[str, Handler] = {
    "plan": cmd_plan,
    "assign": cmd_assign,
    "submit": cmd_submit,
    "evidence": cmd_evidence,
    "request-evidence": cmd_request_evidence,
    "feedback": cmd_feedback,
    "progress-update": cmd_progress_update,
    "role": cmd_role,
    "student": cmd_student,
    "session": cmd_session,
    "lifecycle": cmd_lifecycle,
    "history": cmd_history,
    "progress": cmd_progress,
    "sync": cmd_sync,
    "dashboard": cmd_dashboard,
}


async def handle_command(router: SyncRouter, line: str) -> list[str]:
    """Run one command line. Unknown commands return a hint; transport errors propagate."""
    name, _, arg = line.strip().partition(" ")
    handler = COMMANDS.get(name)
    if handler is None:
        return [f"unknown command: {name!r} (try: {', '.join(COMMANDS)})"] if name else []
    logger.debug("command %s %r", name, arg)
    return await handler(router, arg)
