"""SyncRouter: pulls new events per topic, filters them, applies them to local state.

Cursors advance for every event read, including ones that are filtered out.
The only automatic reply is a student answering an evidence_request with an
evidence_snapshot.
"""

import json
import logging

from pydantic import ValidationError

from colearner.bus.contract import PublishOutcome
from colearner.events.models import Actor, EventEnvelope, EventType, build_event
from colearner.events.payloads import (
    AssessmentFeedbackPayload,
    EventPayload,
    EvidenceRequestPayload,
    LearningPlanPayload,
    ProgressUpdatePayload,
    decode_payload,
    validate_event_full,
)
from colearner.events.topics import Topic
from colearner.learning.progress import apply_confidence_delta, apply_plan, apply_progress
from colearner.scope import is_path_allowed
from colearner.sync.context import SyncContext

logger = logging.getLogger(__name__)

# Read order is deliberate: each role sees its inbound channels first
SYNC_ORDER: dict[Actor, tuple[Topic, ...]] = {
    Actor.COACH: (Topic.PROGRESS, Topic.ASSIGNMENTS, Topic.FEEDBACK),
    Actor.STUDENT: (Topic.ASSIGNMENTS, Topic.FEEDBACK, Topic.PROGRESS),
}


def describe(topic: str, event: EventEnvelope) -> str:
    """One human-readable line per accepted event."""
    payload = json.dumps(event.payload, ensure_ascii=False, separators=(",", ":"))
    return f"[{topic}] {event.event_type} {payload}"


class SyncRouter:
    """Role-aware, session-scoped consumer over an EventBus."""

    def __init__(self, ctx: SyncContext) -> None:
        self.ctx = ctx

    async def publish(self, topic: str, event: EventEnvelope) -> PublishOutcome:
        """Publish through the bus gate (validation plus events mirror)."""
        return await self.ctx.bus.publish(topic, event)

    async def sync(self) -> list[str]:
        """Read every topic for the current role once. Transport errors propagate."""
        lines: list[str] = []
        for topic in SYNC_ORDER[Actor(self.ctx.role)]:
            events, cursor = await self.ctx.bus.read_new(topic, self.ctx.cursor(topic))
            self.ctx.cursors[str(topic)] = cursor
            for event in events:
                if event.session_id != self.ctx.session_id:
                    continue
                if not validate_event_full(event):
                    logger.debug("Dropping invalid %s from %s", event.event_type, topic)
                    continue
                await self.handle_incoming(event)
                lines.append(describe(topic, event))
        return lines

    def _is_for_us(self, event: EventEnvelope, payload: EventPayload) -> bool:
        if event.actor == self.ctx.role:
            return False
        target = payload.addressed_to
        return target is None or target == self.ctx.student_id

    async def handle_incoming(self, event: EventEnvelope) -> None:
        """Apply one validated event to local state, or answer it."""
        try:
            payload = decode_payload(event)
        except ValidationError as e:
            logger.debug("Ignoring %s with bad payload: %s", event.event_type, e)
            return
        if not self._is_for_us(event, payload):
            return

        match payload:
            case LearningPlanPayload():
                apply_plan(self.ctx.state_path, payload.plan)
                logger.info("Plan replaced (%d steps) from %s", len(payload.plan), event.actor)
            case ProgressUpdatePayload():
                apply_progress(
                    self.ctx.state_path, payload.completed_ids, payload.confidence_scores
                )
            case AssessmentFeedbackPayload():
                apply_confidence_delta(self.ctx.state_path, payload.delta)
            case EvidenceRequestPayload() if self.ctx.role == Actor.STUDENT:
                await self._answer_evidence_request(payload)
            case _:
                pass

    async def _answer_evidence_request(self, request: EvidenceRequestPayload) -> None:
        if not request.path or not is_path_allowed(request.path, self.ctx.scope_root):
            logger.info("Evidence request for %r outside scope, not answered", request.path)
            return
        reply = build_event(
            Actor.STUDENT,
            self.ctx.session_id,
            EventType.EVIDENCE_SNAPSHOT,
            {
                "path": request.path,
                "note": request.reason_text,
                "student_id": self.ctx.student_id,
            },
        )
        outcome = await self.publish(Topic.PROGRESS, reply)
        logger.info("Answered evidence request for %s: %s", request.path, outcome)
