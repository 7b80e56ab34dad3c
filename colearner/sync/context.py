"""Per-process sync context: who we are, which session, where each topic was read to."""

import random
import time
from dataclasses import dataclass, field
from pathlib import Path

from colearner.bus.contract import EventBus, TopicCursor
from colearner.events.models import Actor
from colearner.events.topics import Topic


def _fresh_cursors() -> dict[str, TopicCursor]:
    return {str(topic): TopicCursor() for topic in Topic}


def new_session_id() -> str:
    return f"session-{int(time.time() * 1000)}"


def _new_student_id() -> str:
    return f"student-{random.randrange(10000)}"


@dataclass
class SyncContext:
    """Mutable state of one coach or student process. Cursors live only in memory."""

    bus: EventBus
    state_path: Path
    role: Actor = Actor.STUDENT
    session_id: str = field(default_factory=new_session_id)
    student_id: str = field(default_factory=_new_student_id)
    scope_root: Path | None = None
    lifecycle_path: Path | None = None
    cursors: dict[str, TopicCursor] = field(default_factory=_fresh_cursors)

    def cursor(self, topic: str) -> TopicCursor:
        return self.cursors.get(str(topic), TopicCursor())
