"""Local append-only log: one JSONL file per topic."""

import logging
from pathlib import Path

from pydantic import ValidationError

from colearner.bus.contract import EventBus, TopicCursor
from colearner.events.models import EventEnvelope

logger = logging.getLogger(__name__)

DEFAULT_ROOT = Path(".colearner/kafka")


class FileEventBus(EventBus):
    """File-backed bus. Single writer assumed; no locking between processes.

    read_new re-reads the whole file and uses the cursor as a line index,
    so a fresh cursor replays the full topic history.
    """

    def __init__(self, root: Path | str = DEFAULT_ROOT) -> None:
        self._root = Path(root)
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        return self._root

    def topic_path(self, topic: str) -> Path:
        return self._root / f"{topic}.jsonl"

    async def _append(self, topic: str, event: EventEnvelope) -> None:
        path = self.topic_path(topic)
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as f:
            f.write(event.to_json() + "\n")

    async def read_new(
        self, topic: str, cursor: TopicCursor
    ) -> tuple[list[EventEnvelope], TopicCursor]:
        path = self.topic_path(topic)
        if not path.exists():
            return [], cursor
        lines = [line for line in path.read_bytes().split(b"\n") if line]
        start = max(0, cursor.offset)
        events: list[EventEnvelope] = []
        for index, line in enumerate(lines[start:], start=start):
            try:
                events.append(EventEnvelope.from_json(line.decode("utf-8")))
            except (UnicodeDecodeError, ValidationError) as e:
                logger.warning("Skipping malformed record %s:%d: %s", path.name, index, e)
        return events, TopicCursor(offset=len(lines))
