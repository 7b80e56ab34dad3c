"""Transport-agnostic bus contract shared by the file log and Kafka backends."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from colearner.events.models import EventEnvelope
from colearner.events.payloads import payload_error, validate_event
from colearner.events.topics import mirror_targets

logger = logging.getLogger(__name__)

__all__ = ["Delivered", "EventBus", "PublishOutcome", "Rejected", "TopicCursor"]


@dataclass(frozen=True)
class TopicCursor:
    """Position in one topic for one consuming process. Never persisted."""

    offset: int = 0


@dataclass(frozen=True)
class Delivered:
    """Event handed to the transport for every listed topic."""

    topics: tuple[str, ...]


@dataclass(frozen=True)
class Rejected:
    """Event failed validation; nothing was written."""

    reason: str


PublishOutcome = Delivered | Rejected


def rejection_reason(event: EventEnvelope) -> str | None:
    """Return why the event may not be published, or None if it may."""
    if not validate_event(event):
        return "missing envelope field (ts, actor, session_id or event_type)"
    return payload_error(event)


class EventBus(ABC):
    """Publish / read_new over named topics.

    publish validates, then writes to the topic and to the events mirror.
    read_new returns everything after a cursor, in publish order, and a
    cursor that neither repeats nor skips on the next call. Delivery is
    at-least-once; nothing is deduplicated.
    """

    async def publish(self, topic: str, event: EventEnvelope) -> PublishOutcome:
        reason = rejection_reason(event)
        if reason is not None:
            logger.debug("Rejected %s on %s: %s", event.event_type, topic, reason)
            return Rejected(reason)
        targets = mirror_targets(topic)
        for target in targets:
            await self._append(target, event)
        return Delivered(tuple(targets))

    @abstractmethod
    async def read_new(
        self, topic: str, cursor: TopicCursor
    ) -> tuple[list[EventEnvelope], TopicCursor]:
        """Events published to topic strictly after cursor, plus the next cursor."""

    @abstractmethod
    async def _append(self, topic: str, event: EventEnvelope) -> None:
        """Write one already-validated event to one topic."""

    async def close(self) -> None:
        """Release transport resources. Called once at process exit."""
