"""Message bus: contract plus file-log and Kafka backends."""

import logging
from pathlib import Path
from typing import Any

from colearner.bus.contract import Delivered, EventBus, PublishOutcome, Rejected, TopicCursor
from colearner.bus.file_bus import FileEventBus
from colearner.kafka_config import load_kafka_config
from colearner.settings import get_setting

logger = logging.getLogger(__name__)


def create_bus(settings: dict[str, Any], project_root: Path | None = None) -> EventBus:
    """Build the backend selected by bus.backend ("file" or "kafka")."""
    backend = str(get_setting(settings, "bus.backend", "file")).strip().lower()
    if backend == "kafka":
        from colearner.bus.kafka_bus import KafkaEventBus

        cfg = load_kafka_config(settings)
        logger.info("Using Kafka bus (%s)", ",".join(cfg.brokers))
        return KafkaEventBus(
            brokers=cfg.brokers,
            client_id=cfg.client_id,
            acks=cfg.acks,
            poll_timeout=float(get_setting(settings, "bus.poll_timeout", 1.0)),
        )
    if backend != "file":
        raise ValueError(f"Unknown bus backend {backend!r} (expected 'file' or 'kafka')")
    root = Path(get_setting(settings, "bus.root", ".colearner/kafka"))
    if project_root is not None and not root.is_absolute():
        root = project_root / root
    logger.info("Using file bus at %s", root)
    return FileEventBus(root)


__all__ = [
    "Delivered",
    "EventBus",
    "FileEventBus",
    "PublishOutcome",
    "Rejected",
    "TopicCursor",
    "create_bus",
]
