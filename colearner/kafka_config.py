"""Resolve Kafka broker list and client identity.

Order: COLEARNER_BROKERS env, then kafka.brokers in $AAFW_HOME/CFG/agent.yaml,
then kafka.brokers from settings.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from colearner.settings import get_setting

logger = logging.getLogger(__name__)

DEFAULT_BROKERS = ["127.0.0.1:39092"]
DEFAULT_CLIENT_ID = "colearner"


@dataclass(frozen=True)
class KafkaConfig:
    brokers: list[str]
    client_id: str = DEFAULT_CLIENT_ID
    acks: int | str = 1


def _brokers_from_env() -> list[str]:
    raw = os.environ.get("COLEARNER_BROKERS", "")
    return [b.strip() for b in raw.split(",") if b.strip()]


def _agent_config_path() -> Path:
    home = os.environ.get("AAFW_HOME") or str(Path.cwd().parent / "aafw-home")
    return Path(home) / "CFG" / "agent.yaml"


def _brokers_from_agent_yaml(path: Path) -> list[str]:
    if not path.exists():
        return []
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (yaml.YAMLError, OSError) as e:
        logger.warning("Ignoring unreadable %s: %s", path, e)
        return []
    kafka = data.get("kafka") if isinstance(data, dict) else None
    brokers = kafka.get("brokers") if isinstance(kafka, dict) else None
    if not isinstance(brokers, list):
        return []
    return [str(b) for b in brokers if b]


def load_kafka_config(settings: dict[str, Any]) -> KafkaConfig:
    client_id = get_setting(settings, "kafka.client_id", DEFAULT_CLIENT_ID)
    acks = get_setting(settings, "kafka.acks", 1)
    brokers = _brokers_from_env() or _brokers_from_agent_yaml(_agent_config_path())
    if not brokers:
        configured = get_setting(settings, "kafka.brokers", DEFAULT_BROKERS)
        brokers = [str(b) for b in configured] if isinstance(configured, list) else []
    return KafkaConfig(brokers=brokers or list(DEFAULT_BROKERS), client_id=client_id, acks=acks)
