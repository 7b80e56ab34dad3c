"""Local lifecycle journal: per-process record of session stages (JSONL)."""

import json
import logging
from dataclasses import asdict, dataclass
from enum import StrEnum
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_PATH = Path(".colearner/lifecycle.jsonl")


class Stage(StrEnum):
    INIT = "init"
    PLAN = "plan"
    PRACTICE = "practice"
    REVIEW = "review"
    DONE = "done"
    NOTE = "note"
    INSIGHT = "insight"


# Stages that carry free text in LifecycleEntry.note
NOTE_STAGES = frozenset({Stage.NOTE, Stage.INSIGHT})


@dataclass(frozen=True)
class LifecycleEntry:
    ts: str
    session_id: str
    stage: str
    note: str | None = None

    def to_dict(self) -> dict:
        data = asdict(self)
        if data["note"] is None:
            del data["note"]
        return data


def append_lifecycle(entry: LifecycleEntry, path: Path = DEFAULT_PATH) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as f:
        f.write(json.dumps(entry.to_dict(), ensure_ascii=False) + "\n")


def read_lifecycle(path: Path = DEFAULT_PATH, session_id: str | None = None) -> list[LifecycleEntry]:
    """Read all entries, optionally only one session. Malformed lines are skipped."""
    if not path.exists():
        return []
    entries: list[LifecycleEntry] = []
    for line in path.read_text(encoding="utf-8").splitlines():
        if not line.strip():
            continue
        try:
            raw = json.loads(line)
            entry = LifecycleEntry(
                ts=str(raw["ts"]),
                session_id=str(raw["session_id"]),
                stage=str(raw["stage"]),
                note=raw.get("note"),
            )
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            logger.warning("Skipping malformed lifecycle line in %s: %s", path, e)
            continue
        if session_id is None or entry.session_id == session_id:
            entries.append(entry)
    return entries
