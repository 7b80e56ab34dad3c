"""Learning-state document: plan steps and progress, mutated by incoming events."""

import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)


class PlanStep(BaseModel):
    id: str
    topic: str = ""
    status: str = "pending"


class Learner(BaseModel):
    level: str = "intermediate"
    goals: list[str] = Field(default_factory=list)


class Progress(BaseModel):
    completed: list[str] = Field(default_factory=list)
    confidence: dict[str, float] = Field(default_factory=dict)


class LearningState(BaseModel):
    learner: Learner = Field(default_factory=Learner)
    plan: list[PlanStep] = Field(default_factory=list)
    progress: Progress = Field(default_factory=Progress)


def load_state(path: Path) -> LearningState:
    """Read the state file. Missing or unreadable file gives the default state."""
    if not path.exists():
        return LearningState()
    try:
        return LearningState.model_validate_json(path.read_text(encoding="utf-8"))
    except (ValidationError, OSError, UnicodeDecodeError) as e:
        logger.warning("Unreadable learning state %s, using defaults: %s", path, e)
        return LearningState()


def save_state(path: Path, state: LearningState) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(state.model_dump_json(indent=2), encoding="utf-8")


def _coerce_steps(plan: list[Any]) -> list[PlanStep]:
    steps: list[PlanStep] = []
    for index, raw in enumerate(plan):
        if isinstance(raw, dict):
            try:
                steps.append(PlanStep.model_validate(raw))
                continue
            except ValidationError as e:
                logger.debug("Plan step %d not well-formed: %s", index, e)
        steps.append(PlanStep(id=f"step-{index + 1}", topic=str(raw)))
    return steps


def apply_plan(path: Path, plan: list[Any]) -> LearningState:
    """Replace the stored plan. A new plan starts with empty progress."""
    state = load_state(path)
    state.plan = _coerce_steps(plan)
    state.progress = Progress()
    save_state(path, state)
    return state


def apply_progress(path: Path, completed: list[str], confidence: dict[str, float]) -> LearningState:
    """Union completed ids (order kept) and overwrite the given confidence keys."""
    state = load_state(path)
    merged = list(dict.fromkeys([*state.progress.completed, *completed]))
    state.progress = Progress(
        completed=merged,
        confidence={**state.progress.confidence, **confidence},
    )
    save_state(path, state)
    return state


def apply_confidence_delta(path: Path, delta: float) -> LearningState:
    """Shift every tracked confidence by delta, clamped to [0, 1]."""
    state = load_state(path)
    if delta == 0:
        return state
    updated = {
        key: min(1.0, max(0.0, value + delta))
        for key, value in state.progress.confidence.items()
    }
    return apply_progress(path, [], updated)
