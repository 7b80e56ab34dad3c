"""Local learning state touched by the sync router."""

from colearner.learning.progress import (
    LearningState,
    apply_confidence_delta,
    apply_plan,
    apply_progress,
    load_state,
    save_state,
)

__all__ = [
    "LearningState",
    "apply_confidence_delta",
    "apply_plan",
    "apply_progress",
    "load_state",
    "save_state",
]
