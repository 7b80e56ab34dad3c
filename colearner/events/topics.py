"""Fixed bus topics. Names are part of the wire contract with existing logs."""

from enum import StrEnum


class Topic(StrEnum):
    """Channels shared by coach and student processes."""

    # Student -> coach: plans, submissions, evidence, progress
    PROGRESS = "colearner.progress.v1"

    # Coach -> student: exercises and evidence requests
    ASSIGNMENTS = "colearner.assignments.v1"

    # Coach -> student: graded feedback
    FEEDBACK = "colearner.feedback.v1"

    # Mirror of every envelope plus acks and lifecycle markers
    EVENTS = "colearner.events.v1"


DIRECTIONAL_TOPICS: tuple[Topic, ...] = (Topic.PROGRESS, Topic.ASSIGNMENTS, Topic.FEEDBACK)


def mirror_targets(topic: str) -> list[str]:
    """Topics an envelope published to ``topic`` must land in, in write order."""
    if topic in DIRECTIONAL_TOPICS:
        return [str(topic), str(Topic.EVENTS)]
    return [str(topic)]
