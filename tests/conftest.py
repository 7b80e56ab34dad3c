"""Shared fixtures: file-backed bus and sync contexts on tmp_path."""

from pathlib import Path

import pytest

from colearner.bus.file_bus import FileEventBus
from colearner.events.models import Actor
from colearner.sync import SyncContext, SyncRouter


@pytest.fixture
def bus(tmp_path: Path) -> FileEventBus:
    return FileEventBus(tmp_path / "kafka")


def _make_router(
    bus: FileEventBus,
    tmp_path: Path,
    role: Actor,
    session_id: str = "s-1",
    student_id: str = "stu-1",
) -> SyncRouter:
    ctx = SyncContext(
        bus=bus,
        state_path=tmp_path / f"{role}-{student_id}-{session_id}-state.json",
        lifecycle_path=tmp_path / f"{role}-lifecycle.jsonl",
        role=role,
        session_id=session_id,
        student_id=student_id,
        scope_root=tmp_path / "repo",
    )
    return SyncRouter(ctx)


@pytest.fixture
def coach(bus: FileEventBus, tmp_path: Path) -> SyncRouter:
    return _make_router(bus, tmp_path, Actor.COACH)


@pytest.fixture
def student(bus: FileEventBus, tmp_path: Path) -> SyncRouter:
    return _make_router(bus, tmp_path, Actor.STUDENT)


@pytest.fixture
def make_router(bus: FileEventBus, tmp_path: Path):
    """Factory for extra routers sharing the same bus (other sessions or students)."""

    def factory(role: Actor, session_id: str = "s-1", student_id: str = "stu-1") -> SyncRouter:
        return _make_router(bus, tmp_path, role, session_id, student_id)

    return factory
