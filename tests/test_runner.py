"""Tests for process bootstrap helpers in colearner.runner."""

from pathlib import Path

import pytest

from colearner import runner
from colearner.bus.file_bus import FileEventBus
from colearner.events import Actor
from colearner.settings import get_default_settings
from colearner.sync import SyncRouter


def test_build_context_uses_identity_settings(tmp_path: Path) -> None:
    settings = get_default_settings()
    settings["identity"].update(role="coach", session_id="s-5", student_id="stu-5")
    settings["scope"]["root"] = str(tmp_path / "repo")
    ctx = runner.build_context(FileEventBus(tmp_path / "log"), settings)
    assert ctx.role == Actor.COACH
    assert ctx.session_id == "s-5"
    assert ctx.student_id == "stu-5"
    assert ctx.scope_root == tmp_path / "repo"
    assert ctx.state_path.name == "state.json"


def test_build_context_generates_ids(tmp_path: Path) -> None:
    ctx = runner.build_context(FileEventBus(tmp_path / "log"), get_default_settings())
    assert ctx.role == Actor.STUDENT
    assert ctx.session_id.startswith("session-")
    assert ctx.student_id.startswith("student-")


@pytest.mark.asyncio
async def test_command_loop_runs_until_exit(
    student: SyncRouter, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    lines = iter(["", "session s-77", "bogus", "exit", "session never"])
    monkeypatch.setattr("builtins.input", lambda _prompt: next(lines))
    await runner._command_loop(student)
    out = capsys.readouterr().out
    assert "session set to s-77" in out
    assert "unknown command" in out
    assert student.ctx.session_id == "s-77"


@pytest.mark.asyncio
async def test_command_loop_stops_on_eof(student: SyncRouter, monkeypatch: pytest.MonkeyPatch) -> None:
    def _eof(_prompt: str) -> str:
        raise EOFError

    monkeypatch.setattr("builtins.input", _eof)
    await runner._command_loop(student)
