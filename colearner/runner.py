"""Entry point for a coach or student process: settings, logging, bus, then a command loop."""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from colearner.bus import EventBus, create_bus
from colearner.commands import handle_command
from colearner.events.models import Actor
from colearner.logging_config import setup_logging
from colearner.settings import get_setting, load_settings
from colearner.sync import SyncContext, SyncRouter
from colearner.sync.context import new_session_id

logger = logging.getLogger(__name__)

_PROJECT_ROOT = Path.cwd()


def _resolve(path: str) -> Path:
    p = Path(path)
    return p if p.is_absolute() else _PROJECT_ROOT / p


def build_context(bus: EventBus, settings: dict[str, Any]) -> SyncContext:
    """Create the per-process context from identity/learning/scope settings."""
    scope = get_setting(settings, "scope.root")
    ctx = SyncContext(
        bus=bus,
        state_path=_resolve(get_setting(settings, "learning.state_path", ".colearner/state.json")),
        lifecycle_path=_resolve(
            get_setting(settings, "learning.lifecycle_path", ".colearner/lifecycle.jsonl")
        ),
        role=Actor(get_setting(settings, "identity.role", "student")),
        scope_root=_resolve(scope) if scope else None,
    )
    session_id = get_setting(settings, "identity.session_id")
    student_id = get_setting(settings, "identity.student_id")
    if session_id:
        ctx.session_id = str(session_id)
    if student_id:
        ctx.student_id = str(student_id)
    return ctx


async def _command_loop(router: SyncRouter) -> None:
    while True:
        try:
            line = await asyncio.to_thread(input, f"{router.ctx.role}> ")
        except (EOFError, KeyboardInterrupt):
            logger.info("Input stream closed")
            break
        line = line.strip()
        if not line:
            continue
        if line in ("exit", "quit"):
            break
        for out in await handle_command(router, line):
            print(out, flush=True)


async def main_async() -> None:
    """Bootstrap: settings -> logging -> bus -> context -> command loop -> close bus."""
    settings = load_settings()
    if not get_setting(settings, "identity.session_id"):
        settings["identity"]["session_id"] = new_session_id()
    log_file = setup_logging(_PROJECT_ROOT, settings)
    bus = create_bus(settings, project_root=_PROJECT_ROOT)
    ctx = build_context(bus, settings)
    logger.info(
        "Started as %s (session=%s, student=%s)", ctx.role, ctx.session_id, ctx.student_id
    )
    print(f"{ctx.role} session={ctx.session_id} student={ctx.student_id} log={log_file}", flush=True)
    try:
        await _command_loop(SyncRouter(ctx))
    finally:
        await bus.close()


def main() -> None:
    """Synchronous entry for a colearner process."""
    load_dotenv(_PROJECT_ROOT / ".env")
    try:
        asyncio.run(main_async())
    except KeyboardInterrupt:
        pass
    except ValueError as e:
        print(f"colearner: {e}", file=sys.stderr)
        sys.exit(2)


__all__ = ["build_context", "main", "main_async"]
