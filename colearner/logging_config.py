"""Logging for coach and student processes.

Both roles usually run from the same checkout, so each gets its own rotating
file (colearner-coach.log / colearner-student.log) unless logging.file is set,
and every record carries the role and session it came from.
"""

import logging
import logging.handlers
from pathlib import Path
from typing import Any

from colearner.settings import get_setting

LOG_DIR = Path(".colearner/logs")
_FORMAT = "%(asctime)s %(role)s/%(session)s [%(levelname)s] %(name)s: %(message)s"


class _IdentityFilter(logging.Filter):
    """Stamps role and session onto every record passing the handler."""

    def __init__(self, role: str, session: str) -> None:
        super().__init__()
        self.role = role
        self.session = session

    def filter(self, record: logging.LogRecord) -> bool:
        record.role = self.role
        record.session = self.session
        return True


def log_path(project_root: Path, settings: dict[str, Any]) -> Path:
    """logging.file if configured, else a per-role file under LOG_DIR."""
    configured = get_setting(settings, "logging.file")
    if configured:
        path = Path(configured)
    else:
        role = get_setting(settings, "identity.role", "student") or "student"
        path = LOG_DIR / f"colearner-{role}.log"
    return path if path.is_absolute() else project_root / path


def setup_logging(project_root: Path, settings: dict[str, Any]) -> Path:
    """Replace root handlers with a rotating per-role file and optional console.

    Returns the log file path so the runner can tell the user where it is.
    """
    cfg = settings.get("logging", {})
    level = getattr(logging, str(cfg.get("level", "INFO")).upper(), logging.INFO)
    identity = _IdentityFilter(
        role=str(get_setting(settings, "identity.role", "student")),
        session=str(get_setting(settings, "identity.session_id") or "-"),
    )
    formatter = logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    path = log_path(project_root, settings)
    path.parent.mkdir(parents=True, exist_ok=True)
    handlers: list[logging.Handler] = [
        logging.handlers.RotatingFileHandler(
            path,
            maxBytes=int(cfg.get("max_bytes", 10 * 1024 * 1024)),
            backupCount=int(cfg.get("backup_count", 3)),
            encoding="utf-8",
        )
    ]
    if cfg.get("log_to_console", False):
        handlers.append(logging.StreamHandler())

    root = logging.getLogger()
    root.setLevel(level)
    for h in root.handlers[:]:
        root.removeHandler(h)
        h.close()
    for h in handlers:
        h.setLevel(level)
        h.setFormatter(formatter)
        h.addFilter(identity)
        root.addHandler(h)
    # aiokafka is chatty at INFO
    logging.getLogger("aiokafka").setLevel(max(level, logging.WARNING))
    return path
