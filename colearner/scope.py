"""Scope root: the directory tree a student process may share as evidence."""

import os
from pathlib import Path


def scope_root(configured: str | Path | None = None) -> Path:
    """COLEARNER_SCOPE_ROOT, else the configured root, else the working directory."""
    env = os.environ.get("COLEARNER_SCOPE_ROOT")
    return Path(env or configured or Path.cwd()).resolve()


def is_path_allowed(path: str | Path, root: str | Path | None = None) -> bool:
    """True if path resolves to root or somewhere beneath it."""
    abs_root = Path(root).resolve() if root is not None else scope_root()
    return Path(path).resolve().is_relative_to(abs_root)
