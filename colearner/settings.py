"""Load application settings from config/settings.yaml, with environment overrides."""

import os
from pathlib import Path
from typing import Any

import yaml

_DEFAULTS: dict[str, Any] = {
    "bus": {
        # "file" (local append-only log) or "kafka"; COLEARNER_BUS overrides
        "backend": "file",
        "root": ".colearner/kafka",
        "poll_timeout": 1.0,
    },
    "kafka": {
        "brokers": ["127.0.0.1:39092"],
        "client_id": "colearner",
        "acks": 1,
    },
    "learning": {
        "state_path": ".colearner/state.json",
        "lifecycle_path": ".colearner/lifecycle.jsonl",
    },
    "identity": {
        "role": "student",
        # None generates session-<ms> / student-<n> at start
        "session_id": None,
        "student_id": None,
    },
    "scope": {
        # None means the current working directory; COLEARNER_SCOPE_ROOT overrides
        "root": None,
    },
    "logging": {
        # None writes .colearner/logs/colearner-<role>.log
        "file": None,
        "level": "INFO",
        "log_to_console": False,
        "max_bytes": 10485760,  # 10 MB
        "backup_count": 3,
    },
}

# env var -> dot path
_ENV_OVERRIDES: dict[str, str] = {
    "COLEARNER_BUS": "bus.backend",
    "COLEARNER_BUS_ROOT": "bus.root",
    "COLEARNER_SCOPE_ROOT": "scope.root",
    "COLEARNER_STATE_PATH": "learning.state_path",
    "COLEARNER_ROLE": "identity.role",
    "COLEARNER_SESSION": "identity.session_id",
    "COLEARNER_STUDENT": "identity.student_id",
}

_cached: dict[str, Any] | None = None


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Merge overlay into base recursively. Mutates base."""
    for key, value in overlay.items():
        if value is None:
            continue
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def get_default_settings() -> dict[str, Any]:
    """Return a deep copy of default settings."""
    return _deep_copy_nested(_DEFAULTS)


def get_setting(settings: dict[str, Any], path: str, default: Any = None) -> Any:
    """Get a nested value by dot path (e.g. 'bus.backend')."""
    current: Any = settings
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return default
        current = current[part]
    return current


def _set_setting(settings: dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    current = settings
    for part in parts[:-1]:
        current = current.setdefault(part, {})
    current[parts[-1]] = value


def _apply_env_overrides(settings: dict[str, Any]) -> None:
    for env_name, path in _ENV_OVERRIDES.items():
        value = os.environ.get(env_name, "").strip()
        if value:
            _set_setting(settings, path, value)


def reload_settings() -> None:
    """Clear the settings cache. Call after config files or env change."""
    global _cached
    _cached = None


def load_settings(config_dir: Path | None = None) -> dict[str, Any]:
    """Load settings from config/settings.yaml. Returns defaults + file values + env overrides."""
    global _cached
    if _cached is not None:
        return _cached

    if config_dir is None:
        config_dir = Path(__file__).resolve().parent.parent / "config"
    path = config_dir / "settings.yaml"

    result = get_default_settings()

    if path.exists():
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
            if isinstance(data, dict):
                _deep_merge(result, data)
        except (yaml.YAMLError, OSError):
            pass

    _apply_env_overrides(result)
    _cached = result
    return result


def _deep_copy_nested(obj: Any) -> Any:
    """Return a deep copy of nested dicts/lists for defaults."""
    if isinstance(obj, dict):
        return {k: _deep_copy_nested(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_deep_copy_nested(x) for x in obj]
    return obj
