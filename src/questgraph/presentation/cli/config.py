"""CLI configuration helpers for options persistence."""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict

from questgraph.logging_utils import get_logger

logger = get_logger("cli.config")

_DEFAULT_PROFILE = "default"
_DEFAULT_LOG_LEVEL = "WARNING"
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def get_user_data_dir() -> Path:
    """Return the per-user data directory."""
    if os.name == "nt":
        base = os.environ.get("APPDATA")
        if base:
            return Path(base) / "QuestGraph"
        return Path.home() / "QuestGraph"
    return Path.home() / ".config" / "questgraph"


def get_default_config_path() -> Path:
    """Return the default per-user config path."""
    return get_user_data_dir() / "config.json"


def get_profiles_dir() -> Path:
    """Return the per-user directory holding one progress file per profile."""
    return get_user_data_dir() / "profiles"


def default_config() -> Dict[str, Any]:
    return {"definitions_dir": None, "profile": _DEFAULT_PROFILE, "log_level": _DEFAULT_LOG_LEVEL}


def _normalize(raw: Dict[str, Any]) -> Dict[str, Any]:
    config = default_config()
    definitions_dir = raw.get("definitions_dir")
    if isinstance(definitions_dir, str) and definitions_dir.strip():
        config["definitions_dir"] = definitions_dir
    profile = raw.get("profile")
    if isinstance(profile, str) and profile.strip():
        config["profile"] = profile.strip()
    log_level = raw.get("log_level")
    if isinstance(log_level, str) and log_level.strip().upper() in _LOG_LEVELS:
        config["log_level"] = log_level.strip().upper()
    return config


def load_config(path: Path | None = None) -> Dict[str, Any]:
    """Load config from disk or return defaults."""
    config_path = path or get_default_config_path()
    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return default_config()
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", config_path, exc)
        return default_config()
    if not isinstance(raw, dict):
        return default_config()
    return _normalize(raw)


def save_config(config: Dict[str, Any], path: Path | None = None) -> None:
    """Persist config to disk."""
    config_path = path or get_default_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    payload = _normalize(config)
    config_path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
