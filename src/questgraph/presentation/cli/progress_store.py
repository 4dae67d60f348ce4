"""File-system helpers for per-profile progress storage."""
from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Dict, List

from questgraph.logging_utils import get_logger
from questgraph.presentation.cli import config

logger = get_logger("cli.progress_store")

_PROFILE_NAME = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


class ProgressStore:
    """Handles profile-based persistence on disk."""

    def __init__(self, base_dir: Path | str | None = None) -> None:
        self._base_dir = Path(base_dir) if base_dir is not None else config.get_profiles_dir()

    def list_profiles(self) -> List[str]:
        """Return the names of profiles that have saved progress."""
        if not self._base_dir.exists():
            return []
        return sorted(path.stem for path in self._base_dir.glob("*.json"))

    def exists(self, profile: str) -> bool:
        self._validate_profile(profile)
        return self._profile_path(profile).exists()

    def read(self, profile: str) -> Dict[str, Any]:
        """Load and parse the payload stored for the profile."""
        self._validate_profile(profile)
        text = self._profile_path(profile).read_text(encoding="utf-8")
        return json.loads(text)

    def write(self, profile: str, payload: Dict[str, Any]) -> None:
        """Persist the payload for the profile."""
        self._validate_profile(profile)
        self._base_dir.mkdir(parents=True, exist_ok=True)
        path = self._profile_path(profile)
        path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
        logger.info("Saved progress for profile '%s' to %s", profile, path)

    def delete(self, profile: str) -> None:
        """Delete the profile payload if it exists."""
        self._validate_profile(profile)
        try:
            self._profile_path(profile).unlink()
        except FileNotFoundError:
            return

    def _profile_path(self, profile: str) -> Path:
        return self._base_dir / f"{profile}.json"

    @staticmethod
    def _validate_profile(profile: str) -> None:
        if not _PROFILE_NAME.match(profile):
            raise ValueError("Profile names may only contain letters, digits, '-' and '_'.")
