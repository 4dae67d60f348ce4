"""Tracked progress state data structures."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Set


@dataclass(slots=True)
class ProgressState:
    """Per-profile completion data owned by the persistence layer."""

    completed_tasks: Set[str] = field(default_factory=set)
    completed_objectives: Set[str] = field(default_factory=set)
    item_progress: Dict[str, int] = field(default_factory=dict)
