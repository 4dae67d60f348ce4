"""Overlay patch structures applied on top of the upstream task catalog."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Tuple

from .task_def import ObjectiveDef, ObjectiveItemDef, TaskDef


@dataclass(frozen=True, slots=True)
class ObjectivePatchDef:
    """Replacement values for one upstream objective; ``None`` keeps the upstream value."""

    description: str | None = None
    count: int | None = None
    maps: Tuple[str, ...] | None = None
    items: Tuple[ObjectiveItemDef, ...] | None = None
    player_level: int | None = None
    found_in_raid: bool | None = None


@dataclass(frozen=True, slots=True)
class TaskOverrideDef:
    disabled: bool = False
    name: str | None = None
    trader: str | None = None
    min_player_level: int | None = None
    wiki_link: str | None = None
    kappa_required: bool | None = None
    lightkeeper_required: bool | None = None
    added_prerequisites: Tuple[str, ...] = ()
    objective_patches: Dict[str, ObjectivePatchDef] = field(default_factory=dict)
    objectives_add: Tuple[ObjectiveDef, ...] = ()


@dataclass(frozen=True, slots=True)
class OverlayDef:
    version: str = "0.0.0-empty"
    generated: str = ""
    task_overrides: Dict[str, TaskOverrideDef] = field(default_factory=dict)
    tasks_add: Tuple[TaskDef, ...] = ()
