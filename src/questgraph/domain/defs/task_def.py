"""Task definition data structures."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple


@dataclass(frozen=True, slots=True)
class ObjectiveItemDef:
    """Item referenced by an objective (hand-over, plant, find...)."""

    id: str
    name: str


@dataclass(frozen=True, slots=True)
class ObjectiveDef:
    """Sub-requirement of a task. Has no identity of its own."""

    description: str = ""
    count: int | None = None
    maps: Tuple[str, ...] = ()
    items: Tuple[ObjectiveItemDef, ...] = ()
    player_level: int | None = None
    found_in_raid: bool = False
    # Upstream id, only used to target overlay patches.
    objective_id: str | None = None


@dataclass(frozen=True, slots=True, weakref_slot=True)
class TaskDef:
    id: str
    name: str
    trader: str = ""
    min_player_level: int = 1
    prerequisites: Tuple[str, ...] = ()
    objectives: Tuple[ObjectiveDef, ...] = ()
    maps: Tuple[str, ...] = ()
    wiki_link: str = ""
    kappa_required: bool = False
    lightkeeper_required: bool = False
    is_event: bool = False
    prerequisite_names: Tuple[str, ...] = field(default=(), compare=False)
