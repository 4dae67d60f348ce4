"""Apply the data overlay and known requirement fixes to the task catalog.

The upstream catalog is patched in three steps: known-bad prerequisite
edges are dropped, per-task overlay overrides are applied (disabled tasks
vanish), and overlay-only tasks are appended.
"""
from __future__ import annotations

from dataclasses import replace
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

from questgraph.data.repositories import OverlayRepository, TasksRepository
from questgraph.domain.defs import ObjectiveDef, ObjectivePatchDef, OverlayDef, TaskDef
from questgraph.logging_utils import get_logger

logger = get_logger("services.overlay_service")

# Prerequisite edges the upstream catalog gets wrong: task id -> ids to drop.
TASK_REQUIREMENT_REMOVALS: Dict[str, Tuple[str, ...]] = {
    # Test Drive - Part 1 does not require Grenadier.
    "5c0bd94186f7747a727f09b2": ("5c0d190cd09282029f5390d8",),
    # Huntsman Path - Justice does not require Huntsman Path - Trophy.
    "5d25e43786f7740a212217fa": ("5d25e2c386f77443e7549029",),
}

EVENT_TASK_PREFIXES: Tuple[str, ...] = (
    "winter_",
    "halloween_",
    "event_",
    "newyear_",
    "christmas_",
    "easter_",
    "summer_",
    "spring_",
    "autumn_",
    "fall_",
)

_COLLECTOR_MARKER = "Collector items"
_OBJECTIVE_PATCH_FIELDS = ("description", "count", "maps", "items", "player_level", "found_in_raid")


def is_event_task_id(task_id: str) -> bool:
    """Seasonal overlay tasks are recognised by their id prefix."""
    lowered = task_id.lower()
    return any(lowered.startswith(prefix) for prefix in EVENT_TASK_PREFIXES)


def apply_requirement_removals(
    tasks: Iterable[TaskDef],
    removals: Mapping[str, Sequence[str]] = TASK_REQUIREMENT_REMOVALS,
) -> List[TaskDef]:
    result: List[TaskDef] = []
    for task in tasks:
        drop = set(removals.get(task.id, ()))
        if not drop or not drop.intersection(task.prerequisites):
            result.append(task)
            continue
        kept = [
            (prereq_id, name)
            for prereq_id, name in _zip_prerequisites(task)
            if prereq_id not in drop
        ]
        logger.debug("Dropping prerequisites %s from task '%s'", sorted(drop), task.id)
        result.append(
            replace(
                task,
                prerequisites=tuple(prereq_id for prereq_id, _ in kept),
                prerequisite_names=tuple(name for _, name in kept),
            )
        )
    return result


def _zip_prerequisites(task: TaskDef) -> List[Tuple[str, str]]:
    names = list(task.prerequisite_names) + [""] * (len(task.prerequisites) - len(task.prerequisite_names))
    return list(zip(task.prerequisites, names))


def expand_collector_objective(objective: ObjectiveDef) -> List[ObjectiveDef]:
    """Split a "Collector items" hand-over into one objective per item."""
    if objective.items and _COLLECTOR_MARKER in objective.description:
        return [
            replace(
                objective,
                description=f"Hand over the found in raid item: {item.name}",
                items=(item,),
            )
            for item in objective.items
        ]
    return [objective]


def apply_task_overlay(task: TaskDef, overlay: OverlayDef) -> TaskDef | None:
    """Return the task with its overlay override applied, or None if disabled."""
    override = overlay.task_overrides.get(task.id)
    if override is None:
        return task
    if override.disabled:
        logger.debug("Overlay disables task '%s'", task.id)
        return None

    changes: Dict[str, object] = {}
    for field_name in (
        "name",
        "trader",
        "min_player_level",
        "wiki_link",
        "kappa_required",
        "lightkeeper_required",
    ):
        value = getattr(override, field_name)
        if value is not None:
            changes[field_name] = value

    if override.added_prerequisites:
        existing = set(task.prerequisites)
        new_ids = [prereq for prereq in override.added_prerequisites if prereq not in existing]
        if new_ids:
            names = tuple(name for _, name in _zip_prerequisites(task))
            changes["prerequisites"] = task.prerequisites + tuple(new_ids)
            changes["prerequisite_names"] = names + ("",) * len(new_ids)

    objectives = list(task.objectives)
    if override.objective_patches:
        objectives = [_patch_objective(objective, override.objective_patches) for objective in objectives]
    for added in override.objectives_add:
        objectives.extend(expand_collector_objective(added))
    if objectives != list(task.objectives):
        changes["objectives"] = tuple(objectives)

    if not changes:
        return task
    logger.debug("Overlay patches task '%s': %s", task.id, ", ".join(sorted(changes)))
    return replace(task, **changes)


def _patch_objective(
    objective: ObjectiveDef, patches: Mapping[str, ObjectivePatchDef]
) -> ObjectiveDef:
    if objective.objective_id is None:
        return objective
    patch = patches.get(objective.objective_id)
    if patch is None:
        return objective
    changes: Dict[str, object] = {}
    for field_name in _OBJECTIVE_PATCH_FIELDS:
        value = getattr(patch, field_name)
        if value is not None:
            changes[field_name] = value
    return replace(objective, **changes) if changes else objective


def build_added_tasks(overlay: OverlayDef) -> List[TaskDef]:
    """Return overlay-only tasks, flagged as events when seasonal."""
    added: List[TaskDef] = []
    for task in overlay.tasks_add:
        map_names: List[str] = list(task.maps)
        for objective in task.objectives:
            for map_name in objective.maps:
                if map_name not in map_names:
                    map_names.append(map_name)
        added.append(
            replace(
                task,
                min_player_level=1,
                lightkeeper_required=False,
                maps=tuple(map_names),
                is_event=is_event_task_id(task.id),
            )
        )
    return added


def build_task_catalog(
    tasks_repo: TasksRepository,
    overlay_repo: OverlayRepository | None = None,
    *,
    removals: Mapping[str, Sequence[str]] = TASK_REQUIREMENT_REMOVALS,
) -> List[TaskDef]:
    """Return the patched task list the rest of the engine works on."""
    tasks = apply_requirement_removals(tasks_repo.all(), removals)
    if overlay_repo is None:
        return tasks
    overlay = overlay_repo.load()
    patched: List[TaskDef] = []
    for task in tasks:
        result = apply_task_overlay(task, overlay)
        if result is not None:
            patched.append(result)
    known_ids = {task.id for task in patched}
    for task in build_added_tasks(overlay):
        if task.id in known_ids:
            logger.debug("Overlay task '%s' already in catalog; keeping catalog entry", task.id)
            continue
        patched.append(task)
    logger.debug("Task catalog built: %d tasks (overlay %s)", len(patched), overlay.version)
    return patched
