"""Task dependency graph: adjacency, levels and availability."""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import AbstractSet, Dict, Iterable, List, Sequence

from questgraph.domain.defs import TaskDef
from questgraph.logging_utils import get_logger

logger = get_logger("services.task_graph")

DependencyMap = Dict[str, List[str]]


def build_dependency_map(tasks: Iterable[TaskDef]) -> DependencyMap:
    """Map each task id to its prerequisite ids, copied verbatim.

    Dangling ids are kept; consumers skip them.
    """
    dependency_map: DependencyMap = {}
    for task in tasks:
        dependency_map[task.id] = list(task.prerequisites)
    return dependency_map


def calculate_task_levels(
    tasks: Iterable[TaskDef] | Mapping[str, Sequence[str]],
) -> Dict[str, int]:
    """Return the longest-path tier of every task in the graph.

    ``level = 0`` without prerequisites, else ``1 + max(level(prereq))``.
    Prerequisite ids missing from the graph count as level 0.

    Cycles terminate: revisiting a task that is still being resolved yields
    the level recorded for it so far (0 if none), so tasks on a cycle get an
    under-counted tier instead of looping. Well-formed catalogs are acyclic.
    """
    if isinstance(tasks, Mapping):
        dependency_map: Mapping[str, Sequence[str]] = tasks
    else:
        dependency_map = build_dependency_map(tasks)

    levels: Dict[str, int] = {}
    visited: set[str] = set()

    for task_id in dependency_map:
        if task_id in visited:
            continue
        _resolve_level(task_id, dependency_map, levels, visited)
    return levels


def _resolve_level(
    start_id: str,
    dependency_map: Mapping[str, Sequence[str]],
    levels: Dict[str, int],
    visited: set[str],
) -> int:
    # Explicit stack equivalent of the memoized recursion, so long chains do
    # not hit the interpreter recursion limit. Each frame is
    # (task_id, dependencies, next dependency index, best level so far).
    visited.add(start_id)
    stack: list[list] = [[start_id, dependency_map.get(start_id) or (), 0, -1]]
    result = 0
    while stack:
        frame = stack[-1]
        task_id, dependencies, index, best = frame
        if not dependencies:
            levels[task_id] = 0
            stack.pop()
            result = 0
            if stack:
                _fold_child(stack[-1], result)
            continue
        if index < len(dependencies):
            dep_id = dependencies[index]
            frame[2] = index + 1
            if dep_id in visited:
                # Already resolved, or still in progress on a cycle.
                if dep_id not in levels and any(entry[0] == dep_id for entry in stack):
                    logger.debug("Cycle through task '%s' while leveling '%s'", dep_id, task_id)
                _fold_child(frame, levels.get(dep_id, 0))
                continue
            visited.add(dep_id)
            stack.append([dep_id, dependency_map.get(dep_id) or (), 0, -1])
            continue
        level = best + 1
        levels[task_id] = level
        stack.pop()
        result = level
        if stack:
            _fold_child(stack[-1], result)
    return result


def _fold_child(frame: list, child_level: int) -> None:
    if child_level > frame[3]:
        frame[3] = child_level


def is_task_available(
    task_id: str,
    completed: AbstractSet[str],
    dependency_map: Mapping[str, Sequence[str]],
) -> bool:
    """Return True when every prerequisite of ``task_id`` is completed."""
    dependencies = dependency_map.get(task_id) or ()
    return all(dep_id in completed for dep_id in dependencies)


def list_available_tasks(
    dependency_map: Mapping[str, Sequence[str]],
    completed: AbstractSet[str],
) -> List[str]:
    """Return ids that are unlockable now and not yet completed."""
    return [
        task_id
        for task_id in dependency_map
        if task_id not in completed and is_task_available(task_id, completed, dependency_map)
    ]


def group_tasks_by_level(levels: Mapping[str, int]) -> Dict[int, List[str]]:
    """Group task ids into tiers, ids sorted within each tier."""
    groups: Dict[int, List[str]] = {}
    for task_id, level in levels.items():
        groups.setdefault(level, []).append(task_id)
    return {level: sorted(groups[level]) for level in sorted(groups)}


def group_tasks_by_trader(tasks: Iterable[TaskDef]) -> Dict[str, List[TaskDef]]:
    groups: Dict[str, List[TaskDef]] = {}
    for task in tasks:
        groups.setdefault(task.trader, []).append(task)
    return groups


@dataclass(frozen=True, slots=True)
class TaskFilter:
    """Checklist filter. ``player_level=None`` disables the level check."""

    kappa_only: bool = False
    lightkeeper_only: bool = False
    player_level: int | None = None

    @property
    def is_active(self) -> bool:
        return self.kappa_only or self.lightkeeper_only or self.player_level is not None


def matches_filter(task: TaskDef, task_filter: TaskFilter) -> bool:
    # With both collector flags on, either requirement qualifies.
    if task_filter.kappa_only and task_filter.lightkeeper_only:
        if not (task.kappa_required or task.lightkeeper_required):
            return False
    elif task_filter.kappa_only and not task.kappa_required:
        return False
    elif task_filter.lightkeeper_only and not task.lightkeeper_required:
        return False
    if task_filter.player_level is not None and task.min_player_level > task_filter.player_level:
        return False
    return True


def filter_tasks(tasks: Iterable[TaskDef], task_filter: TaskFilter) -> List[TaskDef]:
    return [task for task in tasks if matches_filter(task, task_filter)]


@dataclass(frozen=True, slots=True)
class TraderProgress:
    trader: str
    completed: int
    total: int


def summarize_by_trader(tasks: Iterable[TaskDef], completed: AbstractSet[str]) -> List[TraderProgress]:
    """Completed/total task counts per trader, traders sorted by name."""
    groups = group_tasks_by_trader(tasks)
    return [
        TraderProgress(
            trader=trader,
            completed=sum(1 for task in groups[trader] if task.id in completed),
            total=len(groups[trader]),
        )
        for trader in sorted(groups)
    ]
