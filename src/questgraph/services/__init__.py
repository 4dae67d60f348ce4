"""Service layer exports."""

from .errors import ProgressLoadError
from .objective_keys import (
    build_item_progress_key,
    build_legacy_item_progress_key,
    build_legacy_objective_key,
    build_objective_keys,
    get_item_progress,
    is_objective_completed,
)
from .progress_service import ProgressService, TaskProgressView
from .storyline_path import (
    ROOT_NODE_ID,
    PathStep,
    PathSummary,
    find_path,
    path_edge_ids,
    summarize_path,
    summarize_route,
)
from .task_graph import (
    TaskFilter,
    TraderProgress,
    build_dependency_map,
    calculate_task_levels,
    filter_tasks,
    is_task_available,
    list_available_tasks,
    summarize_by_trader,
)

__all__ = [
    "ProgressLoadError",
    "ProgressService",
    "TaskFilter",
    "TaskProgressView",
    "TraderProgress",
    "ROOT_NODE_ID",
    "PathStep",
    "PathSummary",
    "build_dependency_map",
    "build_item_progress_key",
    "build_legacy_item_progress_key",
    "build_legacy_objective_key",
    "build_objective_keys",
    "calculate_task_levels",
    "filter_tasks",
    "find_path",
    "get_item_progress",
    "is_objective_completed",
    "is_task_available",
    "list_available_tasks",
    "path_edge_ids",
    "summarize_path",
    "summarize_route",
    "summarize_by_trader",
]
