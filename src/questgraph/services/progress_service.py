"""Completion tracking and (de)serialization of per-profile progress."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Set

from questgraph.domain.defs import TaskDef
from questgraph.domain.progress_state import ProgressState
from questgraph.logging_utils import get_logger
from questgraph.services import objective_keys
from questgraph.services.errors import ProgressLoadError

logger = get_logger("services.progress_service")

ProgressPayload = Dict[str, Any]


@dataclass(frozen=True, slots=True)
class TaskProgressView:
    completed: int
    total: int

    @property
    def is_done(self) -> bool:
        return self.total > 0 and self.completed >= self.total


class ProgressService:
    """Reads and updates a ProgressState using stable objective keys.

    Writes always go to the stable key and clear the matching legacy key;
    reads accept either, so progress saved under positional keys keeps
    working without a migration step.
    """

    PROGRESS_VERSION = 1

    def complete_task(self, state: ProgressState, task_id: str) -> None:
        state.completed_tasks.add(task_id)

    def uncomplete_task(self, state: ProgressState, task_id: str) -> None:
        state.completed_tasks.discard(task_id)

    def is_task_completed(self, state: ProgressState, task_id: str) -> bool:
        return task_id in state.completed_tasks

    def is_objective_completed(self, state: ProgressState, task: TaskDef, index: int) -> bool:
        key = self._objective_key(task, index)
        legacy_key = objective_keys.build_legacy_objective_key(task.id, index)
        return objective_keys.is_objective_completed(state.completed_objectives, key, legacy_key)

    def toggle_objective(self, state: ProgressState, task: TaskDef, index: int) -> bool:
        """Flip an objective's completion and return the new value."""
        key = self._objective_key(task, index)
        legacy_key = objective_keys.build_legacy_objective_key(task.id, index)
        if objective_keys.is_objective_completed(state.completed_objectives, key, legacy_key):
            state.completed_objectives.discard(key)
            state.completed_objectives.discard(legacy_key)
            return False
        state.completed_objectives.add(key)
        state.completed_objectives.discard(legacy_key)
        return True

    def get_item_progress(self, state: ProgressState, task: TaskDef, index: int, item_id: str) -> int:
        key = objective_keys.build_item_progress_key(self._objective_key(task, index), item_id)
        legacy_key = objective_keys.build_legacy_item_progress_key(task.id, index, item_id)
        return objective_keys.get_item_progress(state.item_progress, key, legacy_key)

    def set_item_progress(
        self, state: ProgressState, task: TaskDef, index: int, item_id: str, count: int
    ) -> int:
        """Store a hand-over count (never below zero) and return it."""
        key = objective_keys.build_item_progress_key(self._objective_key(task, index), item_id)
        legacy_key = objective_keys.build_legacy_item_progress_key(task.id, index, item_id)
        value = max(0, int(count))
        state.item_progress[key] = value
        state.item_progress.pop(legacy_key, None)
        return value

    def task_progress(self, state: ProgressState, task: TaskDef) -> TaskProgressView:
        completed = sum(
            1
            for _, key, legacy_key in objective_keys.objective_keys_by_index(task)
            if objective_keys.is_objective_completed(state.completed_objectives, key, legacy_key)
        )
        return TaskProgressView(completed=completed, total=len(task.objectives))

    def serialize(self, state: ProgressState) -> ProgressPayload:
        """Return a JSON-serializable payload for the persistence layer."""
        return {
            "progress_version": self.PROGRESS_VERSION,
            "completed_tasks": sorted(state.completed_tasks),
            "completed_objectives": sorted(state.completed_objectives),
            "item_progress": {key: state.item_progress[key] for key in sorted(state.item_progress)},
        }

    def deserialize(self, payload: Mapping[str, Any]) -> ProgressState:
        """Rebuild a ProgressState from a persisted payload."""
        if not isinstance(payload, Mapping):
            raise ProgressLoadError("Progress data must be a JSON object.")
        version = payload.get("progress_version")
        if version != self.PROGRESS_VERSION:
            raise ProgressLoadError(f"Unsupported progress version: {version!r}.")
        state = ProgressState(
            completed_tasks=self._coerce_str_set(payload.get("completed_tasks", []), "completed_tasks"),
            completed_objectives=self._coerce_str_set(
                payload.get("completed_objectives", []), "completed_objectives"
            ),
            item_progress=self._coerce_item_progress(payload.get("item_progress", {})),
        )
        logger.info(
            "Loaded progress: %d tasks, %d objectives, %d item counters",
            len(state.completed_tasks),
            len(state.completed_objectives),
            len(state.item_progress),
        )
        return state

    def _objective_key(self, task: TaskDef, index: int) -> str:
        keys = objective_keys.build_objective_keys(task)
        if not 0 <= index < len(keys):
            raise IndexError(f"Task '{task.id}' has no objective #{index}.")
        return keys[index]

    @staticmethod
    def _coerce_str_set(value: object, context: str) -> Set[str]:
        if not isinstance(value, list):
            raise ProgressLoadError(f"{context} must be a list.")
        result: Set[str] = set()
        for entry in value:
            if not isinstance(entry, str):
                raise ProgressLoadError(f"{context} entries must be strings.")
            result.add(entry)
        return result

    @staticmethod
    def _coerce_item_progress(value: object) -> Dict[str, int]:
        if not isinstance(value, Mapping):
            raise ProgressLoadError("item_progress must be an object.")
        result: Dict[str, int] = {}
        skipped: List[str] = []
        for key, raw in value.items():
            # Counts are written by older clients too; a non-number or a NaN or
            # infinite value is dropped (read as 0) instead of failing the profile.
            if not objective_keys.is_valid_count(raw):
                skipped.append(str(key))
                continue
            result[str(key)] = max(0, int(raw))
        if skipped:
            logger.warning("Dropped %d non-numeric item progress values: %s", len(skipped), ", ".join(skipped))
        return result
