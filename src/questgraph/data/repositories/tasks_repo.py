"""Repository for the upstream task catalog."""
from __future__ import annotations

from typing import Dict

from questgraph.data.errors import DataValidationError
from questgraph.data.repositories.catalog import CatalogRepositoryBase
from questgraph.domain.defs import TaskDef


class TasksRepository(CatalogRepositoryBase[TaskDef]):
    """Loads task definitions in the catalog shape (``{"tasks": [...]}``)."""

    def __init__(self, base_path=None) -> None:
        super().__init__("tasks.json", base_path)

    def _build(self, raw: dict[str, object]) -> Dict[str, TaskDef]:
        raw_tasks = self._require_list(raw.get("tasks"), "tasks.json.tasks")
        definitions: Dict[str, TaskDef] = {}
        for index, entry in enumerate(raw_tasks):
            task = self._parse_task(entry, f"tasks.json.tasks[{index}]")
            if task.id in definitions:
                raise DataValidationError(f"Duplicate task id '{task.id}' in tasks.json.")
            definitions[task.id] = task
        return definitions
