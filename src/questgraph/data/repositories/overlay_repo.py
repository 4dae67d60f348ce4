"""Repository for the community data overlay patched onto the task catalog."""
from __future__ import annotations

from typing import Dict, List

from questgraph.data.errors import DataValidationError
from questgraph.data.repositories.catalog import CatalogRepositoryBase
from questgraph.domain.defs import ObjectivePatchDef, OverlayDef, TaskDef, TaskOverrideDef
from questgraph.logging_utils import get_logger

logger = get_logger("data.overlay_repo")


class OverlayRepository(CatalogRepositoryBase[TaskOverrideDef]):
    """Loads ``overlay.json``. A missing file is an empty overlay."""

    def __init__(self, base_path=None) -> None:
        super().__init__("overlay.json", base_path)
        self._overlay: OverlayDef | None = None

    def _load_raw(self) -> dict[str, object]:
        if not self._get_file_path().exists():
            logger.debug("No overlay file at %s; using an empty overlay", self._get_file_path())
            return {}
        return super()._load_raw()

    def _build(self, raw: dict[str, object]) -> Dict[str, TaskOverrideDef]:
        meta = self._require_mapping(raw.get("$meta", {}), "overlay.json.$meta")
        overrides: Dict[str, TaskOverrideDef] = {}
        raw_overrides = self._require_mapping(raw.get("tasks", {}), "overlay.json.tasks")
        for task_id, payload in raw_overrides.items():
            overrides[task_id] = self._parse_override(payload, f"overlay task '{task_id}'")

        added: List[TaskDef] = []
        raw_added = self._require_mapping(raw.get("tasksAdd", {}), "overlay.json.tasksAdd")
        for task_key, payload in raw_added.items():
            task = self._parse_task(payload, f"overlay.json.tasksAdd.{task_key}")
            if task.id != task_key:
                raise DataValidationError(
                    f"overlay tasksAdd '{task_key}' id must match key (found '{task.id}')."
                )
            added.append(task)

        self._overlay = OverlayDef(
            version=self._optional_str(meta.get("version"), "overlay.json.$meta.version") or "0.0.0-empty",
            generated=self._optional_str(meta.get("generated"), "overlay.json.$meta.generated") or "",
            task_overrides=overrides,
            tasks_add=tuple(added),
        )
        return overrides

    def load(self) -> OverlayDef:
        """Return the whole overlay document."""
        self._ensure_loaded()
        assert self._overlay is not None
        return self._overlay

    def _parse_override(self, value: object, context: str) -> TaskOverrideDef:
        mapping = self._require_mapping(value, context)
        added_prerequisites, _ = self._parse_requirements(mapping.get("taskRequirements"), context)
        patches: Dict[str, ObjectivePatchDef] = {}
        raw_patches = mapping.get("objectives")
        if raw_patches is not None:
            for objective_id, patch in self._require_mapping(raw_patches, f"{context} objectives").items():
                patches[objective_id] = self._parse_objective_patch(
                    patch, f"{context} objectives.{objective_id}"
                )
        objectives_add = ()
        if mapping.get("objectivesAdd") is not None:
            objectives_add = tuple(
                self._parse_objective(entry, f"{context} objectivesAdd[{index}]")
                for index, entry in enumerate(
                    self._require_list(mapping["objectivesAdd"], f"{context} objectivesAdd")
                )
            )
        return TaskOverrideDef(
            disabled=bool(self._optional_bool(mapping.get("disabled"), f"{context} disabled")),
            name=self._optional_str(mapping.get("name"), f"{context} name"),
            trader=self._parse_named(mapping.get("trader"), f"{context} trader"),
            min_player_level=self._optional_int(mapping.get("minPlayerLevel"), f"{context} minPlayerLevel"),
            wiki_link=self._optional_str(mapping.get("wikiLink"), f"{context} wikiLink"),
            kappa_required=self._optional_bool(mapping.get("kappaRequired"), f"{context} kappaRequired"),
            lightkeeper_required=self._optional_bool(
                mapping.get("lightkeeperRequired"), f"{context} lightkeeperRequired"
            ),
            added_prerequisites=added_prerequisites,
            objective_patches=patches,
            objectives_add=objectives_add,
        )

    def _parse_objective_patch(self, value: object, context: str) -> ObjectivePatchDef:
        mapping = self._require_mapping(value, context)
        maps = None
        if mapping.get("maps") is not None:
            maps = self._parse_map_names(mapping["maps"], f"{context}.maps")
        items = None
        if mapping.get("items") is not None:
            items = self._parse_item_list(mapping["items"], f"{context}.items")
        return ObjectivePatchDef(
            description=self._optional_str(mapping.get("description"), f"{context}.description"),
            count=self._optional_int(mapping.get("count"), f"{context}.count"),
            maps=maps,
            items=items,
            player_level=self._optional_int(mapping.get("playerLevel"), f"{context}.playerLevel"),
            found_in_raid=self._optional_bool(mapping.get("foundInRaid"), f"{context}.foundInRaid"),
        )
