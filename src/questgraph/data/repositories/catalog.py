"""Shared parsing for payloads shaped like the remote task catalog."""
from __future__ import annotations

from typing import List, Tuple, TypeVar

from questgraph.data.errors import DataValidationError
from questgraph.data.repositories.base import RepositoryBase
from questgraph.domain.defs import ObjectiveDef, ObjectiveItemDef, TaskDef

T = TypeVar("T")


class CatalogRepositoryBase(RepositoryBase[T]):
    """Parses tasks, objectives, maps and items in the catalog's camelCase shape."""

    def _parse_task(self, value: object, context: str) -> TaskDef:
        mapping = self._require_mapping(value, context)
        task_id = self._require_str(mapping.get("id"), f"{context}.id")
        ctx = f"task '{task_id}'"
        name = self._require_str(mapping.get("name"), f"{ctx} name")
        trader = self._parse_named(mapping.get("trader"), f"{ctx} trader") or ""
        min_level = self._optional_int(mapping.get("minPlayerLevel"), f"{ctx} minPlayerLevel")
        prerequisites, prerequisite_names = self._parse_requirements(
            mapping.get("taskRequirements"), ctx
        )
        objectives = self._parse_objectives(mapping.get("objectives"), ctx)
        maps = list(self._parse_map_names(mapping.get("maps"), f"{ctx} maps"))
        single_map = self._parse_named(mapping.get("map"), f"{ctx} map")
        if single_map and single_map not in maps:
            maps.append(single_map)
        return TaskDef(
            id=task_id,
            name=name,
            trader=trader,
            min_player_level=min_level if min_level is not None else 1,
            prerequisites=prerequisites,
            objectives=objectives,
            maps=tuple(maps),
            wiki_link=self._optional_str(mapping.get("wikiLink"), f"{ctx} wikiLink") or "",
            kappa_required=bool(self._optional_bool(mapping.get("kappaRequired"), f"{ctx} kappaRequired")),
            lightkeeper_required=bool(
                self._optional_bool(mapping.get("lightkeeperRequired"), f"{ctx} lightkeeperRequired")
            ),
            is_event=bool(self._optional_bool(mapping.get("isEvent"), f"{ctx} isEvent")),
            prerequisite_names=prerequisite_names,
        )

    def _parse_requirements(self, value: object, context: str) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
        if value is None:
            return (), ()
        ids: List[str] = []
        names: List[str] = []
        for index, entry in enumerate(self._require_list(value, f"{context} taskRequirements")):
            entry_ctx = f"{context} taskRequirements[{index}]"
            requirement = self._require_mapping(entry, entry_ctx)
            task_ref = self._require_mapping(requirement.get("task"), f"{entry_ctx}.task")
            ids.append(self._require_str(task_ref.get("id"), f"{entry_ctx}.task.id"))
            names.append(self._optional_str(task_ref.get("name"), f"{entry_ctx}.task.name") or "")
        return tuple(ids), tuple(names)

    def _parse_objectives(self, value: object, context: str) -> Tuple[ObjectiveDef, ...]:
        if value is None:
            return ()
        return tuple(
            self._parse_objective(entry, f"{context} objectives[{index}]")
            for index, entry in enumerate(self._require_list(value, f"{context} objectives"))
        )

    def _parse_objective(self, value: object, context: str) -> ObjectiveDef:
        mapping = self._require_mapping(value, context)
        count = self._optional_int(mapping.get("count"), f"{context}.count")
        if count is not None and count < 0:
            raise DataValidationError(f"{context}.count must not be negative.")
        return ObjectiveDef(
            description=self._optional_str(mapping.get("description"), f"{context}.description") or "",
            count=count,
            maps=self._parse_map_names(mapping.get("maps"), f"{context}.maps"),
            items=self._parse_objective_items(mapping, context),
            player_level=self._optional_int(mapping.get("playerLevel"), f"{context}.playerLevel"),
            found_in_raid=bool(self._optional_bool(mapping.get("foundInRaid"), f"{context}.foundInRaid")),
            objective_id=self._optional_str(mapping.get("id"), f"{context}.id"),
        )

    def _parse_objective_items(
        self, mapping: dict[str, object], context: str
    ) -> Tuple[ObjectiveItemDef, ...]:
        # Single "item" and "markerItem" entries come first, then the "items" list.
        items: List[ObjectiveItemDef] = []
        for key in ("item", "markerItem"):
            if mapping.get(key) is not None:
                items.append(self._parse_item(mapping[key], f"{context}.{key}"))
        raw_items = mapping.get("items")
        if raw_items is not None:
            for index, entry in enumerate(self._require_list(raw_items, f"{context}.items")):
                items.append(self._parse_item(entry, f"{context}.items[{index}]"))
        return tuple(items)

    def _parse_item_list(self, value: object, context: str) -> Tuple[ObjectiveItemDef, ...]:
        return tuple(
            self._parse_item(entry, f"{context}[{index}]")
            for index, entry in enumerate(self._require_list(value, context))
        )

    def _parse_item(self, value: object, context: str) -> ObjectiveItemDef:
        mapping = self._require_mapping(value, context)
        name = self._require_str(mapping.get("name"), f"{context}.name")
        item_id = self._optional_str(mapping.get("id"), f"{context}.id") or ""
        return ObjectiveItemDef(id=item_id, name=name)

    def _parse_map_names(self, value: object, context: str) -> Tuple[str, ...]:
        if value is None:
            return ()
        names: List[str] = []
        for index, entry in enumerate(self._require_list(value, context)):
            name = self._parse_named(entry, f"{context}[{index}]")
            if name:
                names.append(name)
        return tuple(names)

    def _parse_named(self, value: object, context: str) -> str | None:
        """Return ``value["name"]`` for ``{"name": ...}`` references."""
        if value is None:
            return None
        mapping = self._require_mapping(value, context)
        return self._require_str(mapping.get("name"), f"{context}.name")
