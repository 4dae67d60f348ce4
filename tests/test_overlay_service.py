from __future__ import annotations

import json
from pathlib import Path

from questgraph.data.repositories import OverlayRepository, TasksRepository
from questgraph.domain.defs import (
    ObjectiveDef,
    ObjectiveItemDef,
    ObjectivePatchDef,
    OverlayDef,
    TaskDef,
    TaskOverrideDef,
)
from questgraph.services.objective_keys import build_objective_keys
from questgraph.services.overlay_service import (
    apply_requirement_removals,
    apply_task_overlay,
    build_added_tasks,
    build_task_catalog,
    expand_collector_objective,
    is_event_task_id,
)

_LION = ObjectiveItemDef(id="lion", name="Bronze lion figurine")
_SKULL = ObjectiveItemDef(id="skull", name="Gold skull ring")


def _picnic() -> TaskDef:
    return TaskDef(
        id="picnic",
        name="Shootout Picnic",
        trader="Prapor",
        min_player_level=3,
        prerequisites=("debut",),
        prerequisite_names=("Debut",),
        objectives=(
            ObjectiveDef(description="Eliminate Scavs on Woods", count=15, maps=("Woods",), objective_id="kill"),
            ObjectiveDef(description="Survive and extract from Woods", maps=("Woods",), objective_id="extract"),
        ),
    )


def _overlay(**overrides: TaskOverrideDef) -> OverlayDef:
    return OverlayDef(version="1.0.0", task_overrides=overrides)


def test_task_without_override_is_returned_unchanged() -> None:
    task = _picnic()
    assert apply_task_overlay(task, _overlay()) is task


def test_disabled_task_is_dropped() -> None:
    assert apply_task_overlay(_picnic(), _overlay(picnic=TaskOverrideDef(disabled=True))) is None


def test_scalar_overrides_replace_fields() -> None:
    override = TaskOverrideDef(name="Shootout Picnic (fixed)", min_player_level=4, kappa_required=True)
    patched = apply_task_overlay(_picnic(), _overlay(picnic=override))
    assert patched is not None
    assert patched.name == "Shootout Picnic (fixed)"
    assert patched.min_player_level == 4
    assert patched.kappa_required is True
    assert patched.trader == "Prapor"


def test_added_prerequisites_append_without_duplicates() -> None:
    override = TaskOverrideDef(added_prerequisites=("debut", "checking"))
    patched = apply_task_overlay(_picnic(), _overlay(picnic=override))
    assert patched is not None
    assert patched.prerequisites == ("debut", "checking")
    assert patched.prerequisite_names == ("Debut", "")


def test_objective_patch_targets_upstream_id() -> None:
    override = TaskOverrideDef(objective_patches={"kill": ObjectivePatchDef(count=12)})
    patched = apply_task_overlay(_picnic(), _overlay(picnic=override))
    assert patched is not None
    assert patched.objectives[0].count == 12
    assert patched.objectives[0].description == "Eliminate Scavs on Woods"
    assert patched.objectives[1] == _picnic().objectives[1]


def test_objective_patch_sets_found_in_raid_and_player_level() -> None:
    override = TaskOverrideDef(
        objective_patches={"extract": ObjectivePatchDef(found_in_raid=True, player_level=5)}
    )
    patched = apply_task_overlay(_picnic(), _overlay(picnic=override))
    assert patched is not None
    assert patched.objectives[1].found_in_raid is True
    assert patched.objectives[1].player_level == 5
    assert patched.objectives[1].maps == ("Woods",)
    assert build_objective_keys(patched)[1] != build_objective_keys(_picnic())[1]


def test_objective_patch_can_clear_found_in_raid() -> None:
    task = TaskDef(
        id="checking",
        name="Checking",
        objectives=(ObjectiveDef(description="Hand over the lighter", found_in_raid=True, objective_id="zibbo"),),
    )
    override = TaskOverrideDef(objective_patches={"zibbo": ObjectivePatchDef(found_in_raid=False)})
    patched = apply_task_overlay(task, _overlay(checking=override))
    assert patched is not None
    assert patched.objectives[0].found_in_raid is False

def test_reordering_maps_in_patch_keeps_objective_keys() -> None:
    task = TaskDef(
        id="delivery",
        name="Delivery from the Past",
        objectives=(ObjectiveDef(description="Stash the folder", maps=("Customs", "Factory"), objective_id="stash"),),
    )
    override = TaskOverrideDef(objective_patches={"stash": ObjectivePatchDef(maps=("Factory", "Customs"))})
    patched = apply_task_overlay(task, _overlay(delivery=override))
    assert patched is not None
    assert patched.objectives[0].maps == ("Factory", "Customs")
    assert build_objective_keys(patched) == build_objective_keys(task)


def test_objectives_add_appends_and_expands_collector_items() -> None:
    collector = ObjectiveDef(description="Hand over the Collector items", count=1, items=(_LION, _SKULL))
    override = TaskOverrideDef(objectives_add=(collector,))
    patched = apply_task_overlay(_picnic(), _overlay(picnic=override))
    assert patched is not None
    added = patched.objectives[2:]
    assert [objective.description for objective in added] == [
        "Hand over the found in raid item: Bronze lion figurine",
        "Hand over the found in raid item: Gold skull ring",
    ]
    assert [objective.items for objective in added] == [(_LION,), (_SKULL,)]


def test_plain_added_objective_is_not_expanded() -> None:
    objective = ObjectiveDef(description="Hand over parts", items=(_LION, _SKULL))
    assert expand_collector_objective(objective) == [objective]


def test_event_task_prefixes() -> None:
    assert is_event_task_id("winter_2025_missing_in_action") is True
    assert is_event_task_id("Halloween_pumpkins") is True
    assert is_event_task_id("setting_priorities") is False


def test_added_tasks_collect_objective_maps_and_event_flag() -> None:
    added = TaskDef(
        id="winter_2025_missing_in_action",
        name="Missing in Action",
        min_player_level=20,
        maps=("Woods",),
        objectives=(
            ObjectiveDef(description="Find the convoy", maps=("Woods", "Lighthouse")),
            ObjectiveDef(description="Extract", maps=("Shoreline",)),
        ),
    )
    permanent = TaskDef(id="setting_priorities", name="Setting Priorities")
    tasks = build_added_tasks(OverlayDef(tasks_add=(added, permanent)))
    assert tasks[0].maps == ("Woods", "Lighthouse", "Shoreline")
    assert tasks[0].is_event is True
    assert tasks[0].min_player_level == 1
    assert tasks[1].is_event is False


def test_requirement_removals_drop_listed_edges() -> None:
    task = TaskDef(
        id="test_drive",
        name="Test Drive - Part 1",
        prerequisites=("gunsmith_2", "grenadier"),
        prerequisite_names=("Gunsmith - Part 2", "Grenadier"),
    )
    other = TaskDef(id="debut", name="Debut")
    result = apply_requirement_removals([task, other], {"test_drive": ("grenadier",)})
    assert result[0].prerequisites == ("gunsmith_2",)
    assert result[0].prerequisite_names == ("Gunsmith - Part 2",)
    assert result[1] is other


def test_build_task_catalog_applies_every_step(tmp_path: Path) -> None:
    definitions_dir = tmp_path / "definitions"
    definitions_dir.mkdir()
    (definitions_dir / "tasks.json").write_text(
        json.dumps(
            {
                "tasks": [
                    {"id": "debut", "name": "Debut", "trader": {"name": "Prapor"}},
                    {
                        "id": "test_drive",
                        "name": "Test Drive",
                        "taskRequirements": [
                            {"task": {"id": "debut", "name": "Debut"}},
                            {"task": {"id": "grenadier", "name": "Grenadier"}},
                        ],
                    },
                    {"id": "sales_night", "name": "Sales Night"},
                ]
            }
        ),
        encoding="utf-8",
    )
    (definitions_dir / "overlay.json").write_text(
        json.dumps(
            {
                "tasks": {"sales_night": {"disabled": True}},
                "tasksAdd": {"winter_x": {"id": "winter_x", "name": "Winter X", "trader": {"name": "Jaeger"}}},
            }
        ),
        encoding="utf-8",
    )
    tasks = build_task_catalog(
        TasksRepository(base_path=definitions_dir),
        OverlayRepository(base_path=definitions_dir),
        removals={"test_drive": ("grenadier",)},
    )
    by_id = {task.id: task for task in tasks}
    assert set(by_id) == {"debut", "test_drive", "winter_x"}
    assert by_id["test_drive"].prerequisites == ("debut",)
    assert by_id["winter_x"].is_event is True


def test_build_task_catalog_without_overlay(tmp_path: Path) -> None:
    definitions_dir = tmp_path / "definitions"
    definitions_dir.mkdir()
    (definitions_dir / "tasks.json").write_text(
        json.dumps({"tasks": [{"id": "debut", "name": "Debut"}]}), encoding="utf-8"
    )
    tasks = build_task_catalog(TasksRepository(base_path=definitions_dir))
    assert [task.id for task in tasks] == ["debut"]
