import json
from pathlib import Path

import pytest

from questgraph.data.errors import DataLoadError, DataReferenceError, DataValidationError
from questgraph.data.repositories import OverlayRepository, StorylineRepository, TasksRepository
from questgraph.domain.defs import DecisionNode, EndingNode, StoryStepNode


def _make_definitions_dir(tmp_path: Path) -> Path:
    definitions_dir = tmp_path / "definitions"
    definitions_dir.mkdir()
    return definitions_dir


def _write_json(path: Path, payload: object) -> None:
    path.write_text(json.dumps(payload), encoding="utf-8")


def _catalog_task(task_id: str, name: str, *requirements: str, **extra: object) -> dict:
    payload = {
        "id": task_id,
        "name": name,
        "trader": {"name": "Prapor"},
        "taskRequirements": [{"task": {"id": req, "name": req.title()}} for req in requirements],
    }
    payload.update(extra)
    return payload


def test_tasks_repo_parses_catalog_shape(tmp_path: Path) -> None:
    definitions_dir = _make_definitions_dir(tmp_path)
    _write_json(
        definitions_dir / "tasks.json",
        {
            "tasks": [
                _catalog_task(
                    "checking",
                    "Checking",
                    "debut",
                    minPlayerLevel=2,
                    kappaRequired=True,
                    map={"name": "Customs"},
                    objectives=[
                        {
                            "id": "obj-1",
                            "description": "Hand over the Golden Zibbo lighter",
                            "count": 1,
                            "foundInRaid": True,
                            "playerLevel": 5,
                            "maps": [{"name": "Customs"}],
                            "items": [{"id": "zibbo", "name": "Golden Zibbo lighter"}],
                        }
                    ],
                ),
                _catalog_task("debut", "Debut"),
            ]
        },
    )
    repo = TasksRepository(base_path=definitions_dir)
    task = repo.get("checking")

    assert task.trader == "Prapor"
    assert task.min_player_level == 2
    assert task.kappa_required is True
    assert task.prerequisites == ("debut",)
    assert task.prerequisite_names == ("Debut",)
    assert task.maps == ("Customs",)
    objective = task.objectives[0]
    assert objective.objective_id == "obj-1"
    assert objective.count == 1
    assert objective.found_in_raid is True
    assert objective.player_level == 5
    assert objective.maps == ("Customs",)
    assert objective.items[0].name == "Golden Zibbo lighter"
    assert [entry.id for entry in repo.all()] == ["checking", "debut"]


def test_tasks_repo_defaults_optional_fields(tmp_path: Path) -> None:
    definitions_dir = _make_definitions_dir(tmp_path)
    _write_json(definitions_dir / "tasks.json", {"tasks": [{"id": "debut", "name": "Debut"}]})
    task = TasksRepository(base_path=definitions_dir).get("debut")
    assert task.trader == ""
    assert task.min_player_level == 1
    assert task.prerequisites == ()
    assert task.objectives == ()


def test_tasks_repo_rejects_duplicate_ids(tmp_path: Path) -> None:
    definitions_dir = _make_definitions_dir(tmp_path)
    _write_json(
        definitions_dir / "tasks.json",
        {"tasks": [_catalog_task("debut", "Debut"), _catalog_task("debut", "Debut again")]},
    )
    with pytest.raises(DataValidationError):
        TasksRepository(base_path=definitions_dir).all()


def test_tasks_repo_rejects_bad_count(tmp_path: Path) -> None:
    definitions_dir = _make_definitions_dir(tmp_path)
    _write_json(
        definitions_dir / "tasks.json",
        {"tasks": [_catalog_task("debut", "Debut", objectives=[{"description": "x", "count": "five"}])]},
    )
    with pytest.raises(DataValidationError):
        TasksRepository(base_path=definitions_dir).all()


def test_tasks_repo_missing_file_raises(tmp_path: Path) -> None:
    definitions_dir = _make_definitions_dir(tmp_path)
    with pytest.raises(DataLoadError):
        TasksRepository(base_path=definitions_dir).all()


def test_tasks_repo_get_missing_raises(tmp_path: Path) -> None:
    definitions_dir = _make_definitions_dir(tmp_path)
    _write_json(definitions_dir / "tasks.json", {"tasks": [_catalog_task("debut", "Debut")]})
    with pytest.raises(KeyError):
        TasksRepository(base_path=definitions_dir).get("checking")


def test_invalid_json_raises_load_error(tmp_path: Path) -> None:
    definitions_dir = _make_definitions_dir(tmp_path)
    (definitions_dir / "tasks.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(DataLoadError):
        TasksRepository(base_path=definitions_dir).all()


def test_missing_overlay_is_empty(tmp_path: Path) -> None:
    definitions_dir = _make_definitions_dir(tmp_path)
    overlay = OverlayRepository(base_path=definitions_dir).load()
    assert overlay.task_overrides == {}
    assert overlay.tasks_add == ()
    assert overlay.version == "0.0.0-empty"


def test_overlay_repo_parses_overrides_and_added_tasks(tmp_path: Path) -> None:
    definitions_dir = _make_definitions_dir(tmp_path)
    _write_json(
        definitions_dir / "overlay.json",
        {
            "$meta": {"version": "1.2.3", "generated": "2026-01-01T00:00:00Z"},
            "tasks": {
                "picnic": {
                    "minPlayerLevel": 4,
                    "taskRequirements": [{"task": {"id": "checking", "name": "Checking"}}],
                    "objectives": {
                        "obj-1": {"count": 12, "maps": [{"name": "Woods"}], "foundInRaid": True, "playerLevel": 10}
                    },
                    "objectivesAdd": [{"description": "Survive and extract", "item": {"name": "Flare"}}],
                },
                "sales_night": {"disabled": True},
            },
            "tasksAdd": {
                "winter_2025_missing": _catalog_task("winter_2025_missing", "Missing in Action", "debut"),
            },
        },
    )
    repo = OverlayRepository(base_path=definitions_dir)
    overlay = repo.load()

    assert overlay.version == "1.2.3"
    picnic = overlay.task_overrides["picnic"]
    assert picnic.min_player_level == 4
    assert picnic.added_prerequisites == ("checking",)
    assert picnic.objective_patches["obj-1"].count == 12
    assert picnic.objective_patches["obj-1"].maps == ("Woods",)
    assert picnic.objective_patches["obj-1"].items is None
    assert picnic.objective_patches["obj-1"].found_in_raid is True
    assert picnic.objective_patches["obj-1"].player_level == 10
    assert picnic.objective_patches["obj-1"].description is None
    assert picnic.objectives_add[0].items[0].name == "Flare"
    assert picnic.objectives_add[0].items[0].id == ""
    assert overlay.task_overrides["sales_night"].disabled is True
    assert [task.id for task in overlay.tasks_add] == ["winter_2025_missing"]
    assert repo.get("sales_night").disabled is True


def test_overlay_added_task_id_must_match_key(tmp_path: Path) -> None:
    definitions_dir = _make_definitions_dir(tmp_path)
    _write_json(
        definitions_dir / "overlay.json",
        {"tasksAdd": {"winter_a": _catalog_task("winter_b", "Mismatch")}},
    )
    with pytest.raises(DataValidationError):
        OverlayRepository(base_path=definitions_dir).load()


def _storyline_payload() -> dict:
    return {
        "nodes": [
            {"id": "prologue", "kind": "story", "label": "Prologue"},
            {"id": "start", "kind": "decision", "label": "Decision 1", "note": "Irreversible"},
            {"id": "turn-in-btc", "kind": "story", "label": "Hand over BTC", "cost": 40},
            {"id": "fallen-ending", "kind": "ending"},
        ],
        "edges": [
            {"id": "e1", "source": "prologue", "target": "start"},
            {"id": "e2", "source": "start", "target": "turn-in-btc", "label": "BTC"},
            {"id": "e3", "source": "turn-in-btc", "target": "fallen-ending"},
        ],
    }


def test_storyline_repo_builds_tagged_nodes(tmp_path: Path) -> None:
    definitions_dir = _make_definitions_dir(tmp_path)
    _write_json(definitions_dir / "storyline.json", _storyline_payload())
    repo = StorylineRepository(base_path=definitions_dir)

    assert isinstance(repo.get("prologue"), StoryStepNode)
    assert isinstance(repo.get("start"), DecisionNode)
    assert repo.get("start").kind == "decision"
    ending = repo.get("fallen-ending")
    assert isinstance(ending, EndingNode)
    assert ending.label == "fallen-ending"
    assert repo.get("turn-in-btc").cost == 40
    assert [edge.id for edge in repo.edges()] == ["e1", "e2", "e3"]
    assert repo.edges()[1].label == "BTC"


def test_storyline_repo_rejects_unknown_kind(tmp_path: Path) -> None:
    definitions_dir = _make_definitions_dir(tmp_path)
    payload = _storyline_payload()
    payload["nodes"][1]["kind"] = "craft"
    _write_json(definitions_dir / "storyline.json", payload)
    with pytest.raises(DataValidationError):
        StorylineRepository(base_path=definitions_dir).all()


def test_storyline_repo_rejects_non_integer_cost(tmp_path: Path) -> None:
    definitions_dir = _make_definitions_dir(tmp_path)
    payload = _storyline_payload()
    payload["nodes"][2]["cost"] = "40 BTC"
    _write_json(definitions_dir / "storyline.json", payload)
    with pytest.raises(DataValidationError):
        StorylineRepository(base_path=definitions_dir).all()


def test_storyline_repo_rejects_duplicate_node_ids(tmp_path: Path) -> None:
    definitions_dir = _make_definitions_dir(tmp_path)
    payload = _storyline_payload()
    payload["nodes"].append({"id": "start", "kind": "story"})
    _write_json(definitions_dir / "storyline.json", payload)
    with pytest.raises(DataValidationError):
        StorylineRepository(base_path=definitions_dir).all()


def test_storyline_repo_rejects_edge_to_missing_node(tmp_path: Path) -> None:
    definitions_dir = _make_definitions_dir(tmp_path)
    payload = _storyline_payload()
    payload["edges"].append({"id": "e4", "source": "start", "target": "savior-ending"})
    _write_json(definitions_dir / "storyline.json", payload)
    with pytest.raises(DataReferenceError):
        StorylineRepository(base_path=definitions_dir).edges()
