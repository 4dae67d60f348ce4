from __future__ import annotations

import json
import logging

import pytest

from questgraph.domain.defs import ObjectiveDef, ObjectiveItemDef, TaskDef
from questgraph.domain.progress_state import ProgressState
from questgraph.services.errors import ProgressLoadError
from questgraph.services.objective_keys import (
    build_item_progress_key,
    build_legacy_item_progress_key,
    build_legacy_objective_key,
    build_objective_keys,
)
from questgraph.services.progress_service import ProgressService

_SHOTGUN = ObjectiveItemDef(id="54491c4f4bdc2db1078b4568", name="MP-133 12ga pump-action shotgun")


def _debut() -> TaskDef:
    return TaskDef(
        id="debut",
        name="Debut",
        objectives=(
            ObjectiveDef(description="Eliminate Scavs all over the Tarkov territory", count=5),
            ObjectiveDef(description="Obtain and hand over MP-133 12ga shotguns", count=2, items=(_SHOTGUN,)),
        ),
    )


def test_complete_and_uncomplete_task() -> None:
    service = ProgressService()
    state = ProgressState()
    service.complete_task(state, "debut")
    assert service.is_task_completed(state, "debut") is True
    service.uncomplete_task(state, "debut")
    service.uncomplete_task(state, "debut")
    assert state.completed_tasks == set()


def test_toggle_objective_writes_stable_key() -> None:
    service = ProgressService()
    state = ProgressState()
    task = _debut()
    assert service.toggle_objective(state, task, 0) is True
    assert state.completed_objectives == {build_objective_keys(task)[0]}
    assert service.is_objective_completed(state, task, 0) is True
    assert service.is_objective_completed(state, task, 1) is False
    assert service.toggle_objective(state, task, 0) is False
    assert state.completed_objectives == set()


def test_legacy_completion_is_read_and_cleared_on_toggle() -> None:
    service = ProgressService()
    task = _debut()
    state = ProgressState(completed_objectives={build_legacy_objective_key("debut", 1)})
    assert service.is_objective_completed(state, task, 1) is True
    assert service.toggle_objective(state, task, 1) is False
    assert state.completed_objectives == set()


def test_item_progress_reads_legacy_and_prefers_stable() -> None:
    service = ProgressService()
    task = _debut()
    legacy_key = build_legacy_item_progress_key("debut", 1, _SHOTGUN.id)
    stable_key = build_item_progress_key(build_objective_keys(task)[1], _SHOTGUN.id)
    state = ProgressState(item_progress={legacy_key: 1})
    assert service.get_item_progress(state, task, 1, _SHOTGUN.id) == 1
    state.item_progress[stable_key] = 2
    assert service.get_item_progress(state, task, 1, _SHOTGUN.id) == 2


def test_set_item_progress_migrates_legacy_key_and_clamps() -> None:
    service = ProgressService()
    task = _debut()
    legacy_key = build_legacy_item_progress_key("debut", 1, _SHOTGUN.id)
    state = ProgressState(item_progress={legacy_key: 1})
    assert service.set_item_progress(state, task, 1, _SHOTGUN.id, -3) == 0
    assert legacy_key not in state.item_progress
    assert service.set_item_progress(state, task, 1, _SHOTGUN.id, 2) == 2
    assert service.get_item_progress(state, task, 1, _SHOTGUN.id) == 2


def test_unknown_objective_index_raises() -> None:
    with pytest.raises(IndexError):
        ProgressService().toggle_objective(ProgressState(), _debut(), 5)


def test_task_progress_counts_both_key_schemes() -> None:
    service = ProgressService()
    task = _debut()
    state = ProgressState(
        completed_objectives={build_objective_keys(task)[0], build_legacy_objective_key("debut", 1)}
    )
    view = service.task_progress(state, task)
    assert (view.completed, view.total) == (2, 2)
    assert view.is_done is True
    assert service.task_progress(ProgressState(), TaskDef(id="empty", name="Empty")).is_done is False


def test_serialize_is_sorted_and_versioned() -> None:
    service = ProgressService()
    state = ProgressState(
        completed_tasks={"b", "a"},
        completed_objectives={"k2", "k1"},
        item_progress={"z": 1, "y": 2},
    )
    payload = service.serialize(state)
    assert payload == {
        "progress_version": ProgressService.PROGRESS_VERSION,
        "completed_tasks": ["a", "b"],
        "completed_objectives": ["k1", "k2"],
        "item_progress": {"y": 2, "z": 1},
    }
    assert service.deserialize(payload) == state


def test_deserialize_rejects_wrong_version() -> None:
    with pytest.raises(ProgressLoadError):
        ProgressService().deserialize({"progress_version": 99})


def test_deserialize_rejects_non_mapping() -> None:
    with pytest.raises(ProgressLoadError):
        ProgressService().deserialize(["debut"])  # type: ignore[arg-type]


def test_deserialize_rejects_bad_shapes() -> None:
    service = ProgressService()
    with pytest.raises(ProgressLoadError):
        service.deserialize({"progress_version": 1, "completed_tasks": "debut"})
    with pytest.raises(ProgressLoadError):
        service.deserialize({"progress_version": 1, "completed_objectives": [1, 2]})
    with pytest.raises(ProgressLoadError):
        service.deserialize({"progress_version": 1, "item_progress": []})


def test_deserialize_drops_non_numeric_counts(caplog) -> None:
    payload = {
        "progress_version": 1,
        "completed_tasks": ["debut"],
        "item_progress": {"ok": 3, "bad": "lots", "flag": True, "neg": -2},
    }
    with caplog.at_level(logging.WARNING, logger="questgraph"):
        state = ProgressService().deserialize(payload)
    assert state.item_progress == {"ok": 3, "neg": 0}
    assert state.completed_objectives == set()
    assert "non-numeric" in caplog.text


def test_deserialize_drops_nan_and_infinite_counts(caplog) -> None:
    payload = json.loads(
        '{"progress_version": 1, "completed_tasks": [],'
        ' "item_progress": {"ok": 2.0, "nan": NaN, "inf": Infinity, "ninf": -Infinity}}'
    )
    with caplog.at_level(logging.WARNING, logger="questgraph"):
        state = ProgressService().deserialize(payload)
    assert state.item_progress == {"ok": 2}
    assert "Dropped 3 non-numeric" in caplog.text
