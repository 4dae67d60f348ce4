"""Stable persistence keys for task objectives.

Objectives carry no identifier upstream, so completion and item progress are
stored under a key derived from the objective's content. The content is
canonicalised (normalised text, sorted map and item lists) so that a catalog
refresh or overlay patch that only reorders lists keeps saved progress.
Objectives with identical content on one task are told apart by their
occurrence number.

Positional keys written by earlier releases (``"{task_id}-{index}"``) are
still honoured on read.
"""
from __future__ import annotations

import math
import re
import weakref
from collections.abc import Mapping
from typing import AbstractSet, Any, List, Sequence
from urllib.parse import quote

from questgraph.domain.defs import ObjectiveDef, TaskDef
from questgraph.logging_utils import get_logger

logger = get_logger("services.objective_keys")

_WHITESPACE = re.compile(r"\s+")
_FIELD_SEPARATOR = "~"
_LIST_SEPARATOR = ","
# Same unescaped set as JavaScript's encodeURIComponent, so keys persisted by
# the browser tracker stay byte-identical.
_SAFE_CHARS = "-_.!~*'()"

_keys_cache: "weakref.WeakKeyDictionary[Any, tuple[tuple, List[str]]]" = weakref.WeakKeyDictionary()


def normalize_key_part(value: str | None) -> str:
    """Trim, lowercase and collapse runs of whitespace."""
    return _WHITESPACE.sub(" ", (value or "").strip().lower())


def encode_key_part(value: str) -> str:
    return quote(value, safe=_SAFE_CHARS)


def serialize_objective(objective: ObjectiveDef) -> str:
    """Return the canonical content signature of an objective."""
    maps = sorted(
        name for name in (normalize_key_part(map_name) for map_name in objective.maps) if name
    )
    items = sorted(
        f"{normalize_key_part(item.id)}|{normalize_key_part(item.name)}" for item in objective.items
    )
    player_level = _number_or_blank(objective.player_level)
    count = _number_or_blank(objective.count)
    found_in_raid = "1" if objective.found_in_raid else "0"
    return _FIELD_SEPARATOR.join(
        [
            normalize_key_part(objective.description),
            player_level,
            count,
            found_in_raid,
            _LIST_SEPARATOR.join(maps),
            _LIST_SEPARATOR.join(items),
        ]
    )


def _number_or_blank(value: object) -> str:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return ""
    return str(value)


def build_objective_keys(task: TaskDef) -> List[str]:
    """Return one stable key per objective, aligned with ``task.objectives``.

    Keys have the form ``{task_id}::objective::{signature}::{occurrence}``.
    Results are cached per task object and recomputed if its objectives
    change.
    """
    guard = (task.id, tuple(task.objectives))
    cached = _cache_lookup(task)
    if cached is not None and cached[0] == guard:
        return list(cached[1])

    seen_per_signature: dict[str, int] = {}
    keys: List[str] = []
    for objective in task.objectives:
        signature = serialize_objective(objective)
        seen = seen_per_signature.get(signature, 0) + 1
        seen_per_signature[signature] = seen
        keys.append(f"{task.id}::objective::{encode_key_part(signature)}::{seen}")

    _cache_store(task, guard, keys)
    return list(keys)


def _cache_lookup(task: object) -> tuple[tuple, List[str]] | None:
    try:
        return _keys_cache.get(task)
    except TypeError:
        return None


def _cache_store(task: object, guard: tuple, keys: List[str]) -> None:
    try:
        _keys_cache[task] = (guard, keys)
    except TypeError:
        # Not weak-referenceable; computed fresh on every call.
        pass


def build_item_progress_key(objective_key: str, item_id: str) -> str:
    return f"{objective_key}::item::{encode_key_part(normalize_key_part(item_id))}"


def build_legacy_objective_key(task_id: str, objective_index: int) -> str:
    return f"{task_id}-{objective_index}"


def build_legacy_item_progress_key(task_id: str, objective_index: int, item_id: str) -> str:
    return f"{task_id}::{objective_index}::{item_id}"


def is_objective_completed(
    completed_objectives: AbstractSet[str],
    objective_key: str,
    legacy_objective_key: str | None = None,
) -> bool:
    """Return True if the objective is recorded under either key scheme."""
    if objective_key in completed_objectives:
        return True
    return bool(legacy_objective_key) and legacy_objective_key in completed_objectives


def get_item_progress(
    item_progress: Mapping[str, object],
    item_key: str,
    legacy_item_key: str | None = None,
) -> int:
    """Return the stored count, preferring the stable key over the legacy one.

    Stored values come from user storage; anything that is not a number is
    treated as absent.
    """
    stable = _coerce_count(item_progress.get(item_key), item_key)
    if stable is not None:
        return stable
    if not legacy_item_key:
        return 0
    legacy = _coerce_count(item_progress.get(legacy_item_key), legacy_item_key)
    return legacy if legacy is not None else 0


def _coerce_count(value: object, key: str) -> int | None:
    if value is None:
        return None
    if not is_valid_count(value):
        logger.warning("Ignoring non-numeric item progress %r for key '%s'", value, key)
        return None
    return int(value)


def is_valid_count(value: object) -> bool:
    """True for finite ints and floats; bools, NaN and infinities are rejected."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def objective_keys_by_index(task: TaskDef) -> Sequence[tuple[int, str, str]]:
    """Return ``(index, stable_key, legacy_key)`` for each objective."""
    return [
        (index, key, build_legacy_objective_key(task.id, index))
        for index, key in enumerate(build_objective_keys(task))
    ]
