"""Route planning over the storyline decision graph."""
from __future__ import annotations

import re
from collections import deque
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence, Set, Tuple

from questgraph.domain.defs import EdgeDef, StorylineNode
from questgraph.logging_utils import get_logger

logger = get_logger("services.storyline_path")

ROOT_NODE_ID = "prologue"

ENDING_IDS: Tuple[str, ...] = (
    "debtor-ending",
    "survivor-ending-300m",
    "survivor-ending-500m",
    "fallen-ending",
    "savior-ending",
)

# The classification below is tuned against the authored storyline notes
# ("55 hour craft", "~24 hour timegate", BTC vs rouble prices). Check the
# storyline content before changing any of these patterns or the threshold.
_CRAFT_HOURS_PATTERN = re.compile(r"(\d+)\s*hour\s*craft", re.IGNORECASE)
_CRAFT_WORD_PATTERN = re.compile(r"\bcraft\b", re.IGNORECASE)
_HOURS_PATTERN = re.compile(r"(\d+)\s*hour", re.IGNORECASE)
# Bitcoin prices are small integers, rouble prices never are.
ALT_CURRENCY_THRESHOLD = 1000


@dataclass(slots=True)
class PathStep:
    id: str
    label: str
    description: str | None = None
    note: str | None = None
    cost: int | None = None
    is_craft: bool = False
    craft_hours: int | None = None
    is_time_gate: bool = False
    time_gate_hours: int | None = None


@dataclass(slots=True)
class PathSummary:
    steps: List[PathStep] = field(default_factory=list)
    total_cost_currency: int = 0
    total_cost_alt_currency: int = 0
    total_craft_hours: int = 0
    total_time_gate_hours: int = 0


def find_path(
    target_node_id: str,
    nodes: Iterable[StorylineNode],
    edges: Iterable[EdgeDef],
    *,
    root_id: str = ROOT_NODE_ID,
) -> List[StorylineNode]:
    """Return the nodes on the shortest route from the root to the target.

    The search runs backwards from the target. If the root cannot be
    reached the result is just the root node: "no route" is a normal
    display state, not an error.
    """
    incoming: Dict[str, List[str]] = {}
    for edge in edges:
        incoming.setdefault(edge.target, []).append(edge.source)

    visited: Set[str] = {target_node_id}
    parent: Dict[str, str] = {}
    queue: deque[str] = deque([target_node_id])
    while queue:
        current = queue.popleft()
        if current == root_id:
            break
        for source in incoming.get(current, ()):
            if source not in visited:
                visited.add(source)
                parent[source] = current
                queue.append(source)

    path_ids: List[str] = []
    current_id: str | None = root_id
    while current_id is not None:
        path_ids.append(current_id)
        current_id = parent.get(current_id)

    if len(path_ids) == 1 and target_node_id != root_id:
        logger.debug("No route from '%s' to '%s'", root_id, target_node_id)

    node_map = {node.id: node for node in nodes}
    return [node_map[node_id] for node_id in path_ids if node_id in node_map]


def path_edge_ids(path_nodes: Sequence[StorylineNode], edges: Iterable[EdgeDef]) -> Set[str]:
    """Return ids of edges joining nodes that sit next to each other on the path.

    An edge between two path nodes that skips over intermediate steps is
    not part of the route and is left out.
    """
    positions: Dict[str, int] = {}
    for index, node in enumerate(path_nodes):
        positions.setdefault(node.id, index)
    edge_ids: Set[str] = set()
    for edge in edges:
        source_index = positions.get(edge.source)
        target_index = positions.get(edge.target)
        if source_index is None or target_index is None:
            continue
        if abs(source_index - target_index) == 1:
            edge_ids.add(edge.id)
    return edge_ids


def classify_step(node: StorylineNode) -> PathStep:
    """Classify one node as craft, time gate or neither from its text."""
    combined = f"{node.description or ''} {node.note or ''}"
    craft_match = _CRAFT_HOURS_PATTERN.search(combined)
    is_craft = craft_match is not None or _CRAFT_WORD_PATTERN.search(combined) is not None
    hour_match = _HOURS_PATTERN.search(combined)
    hours = int(hour_match.group(1)) if hour_match else 0

    craft_hours: int | None = None
    time_gate_hours: int | None = None
    if is_craft:
        craft_hours = int(craft_match.group(1)) if craft_match else hours
    is_time_gate = hour_match is not None and not is_craft
    if is_time_gate:
        time_gate_hours = hours
    return PathStep(
        id=node.id,
        label=node.label or node.id,
        description=node.description,
        note=node.note,
        cost=node.cost,
        is_craft=is_craft,
        craft_hours=craft_hours,
        is_time_gate=is_time_gate,
        time_gate_hours=time_gate_hours,
    )


def summarize_path(path_nodes: Iterable[StorylineNode]) -> PathSummary:
    """Total up costs and waiting time along a resolved path."""
    summary = PathSummary()
    for node in path_nodes:
        step = classify_step(node)
        if step.is_craft and step.craft_hours:
            summary.total_craft_hours += step.craft_hours
        if step.is_time_gate and step.time_gate_hours:
            summary.total_time_gate_hours += step.time_gate_hours
        if step.cost is not None and step.cost > 0:
            if step.cost < ALT_CURRENCY_THRESHOLD:
                summary.total_cost_alt_currency += step.cost
            else:
                summary.total_cost_currency += step.cost
        summary.steps.append(step)
    return summary


def summarize_route(
    target_node_id: str,
    nodes: Sequence[StorylineNode],
    edges: Sequence[EdgeDef],
    *,
    root_id: str = ROOT_NODE_ID,
) -> Tuple[List[StorylineNode], Set[str], PathSummary]:
    """Resolve a route and return its nodes, highlighted edges and summary."""
    path = find_path(target_node_id, nodes, edges, root_id=root_id)
    return path, path_edge_ids(path, edges), summarize_path(path)
