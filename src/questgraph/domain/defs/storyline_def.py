"""Storyline decision-graph structures.

Nodes are a tagged variant keyed on ``kind``; the payload fields are
validated once by the repository and never re-checked on access.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Literal, Union

StorylineNodeKind = Literal["story", "decision", "ending"]


@dataclass(frozen=True, slots=True)
class StorylineNodeBase:
    id: str
    label: str
    description: str | None = None
    note: str | None = None
    # Negative cost is a reward, not a price.
    cost: int | None = None

    kind: ClassVar[StorylineNodeKind]


@dataclass(frozen=True, slots=True)
class StoryStepNode(StorylineNodeBase):
    """Plain narrative step."""

    kind: ClassVar[StorylineNodeKind] = "story"


@dataclass(frozen=True, slots=True)
class DecisionNode(StorylineNodeBase):
    """Branch point where outgoing edges are the available choices."""

    kind: ClassVar[StorylineNodeKind] = "decision"


@dataclass(frozen=True, slots=True)
class EndingNode(StorylineNodeBase):
    """Terminal outcome of the storyline."""

    kind: ClassVar[StorylineNodeKind] = "ending"


StorylineNode = Union[StoryStepNode, DecisionNode, EndingNode]

NODE_TYPES: dict[str, type[StorylineNodeBase]] = {
    "story": StoryStepNode,
    "decision": DecisionNode,
    "ending": EndingNode,
}


@dataclass(frozen=True, slots=True)
class EdgeDef:
    """Directed edge between two storyline nodes."""

    id: str
    source: str
    target: str
    label: str | None = None
