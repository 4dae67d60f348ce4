"""Domain definition exports."""

from .overlay_def import ObjectivePatchDef, OverlayDef, TaskOverrideDef
from .storyline_def import (
    NODE_TYPES,
    DecisionNode,
    EdgeDef,
    EndingNode,
    StorylineNode,
    StorylineNodeBase,
    StoryStepNode,
)
from .task_def import ObjectiveDef, ObjectiveItemDef, TaskDef

__all__ = [
    "NODE_TYPES",
    "DecisionNode",
    "EdgeDef",
    "EndingNode",
    "ObjectiveDef",
    "ObjectiveItemDef",
    "ObjectivePatchDef",
    "OverlayDef",
    "StorylineNode",
    "StorylineNodeBase",
    "StoryStepNode",
    "TaskDef",
    "TaskOverrideDef",
]
