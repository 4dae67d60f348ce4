"""Repository exports."""

from .overlay_repo import OverlayRepository
from .storyline_repo import StorylineRepository
from .tasks_repo import TasksRepository

__all__ = [
    "OverlayRepository",
    "StorylineRepository",
    "TasksRepository",
]
