"""Console-driven UI loops for questgraph."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Callable, Dict, List, Literal, Sequence, Tuple

from questgraph.data.errors import DataError
from questgraph.data.repositories import OverlayRepository, StorylineRepository, TasksRepository
from questgraph.domain.defs import EdgeDef, EndingNode, StorylineNode, TaskDef
from questgraph.domain.progress_state import ProgressState
from questgraph.logging_utils import get_logger, resolve_level, setup_logging
from questgraph.presentation.cli import config, render
from questgraph.presentation.cli.progress_store import ProgressStore
from questgraph.services.errors import ProgressLoadError
from questgraph.services.overlay_service import build_task_catalog
from questgraph.services.progress_service import ProgressService
from questgraph.services.storyline_path import ENDING_IDS, summarize_route
from questgraph.services.storyline_validator import has_errors, validate_storyline
from questgraph.services.task_graph import (
    DependencyMap,
    TaskFilter,
    build_dependency_map,
    calculate_task_levels,
    filter_tasks,
    group_tasks_by_level,
    is_task_available,
    list_available_tasks,
    summarize_by_trader,
)

logger = get_logger("cli.app")

MenuAction = Literal[
    "levels",
    "available",
    "traders",
    "toggle_task",
    "objectives",
    "filters",
    "route",
    "validate",
    "profile",
    "quit",
]


@dataclass(slots=True)
class CliSession:
    """Loaded definitions plus the active profile's progress."""

    tasks: List[TaskDef]
    storyline_nodes: List[StorylineNode]
    storyline_edges: List[EdgeDef]
    state: ProgressState
    profile: str
    store: ProgressStore
    progress_service: ProgressService
    task_filter: TaskFilter = field(default_factory=TaskFilter)
    cli_config: Dict[str, Any] = field(default_factory=config.default_config)
    config_path: Path | None = None

    @property
    def tasks_by_id(self) -> Dict[str, TaskDef]:
        return {task.id: task for task in self.tasks}

    @property
    def dependency_map(self) -> DependencyMap:
        return build_dependency_map(self.tasks)

    @property
    def visible_tasks(self) -> List[TaskDef]:
        return filter_tasks(self.tasks, self.task_filter)


def main() -> None:
    """Start the interactive CLI session."""
    cli_config = config.load_config()
    level = logging.DEBUG if render.debug_enabled() else resolve_level(cli_config["log_level"])
    setup_logging(level)
    try:
        session = _build_session(cli_config)
    except DataError as exc:
        print(f"Unable to load definitions: {exc}")
        return
    print("=== Quest Graph ===")
    print(f"Profile: {session.profile} ({len(session.tasks)} tasks loaded)")
    if has_errors(validate_storyline(session.storyline_nodes, session.storyline_edges)):
        logger.warning("Storyline definitions contain errors; run Validate Storyline for details.")
    handlers = _menu_handlers()
    options = _main_menu_options()
    while True:
        action = _main_menu_loop(options)
        if action == "quit":
            _save_progress(session)
            break
        handlers[action](session)
    print("Goodbye!")


def _main_menu_options() -> List[Tuple[str, MenuAction]]:
    return [
        ("Tasks by Level", "levels"),
        ("Available Tasks", "available"),
        ("Trader Progress", "traders"),
        ("Complete / Uncomplete Task", "toggle_task"),
        ("Task Objectives", "objectives"),
        ("Task Filters", "filters"),
        ("Plan Storyline Route", "route"),
        ("Validate Storyline", "validate"),
        ("Switch Profile", "profile"),
        ("Save & Quit", "quit"),
    ]


def _menu_handlers() -> Dict[MenuAction, Callable[[CliSession], None]]:
    return {
        "levels": _show_task_levels,
        "available": _show_available_tasks,
        "traders": _show_trader_progress,
        "toggle_task": _toggle_task_completion,
        "objectives": _show_task_objectives,
        "filters": _edit_task_filter,
        "route": _plan_storyline_route,
        "validate": _validate_storyline,
        "profile": _switch_profile,
    }


def _main_menu_loop(options: Sequence[Tuple[str, MenuAction]]) -> MenuAction:
    render.render_menu("Main Menu", [label for label, _ in options])
    index = _prompt_index(len(options), allow_blank=False)
    assert index is not None
    return options[index][1]


def _build_session(
    cli_config: Dict[str, Any],
    store: ProgressStore | None = None,
    config_path: Path | None = None,
) -> CliSession:
    """Load definitions and the configured profile's progress."""
    base_path = cli_config.get("definitions_dir")
    tasks_repo = TasksRepository(base_path=base_path)
    overlay_repo = OverlayRepository(base_path=base_path)
    storyline_repo = StorylineRepository(base_path=base_path)
    progress_service = ProgressService()
    store = store or ProgressStore()
    profile = str(cli_config.get("profile") or "default")
    return CliSession(
        tasks=build_task_catalog(tasks_repo, overlay_repo),
        storyline_nodes=storyline_repo.all(),
        storyline_edges=storyline_repo.edges(),
        state=_load_progress(store, profile, progress_service),
        profile=profile,
        store=store,
        progress_service=progress_service,
        cli_config=dict(cli_config),
        config_path=config_path,
    )


def _load_progress(store: ProgressStore, profile: str, service: ProgressService) -> ProgressState:
    try:
        if not store.exists(profile):
            return ProgressState()
        return service.deserialize(store.read(profile))
    except (ProgressLoadError, ValueError) as exc:
        # ValueError covers malformed JSON and invalid profile names.
        logger.warning("Progress for profile '%s' could not be loaded: %s", profile, exc)
        print(f"Saved progress for '{profile}' is unreadable; starting fresh.")
        return ProgressState()


def _save_progress(session: CliSession) -> None:
    payload = session.progress_service.serialize(session.state)
    session.store.write(session.profile, payload)
    print(f"Progress saved for profile '{session.profile}'.")


def _show_task_levels(session: CliSession) -> None:
    # Levels come from the whole graph; the filter only hides rows.
    dependency_map = session.dependency_map
    levels = calculate_task_levels(dependency_map)
    available = list_available_tasks(dependency_map, session.state.completed_tasks)
    visible = {task.id: task for task in session.visible_tasks}
    _print_filter_note(session)
    render.render_task_levels(
        group_tasks_by_level({task_id: level for task_id, level in levels.items() if task_id in visible}),
        visible,
        session.state.completed_tasks,
        available,
    )


def _show_available_tasks(session: CliSession) -> None:
    visible = {task.id: task for task in session.visible_tasks}
    available = [
        task_id
        for task_id in list_available_tasks(session.dependency_map, session.state.completed_tasks)
        if task_id in visible
    ]
    render.render_heading("Available Tasks")
    _print_filter_note(session)
    if not available:
        print("Nothing is unlocked right now.")
        return
    for task_id in sorted(available, key=lambda task_id: visible[task_id].name):
        print(render.format_task_line(visible[task_id], completed=False, available=True))


def _show_trader_progress(session: CliSession) -> None:
    render.render_heading("Trader Progress")
    _print_filter_note(session)
    render.render_trader_progress(summarize_by_trader(session.visible_tasks, session.state.completed_tasks))


def _print_filter_note(session: CliSession) -> None:
    if session.task_filter.is_active:
        print(f"Filter: {render.describe_filter(session.task_filter)}")


def _edit_task_filter(session: CliSession) -> None:
    while True:
        current = session.task_filter
        level = "any" if current.player_level is None else str(current.player_level)
        render.render_menu(
            "Task Filters",
            [
                f"Kappa only: {'on' if current.kappa_only else 'off'}",
                f"Lightkeeper only: {'on' if current.lightkeeper_only else 'off'}",
                f"Player level: {level}",
                "Clear filters",
            ],
        )
        print("Select a filter to change (blank to return).")
        index = _prompt_index(4, allow_blank=True)
        if index is None:
            return
        if index == 0:
            session.task_filter = replace(current, kappa_only=not current.kappa_only)
        elif index == 1:
            session.task_filter = replace(current, lightkeeper_only=not current.lightkeeper_only)
        elif index == 2:
            session.task_filter = replace(current, player_level=_prompt_player_level())
        else:
            session.task_filter = TaskFilter()


def _switch_profile(session: CliSession) -> None:
    render.render_heading("Profiles")
    for name in session.store.list_profiles():
        marker = " (active)" if name == session.profile else ""
        print(f"- {name}{marker}")
    render.render_menu("Profile Actions", ["Open or create a profile", "Delete a profile"])
    action = _prompt_index(2, allow_blank=True)
    if action is None:
        return
    name = input("Profile name (blank to cancel): ").strip()
    if not name:
        return
    try:
        exists = session.store.exists(name)
    except ValueError as exc:
        print(exc)
        return
    if action == 1:
        if name == session.profile:
            print("The active profile cannot be deleted.")
        elif not exists:
            print(f"No saved progress for '{name}'.")
        else:
            session.store.delete(name)
            print(f"Deleted profile '{name}'.")
        return
    if name == session.profile:
        print(f"'{name}' is already active.")
        return
    _save_progress(session)
    session.state = _load_progress(session.store, name, session.progress_service)
    session.profile = name
    session.cli_config["profile"] = name
    config.save_config(session.cli_config, session.config_path)
    print(f"Switched to profile '{name}'.")


def _toggle_task_completion(session: CliSession) -> None:
    task = _prompt_task(session)
    if task is None:
        return
    service = session.progress_service
    if service.is_task_completed(session.state, task.id):
        service.uncomplete_task(session.state, task.id)
        print(f"Marked '{task.name}' as not completed.")
        return
    if not is_task_available(task.id, session.state.completed_tasks, session.dependency_map):
        print("Note: some prerequisites of this task are not completed yet.")
    service.complete_task(session.state, task.id)
    print(f"Marked '{task.name}' as completed.")


def _show_task_objectives(session: CliSession) -> None:
    task = _prompt_task(session)
    if task is None:
        return
    if not task.objectives:
        print("This task has no objectives.")
        return
    service = session.progress_service
    print(_describe_task_requirements(task))
    if task.wiki_link:
        print(f"Wiki: {task.wiki_link}")
    while True:
        progress = service.task_progress(session.state, task)
        render.render_heading(f"{task.name} ({progress.completed}/{progress.total})")
        for index, objective in enumerate(task.objectives):
            marker = "[x]" if service.is_objective_completed(session.state, task, index) else "[ ]"
            line = f"{index + 1}. {marker} {objective.description or '(no description)'}"
            if objective.items and objective.count:
                handed_over = service.get_item_progress(session.state, task, index, objective.items[0].id)
                line += f" ({handed_over}/{objective.count})"
            print(line)
        print("Select an objective to update (blank to return).")
        index = _prompt_index(len(task.objectives), allow_blank=True)
        if index is None:
            return
        objective = task.objectives[index]
        if objective.items and objective.count:
            count = _prompt_count(objective.count)
            service.set_item_progress(session.state, task, index, objective.items[0].id, count)
            if (count >= objective.count) != service.is_objective_completed(session.state, task, index):
                service.toggle_objective(session.state, task, index)
            continue
        service.toggle_objective(session.state, task, index)


def _plan_storyline_route(session: CliSession) -> None:
    endings = _ending_nodes(session.storyline_nodes)
    if not endings:
        print("The storyline defines no endings.")
        return
    render.render_menu("Choose an Ending", [node.label for node in endings])
    index = _prompt_index(len(endings), allow_blank=True)
    if index is None:
        return
    path, edge_ids, summary = summarize_route(
        endings[index].id, session.storyline_nodes, session.storyline_edges
    )
    if len(path) <= 1:
        print("No route leads to that ending.")
        return
    render.render_route(summary, edge_ids)


def _ending_nodes(nodes: Sequence[StorylineNode]) -> List[StorylineNode]:
    """Endings in canonical order, then any others by id."""
    order = {ending_id: position for position, ending_id in enumerate(ENDING_IDS)}
    endings = [node for node in nodes if isinstance(node, EndingNode)]
    return sorted(endings, key=lambda node: (order.get(node.id, len(order)), node.id))


def _validate_storyline(session: CliSession) -> None:
    render.render_heading("Storyline Validation")
    issues = validate_storyline(session.storyline_nodes, session.storyline_edges)
    render.render_issues(issues)
    if has_errors(issues):
        print("The storyline has errors; planned routes may be incomplete.")


def _prompt_task(session: CliSession) -> TaskDef | None:
    query = input("Task name contains (blank to cancel): ").strip().lower()
    if not query:
        return None
    matches = sorted(
        (task for task in session.tasks if query in task.name.lower()),
        key=lambda task: task.name,
    )
    if not matches:
        print("No task matches that name.")
        return None
    if len(matches) == 1:
        return matches[0]
    render.render_menu("Matching Tasks", [f"{task.name} ({task.trader})" for task in matches])
    index = _prompt_index(len(matches), allow_blank=True)
    return matches[index] if index is not None else None


def _prompt_index(choice_count: int, *, allow_blank: bool) -> int | None:
    while True:
        raw = input("Select an option: ").strip()
        if not raw and allow_blank:
            return None
        try:
            index = int(raw) - 1
        except ValueError:
            print("Please enter a number.")
            continue
        if 0 <= index < choice_count:
            return index
        print(f"Please enter a value between 1 and {choice_count}.")


def _prompt_count(target: int) -> int:
    while True:
        raw = input(f"Items handed over (0-{target}): ").strip()
        try:
            value = int(raw)
        except ValueError:
            print("Please enter a number.")
            continue
        if 0 <= value <= target:
            return value
        print(f"Please enter a value between 0 and {target}.")


def _prompt_player_level() -> int | None:
    while True:
        raw = input("Player level (blank for any): ").strip()
        if not raw:
            return None
        try:
            value = int(raw)
        except ValueError:
            print("Please enter a number.")
            continue
        if value >= 1:
            return value
        print("Please enter a level of 1 or more.")


def _describe_task_requirements(task: TaskDef) -> str:
    parts = [f"Requires level {task.min_player_level}"]
    if task.kappa_required:
        parts.append("Kappa")
    if task.lightkeeper_required:
        parts.append("Lightkeeper")
    return " | ".join(parts)
