"""Shared CLI rendering helpers."""
from __future__ import annotations

import os
import textwrap
from typing import Iterable, Mapping, Sequence

from questgraph.domain.defs import TaskDef
from questgraph.services.storyline_path import ALT_CURRENCY_THRESHOLD, PathSummary
from questgraph.services.storyline_validator import Issue, format_issue
from questgraph.services.task_graph import TaskFilter, TraderProgress

_ROUTE_WIDTH = 72


def debug_enabled() -> bool:
    """Return True only when QUESTGRAPH_DEBUG is explicitly set to '1'."""
    return os.getenv("QUESTGRAPH_DEBUG") == "1"


def wrap_text_for_box(text: str, width: int, *, indent_continuation: bool = True) -> list[str]:
    """
    Wrap text to fit within a fixed width, breaking on word boundaries.

    Args:
        text: The text to wrap
        width: Maximum width per line
        indent_continuation: If True, indent continuation lines with 2 spaces

    Returns:
        List of wrapped lines
    """
    if not text or width <= 0:
        return [text] if text else [""]
    prefix = "- " if text.startswith("- ") else ""
    content = text[len(prefix):]
    subsequent_indent = "  " if indent_continuation else ""
    wrapped = textwrap.fill(
        content,
        width=width - len(prefix),
        subsequent_indent=subsequent_indent,
        break_long_words=False,
        break_on_hyphens=False,
    )
    lines = wrapped.split("\n")
    lines[0] = prefix + lines[0]
    if prefix and indent_continuation:
        lines[1:] = ["  " + line for line in lines[1:]]
    return lines


def render_heading(title: str) -> None:
    """Print a consistent section heading."""
    print(f"\n=== {title} ===")


def render_menu(title: str, options: Sequence[str]) -> None:
    """Display a menu section with numbered options."""
    render_heading(title)
    for idx, label in enumerate(options, start=1):
        print(f"{idx}. {label}")


def format_cost(cost: int) -> str:
    """Format a storyline cost; negative values are rewards."""
    if cost < 0:
        return f"reward {format_cost(-cost)}"
    if cost < ALT_CURRENCY_THRESHOLD:
        return f"{cost} BTC"
    return f"₽{cost:,}"


def format_task_line(task: TaskDef, *, completed: bool, available: bool) -> str:
    if completed:
        marker = "[x]"
    elif available:
        marker = "[ ]"
    else:
        marker = "[-]"
    line = f"{marker} {task.name} ({task.trader or 'unknown trader'})"
    if task.is_event:
        line += " [event]"
    if debug_enabled():
        line += f" <{task.id}>"
    return line


def render_task_levels(
    groups: Mapping[int, Sequence[str]],
    tasks_by_id: Mapping[str, TaskDef],
    completed: Iterable[str],
    available: Iterable[str],
) -> None:
    """Print tasks grouped by dependency level."""
    completed_set = set(completed)
    available_set = set(available)
    for level, task_ids in groups.items():
        render_heading(f"Level {level}")
        for task_id in task_ids:
            task = tasks_by_id.get(task_id)
            if task is None:
                continue
            print(
                format_task_line(
                    task,
                    completed=task_id in completed_set,
                    available=task_id in available_set,
                )
            )


def render_route(summary: PathSummary, edge_ids: Iterable[str]) -> None:
    """Print a resolved storyline route and its totals."""
    render_heading("Route")
    for index, step in enumerate(summary.steps, start=1):
        tags = []
        if step.is_craft:
            tags.append(f"craft {step.craft_hours}h")
        if step.is_time_gate:
            tags.append(f"wait {step.time_gate_hours}h")
        if step.cost is not None:
            tags.append(format_cost(step.cost))
        suffix = f" [{', '.join(tags)}]" if tags else ""
        print(f"{index}. {step.label}{suffix}")
        if step.description:
            for line in wrap_text_for_box(step.description, _ROUTE_WIDTH - 3):
                print(f"   {line}")
    if debug_enabled():
        print(f"Edges: {', '.join(sorted(edge_ids))}")
    render_heading("Totals")
    print(f"Roubles: ₽{summary.total_cost_currency:,}")
    print(f"Bitcoin: {summary.total_cost_alt_currency} BTC")
    print(f"Crafting: {summary.total_craft_hours} hours")
    print(f"Waiting: {summary.total_time_gate_hours} hours")


def render_issues(issues: Sequence[Issue]) -> None:
    if not issues:
        print("No storyline issues found.")
        return
    for issue in issues:
        print(format_issue(issue))


def describe_filter(task_filter: TaskFilter) -> str:
    if not task_filter.is_active:
        return "all tasks"
    parts = []
    if task_filter.kappa_only:
        parts.append("Kappa")
    if task_filter.lightkeeper_only:
        parts.append("Lightkeeper")
    if task_filter.player_level is not None:
        parts.append(f"level <= {task_filter.player_level}")
    return ", ".join(parts)


def render_trader_progress(rows: Sequence[TraderProgress]) -> None:
    """Print per-trader completion with an overall total first."""
    completed = sum(row.completed for row in rows)
    total = sum(row.total for row in rows)
    print(f"Overall: {completed}/{total} ({_percent(completed, total)})")
    for row in rows:
        print(f"- {row.trader or 'unknown trader'}: {row.completed}/{row.total} ({_percent(row.completed, row.total)})")


def _percent(completed: int, total: int) -> str:
    rate = completed / total * 100 if total else 0.0
    return f"{rate:.1f}%"
