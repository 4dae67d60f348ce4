"""Static storyline graph validation utilities."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence

from questgraph.domain.defs import EdgeDef, EndingNode, StorylineNode
from questgraph.services.storyline_path import ROOT_NODE_ID


Severity = str


@dataclass(frozen=True, slots=True)
class Issue:
    severity: Severity
    code: str
    message: str
    context: dict[str, str]


def format_issue(issue: Issue) -> str:
    context = " ".join(f"{key}={value}" for key, value in issue.context.items())
    suffix = f" ({context})" if context else ""
    return f"[{issue.severity}] {issue.code}: {issue.message}{suffix}"


def has_errors(issues: Iterable[Issue]) -> bool:
    return any(issue.severity == "ERROR" for issue in issues)


def validate_storyline(
    nodes: Sequence[StorylineNode],
    edges: Sequence[EdgeDef],
    *,
    root_id: str = ROOT_NODE_ID,
) -> list[Issue]:
    issues: list[Issue] = []
    node_map: Dict[str, StorylineNode] = {}
    for node in nodes:
        if node.id in node_map:
            issues.append(
                Issue(
                    severity="ERROR",
                    code="DUPLICATE_NODE_ID",
                    message="Duplicate storyline node id detected.",
                    context={"node_id": node.id},
                )
            )
            continue
        node_map[node.id] = node

    if root_id not in node_map:
        issues.append(
            Issue(
                severity="ERROR",
                code="MISSING_ROOT",
                message="Root node is not defined.",
                context={"root_id": root_id},
            )
        )

    outgoing: Dict[str, List[str]] = {node_id: [] for node_id in node_map}
    for edge in edges:
        missing = [endpoint for endpoint in (edge.source, edge.target) if endpoint not in node_map]
        for endpoint in missing:
            issues.append(
                Issue(
                    severity="ERROR",
                    code="MISSING_NODE_REF",
                    message="Edge references missing node.",
                    context={"edge_id": edge.id, "referenced_id": endpoint},
                )
            )
        if missing:
            continue
        outgoing[edge.source].append(edge.target)

    for node_id, node in node_map.items():
        if isinstance(node, EndingNode):
            if outgoing[node_id]:
                issues.append(
                    Issue(
                        severity="WARN",
                        code="ENDING_HAS_OUTGOING",
                        message="Ending node has outgoing edges.",
                        context={"node_id": node_id},
                    )
                )
        elif not outgoing[node_id]:
            issues.append(
                Issue(
                    severity="WARN",
                    code="DEAD_END",
                    message="Node has no outgoing edges and is not an ending.",
                    context={"node_id": node_id},
                )
            )

    if root_id in node_map:
        _validate_reachability(outgoing, root_id, issues)
    _validate_cycles(outgoing, issues)
    return issues


def _validate_reachability(outgoing: Dict[str, List[str]], root_id: str, issues: list[Issue]) -> None:
    reachable: set[str] = set()
    stack = [root_id]
    while stack:
        current = stack.pop()
        if current in reachable:
            continue
        reachable.add(current)
        stack.extend(outgoing.get(current, ()))
    for node_id in sorted(set(outgoing) - reachable):
        issues.append(
            Issue(
                severity="WARN",
                code="UNREACHABLE_NODE",
                message="Node is unreachable from the storyline root.",
                context={"node_id": node_id},
            )
        )


def _validate_cycles(outgoing: Dict[str, List[str]], issues: list[Issue]) -> None:
    visited: set[str] = set()
    stack: list[str] = []
    stack_set: set[str] = set()
    cycles: list[list[str]] = []

    def dfs(current: str) -> None:
        visited.add(current)
        stack.append(current)
        stack_set.add(current)
        for next_node in outgoing.get(current, ()):
            if next_node not in visited:
                dfs(next_node)
            elif next_node in stack_set:
                cycles.append(stack[stack.index(next_node) :])
        stack.pop()
        stack_set.remove(current)

    for node_id in sorted(outgoing):
        if node_id not in visited:
            dfs(node_id)

    for cycle in cycles:
        cycle_path = " -> ".join(cycle + [cycle[0]])
        issues.append(
            Issue(
                severity="WARN",
                code="CYCLE",
                message="Storyline cycle detected.",
                context={"cycle": cycle_path},
            )
        )
