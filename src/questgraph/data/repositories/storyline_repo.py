"""Repository for the storyline decision graph."""
from __future__ import annotations

from typing import Dict, List

from questgraph.data.errors import DataReferenceError, DataValidationError
from questgraph.data.repositories.base import RepositoryBase
from questgraph.domain.defs import NODE_TYPES, EdgeDef, StorylineNode


class StorylineRepository(RepositoryBase[StorylineNode]):
    """Loads storyline nodes and edges and validates their structure.

    Node payloads are checked here once; the resulting dataclasses are
    trusted everywhere else.
    """

    def __init__(self, base_path=None) -> None:
        super().__init__("storyline.json", base_path)
        self._edges: List[EdgeDef] | None = None

    def _build(self, raw: dict[str, object]) -> Dict[str, StorylineNode]:
        nodes: Dict[str, StorylineNode] = {}
        for index, entry in enumerate(self._require_list(raw.get("nodes"), "storyline.json.nodes")):
            node = self._parse_node(entry, f"storyline.json.nodes[{index}]")
            if node.id in nodes:
                raise DataValidationError(f"Duplicate storyline node id '{node.id}'.")
            nodes[node.id] = node

        edges: List[EdgeDef] = []
        edge_ids: set[str] = set()
        for index, entry in enumerate(self._require_list(raw.get("edges"), "storyline.json.edges")):
            edge = self._parse_edge(entry, f"storyline.json.edges[{index}]")
            if edge.id in edge_ids:
                raise DataValidationError(f"Duplicate storyline edge id '{edge.id}'.")
            for endpoint in (edge.source, edge.target):
                if endpoint not in nodes:
                    raise DataReferenceError(
                        f"storyline edge '{edge.id}' references unknown node '{endpoint}'."
                    )
            edge_ids.add(edge.id)
            edges.append(edge)
        self._edges = edges
        return nodes

    def edges(self) -> list[EdgeDef]:
        """Return all edges in file order."""
        self._ensure_loaded()
        assert self._edges is not None
        return list(self._edges)

    def _parse_node(self, value: object, context: str) -> StorylineNode:
        mapping = self._require_mapping(value, context)
        node_id = self._require_str(mapping.get("id"), f"{context}.id")
        ctx = f"storyline node '{node_id}'"
        kind = self._require_str(mapping.get("kind"), f"{ctx} kind")
        node_type = NODE_TYPES.get(kind)
        if node_type is None:
            raise DataValidationError(
                f"{ctx} kind must be one of {', '.join(sorted(NODE_TYPES))} (found '{kind}')."
            )
        return node_type(
            id=node_id,
            label=self._optional_str(mapping.get("label"), f"{ctx} label") or node_id,
            description=self._optional_str(mapping.get("description"), f"{ctx} description"),
            note=self._optional_str(mapping.get("note"), f"{ctx} note"),
            cost=self._optional_int(mapping.get("cost"), f"{ctx} cost"),
        )  # type: ignore[return-value]

    def _parse_edge(self, value: object, context: str) -> EdgeDef:
        mapping = self._require_mapping(value, context)
        edge_id = self._require_str(mapping.get("id"), f"{context}.id")
        ctx = f"storyline edge '{edge_id}'"
        return EdgeDef(
            id=edge_id,
            source=self._require_str(mapping.get("source"), f"{ctx} source"),
            target=self._require_str(mapping.get("target"), f"{ctx} target"),
            label=self._optional_str(mapping.get("label"), f"{ctx} label"),
        )
