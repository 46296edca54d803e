"""Labeled property graph types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class GraphNode:
    """A graph node: unique id, type label and property map."""
    id: str
    type: str
    properties: dict[str, Any] = field(default_factory=dict)


@dataclass
class GraphEdge:
    """A directed, labeled edge between two node ids."""
    id: str
    label: str
    source_id: str
    target_id: str
    properties: dict[str, Any] = field(default_factory=dict)


@dataclass
class Graph:
    """Nodes and edges in declaration order (order drives root selection)."""
    nodes: list[GraphNode] = field(default_factory=list)
    edges: list[GraphEdge] = field(default_factory=list)

    def node(self, node_id: str) -> GraphNode | None:
        for n in self.nodes:
            if n.id == node_id:
                return n
        return None

    def outgoing(self, node_id: str) -> list[GraphEdge]:
        return [e for e in self.edges if e.source_id == node_id]

    def incoming_ids(self) -> set[str]:
        """Ids of every node that is the target of some edge."""
        return {e.target_id for e in self.edges}

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [
                {"id": n.id, "type": n.type, "properties": dict(n.properties)}
                for n in self.nodes
            ],
            "edges": [
                {
                    "id": e.id,
                    "label": e.label,
                    "source_id": e.source_id,
                    "target_id": e.target_id,
                    "properties": dict(e.properties),
                }
                for e in self.edges
            ],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Graph:
        """Build a graph from JSON data; camelCase edge endpoints are accepted.

        Raises ValueError when a node or edge lacks a required field.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Graph: expected a mapping, got {type(data).__name__}")
        nodes = []
        for n in data.get("nodes") or []:
            _require(n, "node", "id", "type")
            nodes.append(GraphNode(id=n["id"], type=n["type"], properties=dict(n.get("properties") or {})))
        edges = []
        for i, e in enumerate(data.get("edges") or []):
            _require(e, "edge", "label")
            source_id = e.get("source_id", e.get("sourceId"))
            target_id = e.get("target_id", e.get("targetId"))
            if source_id is None or target_id is None:
                raise ValueError(f"Graph: edge '{e['label']}' missing source or target id")
            edges.append(GraphEdge(
                id=e.get("id", f"edge_{i}"),
                label=e["label"],
                source_id=source_id,
                target_id=target_id,
                properties=dict(e.get("properties") or {}),
            ))
        return cls(nodes=nodes, edges=edges)


def _require(entry: Any, what: str, *keys: str) -> None:
    if not isinstance(entry, dict):
        raise ValueError(f"Graph: {what} must be an object, got {type(entry).__name__}")
    for key in keys:
        if key not in entry:
            raise ValueError(f"Graph: {what} missing '{key}'")
