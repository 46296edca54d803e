"""DSL types: program, metadata and the operation AST."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from mtt_graph.mtt.types import Expr


@dataclass
class DSLMetadata:
    """The ``metadata`` block of a rules document."""
    name: str = "Unnamed"
    version: str = "1.0"
    source_ontology: str = ""
    target_ontology: str = ""
    description: str = ""


@dataclass
class NodePattern:
    """Graph-level node pattern: type plus property equalities."""
    variable: str | None = None
    node_type: str | None = None
    properties: dict[str, Any] = field(default_factory=dict)


@dataclass
class AggregateFunction:
    """Aggregation kind (sum, count, avg, min, max) over a field."""
    kind: str
    field: str | None = None


# ---- Operations ----


@dataclass
class MatchOp:
    """Match nodes against a pattern and run ``body`` for each."""
    pattern: NodePattern
    variable: str
    body: list[DSLOperation] = field(default_factory=list)
    condition: Expr | None = None


@dataclass
class CreateNodeOp:
    """Create a node of ``node_type``."""
    node_type: str
    id: Expr | None = None
    properties: dict[str, Expr] = field(default_factory=dict)


@dataclass
class SetPropertyOp:
    """Set ``target.key`` to ``value``."""
    target: str
    key: str
    value: Expr


@dataclass
class AggregateOp:
    """Fold ``function`` over a list into ``variable``."""
    variable: str
    function: AggregateFunction
    group_by: list[Expr] = field(default_factory=list)


DSLOperation = Union[MatchOp, CreateNodeOp, SetPropertyOp, AggregateOp]


@dataclass
class DSLProgram:
    """A parsed rules document: flat, ordered operation list."""
    metadata: DSLMetadata = field(default_factory=DSLMetadata)
    constants: dict[str, Any] = field(default_factory=dict)
    operations: list[DSLOperation] = field(default_factory=list)
