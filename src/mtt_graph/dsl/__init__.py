"""DSL: YAML mapping rules and their expression language."""

from mtt_graph.dsl.types import (
    AggregateFunction,
    AggregateOp,
    CreateNodeOp,
    DSLMetadata,
    DSLProgram,
    MatchOp,
    NodePattern,
    SetPropertyOp,
)
from mtt_graph.dsl.expr_parser import ExpressionParser
from mtt_graph.dsl.parser import DSLParser

__all__ = [
    "AggregateFunction",
    "AggregateOp",
    "CreateNodeOp",
    "DSLMetadata",
    "DSLParser",
    "DSLProgram",
    "ExpressionParser",
    "MatchOp",
    "NodePattern",
    "SetPropertyOp",
]
