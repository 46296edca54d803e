"""MTT (Macro Tree Transducer): rule types and execution engine."""

from mtt_graph.mtt.types import (
    BinaryOp,
    FunctionCall,
    KindPattern,
    ListTemplate,
    Literal,
    MTTProgram,
    MTTRule,
    NodeTemplate,
    PropertyAccess,
    RecursiveCall,
    Variable,
    VariablePattern,
    VariableTemplate,
    WildcardPattern,
)
from mtt_graph.mtt.engine import MTTEngine

__all__ = [
    "BinaryOp",
    "FunctionCall",
    "KindPattern",
    "ListTemplate",
    "Literal",
    "MTTEngine",
    "MTTProgram",
    "MTTRule",
    "NodeTemplate",
    "PropertyAccess",
    "RecursiveCall",
    "Variable",
    "VariablePattern",
    "VariableTemplate",
    "WildcardPattern",
]
