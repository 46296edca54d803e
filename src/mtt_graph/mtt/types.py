"""MTT types: patterns, templates, expressions, rules and programs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union


# ---- Expression AST nodes ----


@dataclass
class Literal:
    """A constant value."""
    value: Any


@dataclass
class Variable:
    """A binding name, or ``param<N>`` for the N-th transducer parameter."""
    name: str


@dataclass
class PropertyAccess:
    """obj.key: attribute of a tree node, or key of a mapping."""
    obj: Expr
    key: str


@dataclass
class FunctionCall:
    """Call into the fixed built-in function table."""
    name: str
    args: list[Expr] = field(default_factory=list)


@dataclass
class BinaryOp:
    """left <op> right."""
    op: str  # "==", "!=", "<", ">", "<=", ">=", "+", "-", "*", "/", "and", "or"
    left: Expr
    right: Expr


# Union of all expression types
Expr = Union[Literal, Variable, PropertyAccess, FunctionCall, BinaryOp]


# ---- Tree patterns ----


@dataclass
class KindPattern:
    """Matches a node by kind, with optional name, attribute and child constraints.

    Child patterns match positionally and require the exact child count.
    """
    kind: str
    name: str | None = None
    attrs: dict[str, Any] | None = None
    children: list[TreePattern] | None = None


@dataclass
class VariablePattern:
    """Matches any node and binds the whole subtree."""
    name: str


@dataclass
class WildcardPattern:
    """Matches any node, binds nothing."""
    pass


TreePattern = Union[KindPattern, VariablePattern, WildcardPattern]


# ---- Tree templates ----


@dataclass
class NodeTemplate:
    """Builds a fresh node; name and attribute values are expressions."""
    kind: str
    name: Expr | None = None
    attrs: list[tuple[str, Expr]] = field(default_factory=list)
    children: list[TreeTemplate] = field(default_factory=list)


@dataclass
class VariableTemplate:
    """Continues rewriting a bound subtree in the current state."""
    name: str


@dataclass
class RecursiveCall:
    """Rewrites a bound subtree in ``state`` with freshly evaluated params."""
    state: str
    child_var: str
    params: list[Expr] = field(default_factory=list)


@dataclass
class ListTemplate:
    """Instantiates each element and wraps them in a ``list`` node."""
    elements: list[TreeTemplate] = field(default_factory=list)


TreeTemplate = Union[NodeTemplate, VariableTemplate, RecursiveCall, ListTemplate]


# ---- Rules and programs ----


WILDCARD_KIND = "*"


@dataclass
class MTTRule:
    """One rewrite rule.

    ``parameters`` names the positional parameters the rule expects (they are
    read back as ``param0``, ``param1``, ...). ``guard`` is an optional boolean
    expression over the match bindings and parameters.
    """
    name: str
    state: str
    pattern: TreePattern
    template: TreeTemplate
    parameters: list[str] = field(default_factory=list)
    guard: Expr | None = None

    @property
    def index_kind(self) -> str:
        """Bucket key: the pattern's root kind, or ``*``."""
        if isinstance(self.pattern, KindPattern):
            return self.pattern.kind
        return WILDCARD_KIND


@dataclass
class MTTProgram:
    """Ordered rules plus the state a run starts in."""
    rules: list[MTTRule] = field(default_factory=list)
    initial_state: str = "q0"
    entry_points: dict[str, str] = field(default_factory=dict)  # DSL name → generated state

    @property
    def states(self) -> list[str]:
        """Declared states in first-seen order."""
        seen: dict[str, None] = {}
        for rule in self.rules:
            seen.setdefault(rule.state, None)
        return list(seen)


# Bindings produced by one successful match
Bindings = dict[str, Any]
