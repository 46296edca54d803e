"""Built-in functions callable from MTT expressions.

The table is closed: the engine rejects any name not listed in BUILTINS.
"""

from __future__ import annotations

import datetime
from typing import Any, Callable

from mtt_graph.errors import UnsupportedConstruct
from mtt_graph.tree import TreeNode


def _concat(*args: Any) -> str:
    # None renders as empty text
    return "".join("" if a is None else str(a) for a in args)


def _upper(value: Any) -> str:
    return str(value).upper()


def _lower(value: Any) -> str:
    return str(value).lower()


def _sum(*args: Any) -> Any:
    total = 0
    for a in args:
        total = total + a
    return total


def _current_date() -> str:
    return datetime.date.today().isoformat()


def _node(value: Any, func: str) -> TreeNode:
    if not isinstance(value, TreeNode):
        raise UnsupportedConstruct(f"MTT: {func}() expects a tree node, got {type(value).__name__}")
    return value


def _kind(value: Any) -> str:
    return _node(value, "kind").kind


def _name(value: Any) -> str | None:
    return _node(value, "name").name


def _count(value: Any) -> int:
    return len(_node(value, "count").children)


BUILTINS: dict[str, Callable[..., Any]] = {
    "concat": _concat,
    "upper": _upper,
    "lower": _lower,
    "sum": _sum,
    "current_date": _current_date,
    "kind": _kind,
    "name": _name,
    "count": _count,
}


def call_builtin(name: str, args: list[Any]) -> Any:
    func = BUILTINS.get(name)
    if func is None:
        raise UnsupportedConstruct(f"MTT: unknown function '{name}'")
    try:
        return func(*args)
    except TypeError as e:
        raise UnsupportedConstruct(f"MTT: bad arguments to '{name}': {e}") from e
