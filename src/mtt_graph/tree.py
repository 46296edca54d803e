"""Tree model shared by the codec, the transducer and the compilers."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any


@dataclass
class TreeNode:
    """A labeled, ordered tree node.

    ``kind`` is the dispatch label used by the transducer, ``name`` an optional
    identifier. Attributes keep insertion order; matching looks them up by key.
    """
    kind: str
    name: str | None = None
    attrs: list[tuple[str, Any]] = field(default_factory=list)
    children: list[TreeNode] = field(default_factory=list)

    def get_attr(self, key: str, default: Any = None) -> Any:
        for k, v in self.attrs:
            if k == key:
                return v
        return default

    def has_attr(self, key: str) -> bool:
        return any(k == key for k, _ in self.attrs)

    def attr_dict(self) -> dict[str, Any]:
        return dict(self.attrs)

    def depth_first(self) -> Iterator[TreeNode]:
        """Traverse tree depth-first, yielding self then children."""
        yield self
        for child in self.children:
            yield from child.depth_first()

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly form; absent name and empty lists are omitted."""
        out: dict[str, Any] = {"kind": self.kind}
        if self.name is not None:
            out["name"] = self.name
        if self.attrs:
            out["attrs"] = [{"key": k, "value": v} for k, v in self.attrs]
        if self.children:
            out["children"] = [c.to_dict() for c in self.children]
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TreeNode:
        return cls(
            kind=data["kind"],
            name=data.get("name"),
            attrs=[(a["key"], a.get("value")) for a in data.get("attrs") or []],
            children=[cls.from_dict(c) for c in data.get("children") or []],
        )


# ---- Cons lists (the shape fold rules walk) ----

LIST_KIND = "list"
NIL_KIND = "nil"


def cons_list(items: Iterable[TreeNode]) -> TreeNode:
    """Build list(head, list(head, ... nil)) from a sequence of trees."""
    result = TreeNode(kind=NIL_KIND)
    for item in reversed(list(items)):
        result = TreeNode(kind=LIST_KIND, children=[item, result])
    return result


def from_cons_list(tree: TreeNode) -> list[TreeNode]:
    """Flatten a cons list back into a Python list.

    Stops at the first node that is not a two-child ``list`` cell; a trailing
    non-``nil`` node is kept as the last element.
    """
    items: list[TreeNode] = []
    current = tree
    while current.kind == LIST_KIND and len(current.children) == 2:
        items.append(current.children[0])
        current = current.children[1]
    if current.kind != NIL_KIND:
        items.append(current)
    return items
