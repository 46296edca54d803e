"""MTT engine: matches patterns, evaluates expressions, instantiates templates."""

from __future__ import annotations

import logging
import operator
from typing import Any, Callable

from mtt_graph.errors import (
    TransformDepthExceeded,
    UnboundVariable,
    UnknownState,
    UnsupportedConstruct,
)
from mtt_graph.mtt.builtins import call_builtin
from mtt_graph.mtt.types import (
    WILDCARD_KIND,
    BinaryOp,
    Bindings,
    Expr,
    FunctionCall,
    KindPattern,
    ListTemplate,
    Literal,
    MTTProgram,
    MTTRule,
    NodeTemplate,
    PropertyAccess,
    RecursiveCall,
    TreePattern,
    TreeTemplate,
    Variable,
    VariablePattern,
    VariableTemplate,
    WildcardPattern,
)
from mtt_graph.tree import LIST_KIND, TreeNode

logger = logging.getLogger(__name__)

PARAM_PREFIX = "param"

BINARY_OPS: dict[str, Callable[[Any, Any], Any]] = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    ">": operator.gt,
    "<=": operator.le,
    ">=": operator.ge,
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.truediv,
    "and": lambda left, right: left and right,
    "or": lambda left, right: left or right,
}


def _param_index(name: str) -> int | None:
    """N for a reserved ``param<N>`` name, else None."""
    if name.startswith(PARAM_PREFIX) and name[len(PARAM_PREFIX):].isdigit():
        return int(name[len(PARAM_PREFIX):])
    return None


class MTTEngine:
    """Macro tree transducer over a loaded program.

    Rules are indexed by state and by the root kind of their pattern; rules
    whose pattern is not a kind pattern go to the ``*`` bucket of their state
    and are tried after the kind-specific ones.
    """

    def __init__(self, program: MTTProgram, max_depth: int | None = None) -> None:
        self.program = program
        self.max_depth = max_depth
        self._rules: dict[str, dict[str, list[MTTRule]]] = {}
        self._load_program(program)

    # ---- Loading ----

    def _load_program(self, program: MTTProgram) -> None:
        for rule in program.rules:
            by_kind = self._rules.setdefault(rule.state, {})
            by_kind.setdefault(rule.index_kind, []).append(rule)

    def rules_for(self, state: str, kind: str) -> list[MTTRule]:
        """Candidate rules for a node of ``kind`` in ``state``, in priority order."""
        by_kind = self._rules.get(state)
        if by_kind is None:
            raise UnknownState(state)
        candidates = list(by_kind.get(kind, []))
        if kind != WILDCARD_KIND:
            candidates.extend(by_kind.get(WILDCARD_KIND, []))
        return candidates

    # ---- Public API ----

    def transform(self, state: str, tree: TreeNode, *params: Any) -> TreeNode:
        """Rewrite ``tree`` in ``state``; params are positional and untyped."""
        return self._transform(state, tree, list(params), 0)

    def run(self, tree: TreeNode, *params: Any) -> TreeNode:
        """Rewrite ``tree`` starting from the program's initial state."""
        return self.transform(self.program.initial_state, tree, *params)

    # ---- Rewriting ----

    def _transform(self, state: str, tree: TreeNode, params: list[Any], depth: int) -> TreeNode:
        if self.max_depth is not None and depth > self.max_depth:
            raise TransformDepthExceeded(self.max_depth)

        for rule in self.rules_for(state, tree.kind):
            bindings = self.match(rule.pattern, tree)
            if bindings is None:
                continue
            if rule.guard is not None and not self.eval_expr(rule.guard, bindings, params):
                logger.debug("rule %s matched %s but its guard failed", rule.name, tree.kind)
                continue
            logger.debug("state %s: applying rule %s to %s", state, rule.name, tree.kind)
            return self._apply_template(rule.template, bindings, params, state, depth)

        # Identity default: no rule, no recursion into children
        logger.debug("state %s: no rule for %s, returning input", state, tree.kind)
        return tree

    # ---- Pattern matching ----

    def match(self, pattern: TreePattern, tree: TreeNode) -> Bindings | None:
        """Bindings for a full match of ``pattern`` against ``tree``, else None."""
        bindings: Bindings = {}
        if self._match(pattern, tree, bindings):
            return bindings
        return None

    def _match(self, pattern: TreePattern, tree: TreeNode, bindings: Bindings) -> bool:
        if isinstance(pattern, KindPattern):
            if pattern.kind != tree.kind:
                return False
            if pattern.name is not None and pattern.name != tree.name:
                return False
            if pattern.attrs:
                tree_attrs = tree.attr_dict()
                for key, value in pattern.attrs.items():
                    if key not in tree_attrs or tree_attrs[key] != value:
                        return False
            if pattern.children is not None:
                if len(pattern.children) != len(tree.children):
                    return False
                for child_pattern, child in zip(pattern.children, tree.children):
                    if not self._match(child_pattern, child, bindings):
                        return False
            return True
        elif isinstance(pattern, VariablePattern):
            bindings[pattern.name] = tree
            return True
        elif isinstance(pattern, WildcardPattern):
            return True
        else:
            raise UnsupportedConstruct(f"MTT: unknown pattern type: {type(pattern).__name__}")

    # ---- Template instantiation ----

    def _apply_template(
        self,
        template: TreeTemplate,
        bindings: Bindings,
        params: list[Any],
        state: str,
        depth: int,
    ) -> TreeNode:
        if isinstance(template, NodeTemplate):
            name = None
            if template.name is not None:
                name = self.eval_expr(template.name, bindings, params)
            return TreeNode(
                kind=template.kind,
                name=name,
                attrs=[(key, self.eval_expr(value, bindings, params)) for key, value in template.attrs],
                children=[
                    self._apply_template(child, bindings, params, state, depth)
                    for child in template.children
                ],
            )
        elif isinstance(template, VariableTemplate):
            bound = self._lookup_tree(template.name, bindings)
            return self._transform(state, bound, params, depth + 1)
        elif isinstance(template, RecursiveCall):
            child = self._lookup_tree(template.child_var, bindings)
            new_params = [self.eval_expr(p, bindings, params) for p in template.params]
            return self._transform(template.state, child, new_params, depth + 1)
        elif isinstance(template, ListTemplate):
            return TreeNode(
                kind=LIST_KIND,
                children=[
                    self._apply_template(element, bindings, params, state, depth)
                    for element in template.elements
                ],
            )
        else:
            raise UnsupportedConstruct(f"MTT: unknown template type: {type(template).__name__}")

    def _lookup_tree(self, name: str, bindings: Bindings) -> TreeNode:
        if name not in bindings:
            raise UnboundVariable(name)
        return bindings[name]

    # ---- Expression evaluation ----

    def eval_expr(self, expr: Expr, bindings: Bindings, params: list[Any]) -> Any:
        if isinstance(expr, Literal):
            return expr.value
        elif isinstance(expr, Variable):
            return self._eval_variable(expr.name, bindings, params)
        elif isinstance(expr, PropertyAccess):
            return self._eval_property(expr, bindings, params)
        elif isinstance(expr, FunctionCall):
            args = [self.eval_expr(arg, bindings, params) for arg in expr.args]
            return call_builtin(expr.name, args)
        elif isinstance(expr, BinaryOp):
            left = self.eval_expr(expr.left, bindings, params)
            right = self.eval_expr(expr.right, bindings, params)
            func = BINARY_OPS.get(expr.op)
            if func is None:
                raise UnsupportedConstruct(f"MTT: unknown operator '{expr.op}'")
            return func(left, right)
        else:
            raise UnsupportedConstruct(f"MTT: unknown expression type: {type(expr).__name__}")

    def _eval_variable(self, name: str, bindings: Bindings, params: list[Any]) -> Any:
        index = _param_index(name)
        if index is not None:
            if index >= len(params):
                raise UnboundVariable(name)
            return params[index]
        if name not in bindings:
            raise UnboundVariable(name)
        return bindings[name]

    def _eval_property(self, expr: PropertyAccess, bindings: Bindings, params: list[Any]) -> Any:
        obj = self.eval_expr(expr.obj, bindings, params)
        if isinstance(obj, TreeNode):
            # Missing attribute is not an error
            return obj.get_attr(expr.key)
        if isinstance(obj, dict):
            return obj.get(expr.key)
        return None
