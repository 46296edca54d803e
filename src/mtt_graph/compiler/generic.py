"""Generic DSL-to-MTT compiler.

Lowers the flat DSL operation list into MTT rules. The compiled program walks
``graph(<cons list of nodes>)``: ``q0`` unwraps the graph root, state ``q``
visits every list element, and each match rule rewrites the elements its
guard accepts. Elements nothing matches come back unchanged.
"""

from __future__ import annotations

import logging

from mtt_graph.compiler.naming import NameGenerator
from mtt_graph.dsl.types import (
    AggregateFunction,
    AggregateOp,
    CreateNodeOp,
    DSLOperation,
    DSLProgram,
    MatchOp,
    NodePattern,
    SetPropertyOp,
)
from mtt_graph.mtt.types import (
    BinaryOp,
    Expr,
    FunctionCall,
    KindPattern,
    Literal,
    MTTProgram,
    MTTRule,
    NodeTemplate,
    PropertyAccess,
    RecursiveCall,
    Variable,
    VariablePattern,
)
from mtt_graph.tree import LIST_KIND, NIL_KIND

logger = logging.getLogger(__name__)

INITIAL_STATE = "q0"
TRAVERSE_STATE = "q"
MATCHED_KIND = "matched"
RESULT_KIND = "result"
TOP_LEVEL_VARIABLE = "self"


def _conjunction(terms: list[Expr]) -> Expr | None:
    if not terms:
        return None
    guard = terms[0]
    for term in terms[1:]:
        guard = BinaryOp(op="and", left=guard, right=term)
    return guard


class DSLToMTTCompiler:
    """Compiles a DSLProgram into an MTTProgram."""

    def __init__(self, names: NameGenerator | None = None) -> None:
        self.names = names or NameGenerator()

    def compile(self, program: DSLProgram) -> MTTProgram:
        result = MTTProgram(initial_state=INITIAL_STATE)
        result.rules.extend(self._create_initial_rules())
        rules, _ = self._compile_sequence(program.operations, None, result, top_level=True)
        result.rules.extend(rules)
        logger.info(
            "compiled %d operations into %d rules over %d states",
            len(program.operations), len(result.rules), len(result.states),
        )
        return result

    # ---- Fixed rules ----

    def _create_initial_rules(self) -> list[MTTRule]:
        return [
            MTTRule(
                name="init",
                state=INITIAL_STATE,
                pattern=KindPattern(kind="graph", children=[VariablePattern("nodes")]),
                template=RecursiveCall(state=TRAVERSE_STATE, child_var="nodes"),
            ),
            MTTRule(
                name="traverse_list",
                state=TRAVERSE_STATE,
                pattern=KindPattern(
                    kind=LIST_KIND,
                    children=[VariablePattern("head"), VariablePattern("tail")],
                ),
                template=NodeTemplate(
                    kind=LIST_KIND,
                    children=[
                        RecursiveCall(state=TRAVERSE_STATE, child_var="head"),
                        RecursiveCall(state=TRAVERSE_STATE, child_var="tail"),
                    ],
                ),
            ),
            MTTRule(
                name="traverse_nil",
                state=TRAVERSE_STATE,
                pattern=KindPattern(kind=NIL_KIND),
                template=NodeTemplate(kind=NIL_KIND),
            ),
        ]

    # ---- Operation dispatch ----

    def _compile_sequence(
        self,
        operations: list[DSLOperation],
        variable: str | None,
        program: MTTProgram,
        top_level: bool,
    ) -> tuple[list[MTTRule], list[str]]:
        """Compile operations in order.

        Returns the rules plus the entry state of each compiled operation.
        SetPropertyOps directly after a CreateNodeOp fold into its attributes.
        """
        rules: list[MTTRule] = []
        entries: list[str] = []
        pending: CreateNodeOp | None = None

        def flush() -> None:
            nonlocal pending
            if pending is not None:
                rule = self._compile_create_node(pending, variable)
                rules.append(rule)
                entries.append(rule.state)
                pending = None

        for op in operations:
            if isinstance(op, SetPropertyOp) and pending is not None:
                pending.properties[op.key] = op.value
                continue
            flush()
            if isinstance(op, CreateNodeOp):
                pending = CreateNodeOp(node_type=op.node_type, id=op.id, properties=dict(op.properties))
            elif isinstance(op, MatchOp):
                state = TRAVERSE_STATE if top_level else self.names.fresh()
                match_rules = self._compile_match(op, state, program)
                rules.extend(match_rules)
                entries.append(state)
            elif isinstance(op, AggregateOp):
                agg_rules = self._compile_aggregate(op)
                program.entry_points[op.variable or agg_rules[0].state] = agg_rules[0].state
                rules.extend(agg_rules)
                entries.append(agg_rules[0].state)
            else:
                logger.warning("Unsupported operation type: %s", type(op).__name__)
        flush()
        return rules, entries

    # ---- Match ----

    def _compile_match(self, op: MatchOp, state: str, program: MTTProgram) -> list[MTTRule]:
        body_rules, body_states = self._compile_sequence(op.body, op.variable, program, top_level=False)
        rule = MTTRule(
            name=f"match_{op.variable}",
            state=state,
            pattern=VariablePattern(op.variable),
            template=NodeTemplate(
                kind=MATCHED_KIND,
                children=[
                    RecursiveCall(state=body_state, child_var=op.variable, params=self._entry_params(body_state, program))
                    for body_state in body_states
                ],
            ),
            guard=self._compile_guard(op.pattern, op.variable, op.condition),
        )
        return [rule] + body_rules

    def _compile_guard(self, pattern: NodePattern, variable: str, condition: Expr | None) -> Expr | None:
        """Boolean expression testing the DSL node pattern against the bound node."""
        terms: list[Expr] = []
        if pattern.node_type:
            terms.append(BinaryOp(
                op="==",
                left=FunctionCall(name="kind", args=[Variable(variable)]),
                right=Literal(pattern.node_type),
            ))
        for key, value in pattern.properties.items():
            terms.append(BinaryOp(
                op="==",
                left=PropertyAccess(obj=Variable(variable), key=key),
                right=Literal(value),
            ))
        if condition is not None:
            terms.append(condition)
        return _conjunction(terms)

    def _entry_params(self, state: str, program: MTTProgram) -> list[Expr]:
        # Fold states start from a zero accumulator
        if state in program.entry_points.values():
            return [Literal(0)]
        return []

    # ---- Create node ----

    def _compile_create_node(self, op: CreateNodeOp, variable: str | None) -> MTTRule:
        state = self.names.fresh()
        return MTTRule(
            name=f"create_{op.node_type}_{state}",
            state=state,
            pattern=VariablePattern(variable or TOP_LEVEL_VARIABLE),
            template=NodeTemplate(
                kind=op.node_type,
                name=op.id,
                attrs=list(op.properties.items()),
            ),
        )

    # ---- Aggregate ----

    def _compile_aggregate(self, op: AggregateOp) -> list[MTTRule]:
        """A fold: recurse down list(head, tail) and emit the accumulator at nil."""
        state = self.names.fresh()
        func = op.function
        list_rule = MTTRule(
            name=f"aggregate_{func.kind}_list",
            state=state,
            pattern=KindPattern(
                kind=LIST_KIND,
                children=[VariablePattern("head"), VariablePattern("tail")],
            ),
            parameters=["accumulator"],
            template=RecursiveCall(
                state=state,
                child_var="tail",
                params=[self._combine(func, "head")],
            ),
        )
        empty_rule = MTTRule(
            name=f"aggregate_{func.kind}_empty",
            state=state,
            pattern=KindPattern(kind=NIL_KIND),
            parameters=["accumulator"],
            template=NodeTemplate(
                kind=RESULT_KIND,
                attrs=[("value", Variable("param0"))],
            ),
        )
        return [list_rule, empty_rule]

    def _combine(self, func: AggregateFunction, item_var: str) -> Expr:
        accumulator = Variable("param0")
        if func.kind == "sum":
            return BinaryOp(
                op="+",
                left=accumulator,
                right=PropertyAccess(obj=Variable(item_var), key=func.field or "value"),
            )
        elif func.kind == "count":
            return BinaryOp(op="+", left=accumulator, right=Literal(1))
        return accumulator
