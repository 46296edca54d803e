"""Tests for the generic DSL-to-MTT compiler."""

import logging
import textwrap

import pytest

from mtt_graph.codec import encode
from mtt_graph.compiler import DSLToMTTCompiler, NameGenerator
from mtt_graph.dsl import (
    AggregateFunction,
    AggregateOp,
    CreateNodeOp,
    DSLParser,
    DSLProgram,
    ExpressionParser,
    MatchOp,
    NodePattern,
    SetPropertyOp,
)
from mtt_graph.graph import Graph, GraphNode
from mtt_graph.mtt import (
    BinaryOp,
    FunctionCall,
    KindPattern,
    Literal,
    MTTEngine,
    NodeTemplate,
    PropertyAccess,
    RecursiveCall,
    Variable,
    VariablePattern,
)
from mtt_graph.tree import TreeNode, cons_list, from_cons_list

RULES = textwrap.dedent("""\
    metadata:
      name: Activity emissions
    transformation_steps:
      - name: transform_activities_to_emissions
        substeps:
          - name: transform_energy_to_emission
            mapping:
              - target: "@type"
                value: Emission
              - target: co2_amount
                calculation: "$.activity.amount * 0.5"
              - target: site
                source: $.activity.site
      - name: calculate_aggregations
        aggregations:
          - target: total_co2
            aggregate:
              function: sum
              field: co2_amount
""")


@pytest.fixture
def dsl_parser():
    expr = ExpressionParser()
    expr.build(debug=False, write_tables=False)
    return DSLParser(expr)


@pytest.fixture
def compiler():
    return DSLToMTTCompiler(NameGenerator())


@pytest.fixture
def program(dsl_parser, compiler):
    return compiler.compile(dsl_parser.parse(RULES))


def rule_named(program, name):
    return next(r for r in program.rules if r.name == name)


def graph_tree(graph):
    """The shape compiled programs expect: graph(<cons list of top-level nodes>)."""
    return TreeNode(kind="graph", children=[cons_list(encode(graph).children)])


def match_activity(*body, **properties):
    return MatchOp(
        pattern=NodePattern(variable="activity", node_type="ManufacturingActivity", properties=properties),
        variable="activity",
        body=list(body),
    )


class TestFixedRules:
    def test_initial_state(self, program):
        assert program.initial_state == "q0"

    def test_init_rule(self, program):
        init = rule_named(program, "init")
        assert init.state == "q0"
        assert init.pattern == KindPattern(kind="graph", children=[VariablePattern("nodes")])
        assert init.template == RecursiveCall(state="q", child_var="nodes")

    def test_traversal_rules(self, program):
        assert rule_named(program, "traverse_list").state == "q"
        assert rule_named(program, "traverse_nil").pattern == KindPattern(kind="nil")

    def test_empty_program(self, compiler):
        result = compiler.compile(DSLProgram())
        assert [r.name for r in result.rules] == ["init", "traverse_list", "traverse_nil"]


class TestMatch:
    def test_match_rule(self, program):
        rule = rule_named(program, "match_activity")
        assert rule.state == "q"
        assert rule.pattern == VariablePattern("activity")
        assert rule.guard == BinaryOp(
            op="==",
            left=FunctionCall(name="kind", args=[Variable("activity")]),
            right=Literal("ManufacturingActivity"),
        )
        assert rule.template.kind == "matched"
        assert rule.template.children == [RecursiveCall(state="q1", child_var="activity")]

    def test_property_constraints_and_condition(self, compiler):
        op = match_activity(site="north")
        op.condition = BinaryOp(op=">", left=PropertyAccess(obj=Variable("activity"), key="amount"), right=Literal(10))
        rule = rule_named(compiler.compile(DSLProgram(operations=[op])), "match_activity")
        guard = rule.guard
        assert guard.op == "and"
        assert guard.right == op.condition
        assert guard.left.op == "and"
        assert guard.left.right == BinaryOp(
            op="==",
            left=PropertyAccess(obj=Variable("activity"), key="site"),
            right=Literal("north"),
        )

    def test_no_constraints_means_no_guard(self, compiler):
        op = MatchOp(pattern=NodePattern(variable="n"), variable="n")
        rule = rule_named(compiler.compile(DSLProgram(operations=[op])), "match_n")
        assert rule.guard is None


class TestCreateNode:
    def test_set_properties_folded_into_create(self, program):
        rule = next(r for r in program.rules if r.name.startswith("create_Emission"))
        assert rule.state == "q1"
        assert rule.pattern == VariablePattern("activity")
        assert isinstance(rule.template, NodeTemplate)
        assert rule.template.kind == "Emission"
        assert [key for key, _ in rule.template.attrs] == ["co2_amount", "site"]

    def test_top_level_create_binds_self(self, compiler):
        op = CreateNodeOp(node_type="Report", id=Literal("r1"))
        result = compiler.compile(DSLProgram(operations=[op]))
        rule = next(r for r in result.rules if r.name.startswith("create_Report"))
        assert rule.pattern == VariablePattern("self")
        assert rule.template.name == Literal("r1")

    def test_stray_set_property_is_skipped(self, compiler, caplog):
        op = SetPropertyOp(target="report", key="generated_at", value=FunctionCall(name="current_date"))
        with caplog.at_level(logging.WARNING, logger="mtt_graph.compiler.generic"):
            result = compiler.compile(DSLProgram(operations=[op]))
        assert len(result.rules) == 3
        assert "SetPropertyOp" in caplog.text


class TestAggregate:
    def test_entry_point_published(self, program):
        state = program.entry_points["total_co2"]
        assert [r.name for r in program.rules if r.state == state] == [
            "aggregate_sum_list", "aggregate_sum_empty",
        ]

    def test_sum_fold(self, program):
        engine = MTTEngine(program)
        items = cons_list([TreeNode(kind="Emission", attrs=[("co2_amount", v)]) for v in (10, 2.5, 7)])
        result = engine.transform(program.entry_points["total_co2"], items, 0)
        assert result.kind == "result"
        assert result.get_attr("value") == 19.5

    def test_count_fold(self, compiler):
        op = AggregateOp(variable="n", function=AggregateFunction(kind="count"))
        program = compiler.compile(DSLProgram(operations=[op]))
        engine = MTTEngine(program)
        items = cons_list([TreeNode(kind="x")] * 4)
        assert engine.transform(program.entry_points["n"], items, 0).get_attr("value") == 4

    def test_other_kinds_keep_accumulator(self, compiler):
        op = AggregateOp(variable="m", function=AggregateFunction(kind="max", field="v"))
        program = compiler.compile(DSLProgram(operations=[op]))
        items = cons_list([TreeNode(kind="x", attrs=[("v", 3)])])
        assert MTTEngine(program).transform(program.entry_points["m"], items, 42).get_attr("value") == 42

    def test_aggregate_in_match_body_starts_at_zero(self, compiler):
        op = MatchOp(
            pattern=NodePattern(variable="batch", node_type="Batch"),
            variable="batch",
            body=[AggregateOp(variable="batch_total", function=AggregateFunction(kind="sum", field="v"))],
        )
        program = compiler.compile(DSLProgram(operations=[op]))
        state = program.entry_points["batch_total"]
        rule = rule_named(program, "match_batch")
        assert rule.template.children == [RecursiveCall(state=state, child_var="batch", params=[Literal(0)])]


class TestNameGeneration:
    def test_states_never_reuse_reserved_names(self, program):
        generated = set(program.states) - {"q0", "q"}
        assert generated == {"q1", "q2"}

    def test_shared_generator_keeps_states_disjoint(self, dsl_parser):
        names = NameGenerator()
        first = DSLToMTTCompiler(names).compile(dsl_parser.parse(RULES))
        second = DSLToMTTCompiler(names).compile(dsl_parser.parse(RULES))
        reserved = {"q0", "q"}
        assert (set(first.states) - reserved).isdisjoint(set(second.states) - reserved)

    def test_separate_generators_are_independent(self, dsl_parser):
        first = DSLToMTTCompiler().compile(dsl_parser.parse(RULES))
        second = DSLToMTTCompiler().compile(dsl_parser.parse(RULES))
        assert first.states == second.states

    def test_generator(self):
        names = NameGenerator(prefix="s", start=5)
        assert [names.fresh() for _ in range(3)] == ["s5", "s6", "s7"]


class TestEndToEnd:
    def test_activities_become_emissions(self, program):
        graph = Graph(nodes=[
            GraphNode(id="f1", type="Facility", properties={"name": "Plant A"}),
            GraphNode(id="a1", type="ManufacturingActivity", properties={"amount": 120, "site": "north"}),
            GraphNode(id="a2", type="ManufacturingActivity", properties={"amount": 30, "site": "south"}),
        ])
        result = MTTEngine(program).run(graph_tree(graph))
        facility, first, second = from_cons_list(result)

        assert facility.kind == "Facility"
        assert facility.name == "f1"

        assert first.kind == "matched"
        emission = first.children[0]
        assert emission.kind == "Emission"
        assert emission.name == "emission_a1"
        assert emission.get_attr("co2_amount") == 60.0
        assert emission.get_attr("site") == "north"
        assert second.children[0].get_attr("co2_amount") == 15.0

    def test_emissions_feed_the_aggregate(self, program):
        graph = Graph(nodes=[
            GraphNode(id="a1", type="ManufacturingActivity", properties={"amount": 100}),
            GraphNode(id="a2", type="ManufacturingActivity", properties={"amount": 40}),
        ])
        engine = MTTEngine(program)
        emissions = [m.children[0] for m in from_cons_list(engine.run(graph_tree(graph)))]
        total = engine.transform(program.entry_points["total_co2"], cons_list(emissions), 0)
        assert total.get_attr("value") == 70.0
