"""GHG domain compiler.

Hand-wires MTT rules for the ``EnergyConsumption -> Emission`` rewrite from a
raw definition mapping::

    emission_factors:
      electricity: {factor: 0.5, unit: kg-CO2/kWh}
      natural_gas: {factor: 2.03, scope: 1}
    transformations:
      - name: aggregate_emissions

The compiled program takes a cons list of energy records in state ``q0``.
"""

from __future__ import annotations

import logging
from typing import Any

from mtt_graph.errors import DSLSyntaxError
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
    WildcardPattern,
)
from mtt_graph.tree import LIST_KIND, NIL_KIND

logger = logging.getLogger(__name__)

ENERGY_KIND = "EnergyConsumption"
EMISSION_KIND = "Emission"
REPORT_KIND = "GHGReport"
EMISSION_GROUP_KIND = "emission_group"
TYPE_GROUP_KIND = "type_group"

INITIAL_STATE = "q0"
EMIT_STATE = "emit"
AGGREGATE_STATE = "aggregate"
DIRECT_STATE = "transform"
AGGREGATE_TRANSFORMATION = "aggregate_emissions"

# kg-CO2 per unit
EMISSION_FACTORS: dict[str, float] = {
    "electricity": 0.5,
    "natural_gas": 2.03,
    "fuel_oil": 2.68,
    "diesel": 2.68,
    "gasoline": 2.31,
    "lpg": 1.51,
    "coal": 2.42,
}

SCOPE2_TYPES = ("electricity",)


def default_scope(energy_type: str) -> int:
    """Scope 2 for purchased electricity, scope 1 for fuels burned on site."""
    return 2 if energy_type in SCOPE2_TYPES else 1


def _factor_entry(energy_type: str, entry: Any) -> tuple[float, int]:
    if isinstance(entry, dict):
        factor = entry.get("factor", 0)
        scope = entry.get("scope")
    else:
        factor, scope = entry, None
    return factor, scope if scope is not None else default_scope(energy_type)


def _emission_template(source: Expr, factor: float, scope: int) -> NodeTemplate:
    """An Emission node computed from the energy record ``source`` evaluates to."""

    def copy(key: str) -> tuple[str, Expr]:
        return (key, PropertyAccess(obj=source, key=key))

    return NodeTemplate(
        kind=EMISSION_KIND,
        name=FunctionCall(name="concat", args=[Literal("emission_"), FunctionCall(name="name", args=[source])]),
        attrs=[
            copy("facility_id"),
            copy("energy_type"),
            copy("amount"),
            copy("unit"),
            ("emission_factor", Literal(factor)),
            ("co2_amount", BinaryOp(op="*", left=PropertyAccess(obj=source, key="amount"), right=Literal(factor))),
            ("scope", Literal(scope)),
            copy("year"),
            copy("month"),
        ],
    )


class GHGDSLToMTTCompiler:
    """Compiles GHG emission-factor definitions into MTT programs."""

    def compile(self, definition: dict[str, Any]) -> MTTProgram:
        factors = definition.get("emission_factors") or {}
        program = MTTProgram(initial_state=INITIAL_STATE)
        program.rules.extend(self._create_walk_rules())
        program.rules.extend(self._create_emission_rules(factors))

        for transformation in definition.get("transformations") or []:
            if not isinstance(transformation, dict):
                raise DSLSyntaxError(
                    f"DSL: transformation must be a mapping, got {type(transformation).__name__}"
                )
            name = transformation.get("name")
            if name == AGGREGATE_TRANSFORMATION:
                program.rules.extend(self._create_aggregation_rules())
                program.entry_points[AGGREGATE_TRANSFORMATION] = AGGREGATE_STATE
            else:
                logger.warning("Unsupported GHG transformation: %s", name)

        logger.info("compiled %d emission factors into %d rules", len(factors), len(program.rules))
        return program

    def _create_walk_rules(self) -> list[MTTRule]:
        return [
            MTTRule(
                name="walk_list",
                state=INITIAL_STATE,
                pattern=KindPattern(
                    kind=LIST_KIND,
                    children=[VariablePattern("head"), VariablePattern("tail")],
                ),
                template=NodeTemplate(
                    kind=LIST_KIND,
                    children=[
                        RecursiveCall(state=EMIT_STATE, child_var="head", params=[Variable("head")]),
                        RecursiveCall(state=INITIAL_STATE, child_var="tail"),
                    ],
                ),
            ),
            MTTRule(
                name="walk_nil",
                state=INITIAL_STATE,
                pattern=KindPattern(kind=NIL_KIND),
                template=NodeTemplate(kind=NIL_KIND),
            ),
        ]

    def _create_emission_rules(self, factors: dict[str, Any]) -> list[MTTRule]:
        rules: list[MTTRule] = []
        for energy_type, entry in factors.items():
            factor, scope = _factor_entry(energy_type, entry)
            rules.append(MTTRule(
                name=f"emit_{energy_type}",
                state=EMIT_STATE,
                pattern=KindPattern(kind=ENERGY_KIND, attrs={"energy_type": energy_type}),
                parameters=["energy"],
                template=_emission_template(Variable("param0"), factor, scope),
            ))

        # Unknown energy types still produce an Emission, with zero CO2
        rules.append(MTTRule(
            name="emit_unknown",
            state=EMIT_STATE,
            pattern=KindPattern(kind=ENERGY_KIND),
            parameters=["energy"],
            template=_emission_template(Variable("param0"), 0, 1),
        ))
        return rules

    def _create_aggregation_rules(self) -> list[MTTRule]:
        return [
            MTTRule(
                name="aggregate_emission",
                state=AGGREGATE_STATE,
                pattern=KindPattern(
                    kind=LIST_KIND,
                    children=[VariablePattern("head"), VariablePattern("tail")],
                ),
                parameters=["accumulator"],
                guard=BinaryOp(
                    op="==",
                    left=FunctionCall(name="kind", args=[Variable("head")]),
                    right=Literal(EMISSION_KIND),
                ),
                template=RecursiveCall(
                    state=AGGREGATE_STATE,
                    child_var="tail",
                    params=[BinaryOp(
                        op="+",
                        left=Variable("param0"),
                        right=PropertyAccess(obj=Variable("head"), key="co2_amount"),
                    )],
                ),
            ),
            MTTRule(
                name="aggregate_skip",
                state=AGGREGATE_STATE,
                pattern=KindPattern(
                    kind=LIST_KIND,
                    children=[WildcardPattern(), VariablePattern("tail")],
                ),
                parameters=["accumulator"],
                template=RecursiveCall(state=AGGREGATE_STATE, child_var="tail", params=[Variable("param0")]),
            ),
            MTTRule(
                name="aggregate_report",
                state=AGGREGATE_STATE,
                pattern=KindPattern(kind=NIL_KIND),
                parameters=["accumulator"],
                template=NodeTemplate(kind=REPORT_KIND, attrs=[("total_co2", Variable("param0"))]),
            ),
        ]

    def create_direct_transform_program(self, emission_factors: dict[str, Any] | None = None) -> MTTProgram:
        """Single-state program over a nested-encoding tree.

        Groups of energy records become an ``emission_group`` marker and each
        EnergyConsumption node becomes an Emission, using the built-in factor
        table unless ``emission_factors`` is given. Anything else passes
        through unchanged.
        """
        if emission_factors is None:
            emission_factors = EMISSION_FACTORS
        rules = [
            MTTRule(
                name="transform_energy_group",
                state=DIRECT_STATE,
                pattern=KindPattern(kind=TYPE_GROUP_KIND, attrs={"type": ENERGY_KIND}),
                template=NodeTemplate(kind=EMISSION_GROUP_KIND, attrs=[("type", Literal(EMISSION_KIND))]),
            ),
        ]
        is_energy = BinaryOp(
            op="==",
            left=FunctionCall(name="kind", args=[Variable("energy")]),
            right=Literal(ENERGY_KIND),
        )
        for energy_type, entry in emission_factors.items():
            factor, scope = _factor_entry(energy_type, entry)
            rules.append(MTTRule(
                name=f"transform_{energy_type}",
                state=DIRECT_STATE,
                pattern=VariablePattern("energy"),
                guard=BinaryOp(
                    op="and",
                    left=is_energy,
                    right=BinaryOp(
                        op="==",
                        left=PropertyAccess(obj=Variable("energy"), key="energy_type"),
                        right=Literal(energy_type),
                    ),
                ),
                template=_emission_template(Variable("energy"), factor, scope),
            ))
        rules.append(MTTRule(
            name="transform_energy_node",
            state=DIRECT_STATE,
            pattern=VariablePattern("energy"),
            guard=is_energy,
            template=_emission_template(Variable("energy"), 0, 1),
        ))
        return MTTProgram(rules=rules, initial_state=DIRECT_STATE)
