"""Parser for YAML mapping-rule documents.

A document has three top-level keys::

    metadata:              # name, version, source_ontology, ...
    constants:             # free-form mapping, carried through untouched
    transformation_steps:  # nested steps / substeps

Steps are interpreted by name. A few recognized step names produce
operations directly; any other step with ``substeps`` is expanded by
recursing into them, and any other leaf step contributes nothing.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from mtt_graph.dsl.expr_parser import CURRENT_DATE, ExpressionParser
from mtt_graph.dsl.types import (
    AggregateFunction,
    AggregateOp,
    CreateNodeOp,
    DSLMetadata,
    DSLOperation,
    DSLProgram,
    MatchOp,
    NodePattern,
    SetPropertyOp,
)
from mtt_graph.errors import DSLSyntaxError
from mtt_graph.mtt.types import (
    BinaryOp,
    Expr,
    FunctionCall,
    Literal,
    PropertyAccess,
    Variable,
)

logger = logging.getLogger(__name__)

PATH_PREFIX = "$."
TYPE_TARGET = "@type"
AGGREGATE_KINDS = ("sum", "count", "avg", "min", "max")

# Calculation names with a fixed lowering
CALCULATE_CO2 = "calculate_co2_emission"
DETERMINE_SCOPE = "determine_scope"


def _mapping(value: Any, what: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise DSLSyntaxError(f"DSL: {what} must be a mapping, got {type(value).__name__}")
    return value


def _entries(value: Any, what: str) -> list[Any]:
    """A list-valued key; a missing or empty value reads as no entries."""
    if not value:
        return []
    if not isinstance(value, list):
        raise DSLSyntaxError(f"DSL: {what} must be a list, got {type(value).__name__}")
    return value


class DSLParser:
    """Parses mapping-rule documents into a DSLProgram."""

    def __init__(self, expr_parser: ExpressionParser | None = None) -> None:
        self._expr_parser = expr_parser or ExpressionParser()

    # ---- Public API ----

    def parse_file(self, path: str | Path) -> DSLProgram:
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
        return self.parse(text)

    def parse(self, text: str) -> DSLProgram:
        try:
            doc = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise DSLSyntaxError(f"DSL: invalid YAML: {e}") from e
        if doc is None:
            doc = {}
        if not isinstance(doc, dict):
            raise DSLSyntaxError(
                f"DSL: document must be a mapping, got {type(doc).__name__}"
            )
        constants = _mapping(doc.get("constants") or {}, "constants")
        program = DSLProgram(
            metadata=self._parse_metadata(_mapping(doc.get("metadata") or {}, "metadata")),
            constants=constants,
            operations=self._parse_steps(
                _entries(doc.get("transformation_steps"), "transformation_steps"), constants,
            ),
        )
        logger.debug(
            "parsed DSL program '%s' with %d operations",
            program.metadata.name, len(program.operations),
        )
        return program

    # ---- Sections ----

    def _parse_metadata(self, metadata: dict[str, Any]) -> DSLMetadata:
        return DSLMetadata(
            name=metadata.get("name") or "Unnamed",
            version=str(metadata.get("version") or "1.0"),
            source_ontology=metadata.get("source_ontology") or "",
            target_ontology=metadata.get("target_ontology") or "",
            description=metadata.get("description") or "",
        )

    def _parse_steps(self, steps: list[Any], constants: dict[str, Any]) -> list[DSLOperation]:
        operations: list[DSLOperation] = []
        for step in steps:
            operations.extend(self._parse_step(step, constants))
        return operations

    def _parse_step(self, step: Any, constants: dict[str, Any]) -> list[DSLOperation]:
        step = _mapping(step, "step")
        name = step.get("name")
        if name == "transform_activities_to_emissions":
            return self._parse_activity_transform(step)
        elif name == "calculate_aggregations":
            return self._parse_aggregations(step)
        elif name == "generate_report_metadata":
            return self._parse_report_metadata(step)
        elif step.get("substeps"):
            return self._parse_steps(_entries(step["substeps"], "substeps"), constants)
        return []

    # ---- Recognized steps ----

    def _parse_activity_transform(self, step: dict[str, Any]) -> list[DSLOperation]:
        variable = "activity"
        match = MatchOp(
            pattern=NodePattern(
                variable=variable,
                node_type=step.get("node_type") or "ManufacturingActivity",
                properties=dict(_mapping(step.get("properties") or {}, "properties")),
            ),
            variable=variable,
        )
        if step.get("condition") is not None:
            match.condition = self.parse_expression_text(str(step["condition"]))
        for substep in _entries(step.get("substeps"), "substeps"):
            substep = _mapping(substep, "substep")
            if substep.get("name") == "transform_energy_to_emission" and substep.get("mapping"):
                match.body.extend(self._parse_mappings(_entries(substep["mapping"], "mapping"), variable))
        return [match]

    def _parse_mappings(self, mappings: list[Any], variable: str) -> list[DSLOperation]:
        operations: list[DSLOperation] = []
        for mapping in mappings:
            mapping = _mapping(mapping, "mapping entry")
            target = mapping.get("target")
            if target == TYPE_TARGET:
                operations.append(CreateNodeOp(
                    node_type=mapping.get("value") or "Emission",
                    id=FunctionCall(
                        name="concat",
                        args=[Literal("emission_"), FunctionCall(name="name", args=[Variable(variable)])],
                    ),
                ))
            elif mapping.get("calculation"):
                operations.append(SetPropertyOp(
                    target="emission",
                    key=target,
                    value=self._parse_calculation(mapping["calculation"]),
                ))
            elif mapping.get("source") is not None:
                operations.append(SetPropertyOp(
                    target="emission",
                    key=target,
                    value=self.parse_value(mapping["source"]),
                ))
        return operations

    def _parse_calculation(self, calculation: Any) -> Expr:
        if calculation == CALCULATE_CO2:
            return BinaryOp(
                op="*",
                left=PropertyAccess(obj=Variable("energy"), key="amount"),
                right=Variable("emission_factor"),
            )
        elif calculation == DETERMINE_SCOPE:
            return Literal(1)
        elif isinstance(calculation, str):
            return self.parse_expression_text(calculation)
        return self.parse_value(calculation)

    def _parse_aggregations(self, step: dict[str, Any]) -> list[DSLOperation]:
        operations: list[DSLOperation] = []
        for agg in _entries(step.get("aggregations"), "aggregations"):
            agg = _mapping(agg, "aggregation")
            aggregate = _mapping(agg.get("aggregate") or {}, "aggregate")
            operations.append(AggregateOp(
                variable=agg.get("target"),
                function=self._parse_aggregate_function(aggregate),
                group_by=[self.parse_value(g) for g in _entries(agg.get("group_by"), "group_by")],
            ))
        return operations

    def _parse_aggregate_function(self, aggregate: dict[str, Any]) -> AggregateFunction:
        kind = aggregate.get("function") or "sum"
        if kind not in AGGREGATE_KINDS:
            logger.warning("unknown aggregate function '%s', using sum", kind)
            kind = "sum"
        return AggregateFunction(kind=kind, field=aggregate.get("field") or "value")

    def _parse_report_metadata(self, step: dict[str, Any]) -> list[DSLOperation]:
        operations: list[DSLOperation] = []
        for mapping in _entries(step.get("mappings"), "mappings"):
            mapping = _mapping(mapping, "mapping entry")
            source = mapping.get("calculation")
            if source is None:
                source = mapping.get("function")
            operations.append(SetPropertyOp(
                target="report",
                key=mapping.get("target"),
                value=self.parse_value(source),
            ))
        return operations

    # ---- Values ----

    def parse_value(self, value: Any) -> Expr:
        """Lower a YAML scalar to an expression.

        ``$.a.b`` becomes a property-access chain, ``current_date`` a call,
        any other string a variable reference.
        """
        if isinstance(value, str):
            if value.startswith(PATH_PREFIX):
                return self._lower_path(value[len(PATH_PREFIX):])
            elif value == CURRENT_DATE:
                return FunctionCall(name=CURRENT_DATE, args=[])
            return Variable(value)
        elif isinstance(value, (bool, int, float)):
            return Literal(value)
        return Literal(None)

    def _lower_path(self, path: str) -> Expr:
        first, *rest = path.split(".")
        expr: Expr = Variable(first)
        for key in rest:
            expr = PropertyAccess(obj=expr, key=key)
        return expr

    def parse_expression_text(self, text: str) -> Expr:
        """Parse text with the full expression grammar."""
        return self._expr_parser.parse(text)
