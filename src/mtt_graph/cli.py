"""Command-line entry point: mtt-graph.

Usage::

    mtt-graph compile RULES.yaml [--ghg]
    mtt-graph encode GRAPH.json [--policy P] [--root ID]
    mtt-graph transform RULES.yaml GRAPH.json [--policy P] [--ghg]

Exit status is 0 on success and 1 on a transducer, DSL, configuration or
missing-file error.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Sequence
from typing import Any

import yaml

from mtt_graph.codec import GRAPH_KIND, EncodingPolicy, GraphTreeCodec
from mtt_graph.compiler import DSLToMTTCompiler, GHGDSLToMTTCompiler
from mtt_graph.config import MTTConfig, load_config
from mtt_graph.dsl import DSLParser
from mtt_graph.errors import DSLSyntaxError, MTTError
from mtt_graph.graph import Graph
from mtt_graph.mtt import MTTEngine, MTTProgram
from mtt_graph.tree import TreeNode, cons_list

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1


def _configure_logging(verbosity: int, config: MTTConfig) -> None:
    """0 -> configured level, 1 -> INFO, 2+ -> DEBUG."""
    level = config.level
    if verbosity == 1:
        level = min(level, logging.INFO)
    elif verbosity >= 2:
        level = logging.DEBUG

    root = logging.getLogger("mtt_graph")
    root.setLevel(level)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        root.addHandler(handler)


# ---- Loading ----


def _load_ghg_definition(path: str) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise DSLSyntaxError(f"DSL: invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise DSLSyntaxError(f"DSL: {path} must contain a mapping")
    return data


def _compile(rules_path: str, ghg: bool) -> MTTProgram:
    if ghg:
        return GHGDSLToMTTCompiler().compile(_load_ghg_definition(rules_path))
    return DSLToMTTCompiler().compile(DSLParser().parse_file(rules_path))


def _load_graph(path: str) -> Graph:
    with open(path, "r", encoding="utf-8") as f:
        return Graph.from_dict(json.load(f))


def format_program(program: MTTProgram) -> str:
    """One line per rule: state, rule name, pattern root and parameters."""
    lines = [f"initial state: {program.initial_state}"]
    for rule in program.rules:
        params = f"({', '.join(rule.parameters)})" if rule.parameters else ""
        guard = " [guarded]" if rule.guard is not None else ""
        lines.append(f"  {rule.state:<8} {rule.index_kind:<20} {rule.name}{params}{guard}")
    for name, state in program.entry_points.items():
        lines.append(f"entry point: {name} -> {state}")
    return "\n".join(lines)


def _print_tree(tree: TreeNode) -> None:
    print(json.dumps(tree.to_dict(), indent=2, default=str))


# ---- Commands ----


def cmd_compile(args: argparse.Namespace, config: MTTConfig) -> int:
    program = _compile(args.rules, args.ghg)
    print(format_program(program))
    return EXIT_OK


def cmd_encode(args: argparse.Namespace, config: MTTConfig) -> int:
    graph = _load_graph(args.graph)
    tree = GraphTreeCodec().encode(
        graph,
        policy=args.policy or config.policy,
        root_id=args.root or config.root_id,
    )
    _print_tree(tree)
    return EXIT_OK


def cmd_transform(args: argparse.Namespace, config: MTTConfig) -> int:
    program = _compile(args.rules, args.ghg)
    graph = _load_graph(args.graph)
    encoded = GraphTreeCodec().encode(
        graph,
        policy=args.policy or config.policy,
        root_id=config.root_id,
    )
    # Compiled programs walk the top-level nodes as a cons list; canonical-root
    # trees have a single top-level node
    items = encoded.children if encoded.kind == GRAPH_KIND else [encoded]
    nodes = cons_list(items)
    tree = nodes if args.ghg else TreeNode(kind=GRAPH_KIND, children=[nodes])

    logger.info("running %d rules over %d top-level nodes", len(program.rules), len(items))

    result = MTTEngine(program, max_depth=config.max_depth).run(tree)
    _print_tree(result)
    return EXIT_OK


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mtt-graph",
        description="Compile mapping rules to macro tree transducers and run them over graphs",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase log verbosity (repeatable)")
    parser.add_argument("--config", help="YAML configuration file")
    sub = parser.add_subparsers(dest="command")

    p_compile = sub.add_parser("compile", help="Compile a rule document and print the rule table")
    p_compile.add_argument("rules", help="YAML rule document")
    p_compile.add_argument("--ghg", action="store_true", help="Treat the document as a GHG emission-factor definition")
    p_compile.set_defaults(func=cmd_compile)

    policies = [p.value for p in EncodingPolicy]

    p_encode = sub.add_parser("encode", help="Encode a JSON graph as a tree")
    p_encode.add_argument("graph", help="JSON graph file")
    p_encode.add_argument("--policy", choices=policies, help="Encoding policy (default: from config, else star)")
    p_encode.add_argument("--root", help="Root node id for canonical-root encoding")
    p_encode.set_defaults(func=cmd_encode)

    p_transform = sub.add_parser("transform", help="Run compiled rules over an encoded graph")
    p_transform.add_argument("rules", help="YAML rule document")
    p_transform.add_argument("graph", help="JSON graph file")
    p_transform.add_argument("--policy", choices=policies, help="Encoding policy (default: from config, else star)")
    p_transform.add_argument("--ghg", action="store_true", help="Treat the rules as a GHG emission-factor definition")
    p_transform.set_defaults(func=cmd_transform)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help(sys.stderr)
        return EXIT_ERROR

    try:
        config = load_config(args.config) if args.config else MTTConfig()
        _configure_logging(args.verbose, config)
        return args.func(args, config)
    except FileNotFoundError as e:
        print(f"Error: {e.filename} not found", file=sys.stderr)
        return EXIT_ERROR
    except (MTTError, ValueError) as e:
        # ValueError: bad config or malformed JSON
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
