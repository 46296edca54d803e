"""mtt_graph - Macro tree transducers over labeled property graphs."""

from mtt_graph.codec import EncodingPolicy, GraphTreeCodec, decode, encode
from mtt_graph.compiler import DSLToMTTCompiler, GHGDSLToMTTCompiler, NameGenerator
from mtt_graph.config import MTTConfig, load_config
from mtt_graph.dsl import DSLParser, DSLProgram
from mtt_graph.errors import (
    DSLSyntaxError,
    EncodingPolicyError,
    MTTError,
    TransformDepthExceeded,
    UnboundVariable,
    UnknownState,
    UnsupportedConstruct,
)
from mtt_graph.graph import Graph, GraphEdge, GraphNode
from mtt_graph.mtt import MTTEngine, MTTProgram, MTTRule
from mtt_graph.tree import TreeNode, cons_list, from_cons_list

__all__ = [
    # Data model
    "TreeNode",
    "cons_list",
    "from_cons_list",
    "Graph",
    "GraphNode",
    "GraphEdge",
    # Codec
    "EncodingPolicy",
    "GraphTreeCodec",
    "encode",
    "decode",
    # Transducer
    "MTTEngine",
    "MTTProgram",
    "MTTRule",
    # DSL and compilers
    "DSLParser",
    "DSLProgram",
    "DSLToMTTCompiler",
    "GHGDSLToMTTCompiler",
    "NameGenerator",
    # Configuration
    "MTTConfig",
    "load_config",
    # Errors
    "MTTError",
    "UnknownState",
    "UnboundVariable",
    "UnsupportedConstruct",
    "EncodingPolicyError",
    "TransformDepthExceeded",
    "DSLSyntaxError",
]

__version__ = "0.1.0"
