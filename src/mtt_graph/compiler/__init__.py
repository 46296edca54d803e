"""Compilers from rule documents to MTT programs."""

from mtt_graph.compiler.generic import DSLToMTTCompiler
from mtt_graph.compiler.ghg import GHGDSLToMTTCompiler
from mtt_graph.compiler.naming import NameGenerator

__all__ = [
    "DSLToMTTCompiler",
    "GHGDSLToMTTCompiler",
    "NameGenerator",
]
