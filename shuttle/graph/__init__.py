"""
Shuttle Graph - "The Frame"
===========================

A small, sequential state-graph engine: named nodes, fixed and conditional
edges, per-run state with pre-handlers, a step bound, and blocking/streaming
entry points.
"""

from shuttle.graph.graph import (
    END,
    START,
    CompiledGraph,
    CompileOptions,
    GraphBranch,
    GraphNode,
    StateGraph,
)
from shuttle.graph.serialization import (
    deserialize,
    is_registered,
    register_serializable_type,
    serialize,
)

__all__ = [
    "START",
    "END",
    "StateGraph",
    "GraphNode",
    "GraphBranch",
    "CompileOptions",
    "CompiledGraph",
    "register_serializable_type",
    "is_registered",
    "serialize",
    "deserialize",
]
