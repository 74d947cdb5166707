"""
Application layer: the graph engine, relation queries and startup orchestration.
"""

from .graph import DependencyGraph, GraphView, RelationEntry, build_graph
from .relations import depends_on, required_by
from .startup import ComposeStartup, up

__all__ = [
    "DependencyGraph",
    "GraphView",
    "RelationEntry",
    "build_graph",
    "depends_on",
    "required_by",
    "ComposeStartup",
    "up",
]
