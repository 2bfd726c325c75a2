"""Internal road graph construction and caching."""

from .builder import (
    GraphParameters,
    PickupHistorySource,
    build_crowd_sourced_graph,
    build_graph_for_points,
    build_lattice_graph,
)
from .cache import GraphCache, graph_cache
from .models import GraphAssembly, GraphEdge, GraphNode, NodeKind, RoadGraph

__all__ = [
    "GraphAssembly",
    "GraphCache",
    "GraphEdge",
    "GraphNode",
    "GraphParameters",
    "NodeKind",
    "PickupHistorySource",
    "RoadGraph",
    "build_crowd_sourced_graph",
    "build_graph_for_points",
    "build_lattice_graph",
    "graph_cache",
]
