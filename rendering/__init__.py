"""Graph normalization, node coloring and the adjacency shape registry."""

from .adjacency import AdjacencyMatch, GraphLink
from .colors import assign_colors
from .graph import (
    GraphNode,
    NormalizedGraph,
    find_graph_bindings,
    graph_payload_from_value,
    graph_view,
    normalize_graph,
)
from .registry import SHAPES, match_shape

__all__ = [
    "AdjacencyMatch",
    "GraphLink",
    "GraphNode",
    "NormalizedGraph",
    "SHAPES",
    "assign_colors",
    "find_graph_bindings",
    "graph_payload_from_value",
    "graph_view",
    "match_shape",
    "normalize_graph",
]
