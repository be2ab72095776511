"""
Adjacency shape registry.

Describes the accepted adjacency interpretations as structured data, in
the order they are tried. The first matcher that accepts a value decides
how it is read; ``match_shape`` returns None when none does.

Adding a new interpretation:
    1. Write a matcher in adjacency.py returning AdjacencyMatch or None
    2. Insert an entry in SHAPES at the priority it should have
"""

from typing import Any, Optional

from .adjacency import (
    AdjacencyMatch,
    match_index_adjacency,
    match_map_adjacency,
    match_mapping,
)

SHAPES = [
    {
        "name": "map",
        "description": "List of [key, neighbours] rows. Keys are scalars; neighbours is a "
                       "list of bare targets, a list of [target, weight] pairs, or null.",
        "matcher": match_map_adjacency,
    },
    {
        "name": "index",
        "description": "List of rows where row k lists the neighbours of node k, as bare "
                       "targets or [target, weight] pairs. Falls back to reading bare "
                       "numbers only when no row yields a link.",
        "matcher": match_index_adjacency,
    },
    {
        "name": "mapping",
        "description": "Object of key -> neighbours, read as map adjacency over its items.",
        "matcher": match_mapping,
    },
]

# Build lookup dict for fast access
_SHAPE_MAP = {s["name"]: s for s in SHAPES}


def get_shape(name: str) -> Optional[dict]:
    return _SHAPE_MAP.get(name)


def match_shape(value: Any) -> Optional[AdjacencyMatch]:
    """Run the matchers in priority order; first acceptance wins."""
    for shape in SHAPES:
        found = shape["matcher"](value)
        if found is not None:
            return found
    return None
