"""
Adjacency shape matchers.

Each matcher takes an arbitrary JSON-like value and returns an
AdjacencyMatch (declared node ids + links) when the value has its shape,
or None. Matchers never raise on odd input; an unrecognized value is just
"not this shape".

Node identity is the normalized string key from ``node_key``: the number
1, the float 1.0 and the string "1" name the same node.
"""

import math
from dataclasses import dataclass
from numbers import Real
from typing import Any, Optional


@dataclass(frozen=True)
class GraphLink:
    source: str
    target: str
    weight: Optional[float] = None

    def to_dict(self) -> dict:
        out: dict = {"source": self.source, "target": self.target}
        if self.weight is not None:
            out["weight"] = self.weight
        return out


@dataclass(frozen=True)
class AdjacencyMatch:
    """Result of one shape matcher.

    ``node_ids`` are the explicitly declared nodes (rows or keys) in order;
    link endpoints may name nodes that are not declared.
    """
    shape: str
    node_ids: tuple
    links: tuple
    weighted: bool = False


# ---- Value predicates ----

def is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def is_number(value: Any) -> bool:
    return (
        isinstance(value, Real)
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def is_target(value: Any) -> bool:
    """A bare link target: a finite number or a non-empty identifier string."""
    return is_number(value) or (isinstance(value, str) and value != "")


def is_weighted_pair(value: Any) -> bool:
    return (
        is_sequence(value)
        and len(value) == 2
        and is_target(value[0])
        and is_number(value[1])
    )


def node_key(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def row_links(source: str, neighbours: Any) -> Optional[tuple[list[GraphLink], bool]]:
    """Links out of *source* for one neighbour list.

    Returns ``(links, weighted)`` when every element is a bare target, or
    every element is a ``[target, weight]`` pair; None for mixed or
    unsupported rows. An empty row yields no links.
    """
    if not is_sequence(neighbours):
        return None
    if all(is_target(t) for t in neighbours):
        return [GraphLink(source, node_key(t)) for t in neighbours], False
    if all(is_weighted_pair(p) for p in neighbours):
        return [GraphLink(source, node_key(t), w) for t, w in neighbours], True
    return None


# ---- Matchers ----

def is_map_key(value: Any) -> bool:
    """A map-row key: any string (empty included) or a finite number."""
    return isinstance(value, str) or is_number(value)


def _is_map_row(row: Any) -> bool:
    return (
        is_sequence(row)
        and len(row) == 2
        and is_map_key(row[0])
        and (row[1] is None or is_sequence(row[1]))
    )


def match_map_adjacency(value: Any) -> Optional[AdjacencyMatch]:
    """``[[key, neighbours], ...]`` with scalar keys and list-or-null neighbours."""
    if not is_sequence(value) or not value:
        return None
    if not all(_is_map_row(row) for row in value):
        return None
    return _map_rows(value, shape="map")


def match_index_adjacency(value: Any) -> Optional[AdjacencyMatch]:
    """``[[targets...], ...]``: row k lists the neighbours of node k.

    A row contributes links only if it is uniformly bare targets or
    uniformly ``[target, weight]`` pairs. If that yields no links at all,
    every row is re-read as a flat list of bare numeric targets and the
    pairs are ignored.
    """
    if not is_sequence(value) or not value:
        return None
    if not all(is_sequence(row) for row in value):
        return None

    node_ids = tuple(str(k) for k in range(len(value)))
    links: list[GraphLink] = []
    weighted = False
    for k, row in enumerate(value):
        found = row_links(node_ids[k], row)
        if found is None:
            continue
        row_out, row_weighted = found
        links.extend(row_out)
        weighted = weighted or (row_weighted and bool(row_out))

    if not links:
        weighted = False
        for k, row in enumerate(value):
            links.extend(GraphLink(node_ids[k], node_key(t)) for t in row if is_number(t))

    return AdjacencyMatch("index", node_ids, tuple(links), weighted)


def match_mapping(value: Any) -> Optional[AdjacencyMatch]:
    """``{key: neighbours}``, read as map adjacency over its items."""
    if not isinstance(value, dict) or not value:
        return None
    rows = [[k, v] for k, v in value.items()]
    if not all(_is_map_row(row) for row in rows):
        return None
    return _map_rows(rows, shape="mapping")


def _map_rows(rows, shape: str) -> AdjacencyMatch:
    node_ids: list[str] = []
    links: list[GraphLink] = []
    weighted = False
    for key, neighbours in rows:
        source = node_key(key)
        node_ids.append(source)
        found = row_links(source, neighbours or [])
        if found is None:
            continue
        row_out, row_weighted = found
        links.extend(row_out)
        weighted = weighted or (row_weighted and bool(row_out))
    return AdjacencyMatch(shape, tuple(node_ids), tuple(links), weighted)
