"""
Graph normalization for captured binding values.

``normalize_graph`` turns an adjacency-shaped value into a NormalizedGraph
(nodes with colors, links, weighted flag), or returns None when the value
is not a graph. None means "nothing to render", not an error.

Only bindings explicitly tagged ``{"kind": "graph", "adjacency": ...}`` are
treated as graphs by ``find_graph_bindings``; untagged arrays are left to
the caller.
"""

from dataclasses import dataclass
from typing import Any, Optional

from tracekit.models import Binding, Entry, GraphPayload

from .adjacency import GraphLink
from .colors import assign_colors
from .registry import match_shape


@dataclass(frozen=True)
class GraphNode:
    id: str
    label: str
    color: str = ""

    def to_dict(self) -> dict:
        return {"id": self.id, "label": self.label, "color": self.color}


@dataclass(frozen=True)
class NormalizedGraph:
    nodes: tuple
    links: tuple
    weighted: bool = False
    shape: str = ""

    def node_ids(self) -> list[str]:
        return [n.id for n in self.nodes]

    def to_dict(self) -> dict:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "links": [link.to_dict() for link in self.links],
            "weighted": self.weighted,
        }


def normalize_graph(value: Any) -> Optional[NormalizedGraph]:
    """Read *value* as adjacency and build the colored node/link model."""
    found = match_shape(value)
    if found is None:
        return None

    # Declared nodes first, then endpoints only seen on links
    ordered: list[str] = []
    seen: set[str] = set()
    for node_id in found.node_ids:
        if node_id not in seen:
            seen.add(node_id)
            ordered.append(node_id)
    for link in found.links:
        for node_id in (link.source, link.target):
            if node_id not in seen:
                seen.add(node_id)
                ordered.append(node_id)

    bare = [GraphNode(id=node_id, label=node_id) for node_id in ordered]
    colors = assign_colors(bare)
    nodes = tuple(GraphNode(id=n.id, label=n.label, color=colors[n.id]) for n in bare)
    links: tuple[GraphLink, ...] = found.links
    return NormalizedGraph(nodes=nodes, links=links, weighted=found.weighted, shape=found.shape)


def graph_payload_from_value(value: Any) -> Optional[GraphPayload]:
    """Return the GraphPayload if *value* is tagged ``kind == "graph"``."""
    if not isinstance(value, dict):
        return None
    if value.get("kind") != "graph" or "adjacency" not in value:
        return None
    label = value.get("label")
    raw_id = value.get("rawId")
    return GraphPayload(
        adjacency=value["adjacency"],
        label=label if isinstance(label, str) else None,
        raw_id=raw_id if isinstance(raw_id, str) else None,
    )


def find_graph_bindings(entry: Optional[Entry]) -> list[tuple[Binding, GraphPayload]]:
    """Graph-tagged bindings of *entry*, in capture order."""
    if entry is None:
        return []
    out = []
    for binding in entry.content:
        payload = graph_payload_from_value(binding.value)
        if payload is not None:
            out.append((binding, payload))
    return out


def graph_view(binding: Binding, payload: GraphPayload) -> dict:
    """Display record for one graph binding.

    ``graph`` is None when the adjacency is not a recognizable graph.
    """
    graph = normalize_graph(payload.adjacency)
    return {
        "id": binding.id,
        "label": payload.label or binding.id,
        "rawId": payload.raw_id,
        "graph": graph.to_dict() if graph is not None else None,
    }
