"""Dependency subgraph structures and the initial graph layout.

A subgraph arrives from the graph backend as a flat list of nodes (root first)
plus parent -> child edges. ``structured_graph_output`` assigns deterministic
starting coordinates so the same subgraph always renders in the same place
before any force-directed relaxation runs.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Iterable, List, Optional


COLOR_TAGS = ("default", "affected", "ancestor")

LAYOUT_COLUMN_X = 200
LAYOUT_SPACING = 20


@dataclass(frozen=True)
class GraphNode:
    """A package in the dependency graph, identified by its package coordinate."""

    id: str
    name: str = ""
    group: Optional[str] = None
    color_tag: str = "default"
    x: Optional[float] = None
    y: Optional[float] = None

    @property
    def label(self) -> str:
        return self.name or self.id


@dataclass(frozen=True)
class GraphEdge:
    """A directed parent -> child dependency relationship."""

    source: str
    target: str


@dataclass(frozen=True)
class Subgraph:
    nodes: tuple[GraphNode, ...] = ()
    edges: tuple[GraphEdge, ...] = ()

    @property
    def root(self) -> Optional[GraphNode]:
        return self.nodes[0] if self.nodes else None

    def find_node(self, node_id: str) -> Optional[GraphNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def edges_from(self, source_id: str) -> Iterable[GraphEdge]:
        for edge in self.edges:
            if edge.source == source_id:
                yield edge


def _column(nodes: List[GraphNode], x: float) -> List[GraphNode]:
    offset = ((len(nodes) - 1) * LAYOUT_SPACING) / 2
    return [replace(node, x=x, y=index * LAYOUT_SPACING - offset) for index, node in enumerate(nodes)]


def structured_graph_output(subgraph: Subgraph) -> Subgraph:
    """Return ``subgraph`` with starting coordinates assigned.

    The root is pinned at the origin. The remaining nodes alternate between a
    left column (x = -200) and a right column (x = +200) by input position;
    each column is spaced evenly and centered on y = 0 independently of the
    other. Nodes are returned as root, left column, right column.
    """

    if not subgraph.nodes:
        return subgraph

    root = replace(subgraph.nodes[0], x=0, y=0)
    rest = list(subgraph.nodes[1:])
    left = _column(rest[0::2], -LAYOUT_COLUMN_X)
    right = _column(rest[1::2], LAYOUT_COLUMN_X)
    return Subgraph(nodes=tuple([root, *left, *right]), edges=subgraph.edges)


def subgraph_from_dict(payload: dict[str, Any]) -> Subgraph:
    """Build a ``Subgraph`` from the backend's ``{nodes, links|edges}`` payload."""

    nodes = []
    for raw in payload.get("nodes", []) or []:
        if not isinstance(raw, dict) or raw.get("id") is None:
            continue
        tag = raw.get("color_tag") or raw.get("colorTag") or "default"
        nodes.append(
            GraphNode(
                id=str(raw["id"]),
                name=str(raw.get("name") or ""),
                group=raw.get("group"),
                color_tag=tag if tag in COLOR_TAGS else "default",
            )
        )

    edges = []
    for raw in payload.get("edges") or payload.get("links") or []:
        if not isinstance(raw, dict):
            continue
        source, target = raw.get("source"), raw.get("target")
        if source is None or target is None:
            continue
        edges.append(GraphEdge(source=str(source), target=str(target)))

    return Subgraph(nodes=tuple(nodes), edges=tuple(edges))


def subgraph_as_dict(subgraph: Subgraph) -> dict[str, Any]:
    return {
        "nodes": [
            {
                "id": node.id,
                "name": node.name,
                "group": node.group,
                "color_tag": node.color_tag,
                "x": node.x,
                "y": node.y,
            }
            for node in subgraph.nodes
        ],
        "edges": [{"source": edge.source, "target": edge.target} for edge in subgraph.edges],
    }


def highlight_nodes(subgraph: Subgraph, node_ids: Iterable[str]) -> Subgraph:
    """Mark ``node_ids`` as affected; other nodes keep the tag the backend assigned."""

    wanted = set(node_ids)
    if not wanted:
        return subgraph
    nodes = tuple(
        replace(node, color_tag="affected") if node.id in wanted else node for node in subgraph.nodes
    )
    return Subgraph(nodes=nodes, edges=subgraph.edges)
