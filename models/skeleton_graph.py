from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import numpy as np

from .connectivity import Connectivity, ResidualLink
from .features import FeatureSet, Pixel, effective_neighbors
from .links import LinkSet

logger = logging.getLogger(__name__)


class EdgeKind(str, Enum):
    DIRECT = "direct"  # two touching vertex pixels, no link body
    LINKED = "linked"  # one link joining two distinct vertices
    LOOP = "loop"  # one link back to its own vertex, or the arc closing a vertex-free loop
    EXTRA = "extra"  # settled by secondary heuristics (residual links, other corner-cut arcs)


@dataclass(slots=True)
class GraphNode:
    """Graph vertex that stores its coordinate and cached degree."""

    id: int
    x: int
    y: int
    kind: str = "endpoint"
    degree: int = 0

    @property
    def pixel(self) -> Pixel:
        return (self.y, self.x)

    def to_dict(self) -> dict[str, int | str]:
        return {"id": self.id, "x": self.x, "y": self.y, "kind": self.kind, "degree": self.degree}


@dataclass(slots=True)
class GraphEdge:
    """Edge between two vertices with its raw, not yet ordered, pixel chain.

    ``points`` holds (row, col) pixels: the ``u`` coordinate, the link pixels in
    scan order, then the ``v`` coordinate.
    """

    id: int
    u: int
    v: int
    kind: EdgeKind
    points: tuple[Pixel, ...]
    link_id: int | None = None

    @property
    def is_closed(self) -> bool:
        return self.u == self.v

    @property
    def interior(self) -> tuple[Pixel, ...]:
        return self.points[1:-1]

    def other(self, node_id: int) -> int:
        if node_id == self.u:
            return self.v
        if node_id == self.v:
            return self.u
        raise ValueError(f"Node {node_id} is not incident to edge {self.id}.")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "source": self.u,
            "target": self.v,
            "kind": self.kind.value,
            "link": self.link_id,
            "pixels": len(self.points),
        }


@dataclass(slots=True)
class SkeletonGraph:
    """Vertex / edge structure assembled from a skeleton bitmap."""

    nodes: dict[int, GraphNode]
    edges: dict[int, GraphEdge]
    adjacency: dict[int, dict[int, list[int]]]  # neighbor -> edge_ids

    def copy(self) -> "SkeletonGraph":
        return SkeletonGraph(
            nodes={
                node_id: GraphNode(node.id, node.x, node.y, node.kind, node.degree)
                for node_id, node in self.nodes.items()
            },
            edges={
                edge_id: GraphEdge(edge.id, edge.u, edge.v, edge.kind, edge.points, edge.link_id)
                for edge_id, edge in self.edges.items()
            },
            adjacency={
                node_id: {nbr: list(edge_ids) for nbr, edge_ids in neighbors.items()}
                for node_id, neighbors in self.adjacency.items()
            },
        )

    def refresh_degrees(self) -> None:
        for node in self.nodes.values():
            node.degree = 0
        for edge in self.edges.values():
            if edge.u == edge.v:
                # A single-point edge carries no body, so it adds no degree.
                if edge.u in self.nodes and len(edge.points) > 2:
                    self.nodes[edge.u].degree += 2
                continue
            if edge.u in self.nodes:
                self.nodes[edge.u].degree += 1
            if edge.v in self.nodes:
                self.nodes[edge.v].degree += 1

    def degree(self, node_id: int) -> int:
        node = self.nodes.get(node_id)
        return node.degree if node else 0

    def edges_of_kind(self, kind: EdgeKind) -> list[GraphEdge]:
        return [self.edges[edge_id] for edge_id in sorted(self.edges) if self.edges[edge_id].kind is kind]

    def kind_counts(self) -> dict[str, int]:
        counts = {kind.value: 0 for kind in EdgeKind}
        for edge in self.edges.values():
            counts[edge.kind.value] += 1
        return counts

    def to_payload(self) -> dict[str, list[dict[str, object]]]:
        node_items = [self.nodes[nid].to_dict() for nid in sorted(self.nodes)]
        edge_items = [self.edges[edge_id].to_dict() for edge_id in sorted(self.edges)]
        return {"nodes": node_items, "edges": edge_items}

    def to_json(self, *, indent: int = 2) -> str:
        return json.dumps(self.to_payload(), indent=indent)

    def save(self, output_path: Path) -> Path:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(self.to_json())
        return output_path


def assemble_edges(
    mask: np.ndarray,
    features: FeatureSet,
    links: LinkSet,
    connectivity: Connectivity,
) -> SkeletonGraph:
    """Merge vertex adjacency and resolved link incidences into the final edge list.

    Edge order: direct edges by vertex pair, then link-backed edges by link id.
    Every link pixel lands in exactly one edge; vertex pixels may be shared.
    """

    mask = np.asarray(mask, dtype=bool)
    nodes = {
        vertex.id: GraphNode(id=vertex.id, x=vertex.col, y=vertex.row, kind=vertex.kind.value)
        for vertex in features.vertices.values()
    }
    coords = {vertex.id: vertex.pixel for vertex in features.vertices.values()}

    entries: list[tuple[int, int, EdgeKind, tuple[Pixel, ...], int | None]] = []
    connected: set[tuple[int, int]] = set()

    for u, v in _direct_pairs(mask, features):
        entries.append((u, v, EdgeKind.DIRECT, (coords[u], coords[v]), None))
        connected.add((u, v))

    link_entries: dict[int, list[tuple[int, int, EdgeKind, tuple[Pixel, ...], int | None]]] = {}
    for link_id, incidence in connectivity.incidences.items():
        u, v = incidence.u, incidence.v
        if incidence.is_loop:
            kind = EdgeKind.LOOP
        elif u in features.synthetic_ids and v in features.synthetic_ids:
            kind = EdgeKind.EXTRA
        else:
            kind = EdgeKind.LINKED
        chain = (coords[u], *links.links[link_id].pixels, coords[v])
        link_entries[link_id] = [(u, v, kind, chain, link_id)]
        connected.add(_pair_key(u, v))

    for link_id in sorted(connectivity.residual):
        residual = connectivity.residual[link_id]
        ends = _settle_residual(residual, coords, connected)
        u, v = _pair_key(*ends)
        chain = (coords[u], *links.links[link_id].pixels, coords[v])
        settled = [(u, v, EdgeKind.EXTRA, chain, link_id)]
        connected.add((u, v))
        logger.info("Residual link %d settled as extra edge (%d, %d)", link_id, u, v)

        # Other vertices touching an end are tied to the vertex settled at that end.
        for anchor, candidates in zip(ends, residual.candidates):
            for vertex_id in candidates:
                key = _pair_key(anchor, vertex_id)
                if vertex_id in ends or key in connected:
                    continue
                settled.append((key[0], key[1], EdgeKind.EXTRA, (coords[key[0]], coords[key[1]]), link_id))
                connected.add(key)
                logger.info("Residual link %d tied leftover vertex %d to %d", link_id, vertex_id, anchor)
        link_entries[link_id] = settled

    _close_corner_loops(link_entries, features.corner_groups)
    for link_id in sorted(link_entries):
        entries.extend(link_entries[link_id])

    covered = {vertex_id for u, v, *_ in entries for vertex_id in (u, v)}
    for vertex_id in sorted(set(coords) - covered):
        # Lone dots (and vertices left over by ambiguous links) become point edges.
        entries.append((vertex_id, vertex_id, EdgeKind.DIRECT, (coords[vertex_id],) * 2, None))

    edges: dict[int, GraphEdge] = {}
    adjacency: dict[int, dict[int, list[int]]] = {node_id: {} for node_id in nodes}
    for edge_id, (u, v, kind, chain, link_id) in enumerate(entries):
        edges[edge_id] = GraphEdge(id=edge_id, u=u, v=v, kind=kind, points=chain, link_id=link_id)
        adjacency[u].setdefault(v, []).append(edge_id)
        if u != v:
            adjacency[v].setdefault(u, []).append(edge_id)

    graph = SkeletonGraph(nodes=nodes, edges=edges, adjacency=adjacency)
    graph.refresh_degrees()
    logger.debug("Assembled %d edges: %s", len(edges), graph.kind_counts())
    return graph


def _pair_key(u: int, v: int) -> tuple[int, int]:
    return (u, v) if u <= v else (v, u)


def _direct_pairs(mask: np.ndarray, features: FeatureSet) -> list[tuple[int, int]]:
    pairs: set[tuple[int, int]] = set()
    for vertex in features.vertices.values():
        for neighbor in effective_neighbors(mask, vertex.pixel):
            other = features.vertex_at(neighbor)
            if other is not None and other != vertex.id:
                pairs.add(_pair_key(vertex.id, other))
    return sorted(pairs)


def _settle_residual(
    residual: ResidualLink,
    coords: dict[int, Pixel],
    connected: set[tuple[int, int]],
) -> tuple[int, int]:
    """Pick the closest still-unconnected vertex pair for an ambiguous link.

    Candidate pairs are ranked by: pair already joined by another edge, pair
    collapsing to one vertex, summed distance from the link's extreme pixels to
    the vertex coordinates, then vertex ids.
    The winner comes back in end order so each end keeps its settled vertex.
    """

    first_end, second_end = residual.ends
    first_candidates, second_candidates = residual.candidates
    if not first_candidates:
        first_candidates = tuple(sorted(coords))
    if not second_candidates:
        second_candidates = tuple(sorted(coords))

    def rank(pair: tuple[int, int]) -> tuple[bool, bool, float, int, int]:
        a, b = pair
        spread = _distance(first_end, coords[a]) + _distance(second_end, coords[b])
        key = _pair_key(a, b)
        return (key in connected, a == b, spread, key[0], key[1])

    options = [(a, b) for a in first_candidates for b in second_candidates]
    return min(options, key=rank)


def _close_corner_loops(
    link_entries: dict[int, list[tuple[int, int, EdgeKind, tuple[Pixel, ...], int | None]]],
    corner_groups: tuple[tuple[int, ...], ...],
) -> None:
    """Retag the last corner-to-corner arc of each vertex-free loop as its loop edge."""

    for group in corner_groups:
        members = set(group)
        arcs = [
            link_id
            for link_id, items in link_entries.items()
            if items[0][0] in members and items[0][1] in members
        ]
        if not arcs:
            continue
        closing = max(arcs)
        u, v, kind, chain, link_id = link_entries[closing][0]
        if kind is EdgeKind.EXTRA:
            link_entries[closing][0] = (u, v, EdgeKind.LOOP, chain, link_id)


def _distance(a: Pixel, b: Pixel) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])


__all__ = [
    "EdgeKind",
    "GraphEdge",
    "GraphNode",
    "SkeletonGraph",
    "assemble_edges",
]
