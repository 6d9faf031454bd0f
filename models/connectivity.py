"""Resolve which vertices each link connects.

Two adjacency regimes are recorded for every (vertex, link) pair:

* **strong**: a link pixel shares an edge (4-neighborhood) with the vertex pixel;
* **weak**: the two pixels only share a corner (diagonal).

Strong touches are trusted first. A weak touch is only trusted for a link end
that has no strong touch, and only when the diagonal does not cut the corner
of another foreground pixel (such a touch is reachable through that pixel and
is therefore redundant). Links whose ends still admit several vertices are
kept as *residual* and settled later by the extra-edge heuristic.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum

import numpy as np

from .features import AXIS_OFFSETS, DIAGONAL_OFFSETS, FeatureSet, Pixel, in_bounds, is_shadowed
from .links import Link, LinkSet, link_ends

logger = logging.getLogger(__name__)


class Adjacency(str, Enum):
    STRONG = "strong"
    WEAK = "weak"


@dataclass(frozen=True, slots=True)
class Touch:
    vertex_id: int
    link_id: int
    strength: Adjacency


@dataclass(frozen=True, slots=True)
class Incidence:
    """A link resolved to the two vertices it joins (``u == v`` for a loop)."""

    link_id: int
    u: int
    v: int

    @property
    def is_loop(self) -> bool:
        return self.u == self.v


@dataclass(frozen=True, slots=True)
class ResidualLink:
    """A link whose ends could not be attached unambiguously."""

    link_id: int
    ends: tuple[Pixel, Pixel]
    candidates: tuple[tuple[int, ...], tuple[int, ...]]


@dataclass(frozen=True, slots=True)
class Connectivity:
    touches: tuple[Touch, ...]
    incidences: dict[int, Incidence]
    residual: dict[int, ResidualLink] = field(default_factory=dict)
    redundant: tuple[Touch, ...] = ()

    @property
    def vertex_links(self) -> dict[int, frozenset[int]]:
        grouped: dict[int, set[int]] = defaultdict(set)
        for touch in self.touches:
            grouped[touch.vertex_id].add(touch.link_id)
        return {vertex_id: frozenset(ids) for vertex_id, ids in grouped.items()}

    @property
    def link_vertices(self) -> dict[int, frozenset[int]]:
        grouped: dict[int, set[int]] = defaultdict(set)
        for touch in self.touches:
            grouped[touch.link_id].add(touch.vertex_id)
        return {link_id: frozenset(ids) for link_id, ids in grouped.items()}

    def strength(self, vertex_id: int, link_id: int) -> Adjacency | None:
        for touch in self.touches:
            if touch.vertex_id == vertex_id and touch.link_id == link_id:
                return touch.strength
        return None

    def vertex_degree(self, vertex_id: int) -> int:
        """Number of resolved link ends attached to ``vertex_id`` (loops count twice)."""

        degree = 0
        for incidence in self.incidences.values():
            degree += (incidence.u == vertex_id) + (incidence.v == vertex_id)
        return degree

    def branch_vertices(self) -> list[int]:
        return sorted(v for v, links in self.vertex_links.items() if len(links) >= 3)


def touch_relation(features: FeatureSet, links: LinkSet) -> tuple[Touch, ...]:
    """Bipartite (vertex, link, strength) relation, strongest regime per pair."""

    labels = features.labels
    best: dict[tuple[int, int], Adjacency] = {}
    for link in links.links.values():
        for row, col in link.pixels:
            for offsets, strength in ((AXIS_OFFSETS, Adjacency.STRONG), (DIAGONAL_OFFSETS, Adjacency.WEAK)):
                for d_row, d_col in offsets:
                    nr, nc = row + d_row, col + d_col
                    if not in_bounds(labels, nr, nc):
                        continue
                    vertex_id = int(labels[nr, nc])
                    if not vertex_id:
                        continue
                    key = (vertex_id, link.id)
                    if best.get(key) is not Adjacency.STRONG:
                        best[key] = strength
    return tuple(
        Touch(vertex_id=vertex_id, link_id=link_id, strength=strength)
        for (vertex_id, link_id), strength in sorted(best.items(), key=lambda item: (item[0][1], item[0][0]))
    )


def resolve_connectivity(
    mask: np.ndarray,
    features: FeatureSet,
    links: LinkSet,
) -> Connectivity:
    """Attach both ends of every link to a vertex using strong-adjacency precedence."""

    mask = np.asarray(mask, dtype=bool)
    touches = touch_relation(features, links)
    by_link: dict[int, list[Touch]] = defaultdict(list)
    for touch in touches:
        by_link[touch.link_id].append(touch)

    incidences: dict[int, Incidence] = {}
    residual: dict[int, ResidualLink] = {}
    redundant: list[Touch] = []

    for link_id in sorted(links.links):
        link = links.links[link_id]
        link_touches = by_link.get(link_id, [])
        touching = sorted({touch.vertex_id for touch in link_touches})
        ends = link_ends(mask, link)
        pair = _attach_link(mask, features, link, ends, touching)

        if pair is None:
            end_pair = _end_pair(link, ends)
            candidates = tuple(
                _end_candidates(mask, features, end) or tuple(touching) for end in end_pair
            )
            residual[link_id] = ResidualLink(
                link_id=link_id,
                ends=end_pair,
                candidates=(candidates[0], candidates[1]),
            )
            logger.warning(
                "Link %d touches vertices %s ambiguously; deferring to extra-edge resolution",
                link_id,
                touching,
            )
            continue

        u, v = pair
        incidences[link_id] = Incidence(link_id=link_id, u=u, v=v)
        dropped = [touch for touch in link_touches if touch.vertex_id not in pair]
        if dropped:
            logger.debug(
                "Link %d resolved to (%d, %d); discarded %d redundant touches",
                link_id,
                u,
                v,
                len(dropped),
            )
            redundant.extend(dropped)

    return Connectivity(
        touches=touches,
        incidences=incidences,
        residual=residual,
        redundant=tuple(redundant),
    )


def _attach_link(
    mask: np.ndarray,
    features: FeatureSet,
    link: Link,
    ends: tuple[Pixel, ...],
    touching: list[int],
) -> tuple[int, int] | None:
    if not touching:
        return None
    if len(touching) == 1:
        return (touching[0], touching[0])

    if len(ends) == 1:
        # Single-pixel link: it must bridge exactly two vertices.
        pool = _pooled_candidates(mask, features, ends[0])
        if len(pool) == 2:
            return (pool[0], pool[1])
        if len(pool) == 1:
            return (pool[0], pool[0])
        return None

    if len(ends) == 2:
        first = _end_candidates(mask, features, ends[0])
        second = _end_candidates(mask, features, ends[1])
        if len(first) == 1 and len(second) == 1:
            return _ordered(first[0], second[0])
        return None

    # The link closes on itself without ends; only a clean two-vertex touch is usable.
    if len(touching) == 2:
        return (touching[0], touching[1])
    return None


def _ordered(a: int, b: int) -> tuple[int, int]:
    return (a, b) if a <= b else (b, a)


def _end_pair(link: Link, ends: tuple[Pixel, ...]) -> tuple[Pixel, Pixel]:
    if len(ends) >= 2:
        return (ends[0], ends[1])
    if len(ends) == 1:
        return (ends[0], ends[0])
    return (link.pixels[0], link.pixels[-1])


def _strong_vertices(features: FeatureSet, pixel: Pixel) -> list[int]:
    found: list[int] = []
    for d_row, d_col in AXIS_OFFSETS:
        nr, nc = pixel[0] + d_row, pixel[1] + d_col
        if in_bounds(features.labels, nr, nc) and features.labels[nr, nc]:
            found.append(int(features.labels[nr, nc]))
    return sorted(found)


def _open_weak_vertices(mask: np.ndarray, features: FeatureSet, pixel: Pixel) -> list[int]:
    found: list[int] = []
    for d_row, d_col in DIAGONAL_OFFSETS:
        nr, nc = pixel[0] + d_row, pixel[1] + d_col
        if not in_bounds(features.labels, nr, nc) or not features.labels[nr, nc]:
            continue
        if is_shadowed(mask, pixel, (nr, nc)):
            continue
        found.append(int(features.labels[nr, nc]))
    return sorted(found)


def _end_candidates(mask: np.ndarray, features: FeatureSet, end: Pixel) -> tuple[int, ...]:
    """Vertices a link end attaches to: strong touches first, else open diagonals."""

    strong = _strong_vertices(features, end)
    if strong:
        return tuple(strong)
    return tuple(_open_weak_vertices(mask, features, end))


def _pooled_candidates(mask: np.ndarray, features: FeatureSet, pixel: Pixel) -> tuple[int, ...]:
    strong = _strong_vertices(features, pixel)
    if len(strong) >= 2:
        return tuple(strong)
    return tuple(sorted(set(strong) | set(_open_weak_vertices(mask, features, pixel))))


__all__ = [
    "Adjacency",
    "Connectivity",
    "Incidence",
    "ResidualLink",
    "Touch",
    "resolve_connectivity",
    "touch_relation",
]
