"""End-to-end skeleton vectorization.

skeleton -> vertices -> links -> connectivity -> edges -> ordered paths ->
simplified polylines. The first four stages run once over the whole grid;
ordering and simplification are independent per edge and may run on a thread
pool. Recoverable conditions are collected as :class:`Degradation` notes on the
result instead of being raised.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any, Mapping

from .connectivity import Connectivity, resolve_connectivity
from .features import FeatureSet, detect_features
from .links import LinkSet, segment_links
from .path_order import (
    DEFAULT_MAX_STEPS,
    DEFAULT_TIME_BUDGET,
    OrderedPath,
    OrderMethod,
    order_path,
)
from .simplify import douglas_peucker
from .skeleton_graph import EdgeKind, GraphEdge, SkeletonGraph, assemble_edges
from .utils.image_io import SkeletonSource, load_binary_mask

logger = logging.getLogger(__name__)


class Degradation(str, Enum):
    EMPTY_SKELETON = "EmptySkeleton"
    VERTEXLESS_LOOP = "VertexlessLoop"
    AMBIGUOUS_CONNECTIVITY = "AmbiguousConnectivity"
    DEGENERATE_GEOMETRY = "DegenerateGeometry"
    SEARCH_BUDGET_EXCEEDED = "SearchBudgetExceeded"


@dataclass(slots=True)
class VectorizerConfig:
    """Tuning knobs for :func:`vectorize_skeleton`."""

    smoothness: float = 1.0
    corner_sensitivity: float = 0.1
    corner_min_distance: int = 5
    corner_min_count: int = 3
    search_max_steps: int = DEFAULT_MAX_STEPS
    search_time_budget: float = DEFAULT_TIME_BUDGET
    workers: int = 1

    def validate(self) -> None:
        if self.smoothness < 0:
            raise ValueError("smoothness must be non-negative.")
        if not 0.0 < self.corner_sensitivity <= 1.0:
            raise ValueError("corner_sensitivity must be in (0, 1].")
        if self.corner_min_distance < 1:
            raise ValueError("corner_min_distance must be at least 1 pixel.")
        if self.corner_min_count < 1:
            raise ValueError("corner_min_count must be at least 1.")
        if self.search_max_steps < 1:
            raise ValueError("search_max_steps must be positive.")
        if self.search_time_budget < 0:
            raise ValueError("search_time_budget must be non-negative.")
        if self.workers < 1:
            raise ValueError("workers must be at least 1.")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any] | None) -> VectorizerConfig:
        """Build a config from a settings table, ignoring unknown keys."""

        if not values:
            return cls()
        known = {item.name: item.type for item in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, raw in values.items():
            if key not in known:
                logger.debug("Ignoring unknown vectorizer option %r", key)
                continue
            caster = int if known[key] in ("int", int) else float
            try:
                kwargs[key] = caster(raw)
            except (TypeError, ValueError) as exc:
                raise ValueError(f"Invalid value for {key}: {raw!r}") from exc
        config = cls(**kwargs)
        config.validate()
        return config


@dataclass(frozen=True, slots=True)
class Polyline:
    """Ordered and simplified rendition of one graph edge.

    ``points`` are (x, y) = (col, row) vertices of the simplified curve.
    """

    edge_id: int
    kind: EdgeKind
    u: int
    v: int
    path: OrderedPath
    points: tuple[tuple[int, int], ...]

    @property
    def closed(self) -> bool:
        return self.path.closed

    def to_dict(self) -> dict[str, object]:
        return {
            "edge": self.edge_id,
            "kind": self.kind.value,
            "source": self.u,
            "target": self.v,
            "closed": self.closed,
            "order": self.path.method.value,
            "points": [[x, y] for x, y in self.points],
        }


@dataclass(slots=True)
class VectorizationResult:
    shape: tuple[int, int]
    features: FeatureSet
    links: LinkSet
    connectivity: Connectivity
    graph: SkeletonGraph
    polylines: list[Polyline]
    notes: dict[Degradation, int] = field(default_factory=dict)

    @property
    def paths(self) -> list[OrderedPath]:
        return [polyline.path for polyline in self.polylines]

    @property
    def is_empty(self) -> bool:
        return not self.polylines

    def summary(self) -> dict[str, object]:
        return {
            "height": self.shape[0],
            "width": self.shape[1],
            "vertices": self.features.count_by_kind(),
            "links": len(self.links.links),
            "edges": self.graph.kind_counts(),
            "polylines": len(self.polylines),
            "ordered_points": sum(len(path.points) for path in self.paths),
            "simplified_points": sum(len(polyline.points) for polyline in self.polylines),
            "notes": {note.value: count for note, count in self.notes.items()},
        }


def vectorize_skeleton(
    source: SkeletonSource,
    *,
    config: VectorizerConfig | None = None,
) -> VectorizationResult:
    """Turn a one-pixel-wide skeleton into ordered, simplified polylines.

    ``source`` may be a path, a Pillow image or a 2-D array; any non-zero pixel
    is foreground. Malformed input raises ``ValueError`` (or
    ``FileNotFoundError`` for a missing file); topological trouble never does.
    """

    config = config or VectorizerConfig()
    config.validate()
    mask = load_binary_mask(source)
    notes: dict[Degradation, int] = {}
    if not mask.any():
        logger.warning("Skeleton of shape %s has no foreground pixels", mask.shape)
        notes[Degradation.EMPTY_SKELETON] = 1

    features = detect_features(
        mask,
        corner_sensitivity=config.corner_sensitivity,
        corner_min_distance=config.corner_min_distance,
        corner_min_count=config.corner_min_count,
    )
    links = segment_links(mask, features)
    connectivity = resolve_connectivity(mask, features, links)
    graph = assemble_edges(mask, features, links, connectivity)
    logger.debug(
        "Stages: %d vertices, %d links, %d edges",
        len(features.vertices),
        len(links.links),
        len(graph.edges),
    )

    edges = [graph.edges[edge_id] for edge_id in sorted(graph.edges)]
    if config.workers > 1 and len(edges) > 1:
        with ThreadPoolExecutor(max_workers=config.workers) as executor:
            polylines = list(executor.map(lambda edge: trace_edge(edge, config), edges))
    else:
        polylines = [trace_edge(edge, config) for edge in edges]

    _record(notes, Degradation.VERTEXLESS_LOOP, features.vertexless_components)
    _record(notes, Degradation.AMBIGUOUS_CONNECTIVITY, len(connectivity.residual))
    _record(
        notes,
        Degradation.DEGENERATE_GEOMETRY,
        sum(1 for polyline in polylines if polyline.path.method is OrderMethod.SORTED),
    )
    exceeded = sum(1 for polyline in polylines if polyline.path.budget_exceeded)
    _record(notes, Degradation.SEARCH_BUDGET_EXCEEDED, exceeded)
    if exceeded:
        logger.warning("%d of %d edges fell back to heuristic ordering", exceeded, len(polylines))

    return VectorizationResult(
        shape=(int(mask.shape[0]), int(mask.shape[1])),
        features=features,
        links=links,
        connectivity=connectivity,
        graph=graph,
        polylines=polylines,
        notes=notes,
    )


def trace_edge(edge: GraphEdge, config: VectorizerConfig) -> Polyline:
    """Order one edge's pixels and simplify the result."""

    path = order_path(
        edge.points,
        max_steps=config.search_max_steps,
        time_budget=config.search_time_budget,
    )
    xy = [(col, row) for row, col in path.points]
    simplified = douglas_peucker(xy, config.smoothness)
    return Polyline(
        edge_id=edge.id,
        kind=edge.kind,
        u=edge.u,
        v=edge.v,
        path=path,
        points=tuple((int(x), int(y)) for x, y in simplified),
    )


def _record(notes: dict[Degradation, int], note: Degradation, count: int) -> None:
    if count:
        notes[note] = notes.get(note, 0) + int(count)


__all__ = [
    "Degradation",
    "Polyline",
    "VectorizationResult",
    "VectorizerConfig",
    "trace_edge",
    "vectorize_skeleton",
]
