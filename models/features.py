"""Feature point (vertex) detection on a one-pixel-wide skeleton.

Every foreground pixel is classified by its number of *effective* neighbors:
the four axis neighbors plus any diagonal neighbor whose two shared axis cells
are background. A diagonal that cuts the corner of another foreground pixel is
already reachable through that pixel, so counting it would turn every staircase
step into a false branch.

    endpoint  exactly one neighbor
    branch    three or more neighbors
    isolated  no neighbor at all (a lone dot)

Components without any such pixel are closed loops; they receive synthetic
"corner" vertices so downstream stages never see a vertex-free component.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum

import numpy as np
from skimage.feature import corner_harris, corner_peaks
from skimage.measure import label, regionprops

logger = logging.getLogger(__name__)

# corner_harris (sigma=1) reads 4 sigma of Gaussian support plus one gradient step,
# so five background pixels around a crop reproduce the full-image response.
HARRIS_PAD = 5

AXIS_OFFSETS: tuple[tuple[int, int], ...] = ((-1, 0), (0, -1), (0, 1), (1, 0))
DIAGONAL_OFFSETS: tuple[tuple[int, int], ...] = ((-1, -1), (-1, 1), (1, -1), (1, 1))
EIGHT_NEIGHBOR_OFFSETS: tuple[tuple[int, int], ...] = (
    (-1, -1),
    (-1, 0),
    (-1, 1),
    (0, -1),
    (0, 1),
    (1, -1),
    (1, 0),
    (1, 1),
)

Pixel = tuple[int, int]


class VertexKind(str, Enum):
    ENDPOINT = "endpoint"
    BRANCH = "branch"
    ISOLATED = "isolated"
    CORNER = "corner"


@dataclass(frozen=True, slots=True)
class Vertex:
    """Feature pixel with a stable id; ``corner`` vertices are synthetic."""

    id: int
    row: int
    col: int
    kind: VertexKind

    @property
    def pixel(self) -> Pixel:
        return (self.row, self.col)

    @property
    def synthetic(self) -> bool:
        return self.kind is VertexKind.CORNER

    def to_dict(self) -> dict[str, int | str]:
        return {"id": self.id, "x": self.col, "y": self.row, "kind": self.kind.value}


@dataclass(frozen=True, slots=True)
class FeatureSet:
    """Vertices of one skeleton plus a label grid holding vertex ids."""

    vertices: dict[int, Vertex]
    labels: np.ndarray
    vertexless_components: int = 0
    synthetic_ids: frozenset[int] = field(default_factory=frozenset)
    corner_groups: tuple[tuple[int, ...], ...] = ()  # corner ids per vertex-free loop

    @property
    def mask(self) -> np.ndarray:
        return self.labels > 0

    @property
    def max_id(self) -> int:
        return max(self.vertices, default=0)

    def vertex_at(self, pixel: Pixel) -> int | None:
        row, col = pixel
        value = int(self.labels[row, col])
        return value or None

    def count_by_kind(self) -> dict[str, int]:
        counts = {kind.value: 0 for kind in VertexKind}
        for vertex in self.vertices.values():
            counts[vertex.kind.value] += 1
        return counts


def in_bounds(mask: np.ndarray, row: int, col: int) -> bool:
    return 0 <= row < mask.shape[0] and 0 <= col < mask.shape[1]


def is_foreground(mask: np.ndarray, row: int, col: int) -> bool:
    return in_bounds(mask, row, col) and bool(mask[row, col])


def is_shadowed(mask: np.ndarray, a: Pixel, b: Pixel) -> bool:
    """True when the diagonal step ``a -> b`` cuts the corner of a foreground pixel."""

    d_row, d_col = b[0] - a[0], b[1] - a[1]
    if abs(d_row) != 1 or abs(d_col) != 1:
        return False
    return is_foreground(mask, a[0], b[1]) or is_foreground(mask, b[0], a[1])


def effective_neighbors(mask: np.ndarray, pixel: Pixel) -> list[Pixel]:
    """Foreground neighbors of ``pixel`` under the thin-skeleton adjacency rule."""

    row, col = pixel
    neighbors: list[Pixel] = []
    for d_row, d_col in EIGHT_NEIGHBOR_OFFSETS:
        nr, nc = row + d_row, col + d_col
        if not is_foreground(mask, nr, nc):
            continue
        if d_row and d_col and is_shadowed(mask, pixel, (nr, nc)):
            continue
        neighbors.append((nr, nc))
    return neighbors


def count_neighbors(mask: np.ndarray) -> np.ndarray:
    """Return the effective neighbor count of every foreground pixel (0 elsewhere)."""

    mask = np.asarray(mask, dtype=bool)
    height, width = mask.shape
    padded = np.pad(mask, 1)

    def shifted(d_row: int, d_col: int) -> np.ndarray:
        return padded[1 + d_row : 1 + d_row + height, 1 + d_col : 1 + d_col + width]

    counts = np.zeros(mask.shape, dtype=np.int32)
    for d_row, d_col in AXIS_OFFSETS:
        counts += shifted(d_row, d_col)
    for d_row, d_col in DIAGONAL_OFFSETS:
        open_corner = shifted(d_row, d_col) & ~shifted(d_row, 0) & ~shifted(0, d_col)
        counts += open_corner
    counts[~mask] = 0
    return counts


def detect_features(
    mask: np.ndarray,
    *,
    corner_sensitivity: float = 0.1,
    corner_min_distance: int = 5,
    corner_min_count: int = 3,
) -> FeatureSet:
    """Classify endpoint / branch pixels and add corner vertices to bare loops.

    Vertex ids start at 1 and follow row-major order; synthetic corner vertices
    are numbered after every detected vertex, again in row-major order.
    """

    mask = np.asarray(mask, dtype=bool)
    if mask.ndim != 2:
        raise ValueError("Expected a 2D array for the skeleton mask.")

    counts = count_neighbors(mask)
    endpoint = mask & (counts == 1)
    branch = mask & (counts >= 3)
    isolated = mask & (counts == 0)
    feature_mask = endpoint | branch | isolated

    labels = np.zeros(mask.shape, dtype=np.int32)
    vertices: dict[int, Vertex] = {}
    next_id = 1
    for row, col in np.argwhere(feature_mask):
        row, col = int(row), int(col)
        if branch[row, col]:
            kind = VertexKind.BRANCH
        elif endpoint[row, col]:
            kind = VertexKind.ENDPOINT
        else:
            kind = VertexKind.ISOLATED
        vertices[next_id] = Vertex(id=next_id, row=row, col=col, kind=kind)
        labels[row, col] = next_id
        next_id += 1

    components, count = label(mask, connectivity=2, return_num=True)
    covered = set(np.unique(components[feature_mask]).tolist())
    vertexless = [comp for comp in range(1, count + 1) if comp not in covered]

    loops: list[list[Pixel]] = []
    pending = set(vertexless)
    for region in regionprops(components):
        if region.label not in pending:
            continue
        # Harris runs on the padded bounding box only, one loop at a time.
        crop = np.pad(region.image, HARRIS_PAD)
        top, left = region.bbox[0] - HARRIS_PAD, region.bbox[1] - HARRIS_PAD
        corners = find_loop_corners(
            crop,
            sensitivity=corner_sensitivity,
            min_distance=corner_min_distance,
            min_count=corner_min_count,
        )
        logger.warning(
            "Component %d has no endpoint or branch pixels; inserted %d corner vertices",
            region.label,
            len(corners),
        )
        loops.append([(row + top, col + left) for row, col in corners])

    synthetic: set[int] = set()
    corner_ids: dict[Pixel, int] = {}
    for row, col in sorted(pixel for corners in loops for pixel in corners):
        vertices[next_id] = Vertex(id=next_id, row=row, col=col, kind=VertexKind.CORNER)
        labels[row, col] = next_id
        synthetic.add(next_id)
        corner_ids[(row, col)] = next_id
        next_id += 1
    corner_groups = tuple(
        sorted(tuple(sorted(corner_ids[pixel] for pixel in corners)) for corners in loops if corners)
    )

    logger.debug(
        "Detected %d vertices (%d synthetic) over %d components",
        len(vertices),
        len(synthetic),
        count,
    )
    return FeatureSet(
        vertices=vertices,
        labels=labels,
        vertexless_components=len(vertexless),
        synthetic_ids=frozenset(synthetic),
        corner_groups=corner_groups,
    )


def find_loop_corners(
    component: np.ndarray,
    *,
    sensitivity: float = 0.1,
    min_distance: int = 5,
    min_count: int = 3,
    max_count: int = 8,
) -> list[Pixel]:
    """Pick high-curvature pixels on a closed loop.

    Harris corner peaks are snapped onto the loop, thinned to ``min_distance`` and
    capped at ``max_count``.
    When fewer than ``min_count`` survive, farthest-point sampling along the loop
    tops the set up so the loop is cut into corner-bounded arcs. The row-major
    first pixel is the last resort, which turns the loop into a single self-loop.
    """

    component = np.asarray(component, dtype=bool)
    pixels = np.argwhere(component)
    if pixels.size == 0:
        return []
    separation = max(1, int(min_distance))

    response = corner_harris(component.astype(np.float64), sigma=1)
    peaks = corner_peaks(
        response,
        min_distance=separation,
        threshold_rel=float(sensitivity),
        exclude_border=False,
    )
    ranked = sorted(
        (tuple(int(v) for v in peak) for peak in peaks),
        key=lambda peak: (-float(response[peak]), peak),
    )

    chosen: list[Pixel] = []
    for peak in ranked:
        if len(chosen) >= max_count:
            break
        pixel = _snap_to_component(pixels, peak)
        if all(_distance(pixel, other) >= separation for other in chosen):
            chosen.append(pixel)

    if not chosen:
        chosen.append((int(pixels[0][0]), int(pixels[0][1])))

    while len(chosen) < min_count:
        candidate, gap = _farthest_pixel(pixels, chosen)
        if gap <= 0.0:
            break
        chosen.append(candidate)

    return sorted(chosen)


def _snap_to_component(pixels: np.ndarray, point: Pixel) -> Pixel:
    offsets = pixels - np.asarray(point)
    index = int(np.argmin(np.einsum("ij,ij->i", offsets, offsets)))
    return (int(pixels[index][0]), int(pixels[index][1]))


def _farthest_pixel(pixels: np.ndarray, chosen: list[Pixel]) -> tuple[Pixel, float]:
    anchors = np.asarray(chosen, dtype=np.float64)
    diffs = pixels[:, None, :].astype(np.float64) - anchors[None, :, :]
    nearest = np.sqrt((diffs**2).sum(axis=2)).min(axis=1)
    index = int(np.argmax(nearest))
    return (int(pixels[index][0]), int(pixels[index][1])), float(nearest[index])


def _distance(a: Pixel, b: Pixel) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])


__all__ = [
    "AXIS_OFFSETS",
    "DIAGONAL_OFFSETS",
    "EIGHT_NEIGHBOR_OFFSETS",
    "Pixel",
    "Vertex",
    "VertexKind",
    "FeatureSet",
    "count_neighbors",
    "detect_features",
    "effective_neighbors",
    "find_loop_corners",
    "in_bounds",
    "is_foreground",
    "is_shadowed",
]
