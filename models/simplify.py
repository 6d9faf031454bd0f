"""Douglas-Peucker reduction of ordered paths."""

from __future__ import annotations

from typing import Sequence

import numpy as np


def point_segment_distance(points: np.ndarray, start: np.ndarray, end: np.ndarray) -> np.ndarray:
    """Distance from each of ``points`` to the closed segment ``start -> end``."""

    points = np.asarray(points, dtype=np.float64)
    segment = end - start
    length_sq = float(np.dot(segment, segment))
    if length_sq == 0.0:
        offsets = points - start
        return np.hypot(offsets[:, 0], offsets[:, 1])
    t = np.clip(((points - start) @ segment) / length_sq, 0.0, 1.0)
    projection = start + t[:, None] * segment
    offsets = points - projection
    return np.hypot(offsets[:, 0], offsets[:, 1])


def simplify_mask(points: Sequence[Sequence[float]], tolerance: float) -> np.ndarray:
    """Boolean keep-mask over ``points``.

    Pending segments sit on a stack; a segment is done once no interior point
    lies farther than ``tolerance`` from its chord, otherwise it is split at
    the farthest point (first one on ties). Both ends are always kept.
    """

    if tolerance < 0:
        raise ValueError("Simplification tolerance must be non-negative.")
    arr = np.asarray(points, dtype=np.float64)
    count = len(arr)
    keep = np.zeros(count, dtype=bool)
    if count == 0:
        return keep
    if count <= 2 or tolerance == 0:
        keep[:] = True
        return keep

    keep[0] = keep[-1] = True
    pending: list[tuple[int, int]] = [(0, count - 1)]
    while pending:
        first, last = pending.pop()
        if last - first < 2:
            continue
        distances = point_segment_distance(arr[first + 1 : last], arr[first], arr[last])
        offset = int(np.argmax(distances))
        if distances[offset] <= tolerance:
            continue
        split = first + 1 + offset
        keep[split] = True
        pending.append((split, last))
        pending.append((first, split))
    return keep


def douglas_peucker(points: Sequence[Sequence[float]], tolerance: float) -> list[tuple[float, ...]]:
    """Return the retained subsequence of ``points`` in their original order."""

    keep = simplify_mask(points, tolerance)
    return [tuple(point) for point, kept in zip(points, keep) if kept]


__all__ = ["douglas_peucker", "point_segment_distance", "simplify_mask"]
