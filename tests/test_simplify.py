from __future__ import annotations

import numpy as np
import pytest

from models.simplify import douglas_peucker, point_segment_distance, simplify_mask


def _wobble():
    xs = np.arange(40, dtype=float)
    ys = np.round(3.0 * np.sin(xs / 4.0) + 0.6 * np.cos(xs * 1.7), 1)
    return [(float(x), float(y)) for x, y in zip(xs, ys)]


def test_straight_segment_reduces_to_endpoints():
    line = [(float(x), 2.0) for x in range(12)]

    assert douglas_peucker(line, 0.5) == [line[0], line[-1]]


def test_zero_tolerance_keeps_every_point():
    points = _wobble()

    assert douglas_peucker(points, 0.0) == points


def test_negative_tolerance_is_rejected():
    with pytest.raises(ValueError):
        douglas_peucker([(0, 0), (1, 1), (2, 0)], -0.1)


def test_simplification_is_idempotent():
    once = douglas_peucker(_wobble(), 0.8)

    assert douglas_peucker(once, 0.8) == once


def test_larger_tolerance_keeps_a_subset():
    points = _wobble()
    previous = simplify_mask(points, 0.1)
    for tolerance in (0.5, 1.0, 2.0, 4.0):
        current = simplify_mask(points, tolerance)
        assert not (current & ~previous).any()
        assert current.sum() <= previous.sum()
        previous = current


def test_ends_are_always_kept():
    points = _wobble()

    kept = douglas_peucker(points, 100.0)

    assert kept == [points[0], points[-1]]


def test_closed_path_stays_closed():
    square = [(0, 0), (0, 2), (0, 4), (2, 4), (4, 4), (4, 2), (4, 0), (2, 0), (0, 0)]

    kept = douglas_peucker(square, 0.5)

    assert kept[0] == kept[-1] == (0, 0)
    assert set(kept) == {(0, 0), (0, 4), (4, 4), (4, 0)}


def test_point_segment_distance_clamps_to_segment():
    distances = point_segment_distance(
        np.array([[1.0, 1.0], [5.0, 0.0], [-3.0, 0.0]]),
        np.array([0.0, 0.0]),
        np.array([2.0, 0.0]),
    )

    assert distances == pytest.approx([1.0, 3.0, 3.0])
