from __future__ import annotations

import math

import pytest
from scipy.spatial import QhullError

from models.path_order import (
    OrderMethod,
    hamiltonian_path,
    heuristic_path,
    order_path,
    proximity_graph,
    sort_along_axis,
)

from conftest import ring_mask


def _l_chain():
    top = [(0, col) for col in range(6)]
    side = [(row, 5) for row in range(1, 6)]
    return top + side


def _scrambled(points):
    first, *interior, last = points
    return [first, *interior[::-1], last]


def test_colinear_points_fall_back_to_axis_sort():
    line = [(3, col) for col in range(10)]

    path = order_path(_scrambled(line))

    assert path.method is OrderMethod.SORTED
    assert list(path.points) == line
    assert not path.closed


def test_bent_chain_is_ordered_exactly_with_unit_steps():
    chain = _l_chain()

    path = order_path(_scrambled(chain))

    assert path.method is OrderMethod.EXACT
    assert list(path.points) == chain
    assert path.max_step() == pytest.approx(1.0)
    assert path.length == pytest.approx(10.0)


def test_staircase_steps_stay_within_lattice_distance():
    stairs = [(0, 0), (1, 0), (1, 1), (2, 1), (2, 2), (3, 2), (3, 3)]

    path = order_path(_scrambled(stairs))

    assert path.points[0] == (0, 0)
    assert path.points[-1] == (3, 3)
    assert sorted(path.points) == sorted(stairs)
    assert path.max_step() <= math.sqrt(2) + 1e-9


def test_closed_chain_reopens_and_closes_on_its_vertex():
    ring = [(int(r), int(c)) for r, c in zip(*ring_mask(7).nonzero())]
    anchor = (1, 1)
    interior = [pixel for pixel in ring if pixel != anchor]

    path = order_path([anchor, *interior, anchor])

    assert path.closed
    assert path.points[0] == path.points[-1] == anchor
    assert len(path.points) == len(ring) + 1
    assert set(path.points) == set(ring)
    assert path.max_step() <= math.sqrt(2) + 1e-9


def test_short_chains_are_trivial():
    assert order_path([]).points == ()
    assert order_path([(0, 0), (0, 1)]).method is OrderMethod.TRIVIAL
    point = order_path([(2, 2), (2, 2)])
    assert point.points == ((2, 2), (2, 2))
    assert not point.closed


def test_exhausted_budget_falls_back_to_heuristic():
    chain = _l_chain()

    path = order_path(_scrambled(chain), max_steps=1)

    assert path.method is OrderMethod.HEURISTIC
    assert path.budget_exceeded
    assert path.points[0] == chain[0]
    assert path.points[-1] == chain[-1]
    assert sorted(path.points) == sorted(chain)


def test_proximity_graph_rejects_colinear_points():
    with pytest.raises(QhullError):
        proximity_graph([(0, 0), (0, 1), (0, 2), (0, 3)])


def test_proximity_graph_includes_lattice_pairs():
    graph = proximity_graph([(0, 0), (0, 1), (1, 1), (5, 5)])

    assert graph[0][1] == pytest.approx(1.0)
    assert graph[0][2] == pytest.approx(math.sqrt(2))
    assert graph[1] and graph[3]


def test_hamiltonian_path_on_square():
    graph = {
        0: {1: 1.0, 2: 1.0, 3: math.sqrt(2)},
        1: {0: 1.0, 3: 1.0, 2: math.sqrt(2)},
        2: {0: 1.0, 3: 1.0, 1: math.sqrt(2)},
        3: {1: 1.0, 2: 1.0, 0: math.sqrt(2)},
    }

    outcome = hamiltonian_path(graph, 0, 3)

    assert outcome.order in ([0, 1, 2, 3], [0, 2, 1, 3])
    assert not outcome.exhausted


def test_hamiltonian_path_reports_missing_path():
    graph = {0: {1: 1.0, 2: 1.0, 3: 1.0}, 1: {0: 1.0}, 2: {0: 1.0}, 3: {0: 1.0}}

    outcome = hamiltonian_path(graph, 0, 3)

    assert outcome.order is None
    assert not outcome.exhausted


def test_heuristic_path_pins_both_ends():
    points = [(0, 0), (0, 3), (0, 1), (0, 2), (0, 4)]

    assert heuristic_path(points) == [0, 2, 3, 1, 4]


def test_sort_along_axis_keeps_ends():
    points = [(0, 0), (0, 7), (0, 2), (0, 5), (0, 9)]

    assert sort_along_axis(points) == [(0, 0), (0, 2), (0, 5), (0, 7), (0, 9)]
