"""Order an edge's unordered pixel chain into a connected path.

The chain's first and last points are its vertices. The interior pixels are
sequenced by a Hamiltonian path search over a proximity graph (Delaunay edges
plus lattice-neighbor pairs):

1. closed chains are opened at the vertex's nearest neighbor and closed again
   at the end;
2. a colinear chain has no triangulation, so it is sorted along its axis;
3. an exact branch-and-bound search runs within a step and time budget;
4. past the budget (or when the graph has no Hamiltonian path) a
   nearest-neighbor chain refined by 2-opt is used instead.

The search is the only stage allowed to give up early; it always returns
*some* ordering.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Sequence

import numpy as np
from scipy.spatial import Delaunay, QhullError, cKDTree

from .features import Pixel

logger = logging.getLogger(__name__)

LATTICE_RADIUS = math.sqrt(2.0) + 1e-9
DEFAULT_MAX_STEPS = 200_000
DEFAULT_TIME_BUDGET = 0.25
TWO_OPT_WINDOW = 48
TWO_OPT_MAX_PASSES = 8
_DEADLINE_CHECK_MASK = 0x3FF

Adjacency = dict[int, dict[int, float]]


class OrderMethod(str, Enum):
    TRIVIAL = "trivial"
    SORTED = "sorted"
    EXACT = "exact"
    HEURISTIC = "heuristic"


@dataclass(frozen=True, slots=True)
class OrderedPath:
    points: tuple[Pixel, ...]
    closed: bool
    method: OrderMethod
    budget_exceeded: bool = False

    @property
    def length(self) -> float:
        return path_length(self.points)

    def max_step(self) -> float:
        if len(self.points) < 2:
            return 0.0
        return max(math.dist(a, b) for a, b in zip(self.points, self.points[1:]))


@dataclass(slots=True)
class SearchOutcome:
    order: list[int] | None
    cost: float
    steps: int
    exhausted: bool


def path_length(points: Sequence[Sequence[float]]) -> float:
    return sum(math.dist(a, b) for a, b in zip(points, points[1:]))


def order_path(
    points: Sequence[Pixel],
    *,
    max_steps: int = DEFAULT_MAX_STEPS,
    time_budget: float = DEFAULT_TIME_BUDGET,
) -> OrderedPath:
    """Sequence ``points`` from its first to its last element.

    ``points[0] == points[-1]`` marks a closed chain, and the result then starts
    and ends on that vertex as well. A two-point chain is a lone dot, not a loop.
    """

    pts = [(int(p[0]), int(p[1])) for p in points]
    if not pts:
        return OrderedPath(points=(), closed=False, method=OrderMethod.TRIVIAL)
    closed = len(pts) > 2 and pts[0] == pts[-1]
    if len(pts) <= 2:
        return OrderedPath(points=tuple(pts), closed=closed, method=OrderMethod.TRIVIAL)

    if closed:
        anchor = pts[0]
        interior = [p for p in dict.fromkeys(pts[1:-1]) if p != anchor]
        if not interior:
            return OrderedPath(points=(anchor, anchor), closed=True, method=OrderMethod.TRIVIAL)
        pivot = min(interior, key=lambda p: (math.dist(anchor, p), p))
        work = [anchor, *(p for p in interior if p != pivot), pivot]
    else:
        work = pts

    ordered, method, exceeded = _order_open(work, max_steps=max_steps, time_budget=time_budget)
    if closed:
        ordered = [*ordered, ordered[0]]
    return OrderedPath(
        points=tuple(ordered),
        closed=closed,
        method=method,
        budget_exceeded=exceeded,
    )


def _order_open(
    points: list[Pixel],
    *,
    max_steps: int,
    time_budget: float,
) -> tuple[list[Pixel], OrderMethod, bool]:
    if len(points) <= 3:
        return list(points), OrderMethod.TRIVIAL, False

    try:
        graph = proximity_graph(points)
    except QhullError:
        logger.debug("Triangulation of %d points is degenerate; sorting along axis", len(points))
        return sort_along_axis(points), OrderMethod.SORTED, False

    goal = len(points) - 1
    outcome = hamiltonian_path(graph, 0, goal, max_steps=max_steps, time_budget=time_budget)
    if outcome.order is not None and not outcome.exhausted:
        return [points[i] for i in outcome.order], OrderMethod.EXACT, False

    if outcome.exhausted:
        logger.info(
            "Path search for %d points stopped after %d steps; using heuristic order",
            len(points),
            outcome.steps,
        )
    else:
        logger.debug("No Hamiltonian path over %d points; using heuristic order", len(points))

    order = heuristic_path(points)
    if outcome.order is not None and outcome.cost < path_length([points[i] for i in order]):
        order = outcome.order
    return [points[i] for i in order], OrderMethod.HEURISTIC, outcome.exhausted


def sort_along_axis(points: Sequence[Pixel]) -> list[Pixel]:
    """Keep the two ends in place and sort the interior along the chain's axis."""

    first, last = points[0], points[-1]
    arr = np.asarray(points, dtype=np.float64)
    direction = arr[-1] - arr[0]
    if not direction.any():
        spread = np.ptp(arr, axis=0)
        direction = np.array([1.0, 0.0]) if spread[0] >= spread[1] else np.array([0.0, 1.0])
    origin = arr[0]
    interior = sorted(
        points[1:-1],
        key=lambda p: (float(np.dot(np.asarray(p, dtype=np.float64) - origin, direction)), p),
    )
    return [first, *interior, last]


def proximity_graph(points: Sequence[Pixel]) -> Adjacency:
    """Delaunay edges plus every lattice-neighbor pair, weighted by distance.

    Raises :class:`scipy.spatial.QhullError` for colinear or otherwise
    degenerate input.
    """

    arr = np.asarray(points, dtype=np.float64)
    triangulation = Delaunay(arr)
    if len(triangulation.simplices) == 0:
        raise QhullError("Triangulation is empty.")

    pairs: set[tuple[int, int]] = set()
    for simplex in triangulation.simplices:
        for i in range(3):
            a, b = int(simplex[i]), int(simplex[(i + 1) % 3])
            pairs.add((a, b) if a < b else (b, a))
    pairs |= {(int(a), int(b)) for a, b in cKDTree(arr).query_pairs(r=LATTICE_RADIUS)}

    graph: Adjacency = {index: {} for index in range(len(arr))}
    for a, b in pairs:
        weight = math.dist(points[a], points[b])
        graph[a][b] = weight
        graph[b][a] = weight
    return graph


def hamiltonian_path(
    graph: Adjacency,
    start: int,
    goal: int,
    *,
    max_steps: int = DEFAULT_MAX_STEPS,
    time_budget: float = DEFAULT_TIME_BUDGET,
) -> SearchOutcome:
    """Branch-and-bound search for the cheapest path from ``start`` to ``goal``
    visiting every node once.

    The DFS is iterative, tries lattice neighbors first and the most constrained
    ones among them, and prunes on a per-node lower bound plus stranded-node
    checks. A complete path made only of lattice steps is accepted at once, since
    a thin skeleton chain admits no shorter ordering. ``exhausted`` is set when a
    budget ran out before the search space was closed; ``order`` then holds the
    best path found so far, if any.
    """

    size = len(graph)
    if size == 1:
        return SearchOutcome(order=[start], cost=0.0, steps=0, exhausted=False)
    min_in = [min(graph[node].values(), default=math.inf) for node in range(size)]
    if any(math.isinf(value) for value in min_in):
        return SearchOutcome(order=None, cost=math.inf, steps=0, exhausted=False)

    visited = [False] * size
    visited[start] = True

    def free_degree(node: int) -> int:
        return sum(1 for other in graph[node] if not visited[other])

    def candidates(node: int) -> Iterator[tuple[int, float]]:
        options = [
            (weight > LATTICE_RADIUS, free_degree(other), weight, other)
            for other, weight in graph[node].items()
            if not visited[other]
        ]
        options.sort()
        return iter([(other, weight) for _, _, weight, other in options])

    def strands(previous: int, current: int) -> bool:
        # ``previous`` just became interior; its unvisited neighbors lost an option.
        for node in graph[previous]:
            if visited[node]:
                continue
            need = 1 if node == goal else 2
            reachable = sum(1 for other in graph[node] if other == current or not visited[other])
            if reachable < need:
                return True
        return False

    path = [start]
    cost = 0.0
    long_steps = 0
    bound = sum(min_in[node] for node in range(size) if node != start)
    best_cost = math.inf
    best_order: list[int] | None = None
    deadline = time.perf_counter() + max(0.0, time_budget)
    steps = 0
    exhausted = False
    stack = [candidates(start)]

    while stack:
        steps += 1
        if steps > max_steps or (
            not steps & _DEADLINE_CHECK_MASK and time.perf_counter() > deadline
        ):
            exhausted = True
            break
        try:
            nxt, weight = next(stack[-1])
        except StopIteration:
            stack.pop()
            node = path.pop()
            visited[node] = False
            if path:
                cost -= graph[path[-1]][node]
                long_steps -= graph[path[-1]][node] > LATTICE_RADIUS
                bound += min_in[node]
            continue

        if visited[nxt]:
            continue
        if nxt == goal and len(path) != size - 1:
            continue
        new_cost = cost + weight
        new_bound = bound - min_in[nxt]
        if new_cost + new_bound >= best_cost - 1e-9:
            continue
        if nxt == goal:
            best_cost = new_cost
            best_order = [*path, goal]
            if not long_steps and weight <= LATTICE_RADIUS:
                break
            continue

        visited[nxt] = True
        if strands(path[-1], nxt):
            visited[nxt] = False
            continue
        path.append(nxt)
        cost = new_cost
        long_steps += weight > LATTICE_RADIUS
        bound = new_bound
        stack.append(candidates(nxt))

    return SearchOutcome(order=best_order, cost=best_cost, steps=steps, exhausted=exhausted)


def heuristic_path(
    points: Sequence[Pixel],
    *,
    window: int = TWO_OPT_WINDOW,
    max_passes: int = TWO_OPT_MAX_PASSES,
) -> list[int]:
    """Nearest-neighbor chain from the first to the last point, refined by 2-opt."""

    arr = np.asarray(points, dtype=np.float64)
    size = len(arr)
    if size <= 2:
        return list(range(size))

    remaining = np.ones(size, dtype=bool)
    remaining[0] = False
    remaining[-1] = False
    order = [0]
    current = 0
    for _ in range(size - 2):
        candidates = np.flatnonzero(remaining)
        offsets = arr[candidates] - arr[current]
        pick = int(candidates[int(np.argmin(np.hypot(offsets[:, 0], offsets[:, 1])))])
        order.append(pick)
        remaining[pick] = False
        current = pick
    order.append(size - 1)
    return two_opt(points, order, window=window, max_passes=max_passes)


def two_opt(
    points: Sequence[Pixel],
    order: list[int],
    *,
    window: int = TWO_OPT_WINDOW,
    max_passes: int = TWO_OPT_MAX_PASSES,
) -> list[int]:
    """Segment-reversal improvement with both ends pinned."""

    route = list(order)
    size = len(route)

    def dist(a: int, b: int) -> float:
        return math.dist(points[a], points[b])

    for _ in range(max_passes):
        improved = False
        for i in range(1, size - 2):
            for j in range(i + 1, min(size - 1, i + window)):
                a, b = route[i - 1], route[i]
                c, d = route[j], route[j + 1]
                delta = dist(a, c) + dist(b, d) - dist(a, b) - dist(c, d)
                if delta < -1e-9:
                    route[i : j + 1] = route[i : j + 1][::-1]
                    improved = True
        if not improved:
            break
    return route


__all__ = [
    "OrderMethod",
    "OrderedPath",
    "SearchOutcome",
    "hamiltonian_path",
    "heuristic_path",
    "order_path",
    "path_length",
    "proximity_graph",
    "sort_along_axis",
    "two_opt",
]
