"""Visit-order heuristics for pickup clusters.

Contract:
- Every tour is an open path that starts at a fixed anchor (the depot or the last stop of
  the previous cluster). The anchor is never moved and the path does not return to it.
- Costs are straight-line haversine kilometres.
- Results depend only on input order; ties keep the earliest candidate.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

from ...models.domain import PickupLocation, Point
from ..geospatial import distance_km
from .models import TourResult

logger = logging.getLogger(__name__)

IMPROVEMENT_TOLERANCE = 1e-12


def path_length_km(anchor: Point, order: Sequence[PickupLocation]) -> float:
    points = [anchor, *(pickup.point for pickup in order)]
    return sum(distance_km(a, b) for a, b in zip(points, points[1:]))


def nearest_neighbor_order(anchor: Point, pickups: Sequence[PickupLocation]) -> List[PickupLocation]:
    remaining = list(pickups)
    route: List[PickupLocation] = []
    current = anchor
    while remaining:
        best_index = 0
        best_distance = distance_km(current, remaining[0].point)
        for index in range(1, len(remaining)):
            candidate = distance_km(current, remaining[index].point)
            if candidate < best_distance:
                best_index, best_distance = index, candidate
        nxt = remaining.pop(best_index)
        route.append(nxt)
        current = nxt.point
    return route


def two_opt(
    anchor: Point,
    order: Sequence[PickupLocation],
    *,
    iteration_cap: int = 100,
) -> tuple[List[PickupLocation], int, int]:
    """Reverse sub-sequences while doing so shortens the open path.

    Returns the improved order, the number of reversals applied and the passes made.
    """

    route = list(order)
    n = len(route)
    swaps = 0
    passes = 0
    if n < 2:
        return route, swaps, passes

    def point_at(position: int) -> Point:
        return anchor if position == 0 else route[position - 1].point

    improved = True
    while improved and passes < iteration_cap:
        improved = False
        passes += 1
        # Positions 1..n hold stops; position 0 is the anchor.
        for i in range(1, n):
            for j in range(i + 1, n + 1):
                before = distance_km(point_at(i - 1), point_at(i))
                after = distance_km(point_at(i - 1), point_at(j))
                if j < n:
                    before += distance_km(point_at(j), point_at(j + 1))
                    after += distance_km(point_at(i), point_at(j + 1))
                if after - before < -IMPROVEMENT_TOLERANCE:
                    route[i - 1 : j] = reversed(route[i - 1 : j])
                    swaps += 1
                    improved = True
    return route, swaps, passes


def solve_cluster(anchor: Point, pickups: Sequence[PickupLocation], *, iteration_cap: int = 100) -> TourResult:
    initial = nearest_neighbor_order(anchor, pickups)
    nearest_km = path_length_km(anchor, initial)
    order, swaps, passes = two_opt(anchor, initial, iteration_cap=iteration_cap)
    optimized_km = path_length_km(anchor, order)
    return TourResult(order=order, nearest_neighbor_km=nearest_km, optimized_km=optimized_km, swaps=swaps, passes=passes)


def sequence_clusters(
    anchor: Point,
    clusters: Sequence[Sequence[PickupLocation]],
    *,
    iteration_cap: int = 100,
) -> List[TourResult]:
    """Order each cluster in turn, anchoring every cluster at the last stop of the previous one."""

    tours: List[TourResult] = []
    current = anchor
    for index, cluster in enumerate(clusters):
        tour = solve_cluster(current, cluster, iteration_cap=iteration_cap)
        logger.debug(
            f"Cluster {index}: {len(cluster)} stops, NN {tour.nearest_neighbor_km:.3f} km -> "
            f"2-opt {tour.optimized_km:.3f} km ({tour.swaps} swaps)"
        )
        tours.append(tour)
        if tour.order:
            current = tour.order[-1].point
    return tours
