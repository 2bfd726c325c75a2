"""Internal road graph construction (synthetic lattice or crowd-sourced)."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Literal, Optional, Protocol, Sequence

import numpy as np
import shapely
from shapely.geometry import Polygon

from ...models.domain import Point
from ..geospatial import bounding_region, pairwise_distance_matrix_km
from .cache import GraphCache
from .models import GraphAssembly, NodeKind, RoadGraph

logger = logging.getLogger(__name__)

GraphStrategy = Literal["lattice", "crowd_sourced", "none"]

MAIN_ROAD = "main"
LOCAL_ROAD = "local"
REAL_ROUTE = "real_route"
MAIN_ROAD_EVERY = 5
SPACING_GROWTH = 1.5


class PickupHistorySource(Protocol):
    """Supplies historical pickup coordinates, newest first."""

    def recent_pickup_points(self, limit: int) -> Sequence[Point]:
        ...


@dataclass(slots=True)
class GraphParameters:
    strategy: GraphStrategy = "lattice"
    spacing_deg: float = 0.003
    padding_deg: float = 0.01
    connectivity: int = 8
    max_nodes: int = 40000
    proximity_km: float = 0.2
    history_limit: int = 500


def _lattice_shape(min_lat: float, min_lng: float, max_lat: float, max_lng: float, spacing: float) -> tuple[int, int]:
    rows = int(math.floor((max_lat - min_lat) / spacing + 1e-9)) + 1
    cols = int(math.floor((max_lng - min_lng) / spacing + 1e-9)) + 1
    return rows, cols


def build_lattice_graph(
    region: Polygon,
    *,
    spacing_deg: float = 0.003,
    connectivity: int = 8,
    max_nodes: int = 40000,
) -> RoadGraph:
    """Lay a regular grid over ``region`` and connect neighbouring cells.

    Rows and columns whose index is a multiple of ``MAIN_ROAD_EVERY`` carry ``main`` roads,
    everything else (diagonals included) is ``local``. The spacing widens until the grid fits
    within ``max_nodes``.
    """

    if spacing_deg <= 0:
        raise ValueError("Lattice spacing must be positive.")
    if connectivity not in (4, 8):
        raise ValueError("Lattice connectivity must be 4 or 8.")

    min_lng, min_lat, max_lng, max_lat = region.bounds
    spacing = spacing_deg
    rows, cols = _lattice_shape(min_lat, min_lng, max_lat, max_lng, spacing)
    while rows * cols > max_nodes:
        spacing *= SPACING_GROWTH
        rows, cols = _lattice_shape(min_lat, min_lng, max_lat, max_lng, spacing)
    if spacing != spacing_deg:
        logger.info(f"Lattice spacing widened from {spacing_deg} to {spacing:.5f} deg to stay under {max_nodes} nodes")

    lat_values = min_lat + np.arange(rows) * spacing
    lng_values = min_lng + np.arange(cols) * spacing
    lng_grid, lat_grid = np.meshgrid(lng_values, lat_values)
    inside = shapely.covers(region, shapely.points(lng_grid.ravel(), lat_grid.ravel())).reshape(rows, cols)

    assembly = GraphAssembly()
    for row, col in zip(*np.nonzero(inside)):
        assembly.add_node(
            _lattice_id(row, col),
            Point(float(lat_values[row]), float(lng_values[col])),
            NodeKind.SYNTHETIC,
        )

    offsets = [(0, 1), (1, 0)]
    if connectivity == 8:
        offsets += [(1, 1), (1, -1)]
    for row, col in zip(*np.nonzero(inside)):
        for d_row, d_col in offsets:
            n_row, n_col = row + d_row, col + d_col
            if not (0 <= n_row < rows and 0 <= n_col < cols) or not inside[n_row, n_col]:
                continue
            if d_row and d_col:
                road_type = LOCAL_ROAD
            elif d_col:
                road_type = MAIN_ROAD if row % MAIN_ROAD_EVERY == 0 else LOCAL_ROAD
            else:
                road_type = MAIN_ROAD if col % MAIN_ROAD_EVERY == 0 else LOCAL_ROAD
            assembly.add_edge(_lattice_id(row, col), _lattice_id(n_row, n_col), road_type=road_type)

    graph = assembly.freeze(
        {"strategy": "lattice", "spacing_deg": spacing, "connectivity": connectivity, "rows": rows, "cols": cols}
    )
    logger.debug(f"Built lattice graph {graph!r} with spacing {spacing:.5f} deg")
    return graph


def _lattice_id(row: int, col: int) -> str:
    return f"lattice_{int(row)}_{int(col)}"


def build_crowd_sourced_graph(
    points: Sequence[Point],
    *,
    proximity_km: float = 0.2,
    limit: int = 500,
) -> RoadGraph:
    """Connect historical pickup points that lie within ``proximity_km`` of each other."""

    selected = list(points[:limit])
    assembly = GraphAssembly()
    for index, point in enumerate(selected):
        assembly.add_node(f"real_{index}", point, NodeKind.REAL)

    if len(selected) > 1:
        close = np.triu(pairwise_distance_matrix_km(selected) < proximity_km, k=1)
        assembly.add_edges(
            ((f"real_{i}", f"real_{j}") for i, j in zip(*np.nonzero(close))),
            road_type=REAL_ROUTE,
        )

    graph = assembly.freeze({"strategy": "crowd_sourced", "proximity_km": proximity_km, "points": len(selected)})
    logger.debug(f"Built crowd-sourced graph {graph!r} from {len(selected)} historical points")
    return graph


def build_graph_for_points(
    points: Sequence[Point],
    params: GraphParameters,
    *,
    history: Optional[PickupHistorySource] = None,
    cache: Optional[GraphCache] = None,
) -> Optional[RoadGraph]:
    """Return the internal graph for a request, or ``None`` when the graph tier is disabled."""

    if params.strategy == "none":
        return None

    if params.strategy == "crowd_sourced":
        graph = _crowd_sourced_or_none(params, history, cache)
        if graph is not None:
            return graph
        logger.info("Crowd-sourced graph unavailable, falling back to synthetic lattice")

    region = bounding_region(points, params.padding_deg)

    def factory() -> RoadGraph:
        return build_lattice_graph(
            region,
            spacing_deg=params.spacing_deg,
            connectivity=params.connectivity,
            max_nodes=params.max_nodes,
        )

    if cache is None:
        return factory()
    key = ("lattice", tuple(round(value, 6) for value in region.bounds), params.spacing_deg, params.connectivity, params.max_nodes)
    return cache.get_or_build(key, factory)


def _crowd_sourced_or_none(
    params: GraphParameters,
    history: Optional[PickupHistorySource],
    cache: Optional[GraphCache],
) -> Optional[RoadGraph]:
    if history is None:
        return None

    def factory() -> RoadGraph:
        return build_crowd_sourced_graph(
            history.recent_pickup_points(params.history_limit),
            proximity_km=params.proximity_km,
            limit=params.history_limit,
        )

    try:
        if cache is None:
            graph = factory()
        else:
            graph = cache.get_or_build(("crowd_sourced", params.history_limit, params.proximity_km), factory)
    except (OSError, ValueError) as exc:
        logger.warning(f"Pickup history could not be loaded: {exc}")
        return None
    return graph if graph.node_count else None
