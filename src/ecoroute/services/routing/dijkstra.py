"""Shortest paths over the internal road graph."""

from __future__ import annotations

import heapq
import itertools
import logging
import math
from typing import Optional

import numpy as np

from ...exceptions import NoPathFound
from ...models.domain import Point
from ..geospatial import haversine_to_many_km
from ..graph.models import GraphNode, RoadGraph
from .models import PathResult

logger = logging.getLogger(__name__)


def snap_to_graph(graph: RoadGraph, point: Point, *, max_snap_km: Optional[float] = None) -> tuple[GraphNode, float]:
    """Return the node nearest to ``point`` and its distance. Ties resolve to the first node built."""

    if graph.node_count == 0:
        raise NoPathFound("Graph has no nodes to snap to.")
    latitudes, longitudes = graph.coordinates
    distances = haversine_to_many_km(point, latitudes, longitudes)
    index = int(np.argmin(distances))
    nearest = float(distances[index])
    if max_snap_km is not None and nearest > max_snap_km:
        raise NoPathFound(
            f"No graph node within {max_snap_km} km of ({point.latitude}, {point.longitude}); nearest is {nearest:.3f} km."
        )
    return graph.node(graph.node_ids[index]), nearest


def dijkstra(graph: RoadGraph, source_id: str, target_id: str) -> tuple[list[str], float]:
    """Minimum-weight node sequence from ``source_id`` to ``target_id``.

    Equal-distance frontier entries are popped in insertion order so results are stable.
    """

    if source_id not in graph or target_id not in graph:
        raise NoPathFound(f"Unknown node in path request {source_id}->{target_id}.")
    if source_id == target_id:
        return [source_id], 0.0

    counter = itertools.count()
    dist: dict[str, float] = {source_id: 0.0}
    previous: dict[str, str] = {}
    visited: set[str] = set()
    frontier: list[tuple[float, int, str]] = [(0.0, next(counter), source_id)]

    while frontier:
        current_dist, _, node_id = heapq.heappop(frontier)
        if node_id in visited:
            continue
        visited.add(node_id)
        if node_id == target_id:
            break
        for edge in graph.neighbors(node_id):
            if edge.to_node_id in visited:
                continue
            candidate = current_dist + edge.weight_km
            if candidate < dist.get(edge.to_node_id, math.inf):
                dist[edge.to_node_id] = candidate
                previous[edge.to_node_id] = node_id
                heapq.heappush(frontier, (candidate, next(counter), edge.to_node_id))

    if target_id not in visited:
        raise NoPathFound(f"Nodes {source_id} and {target_id} are not connected.")

    path = [target_id]
    while path[-1] != source_id:
        path.append(previous[path[-1]])
    path.reverse()
    return path, dist[target_id]


def shortest_path(
    graph: RoadGraph,
    origin: Point,
    destination: Point,
    *,
    max_snap_km: Optional[float] = None,
) -> PathResult:
    """Snap both endpoints to the graph and return the polyline through the nodes found."""

    start, start_snap = snap_to_graph(graph, origin, max_snap_km=max_snap_km)
    end, end_snap = snap_to_graph(graph, destination, max_snap_km=max_snap_km)
    node_ids, graph_km = dijkstra(graph, start.node_id, end.node_id)
    polyline = tuple(graph.node(node_id).point for node_id in node_ids)
    logger.debug(
        f"Graph path {start.node_id}->{end.node_id}: {len(node_ids)} nodes, {graph_km:.3f} km "
        f"(snap {start_snap:.3f}/{end_snap:.3f} km)"
    )
    return PathResult(node_ids=tuple(node_ids), polyline=polyline, distance_km=graph_km)

