"""Leg geometry strategies and the provider -> graph -> straight-line fallback chain."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional, Sequence

from ...exceptions import NoPathFound, ProviderUnavailable, RoutingError
from ...models.domain import Point
from ..geospatial import polyline_length_km
from ..graph.models import RoadGraph
from .dijkstra import shortest_path
from .models import LegSource, ResolvedLeg, RouteLeg
from .provider_client import RoutingProvider

logger = logging.getLogger(__name__)


def attach_endpoints(origin: Point, path: Sequence[Point], destination: Point) -> tuple[Point, ...]:
    """Make a polyline start at ``origin`` and end at ``destination`` without repeated points."""
    polyline: list[Point] = []
    for point in (origin, *path, destination):
        if polyline and polyline[-1] == point:
            continue
        polyline.append(point)
    if len(polyline) == 1:
        polyline.append(destination)
    return tuple(polyline)


class LegStrategy(ABC):
    """One tier of the leg fallback chain."""

    source: LegSource

    @abstractmethod
    def resolve(self, origin: Point, destination: Point) -> ResolvedLeg:
        """Return the leg geometry or raise a ``RoutingError`` subclass."""
        raise NotImplementedError


class ProviderLegStrategy(LegStrategy):
    source = LegSource.PROVIDER

    def __init__(self, provider: RoutingProvider, vehicle_type: str) -> None:
        self.provider = provider
        self.vehicle_type = vehicle_type

    def resolve(self, origin: Point, destination: Point) -> ResolvedLeg:
        route = self.provider.route(origin, destination, self.vehicle_type)
        if not route.polyline:
            raise ProviderUnavailable("Provider returned an empty polyline.")
        polyline = attach_endpoints(origin, route.polyline, destination)
        return ResolvedLeg(
            polyline=polyline,
            distance_km=polyline_length_km(polyline),
            duration_hours=route.duration_hours,
        )


class GraphLegStrategy(LegStrategy):
    source = LegSource.INTERNAL_GRAPH

    def __init__(self, graph: RoadGraph, *, max_snap_km: Optional[float] = None) -> None:
        self.graph = graph
        self.max_snap_km = max_snap_km

    def resolve(self, origin: Point, destination: Point) -> ResolvedLeg:
        if origin == destination:
            return ResolvedLeg(polyline=(origin, destination), distance_km=0.0)
        result = shortest_path(self.graph, origin, destination, max_snap_km=self.max_snap_km)
        if len(result.node_ids) == 1:
            raise NoPathFound(f"Both endpoints snap to graph node {result.node_ids[0]}.")
        polyline = attach_endpoints(origin, result.polyline, destination)
        return ResolvedLeg(polyline=polyline, distance_km=polyline_length_km(polyline))


class StraightLineLegStrategy(LegStrategy):
    source = LegSource.STRAIGHT_LINE

    def resolve(self, origin: Point, destination: Point) -> ResolvedLeg:
        polyline = (origin, destination)
        return ResolvedLeg(polyline=polyline, distance_km=polyline_length_km(polyline))


def build_leg_strategies(
    *,
    provider: Optional[RoutingProvider],
    graph: Optional[RoadGraph],
    vehicle_type: str,
    max_snap_km: Optional[float] = None,
) -> list[LegStrategy]:
    """Fallback chain in priority order. Straight line is always last and never fails."""
    strategies: list[LegStrategy] = []
    if provider is not None:
        strategies.append(ProviderLegStrategy(provider, vehicle_type))
    if graph is not None and graph.node_count:
        strategies.append(GraphLegStrategy(graph, max_snap_km=max_snap_km))
    strategies.append(StraightLineLegStrategy())
    return strategies


def resolve_leg(
    strategies: Sequence[LegStrategy],
    from_id: str,
    origin: Point,
    to_id: str,
    destination: Point,
) -> RouteLeg:
    for strategy in strategies:
        try:
            geometry = strategy.resolve(origin, destination)
        except ProviderUnavailable as exc:
            logger.warning(f"Provider failed for leg {from_id}->{to_id}, falling back: {exc}")
            continue
        except NoPathFound as exc:
            logger.debug(f"Internal graph has no path for leg {from_id}->{to_id}, falling back: {exc}")
            continue
        except RoutingError as exc:
            logger.warning(f"{strategy.source.value} failed for leg {from_id}->{to_id}, falling back: {exc}")
            continue
        return RouteLeg(
            from_id=from_id,
            to_id=to_id,
            polyline=geometry.polyline,
            distance_km=geometry.distance_km,
            source=strategy.source,
            provider_duration_hours=geometry.duration_hours,
        )
    # Only reachable when the chain lacks its straight-line tier.
    geometry = StraightLineLegStrategy().resolve(origin, destination)
    return RouteLeg(from_id, to_id, geometry.polyline, geometry.distance_km, LegSource.STRAIGHT_LINE)
