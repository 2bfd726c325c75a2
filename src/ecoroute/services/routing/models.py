"""Routing domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ...models.domain import Depot, PickupLocation, Point


class LegSource(str, Enum):
    PROVIDER = "provider"
    INTERNAL_GRAPH = "internal-graph"
    STRAIGHT_LINE = "straight-line"


@dataclass(frozen=True, slots=True)
class ProviderRoute:
    distance_km: float
    duration_hours: float
    polyline: tuple[Point, ...]


@dataclass(frozen=True, slots=True)
class PathResult:
    node_ids: tuple[str, ...]
    polyline: tuple[Point, ...]
    distance_km: float


@dataclass(frozen=True, slots=True)
class ResolvedLeg:
    polyline: tuple[Point, ...]
    distance_km: float
    duration_hours: Optional[float] = None


@dataclass(frozen=True, slots=True)
class RouteLeg:
    from_id: str
    to_id: str
    polyline: tuple[Point, ...]
    distance_km: float
    source: LegSource
    provider_duration_hours: Optional[float] = None


@dataclass(slots=True)
class TourResult:
    order: List[PickupLocation]
    nearest_neighbor_km: float
    optimized_km: float
    swaps: int
    passes: int


@dataclass(frozen=True, slots=True)
class RouteSavings:
    distance: float
    time: float
    cost: float
    emissions: float


@dataclass(frozen=True, slots=True)
class RouteMetrics:
    total_distance_km: float
    total_time_minutes: float
    fuel_cost: float
    co2_kg: float
    efficiency_score: float
    savings: RouteSavings


@dataclass(slots=True)
class OptimizedRoute:
    depot: Depot
    stops: List[PickupLocation]
    legs: List[RouteLeg]
    metrics: RouteMetrics
    metadata: dict = field(default_factory=dict)

    @property
    def ordered_ids(self) -> List[str]:
        return [stop.pickup_id for stop in self.stops]

    def full_route_coordinates(self) -> List[Point]:
        """Concatenate leg polylines, dropping the repeated joint point between legs."""
        coordinates: List[Point] = []
        for leg in self.legs:
            for point in leg.polyline:
                if coordinates and coordinates[-1] == point:
                    continue
                coordinates.append(point)
        if not coordinates:
            coordinates.append(self.depot.point)
        return coordinates
