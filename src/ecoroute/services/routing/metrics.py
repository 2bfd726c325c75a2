"""Route cost, emissions and savings calculations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from ...config import VehicleProfile
from ...models.domain import Depot, PickupLocation
from ..geospatial import distance_km
from .models import RouteLeg, RouteMetrics, RouteSavings


@dataclass(frozen=True, slots=True)
class CostModel:
    average_speed_kmh: float
    fuel_consumption_l_per_km: float
    emission_factor_kg_per_km: float
    fuel_price_per_l: float

    @classmethod
    def from_profile(cls, profile: VehicleProfile, fuel_price_per_l: float) -> "CostModel":
        return cls(
            average_speed_kmh=profile.average_speed_kmh,
            fuel_consumption_l_per_km=profile.fuel_consumption_l_per_km,
            emission_factor_kg_per_km=profile.emission_factor_kg_per_km,
            fuel_price_per_l=fuel_price_per_l,
        )

    def time_minutes(self, km: float) -> float:
        return km / self.average_speed_kmh * 60.0

    def fuel_cost(self, km: float) -> float:
        return km * self.fuel_consumption_l_per_km * self.fuel_price_per_l

    def co2_kg(self, km: float) -> float:
        return km * self.emission_factor_kg_per_km


def efficiency_score(total_distance_km: float) -> float:
    if total_distance_km <= 0:
        return 0.0
    return round(1000.0 / total_distance_km, 1)


def savings_percent(baseline: float, optimized: float) -> float:
    """Relative improvement over the baseline, never negative."""
    if baseline <= 0:
        return 0.0
    return round(max(0.0, (baseline - optimized) / baseline * 100.0), 2)


def baseline_distance_km(depot: Depot, pickups: Sequence[PickupLocation], *, return_to_depot: bool = False) -> float:
    """Straight-line length of visiting pickups in submission order."""
    points = [depot.point, *(pickup.point for pickup in pickups)]
    if return_to_depot and pickups:
        points.append(depot.point)
    return sum(distance_km(a, b) for a, b in zip(points, points[1:]))


def calculate_metrics(legs: Sequence[RouteLeg], *, baseline_km: float, cost_model: CostModel) -> RouteMetrics:
    total_km = sum(leg.distance_km for leg in legs)
    total_minutes = cost_model.time_minutes(total_km)
    fuel_cost = cost_model.fuel_cost(total_km)
    co2 = cost_model.co2_kg(total_km)

    savings = RouteSavings(
        distance=savings_percent(baseline_km, total_km),
        time=savings_percent(cost_model.time_minutes(baseline_km), total_minutes),
        cost=savings_percent(cost_model.fuel_cost(baseline_km), fuel_cost),
        emissions=savings_percent(cost_model.co2_kg(baseline_km), co2),
    )
    return RouteMetrics(
        total_distance_km=total_km,
        total_time_minutes=total_minutes,
        fuel_cost=fuel_cost,
        co2_kg=co2,
        efficiency_score=efficiency_score(total_km),
        savings=savings,
    )
