"""Routing request/response schemas."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class PointModel(BaseModel):
    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)


class PickupModel(BaseModel):
    id: str = Field(..., min_length=1, description="Pickup (submission) identifier.")
    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)
    waste_type: str = "general"
    priority: int = Field(default=3, description="Lower values are collected first.")
    estimated_weight_kg: float = Field(default=0.0, ge=0.0)
    points_value: Optional[int] = None


class OptimizationConfig(BaseModel):
    """Per-request overrides; unset fields fall back to engine settings."""

    max_cluster_size: Optional[int] = Field(None, ge=1)
    two_opt_iteration_cap: Optional[int] = Field(None, ge=0)
    clustering_method: Optional[Literal["sequential", "kmeans"]] = None
    graph_strategy: Optional[Literal["lattice", "crowd_sourced", "none"]] = None
    lattice_spacing_deg: Optional[float] = Field(None, gt=0.0)
    lattice_connectivity: Optional[Literal[4, 8]] = None
    routing_provider_timeout_ms: Optional[int] = Field(None, ge=1)
    max_snap_distance_km: Optional[float] = Field(None, gt=0.0)
    max_parallel_legs: Optional[int] = Field(None, ge=1)
    fuel_price_per_l: Optional[float] = Field(None, ge=0.0)
    fuel_consumption_l_per_km: Optional[float] = Field(None, ge=0.0)
    emission_factor_kg_per_km: Optional[float] = Field(None, ge=0.0)
    average_speed_kmh: Optional[float] = Field(None, gt=0.0)
    use_provider: bool = True
    return_to_depot: bool = False


class RoutingRequest(BaseModel):
    depot: PointModel
    pickups: List[PickupModel]
    vehicle_type: Literal["truck", "van", "bike"] = "truck"
    config: Optional[OptimizationConfig] = None
    collector_id: Optional[str] = Field(default=None, description="Collector the route is planned for.")


class RouteLegModel(BaseModel):
    from_id: str
    to_id: str
    polyline: List[PointModel]
    distance_km: float
    duration_min: float
    source: Literal["provider", "internal-graph", "straight-line"]


class SavingsModel(BaseModel):
    distance: float
    time: float
    cost: float
    emissions: float


class RouteMetricsModel(BaseModel):
    total_distance_km: float
    total_time_minutes: float
    fuel_cost: float
    co2_kg: float
    efficiency_score: float
    savings: SavingsModel


class RoutingResponse(BaseModel):
    ordered_stops: List[str]
    legs: List[RouteLegModel]
    metrics: RouteMetricsModel
    full_route_coordinates: List[List[float]]
    metadata: dict


class ShortestPathRequest(BaseModel):
    origin: PointModel
    destination: PointModel
    vehicle_type: Literal["truck", "van", "bike"] = "truck"
    graph_strategy: Optional[Literal["lattice", "crowd_sourced"]] = None
    max_snap_distance_km: Optional[float] = Field(None, gt=0.0)


class ShortestPathResponse(BaseModel):
    node_path: List[str]
    polyline: List[PointModel]
    distance_km: float
    estimated_time_min: float
    source: Literal["internal-graph", "straight-line"]
