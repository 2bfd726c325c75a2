"""Routing orchestration service."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

from pydantic import ValidationError

from ...config import Settings, settings
from ...data.history_repository import default_history_source
from ...exceptions import InvalidInput, NoPathFound
from ...models.domain import Depot, PickupLocation, Point
from ...schemas.routing import (
    PointModel,
    RouteLegModel,
    RouteMetricsModel,
    RoutingRequest,
    RoutingResponse,
    SavingsModel,
    ShortestPathRequest,
    ShortestPathResponse,
)
from ..clustering import execute_strategy
from ..geospatial import polyline_length_km
from ..graph.builder import GraphParameters, PickupHistorySource, build_graph_for_points
from ..graph.cache import GraphCache, graph_cache
from .assembler import RouteAssembler
from .dijkstra import shortest_path
from .legs import attach_endpoints, build_leg_strategies
from .metrics import CostModel, baseline_distance_km, calculate_metrics, savings_percent
from .models import LegSource, OptimizedRoute, RouteLeg
from .provider_client import RoutingProvider, build_provider
from .tsp import sequence_clusters

logger = logging.getLogger(__name__)

DEPOT_STOP_ID = "depot"


@dataclass(slots=True)
class OptimizerParameters:
    """Fully resolved knobs for one optimization run."""

    vehicle_type: str
    max_cluster_size: int
    clustering_method: str
    kmeans_random_state: int
    two_opt_iteration_cap: int
    graph: GraphParameters
    max_snap_distance_km: float
    provider_timeout_ms: int
    use_provider: bool
    return_to_depot: bool
    max_parallel_legs: int
    cost_model: CostModel


def _override(value: Any, default: Any) -> Any:
    return default if value is None else value


def build_parameters(payload: RoutingRequest, config: Optional[Settings] = None) -> OptimizerParameters:
    """Merge request overrides onto configured defaults."""

    config = config or settings
    overrides = payload.config
    get = (lambda name: getattr(overrides, name)) if overrides else (lambda name: None)
    try:
        profile = config.vehicle_profile(payload.vehicle_type)
    except ValueError as exc:
        raise InvalidInput(str(exc)) from exc

    graph = GraphParameters(
        strategy=_override(get("graph_strategy"), config.graph_strategy),
        spacing_deg=_override(get("lattice_spacing_deg"), config.lattice_spacing_deg),
        padding_deg=config.lattice_padding_deg,
        connectivity=_override(get("lattice_connectivity"), config.lattice_connectivity),
        max_nodes=config.lattice_max_nodes,
        proximity_km=config.crowd_sourced_proximity_km,
        history_limit=config.crowd_sourced_history_limit,
    )
    cost_model = CostModel(
        average_speed_kmh=_override(get("average_speed_kmh"), profile.average_speed_kmh),
        fuel_consumption_l_per_km=_override(get("fuel_consumption_l_per_km"), profile.fuel_consumption_l_per_km),
        emission_factor_kg_per_km=_override(get("emission_factor_kg_per_km"), profile.emission_factor_kg_per_km),
        fuel_price_per_l=_override(get("fuel_price_per_l"), config.fuel_price_per_l),
    )
    return OptimizerParameters(
        vehicle_type=payload.vehicle_type,
        max_cluster_size=_override(get("max_cluster_size"), config.max_cluster_size),
        clustering_method=_override(get("clustering_method"), config.clustering_method),
        kmeans_random_state=config.kmeans_random_state,
        two_opt_iteration_cap=_override(get("two_opt_iteration_cap"), config.two_opt_iteration_cap),
        graph=graph,
        max_snap_distance_km=_override(get("max_snap_distance_km"), config.max_snap_distance_km),
        provider_timeout_ms=_override(get("routing_provider_timeout_ms"), config.routing_provider_timeout_ms),
        use_provider=overrides.use_provider if overrides else True,
        return_to_depot=overrides.return_to_depot if overrides else False,
        max_parallel_legs=_override(get("max_parallel_legs"), config.max_parallel_legs),
        cost_model=cost_model,
    )


def parse_routing_request(data: Mapping[str, Any]) -> RoutingRequest:
    try:
        return RoutingRequest.model_validate(data)
    except ValidationError as exc:
        raise InvalidInput(f"Invalid routing request: {exc}") from exc


def _to_domain(payload: RoutingRequest) -> tuple[Depot, list[PickupLocation]]:
    depot = Depot(code=DEPOT_STOP_ID, latitude=payload.depot.latitude, longitude=payload.depot.longitude)
    pickups = [
        PickupLocation(
            pickup_id=pickup.id,
            latitude=pickup.latitude,
            longitude=pickup.longitude,
            waste_type=pickup.waste_type,
            priority=pickup.priority,
            estimated_weight_kg=pickup.estimated_weight_kg,
            points_value=pickup.points_value,
            arrival_index=index,
        )
        for index, pickup in enumerate(payload.pickups)
    ]
    return depot, pickups


def _validate_pickups(depot: Optional[Depot], pickups: Sequence[PickupLocation]) -> None:
    if depot is None:
        raise InvalidInput("A depot is required.")
    if not pickups:
        raise InvalidInput("At least one pickup is required.")
    ids = Counter(pickup.pickup_id for pickup in pickups)
    duplicates = sorted(pickup_id for pickup_id, count in ids.items() if count > 1)
    if duplicates:
        raise InvalidInput(f"Duplicate pickup ids: {', '.join(duplicates)}")
    if DEPOT_STOP_ID in ids:
        raise InvalidInput(f"Pickup id '{DEPOT_STOP_ID}' is reserved for the depot.")


def optimize_collection_route(
    depot: Depot,
    pickups: Sequence[PickupLocation],
    params: OptimizerParameters,
    *,
    provider: Optional[RoutingProvider] = None,
    history: Optional[PickupHistorySource] = None,
    cache: Optional[GraphCache] = None,
) -> OptimizedRoute:
    """Cluster, order and connect the pickups, then score the resulting route."""

    _validate_pickups(depot, pickups)

    clustering = execute_strategy(
        params.clustering_method,
        depot=depot,
        pickups=pickups,
        max_cluster_size=params.max_cluster_size,
        random_state=params.kmeans_random_state,
    )
    tours = sequence_clusters(depot.point, clustering.clusters, iteration_cap=params.two_opt_iteration_cap)
    logger.info(
        f"Ordered {len(pickups)} pickups in {len(clustering.clusters)} cluster(s) "
        f"using {params.clustering_method} clustering"
    )

    graph = build_graph_for_points(
        [depot.point, *(pickup.point for pickup in pickups)],
        params.graph,
        history=history,
        cache=cache,
    )
    strategies = build_leg_strategies(
        provider=provider if params.use_provider else None,
        graph=graph,
        vehicle_type=params.vehicle_type,
        max_snap_km=params.max_snap_distance_km,
    )
    assembled = RouteAssembler(strategies, max_parallel_legs=params.max_parallel_legs).assemble(
        depot, tours, return_to_depot=params.return_to_depot
    )

    baseline_km = baseline_distance_km(depot, pickups, return_to_depot=params.return_to_depot)
    # straight-line length of the optimised order
    ordered_km = baseline_distance_km(depot, assembled.stops, return_to_depot=params.return_to_depot)
    metrics = calculate_metrics(assembled.legs, baseline_km=baseline_km, cost_model=params.cost_model)
    sources = Counter(leg.source.value for leg in assembled.legs)
    logger.info(
        f"Route complete: {metrics.total_distance_km:.3f} km over {len(assembled.legs)} legs "
        f"({dict(sources)}), {metrics.savings.distance:.1f}% shorter than submission order"
    )

    metadata = {
        "vehicle_type": params.vehicle_type,
        "clustering_method": params.clustering_method,
        "cluster_count": len(clustering.clusters),
        "cluster_sizes": clustering.sizes(),
        "graph_strategy": graph.metadata.get("strategy") if graph is not None else "none",
        "graph_nodes": graph.node_count if graph is not None else 0,
        "graph_bounds": graph.bounds if graph is not None else None,
        "leg_sources": {source.value: sources.get(source.value, 0) for source in LegSource},
        "two_opt_swaps": sum(tour.swaps for tour in tours),
        "nearest_neighbor_km": sum(tour.nearest_neighbor_km for tour in tours),
        "two_opt_km": sum(tour.optimized_km for tour in tours),
        "baseline_distance_km": baseline_km,
        "ordered_straight_line_km": ordered_km,
        "straight_line_savings_percent": savings_percent(baseline_km, ordered_km),
        "return_to_depot": params.return_to_depot,
    }
    return OptimizedRoute(
        depot=depot,
        stops=assembled.stops,
        legs=assembled.legs,
        metrics=metrics,
        metadata=metadata,
    )


def _leg_duration_min(leg: RouteLeg, cost_model: CostModel) -> float:
    if leg.provider_duration_hours is not None:
        return leg.provider_duration_hours * 60.0
    return cost_model.time_minutes(leg.distance_km)


def _to_response(route: OptimizedRoute, params: OptimizerParameters) -> RoutingResponse:
    metrics = route.metrics
    return RoutingResponse(
        ordered_stops=route.ordered_ids,
        legs=[
            RouteLegModel(
                from_id=leg.from_id,
                to_id=leg.to_id,
                polyline=[PointModel(latitude=p.latitude, longitude=p.longitude) for p in leg.polyline],
                distance_km=leg.distance_km,
                duration_min=_leg_duration_min(leg, params.cost_model),
                source=leg.source.value,
            )
            for leg in route.legs
        ],
        metrics=RouteMetricsModel(
            total_distance_km=metrics.total_distance_km,
            total_time_minutes=metrics.total_time_minutes,
            fuel_cost=metrics.fuel_cost,
            co2_kg=metrics.co2_kg,
            efficiency_score=metrics.efficiency_score,
            savings=SavingsModel(
                distance=metrics.savings.distance,
                time=metrics.savings.time,
                cost=metrics.savings.cost,
                emissions=metrics.savings.emissions,
            ),
        ),
        full_route_coordinates=[point.as_lat_lng() for point in route.full_route_coordinates()],
        metadata=route.metadata,
    )


def optimize_route(
    payload: RoutingRequest,
    *,
    provider: Optional[RoutingProvider] = None,
    history: Optional[PickupHistorySource] = None,
    cache: Optional[GraphCache] = graph_cache,
    config: Optional[Settings] = None,
) -> RoutingResponse:
    """Optimize a collection route for one request.

    ``provider`` defaults to the configured routing provider (if any) and ``history`` to the
    configured pickup history file when the crowd-sourced graph is requested.
    """

    config = config or settings
    if not payload.pickups:
        raise InvalidInput("At least one pickup is required.")
    params = build_parameters(payload, config)
    depot, pickups = _to_domain(payload)

    if provider is None and params.use_provider:
        provider = build_provider(config, timeout_ms=params.provider_timeout_ms)
    if history is None and params.graph.strategy == "crowd_sourced":
        history = default_history_source()

    route = optimize_collection_route(depot, pickups, params, provider=provider, history=history, cache=cache)
    if payload.collector_id:
        route.metadata["collector_id"] = payload.collector_id
    return _to_response(route, params)


def find_shortest_path(
    payload: ShortestPathRequest,
    *,
    history: Optional[PickupHistorySource] = None,
    cache: Optional[GraphCache] = graph_cache,
    config: Optional[Settings] = None,
) -> ShortestPathResponse:
    """Route a single origin/destination pair over the internal graph, straight line if unreachable."""

    config = config or settings
    strategy = payload.graph_strategy or ("lattice" if config.graph_strategy == "none" else config.graph_strategy)
    if history is None and strategy == "crowd_sourced":
        history = default_history_source()
    try:
        profile = config.vehicle_profile(payload.vehicle_type)
    except ValueError as exc:
        raise InvalidInput(str(exc)) from exc

    origin = Point(payload.origin.latitude, payload.origin.longitude)
    destination = Point(payload.destination.latitude, payload.destination.longitude)
    params = GraphParameters(
        strategy=strategy,
        spacing_deg=config.lattice_spacing_deg,
        padding_deg=config.lattice_padding_deg,
        connectivity=config.lattice_connectivity,
        max_nodes=config.lattice_max_nodes,
        proximity_km=config.crowd_sourced_proximity_km,
        history_limit=config.crowd_sourced_history_limit,
    )
    graph = build_graph_for_points([origin, destination], params, history=history, cache=cache)
    max_snap_km = payload.max_snap_distance_km or config.max_snap_distance_km

    try:
        if graph is None:
            raise NoPathFound("Internal graph is disabled.")
        result = shortest_path(graph, origin, destination, max_snap_km=max_snap_km)
        node_path = list(result.node_ids)
        if origin == destination:
            polyline = (origin, destination)
        elif len(result.node_ids) == 1:
            raise NoPathFound(f"Both endpoints snap to graph node {result.node_ids[0]}.")
        else:
            polyline = attach_endpoints(origin, result.polyline, destination)
        source = LegSource.INTERNAL_GRAPH
    except NoPathFound as exc:
        logger.debug(f"Shortest path falling back to straight line: {exc}")
        node_path = []
        polyline = (origin, destination)
        source = LegSource.STRAIGHT_LINE

    distance = polyline_length_km(polyline)
    return ShortestPathResponse(
        node_path=node_path,
        polyline=[PointModel(latitude=p.latitude, longitude=p.longitude) for p in polyline],
        distance_km=distance,
        estimated_time_min=distance / profile.average_speed_kmh * 60.0,
        source=source.value,
    )
