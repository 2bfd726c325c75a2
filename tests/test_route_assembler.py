import pytest

from src.ecoroute.exceptions import NoPathFound, ProviderUnavailable
from src.ecoroute.models.domain import Depot, PickupLocation, Point
from src.ecoroute.services.geospatial import distance_km
from src.ecoroute.services.graph.models import GraphAssembly
from src.ecoroute.services.routing import legs as legs_module
from src.ecoroute.services.routing.assembler import RouteAssembler
from src.ecoroute.services.routing.legs import (
    GraphLegStrategy,
    ProviderLegStrategy,
    StraightLineLegStrategy,
    build_leg_strategies,
    resolve_leg,
)
from src.ecoroute.services.routing.models import LegSource, PathResult, ProviderRoute, TourResult

DEPOT = Depot(code="depot", latitude=0.0, longitude=0.0)


def _pickup(pid: str, lat: float, lon: float) -> PickupLocation:
    return PickupLocation(pickup_id=pid, latitude=lat, longitude=lon)


def _tour(*pickups: PickupLocation) -> TourResult:
    return TourResult(order=list(pickups), nearest_neighbor_km=0.0, optimized_km=0.0, swaps=0, passes=0)


def _tiny_graph():
    assembly = GraphAssembly()
    assembly.add_node("n0", Point(0.0, 0.0))
    return assembly.freeze()


class FailingProvider:
    def __init__(self):
        self.calls = 0

    def route(self, origin, destination, vehicle_type):
        self.calls += 1
        raise ProviderUnavailable("timeout")


class MidpointProvider:
    def route(self, origin, destination, vehicle_type):
        mid = Point((origin.latitude + destination.latitude) / 2, (origin.longitude + destination.longitude) / 2 + 0.001)
        return ProviderRoute(distance_km=1.0, duration_hours=0.05, polyline=(origin, mid, destination))


def test_fallback_chain_provider_then_graph_then_straight_line(monkeypatch):
    blocked = Point(0.02, 0.02)

    def fake_shortest_path(graph, origin, destination, *, max_snap_km=None):
        if destination == blocked:
            raise NoPathFound("disconnected")
        return PathResult(node_ids=("n0", "n1"), polyline=(Point(0.0, 0.005), Point(0.0, 0.006)), distance_km=0.1)

    monkeypatch.setattr(legs_module, "shortest_path", fake_shortest_path)
    provider = FailingProvider()
    strategies = build_leg_strategies(provider=provider, graph=_tiny_graph(), vehicle_type="truck")

    route = RouteAssembler(strategies).assemble(
        DEPOT,
        [_tour(_pickup("A", 0.0, 0.01), _pickup("B", 0.02, 0.02), _pickup("C", 0.03, 0.0))],
    )

    assert provider.calls == 3
    assert [leg.source for leg in route.legs] == [
        LegSource.INTERNAL_GRAPH,
        LegSource.STRAIGHT_LINE,
        LegSource.INTERNAL_GRAPH,
    ]
    for leg, (origin, destination) in zip(
        route.legs,
        [(DEPOT.point, Point(0.0, 0.01)), (Point(0.0, 0.01), blocked), (blocked, Point(0.03, 0.0))],
    ):
        assert leg.polyline[0] == origin
        assert leg.polyline[-1] == destination
        assert leg.distance_km >= 0
    assert route.legs[1].distance_km == pytest.approx(distance_km(Point(0.0, 0.01), blocked))


def test_provider_leg_geometry_is_used_when_available():
    strategies = build_leg_strategies(provider=MidpointProvider(), graph=None, vehicle_type="van")
    route = RouteAssembler(strategies).assemble(DEPOT, [_tour(_pickup("A", 0.0, 0.01))])

    (leg,) = route.legs
    assert leg.source is LegSource.PROVIDER
    assert len(leg.polyline) == 3
    assert leg.provider_duration_hours == 0.05
    assert leg.distance_km > distance_km(DEPOT.point, Point(0.0, 0.01))


def test_chain_without_straight_line_tier_still_returns_a_leg():
    leg = resolve_leg([ProviderLegStrategy(FailingProvider(), "truck")], "depot", DEPOT.point, "A", Point(0.0, 0.01))
    assert leg.source is LegSource.STRAIGHT_LINE
    assert leg.polyline == (DEPOT.point, Point(0.0, 0.01))


def test_strategies_skip_missing_tiers():
    assert [type(s) for s in build_leg_strategies(provider=None, graph=None, vehicle_type="bike")] == [
        StraightLineLegStrategy
    ]
    empty_graph = GraphAssembly().freeze()
    assert len(build_leg_strategies(provider=None, graph=empty_graph, vehicle_type="bike")) == 1


def test_tours_concatenate_and_optionally_return_to_depot():
    strategies = [StraightLineLegStrategy()]
    tours = [_tour(_pickup("A", 0.0, 0.01), _pickup("B", 0.01, 0.01)), _tour(_pickup("C", 0.01, 0.0))]

    open_route = RouteAssembler(strategies).assemble(DEPOT, tours)
    assert [stop.pickup_id for stop in open_route.stops] == ["A", "B", "C"]
    assert [(leg.from_id, leg.to_id) for leg in open_route.legs] == [("depot", "A"), ("A", "B"), ("B", "C")]

    closed_route = RouteAssembler(strategies).assemble(DEPOT, tours, return_to_depot=True)
    assert (closed_route.legs[-1].from_id, closed_route.legs[-1].to_id) == ("C", "depot")
    assert closed_route.legs[-1].polyline[-1] == DEPOT.point


def test_parallel_resolution_matches_sequential():
    pickups = [_pickup(f"P{i}", 0.001 * i, 0.002 * (i % 4)) for i in range(12)]
    strategies = [StraightLineLegStrategy()]

    sequential = RouteAssembler(strategies, max_parallel_legs=1).assemble(DEPOT, [_tour(*pickups)])
    parallel = RouteAssembler(strategies, max_parallel_legs=4).assemble(DEPOT, [_tour(*pickups)])

    assert sequential.legs == parallel.legs


def test_assembler_requires_strategies():
    with pytest.raises(ValueError):
        RouteAssembler([])


def test_stops_snapping_to_one_node_use_straight_line():
    assembly = GraphAssembly()
    assembly.add_node("n0", Point(0.002, 0.002))
    strategies = build_leg_strategies(provider=None, graph=assembly.freeze(), vehicle_type="truck")
    origin, destination = Point(0.0, 0.0), Point(0.0, 0.0005)

    with pytest.raises(NoPathFound):
        GraphLegStrategy(assembly.freeze()).resolve(origin, destination)

    leg = resolve_leg(strategies, "A", origin, "B", destination)
    assert leg.source is LegSource.STRAIGHT_LINE
    assert leg.distance_km == pytest.approx(distance_km(origin, destination))
