import pytest

from src.ecoroute.config import Settings
from src.ecoroute.models.domain import Depot, PickupLocation, Point
from src.ecoroute.services.geospatial import distance_km
from src.ecoroute.services.routing.metrics import (
    CostModel,
    baseline_distance_km,
    calculate_metrics,
    efficiency_score,
    savings_percent,
)
from src.ecoroute.services.routing.models import LegSource, RouteLeg


def _leg(km: float) -> RouteLeg:
    return RouteLeg("a", "b", (Point(0.0, 0.0), Point(0.0, 0.0)), km, LegSource.STRAIGHT_LINE)


def _truck() -> CostModel:
    return CostModel.from_profile(Settings().vehicle_profile("truck"), fuel_price_per_l=1.5)


def test_truck_costs_for_ten_kilometres():
    metrics = calculate_metrics([_leg(4.0), _leg(6.0)], baseline_km=20.0, cost_model=_truck())

    assert metrics.total_distance_km == pytest.approx(10.0)
    assert metrics.total_time_minutes == pytest.approx(15.0)
    assert metrics.fuel_cost == pytest.approx(5.25)
    assert metrics.co2_kg == pytest.approx(8.05)
    assert metrics.efficiency_score == 100.0
    assert metrics.savings.distance == pytest.approx(50.0)
    assert metrics.savings.time == pytest.approx(50.0)
    assert metrics.savings.cost == pytest.approx(50.0)
    assert metrics.savings.emissions == pytest.approx(50.0)


def test_bike_profile_is_slower_and_cleaner():
    bike = CostModel.from_profile(Settings().vehicle_profile("bike"), fuel_price_per_l=1.5)
    metrics = calculate_metrics([_leg(3.0)], baseline_km=3.0, cost_model=bike)
    assert metrics.total_time_minutes == pytest.approx(12.0)
    assert metrics.co2_kg == pytest.approx(3.0 * 0.115)


def test_efficiency_score_rounding_and_zero_distance():
    assert efficiency_score(0.0) == 0.0
    assert efficiency_score(3.0) == 333.3


def test_savings_never_negative():
    assert savings_percent(10.0, 12.0) == 0.0
    assert savings_percent(0.0, 1.0) == 0.0
    metrics = calculate_metrics([_leg(12.0)], baseline_km=10.0, cost_model=_truck())
    assert metrics.savings.distance == 0.0
    assert metrics.savings.emissions == 0.0


def test_zero_length_route():
    metrics = calculate_metrics([], baseline_km=0.0, cost_model=_truck())
    assert metrics.total_distance_km == 0
    assert metrics.efficiency_score == 0.0
    assert metrics.savings.distance == 0.0


def test_baseline_uses_input_order_and_optional_return():
    depot = Depot("depot", 0.0, 0.0)
    pickups = [PickupLocation("A", 0.0, 0.01), PickupLocation("B", 0.01, 0.0)]
    open_km = distance_km(depot.point, pickups[0].point) + distance_km(pickups[0].point, pickups[1].point)

    assert baseline_distance_km(depot, pickups) == pytest.approx(open_km)
    assert baseline_distance_km(depot, pickups, return_to_depot=True) == pytest.approx(
        open_km + distance_km(pickups[1].point, depot.point)
    )
