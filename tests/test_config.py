from pathlib import Path

import pytest

from src.ecoroute.config import Settings


def test_defaults_match_vehicle_profiles():
    config = Settings()
    assert config.max_cluster_size == 5
    assert config.routing_provider_timeout_ms == 8000
    assert config.fuel_price_per_l == 1.5
    assert config.vehicle_profile("truck").fuel_consumption_l_per_km == 0.35
    assert config.vehicle_profile("van").average_speed_kmh == 40.0
    assert config.vehicle_profile("bike").openrouteservice_profile == "cycling-regular"


def test_environment_overrides(monkeypatch, tmp_path: Path):
    monkeypatch.setenv("ECOROUTE_MAX_CLUSTER_SIZE", "3")
    monkeypatch.setenv("ECOROUTE_GRAPH_STRATEGY", "crowd_sourced")
    monkeypatch.setenv("ECOROUTE_HISTORY_FILE", str(tmp_path / "history.csv"))

    config = Settings()

    assert config.max_cluster_size == 3
    assert config.graph_strategy == "crowd_sourced"
    assert config.history_file == (tmp_path / "history.csv").resolve()


def test_vehicle_profile_overrides_merge_with_defaults():
    config = Settings(vehicle_profiles='{"truck": {"average_speed_kmh": 30}}')
    assert config.vehicle_profile("truck").average_speed_kmh == 30
    assert config.vehicle_profile("truck").fuel_consumption_l_per_km == 0.35
    assert "van" in config.vehicle_profiles


def test_invalid_values_rejected():
    with pytest.raises(ValueError):
        Settings(max_cluster_size=0)
    with pytest.raises(ValueError):
        Settings(vehicle_profiles="not json")
    with pytest.raises(ValueError):
        Settings().vehicle_profile("hovercraft")
