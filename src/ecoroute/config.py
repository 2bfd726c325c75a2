"""Engine configuration and settings management."""

import json
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

VehicleType = Literal["truck", "van", "bike"]


class VehicleProfile(BaseModel):
    """Travel and cost characteristics for one vehicle class."""

    average_speed_kmh: float = Field(gt=0.0)
    fuel_consumption_l_per_km: float = Field(ge=0.0)
    emission_factor_kg_per_km: float = Field(ge=0.0)
    openrouteservice_profile: str = "driving-car"
    osrm_profile: str = "driving"


def _default_vehicle_profiles() -> dict[str, VehicleProfile]:
    # CO2 factors assume 2.3 kg per litre burned.
    return {
        "truck": VehicleProfile(
            average_speed_kmh=40.0,
            fuel_consumption_l_per_km=0.35,
            emission_factor_kg_per_km=0.805,
        ),
        "van": VehicleProfile(
            average_speed_kmh=40.0,
            fuel_consumption_l_per_km=0.12,
            emission_factor_kg_per_km=0.276,
        ),
        "bike": VehicleProfile(
            average_speed_kmh=15.0,
            fuel_consumption_l_per_km=0.05,
            emission_factor_kg_per_km=0.115,
            openrouteservice_profile="cycling-regular",
            osrm_profile="cycling",
        ),
    }


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="ECOROUTE_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "EcoRoute Optimization Engine"
    history_file: Optional[Path] = Field(
        default=None,
        description="CSV of historical pickup coordinates used for the crowd-sourced graph.",
    )

    routing_provider: Literal["none", "openrouteservice", "osrm"] = Field(
        default="none",
        description="External road-routing provider used for leg geometry.",
    )
    routing_provider_base_url: Optional[str] = Field(
        default=None,
        description="Base URL of the provider (e.g., https://api.openrouteservice.org or http://localhost:5000).",
    )
    routing_provider_api_key: Optional[str] = Field(
        default=None,
        description="API key sent to OpenRouteService. Ignored by OSRM.",
    )
    routing_provider_timeout_ms: int = Field(default=8000, ge=1)
    routing_provider_max_retries: int = Field(default=0, ge=0)
    routing_provider_backoff_seconds: float = Field(default=0.5, ge=0.0)

    graph_strategy: Literal["lattice", "crowd_sourced", "none"] = Field(
        default="lattice",
        description="Internal graph used when the provider cannot route a leg.",
    )
    lattice_spacing_deg: float = Field(default=0.003, gt=0.0)
    lattice_padding_deg: float = Field(default=0.01, ge=0.0)
    lattice_connectivity: Literal[4, 8] = 8
    lattice_max_nodes: int = Field(default=40000, ge=4)
    max_snap_distance_km: float = Field(default=1.0, gt=0.0)
    crowd_sourced_proximity_km: float = Field(default=0.2, gt=0.0)
    crowd_sourced_history_limit: int = Field(default=500, ge=1)
    graph_cache_ttl_seconds: float = Field(default=600.0, ge=0.0)
    graph_cache_max_entries: int = Field(default=8, ge=1)

    clustering_method: Literal["sequential", "kmeans"] = "sequential"
    max_cluster_size: int = Field(default=5, ge=1)
    kmeans_random_state: int = 42
    two_opt_iteration_cap: int = Field(default=100, ge=0)
    max_parallel_legs: int = Field(default=4, ge=1)

    fuel_price_per_l: float = Field(default=1.5, ge=0.0)
    vehicle_profiles: dict[str, VehicleProfile] = Field(default_factory=_default_vehicle_profiles)

    @field_validator("history_file", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Optional[Path]:
        if value is None or value == "":
            return None
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("routing_provider_base_url", mode="before")
    @classmethod
    def _strip_trailing_slash(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text.rstrip("/") or None

    @field_validator("vehicle_profiles", mode="before")
    @classmethod
    def _merge_vehicle_profiles(cls, value: Any) -> dict[str, Any]:
        """Merge overrides (dict or JSON object string) onto the built-in profiles."""
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except json.JSONDecodeError as exc:
                raise ValueError("vehicle_profiles must be a JSON object.") from exc
        if not isinstance(value, dict):
            raise ValueError("vehicle_profiles must be a mapping of vehicle type to profile.")
        merged: dict[str, Any] = {name: profile.model_dump() for name, profile in _default_vehicle_profiles().items()}
        for name, profile in value.items():
            if isinstance(profile, VehicleProfile):
                profile = profile.model_dump()
            merged[name] = {**merged.get(name, {}), **profile}
        return merged

    def vehicle_profile(self, vehicle_type: str) -> VehicleProfile:
        try:
            return self.vehicle_profiles[vehicle_type]
        except KeyError as exc:
            raise ValueError(f"Unknown vehicle type '{vehicle_type}'.") from exc


settings = Settings()
