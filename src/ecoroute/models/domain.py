"""Domain models for depot and pickup records."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True, slots=True)
class Point:
    """WGS84 coordinate in decimal degrees."""

    latitude: float
    longitude: float

    def as_lat_lng(self) -> list[float]:
        return [self.latitude, self.longitude]


@dataclass(frozen=True, slots=True)
class PickupLocation:
    """A collection request supplied by the upstream submission service."""

    pickup_id: str
    latitude: float
    longitude: float
    waste_type: str = "general"
    priority: int = 3
    estimated_weight_kg: float = 0.0
    points_value: Optional[int] = None
    arrival_index: int = 0

    @property
    def point(self) -> Point:
        return Point(self.latitude, self.longitude)


@dataclass(frozen=True, slots=True)
class Depot:
    """Collector start point."""

    code: str
    latitude: float
    longitude: float

    @property
    def point(self) -> Point:
        return Point(self.latitude, self.longitude)
