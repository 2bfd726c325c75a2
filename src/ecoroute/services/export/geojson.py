"""GeoJSON export utilities."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

from shapely.geometry import LineString, Point as ShapelyPoint, mapping

from ..routing.models import OptimizedRoute


def _line(coordinates: List[List[float]]) -> LineString:
    """Build a LineString from [lat, lon] pairs (GeoJSON wants lon, lat)."""
    if len(coordinates) < 2:
        raise ValueError("LineString must have at least 2 coordinates")
    return LineString([(lon, lat) for lat, lon in coordinates])


def export_route_to_geojson(route: OptimizedRoute) -> Dict[str, Any]:
    """FeatureCollection with the full route, each leg and every stop.

    Coordinates are emitted in GeoJSON (lon, lat) order.
    """

    features: List[Dict[str, Any]] = []
    full = [point.as_lat_lng() for point in route.full_route_coordinates()]
    if len(full) >= 2:
        features.append(
            {
                "type": "Feature",
                "geometry": mapping(_line(full)),
                "properties": {
                    "kind": "route",
                    "total_distance_km": route.metrics.total_distance_km,
                    "stop_count": len(route.stops),
                },
            }
        )

    for index, leg in enumerate(route.legs):
        features.append(
            {
                "type": "Feature",
                "geometry": mapping(_line([point.as_lat_lng() for point in leg.polyline])),
                "properties": {
                    "kind": "leg",
                    "sequence": index,
                    "from_id": leg.from_id,
                    "to_id": leg.to_id,
                    "distance_km": leg.distance_km,
                    "source": leg.source.value,
                },
            }
        )

    features.append(
        {
            "type": "Feature",
            "geometry": mapping(ShapelyPoint(route.depot.longitude, route.depot.latitude)),
            "properties": {"kind": "depot", "id": route.depot.code},
        }
    )
    for sequence, stop in enumerate(route.stops, start=1):
        features.append(
            {
                "type": "Feature",
                "geometry": mapping(ShapelyPoint(stop.longitude, stop.latitude)),
                "properties": {
                    "kind": "stop",
                    "id": stop.pickup_id,
                    "sequence": sequence,
                    "waste_type": stop.waste_type,
                    "priority": stop.priority,
                },
            }
        )

    return {"type": "FeatureCollection", "features": features}


def save_geojson(collection: Dict[str, Any], output_path: Path) -> None:
    """Save a FeatureCollection to disk."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w", encoding="utf-8") as f:
        json.dump(collection, f, indent=2, ensure_ascii=False)
