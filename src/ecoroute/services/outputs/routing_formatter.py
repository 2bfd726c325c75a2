"""Serializers for routing outputs."""

from __future__ import annotations

import csv
import io
from dataclasses import asdict

from ..routing.models import OptimizedRoute


def routing_result_to_json(route: OptimizedRoute) -> dict:
    return {
        "depot": {"latitude": route.depot.latitude, "longitude": route.depot.longitude},
        "ordered_stops": route.ordered_ids,
        "metrics": asdict(route.metrics),
        "metadata": route.metadata,
        "legs": [
            {
                "from_id": leg.from_id,
                "to_id": leg.to_id,
                "distance_km": leg.distance_km,
                "source": leg.source.value,
                "polyline": [point.as_lat_lng() for point in leg.polyline],
            }
            for leg in route.legs
        ],
    }


def routing_result_to_csv(route: OptimizedRoute) -> str:
    buffer = io.StringIO()
    fieldnames = [
        "sequence",
        "pickup_id",
        "latitude",
        "longitude",
        "waste_type",
        "priority",
        "from_id",
        "leg_distance_km",
        "leg_source",
        "cumulative_distance_km",
    ]
    writer = csv.DictWriter(buffer, fieldnames=fieldnames)
    writer.writeheader()
    cumulative = 0.0
    legs_by_destination = {leg.to_id: leg for leg in route.legs if leg.to_id != route.depot.code}
    for sequence, stop in enumerate(route.stops, start=1):
        leg = legs_by_destination[stop.pickup_id]
        cumulative += leg.distance_km
        writer.writerow(
            {
                "sequence": sequence,
                "pickup_id": stop.pickup_id,
                "latitude": stop.latitude,
                "longitude": stop.longitude,
                "waste_type": stop.waste_type,
                "priority": stop.priority,
                "from_id": leg.from_id,
                "leg_distance_km": round(leg.distance_km, 4),
                "leg_source": leg.source.value,
                "cumulative_distance_km": round(cumulative, 4),
            }
        )
    return buffer.getvalue()
