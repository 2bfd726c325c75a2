"""Export services."""

from .geojson import export_route_to_geojson, save_geojson

__all__ = [
    "export_route_to_geojson",
    "save_geojson",
]
