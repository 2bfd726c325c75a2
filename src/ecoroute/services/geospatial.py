"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np
from shapely.geometry import MultiPoint, Polygon, box

from ..models.domain import Point

EARTH_RADIUS_KM = 6371.0


def to_radians(degrees: float) -> float:
    return degrees * math.pi / 180.0


def to_degrees(radians: float) -> float:
    return radians * 180.0 / math.pi


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def distance_km(a: Point, b: Point) -> float:
    return haversine_km(a.latitude, a.longitude, b.latitude, b.longitude)


def bearing_degrees(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate the initial bearing from (lat1, lon1) to (lat2, lon2)."""

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_lambda = math.radians(lon2 - lon1)
    y = math.sin(delta_lambda) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(delta_lambda)
    bearing = math.degrees(math.atan2(y, x))
    return (bearing + 360) % 360


def polyline_length_km(points: Sequence[Point]) -> float:
    """Sum of consecutive haversine distances along a polyline."""

    return sum(distance_km(a, b) for a, b in zip(points, points[1:]))


def haversine_to_many_km(origin: Point, latitudes: np.ndarray, longitudes: np.ndarray) -> np.ndarray:
    """Vectorised distance from one point to many coordinates."""

    phi1 = np.radians(origin.latitude)
    phi2 = np.radians(latitudes)
    d_phi = np.radians(latitudes - origin.latitude)
    d_lambda = np.radians(longitudes - origin.longitude)
    a = np.sin(d_phi / 2) ** 2 + np.cos(phi1) * np.cos(phi2) * np.sin(d_lambda / 2) ** 2
    return EARTH_RADIUS_KM * 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))


def pairwise_distance_matrix_km(points: Sequence[Point]) -> np.ndarray:
    """Symmetric matrix of haversine distances between every pair of points."""

    if not points:
        return np.zeros((0, 0))
    lats = np.array([point.latitude for point in points], dtype=float)
    lons = np.array([point.longitude for point in points], dtype=float)
    phi = np.radians(lats)
    d_phi = phi[:, None] - phi[None, :]
    d_lambda = np.radians(lons[:, None] - lons[None, :])
    a = np.sin(d_phi / 2) ** 2 + np.cos(phi)[:, None] * np.cos(phi)[None, :] * np.sin(d_lambda / 2) ** 2
    a = np.clip(a, 0.0, 1.0)
    matrix = EARTH_RADIUS_KM * 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))
    np.fill_diagonal(matrix, 0.0)
    return matrix


def bounding_region(points: Sequence[Point], padding_deg: float = 0.0) -> Polygon:
    """Axis-aligned region (lng/lat order) covering the points plus padding."""

    if not points:
        raise ValueError("At least one point is required to build a region.")
    min_x, min_y, max_x, max_y = MultiPoint([(p.longitude, p.latitude) for p in points]).bounds
    return box(min_x - padding_deg, min_y - padding_deg, max_x + padding_deg, max_y + padding_deg)
