"""Geographic K-Means clustering of pickups."""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np
from sklearn.cluster import KMeans

from ...models.domain import Depot, PickupLocation
from ..geospatial import EARTH_RADIUS_KM, haversine_km
from .base import ClusteringResult, ClusteringStrategy, chunk, priority_order


class KMeansClustering(ClusteringStrategy):
    """Group nearby pickups with K-Means, then cap every group at ``max_cluster_size``.

    Coordinates are projected with an equirectangular approximation centred on the depot,
    which is accurate enough for a single service area. Groups are visited nearest-centroid
    first and oversize groups are split in priority order.
    """

    def __init__(self, *, random_state: int = 42, max_iter: int = 300) -> None:
        self.random_state = random_state
        self.max_iter = max_iter

    def _project(self, depot: Depot, pickups: Sequence[PickupLocation]) -> np.ndarray:
        lat_ref = np.radians(depot.latitude)
        lon_ref = np.radians(depot.longitude)
        lat = np.radians(np.array([pickup.latitude for pickup in pickups], dtype=float))
        lon = np.radians(np.array([pickup.longitude for pickup in pickups], dtype=float))
        x = EARTH_RADIUS_KM * (lon - lon_ref) * np.cos(lat_ref)
        y = EARTH_RADIUS_KM * (lat - lat_ref)
        return np.column_stack([x, y])

    def generate(
        self,
        *,
        depot: Depot,
        pickups: Sequence[PickupLocation],
        max_cluster_size: int,
        **kwargs,
    ) -> ClusteringResult:
        if max_cluster_size < 1:
            raise ValueError("max_cluster_size must be at least 1.")
        metadata = {"method": "kmeans", "max_cluster_size": max_cluster_size}
        n_clusters = math.ceil(len(pickups) / max_cluster_size)
        if n_clusters <= 1:
            return ClusteringResult(chunk(priority_order(pickups), max_cluster_size), {**metadata, "k": n_clusters})

        model = KMeans(
            n_clusters=n_clusters,
            random_state=self.random_state,
            n_init=10,
            max_iter=self.max_iter,
        )
        labels = model.fit_predict(self._project(depot, pickups))

        groups: dict[int, list[PickupLocation]] = {}
        for pickup, label in zip(pickups, labels):
            groups.setdefault(int(label), []).append(pickup)

        def centroid_distance(label: int) -> tuple[float, int]:
            members = groups[label]
            lat = sum(pickup.latitude for pickup in members) / len(members)
            lon = sum(pickup.longitude for pickup in members) / len(members)
            return haversine_km(depot.latitude, depot.longitude, lat, lon), label

        clusters: list[tuple[PickupLocation, ...]] = []
        for label in sorted(groups, key=centroid_distance):
            clusters.extend(chunk(priority_order(groups[label]), max_cluster_size))

        metadata.update({"k": n_clusters, "split_clusters": len(clusters) - len(groups)})
        return ClusteringResult(clusters, metadata)
