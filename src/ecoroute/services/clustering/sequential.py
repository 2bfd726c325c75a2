"""Sequential chunking of pickups in priority order."""

from __future__ import annotations

from typing import Sequence

from ...models.domain import Depot, PickupLocation
from .base import ClusteringResult, ClusteringStrategy, chunk, priority_order


class SequentialClustering(ClusteringStrategy):
    """Partition pickups into consecutive chunks of ``max_cluster_size`` after a priority sort."""

    def generate(
        self,
        *,
        depot: Depot,
        pickups: Sequence[PickupLocation],
        max_cluster_size: int,
        **kwargs,
    ) -> ClusteringResult:
        clusters = chunk(priority_order(pickups), max_cluster_size)
        return ClusteringResult(clusters, {"method": "sequential", "max_cluster_size": max_cluster_size})
