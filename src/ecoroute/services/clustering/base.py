"""Base classes for pickup clustering strategies."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from ...models.domain import Depot, PickupLocation


def priority_order(pickups: Sequence[PickupLocation]) -> list[PickupLocation]:
    """Most urgent first (lower priority value); arrival order breaks ties."""
    return sorted(pickups, key=lambda pickup: (pickup.priority, pickup.arrival_index))


def chunk(pickups: Sequence[PickupLocation], size: int) -> list[tuple[PickupLocation, ...]]:
    if size < 1:
        raise ValueError("max_cluster_size must be at least 1.")
    return [tuple(pickups[start : start + size]) for start in range(0, len(pickups), size)]


class ClusteringStrategy(ABC):
    """Contract for clustering strategy implementations."""

    @abstractmethod
    def generate(
        self,
        *,
        depot: Depot,
        pickups: Sequence[PickupLocation],
        max_cluster_size: int,
        **kwargs,
    ) -> "ClusteringResult":
        raise NotImplementedError


class ClusteringResult:
    """Ordered clusters; processing order is list order."""

    def __init__(self, clusters: list[tuple[PickupLocation, ...]], metadata: dict | None = None):
        self.clusters = clusters
        self.metadata = metadata or {}

    def sizes(self) -> list[int]:
        return [len(cluster) for cluster in self.clusters]

    def assignments(self) -> dict[str, int]:
        return {pickup.pickup_id: index for index, cluster in enumerate(self.clusters) for pickup in cluster}
