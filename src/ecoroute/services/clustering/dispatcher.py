"""Factory for clustering strategies based on configuration."""

from __future__ import annotations

from typing import Any

from .base import ClusteringResult, ClusteringStrategy
from .kmeans import KMeansClustering
from .sequential import SequentialClustering


def get_strategy(method: str, **kwargs: Any) -> ClusteringStrategy:
    match method:
        case "sequential":
            return SequentialClustering()
        case "kmeans":
            kmeans_kwargs = {k: v for k, v in kwargs.items() if k in {"random_state", "max_iter"}}
            return KMeansClustering(**kmeans_kwargs)
        case _:
            raise ValueError(f"Unknown clustering method '{method}'.")


def execute_strategy(method: str, **kwargs: Any) -> ClusteringResult:
    strategy = get_strategy(method, **kwargs)
    return strategy.generate(**kwargs)
