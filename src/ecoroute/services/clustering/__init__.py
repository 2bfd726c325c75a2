"""Pickup clustering strategies."""

from .base import ClusteringResult, ClusteringStrategy
from .dispatcher import execute_strategy, get_strategy

__all__ = ["ClusteringResult", "ClusteringStrategy", "execute_strategy", "get_strategy"]
