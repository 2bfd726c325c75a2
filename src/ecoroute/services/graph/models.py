"""Road graph data structures."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional

import numpy as np

from ...models.domain import Point
from ..geospatial import distance_km


class NodeKind(str, Enum):
    REAL = "real"
    SYNTHETIC = "synthetic"


@dataclass(frozen=True, slots=True)
class GraphNode:
    node_id: str
    point: Point
    kind: NodeKind = NodeKind.SYNTHETIC


@dataclass(frozen=True, slots=True)
class GraphEdge:
    from_node_id: str
    to_node_id: str
    weight_km: float
    road_type: str = "local"


class RoadGraph:
    """Immutable weighted graph with coordinate lookups for snapping.

    Built through :class:`GraphAssembly`; once frozen it is safe to share between threads.
    """

    __slots__ = ("_nodes", "_adjacency", "_node_ids", "_latitudes", "_longitudes", "metadata")

    def __init__(
        self,
        nodes: Mapping[str, GraphNode],
        adjacency: Mapping[str, tuple[GraphEdge, ...]],
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self._nodes = MappingProxyType(dict(nodes))
        self._adjacency = MappingProxyType({node_id: tuple(adjacency.get(node_id, ())) for node_id in self._nodes})
        self._node_ids = tuple(self._nodes)
        self._latitudes = np.array([node.point.latitude for node in self._nodes.values()], dtype=float)
        self._longitudes = np.array([node.point.longitude for node in self._nodes.values()], dtype=float)
        self.metadata = MappingProxyType(dict(metadata or {}))

    @property
    def nodes(self) -> Mapping[str, GraphNode]:
        return self._nodes

    @property
    def node_ids(self) -> tuple[str, ...]:
        return self._node_ids

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def edge_count(self) -> int:
        return sum(len(edges) for edges in self._adjacency.values())

    @property
    def bounds(self) -> Optional[tuple[float, float, float, float]]:
        """(min_lat, min_lng, max_lat, max_lng) or ``None`` for an empty graph."""
        if not self._node_ids:
            return None
        return (
            float(self._latitudes.min()),
            float(self._longitudes.min()),
            float(self._latitudes.max()),
            float(self._longitudes.max()),
        )

    @property
    def coordinates(self) -> tuple[np.ndarray, np.ndarray]:
        return self._latitudes, self._longitudes

    def node(self, node_id: str) -> GraphNode:
        return self._nodes[node_id]

    def neighbors(self, node_id: str) -> tuple[GraphEdge, ...]:
        return self._adjacency.get(node_id, ())

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __repr__(self) -> str:
        return f"RoadGraph(nodes={self.node_count}, edges={self.edge_count})"


class GraphAssembly:
    """Mutable builder that enforces edge invariants before freezing into a RoadGraph."""

    def __init__(self) -> None:
        self._nodes: dict[str, GraphNode] = {}
        self._adjacency: dict[str, list[GraphEdge]] = {}

    def add_node(self, node_id: str, point: Point, kind: NodeKind = NodeKind.SYNTHETIC) -> GraphNode:
        if node_id in self._nodes:
            raise ValueError(f"Duplicate graph node '{node_id}'.")
        node = GraphNode(node_id=node_id, point=point, kind=kind)
        self._nodes[node_id] = node
        self._adjacency[node_id] = []
        return node

    def add_edge(
        self,
        from_node_id: str,
        to_node_id: str,
        *,
        road_type: str = "local",
        weight_km: Optional[float] = None,
        bidirectional: bool = True,
    ) -> None:
        """Connect two existing nodes. Weight defaults to their haversine distance."""
        if from_node_id not in self._nodes or to_node_id not in self._nodes:
            raise ValueError(f"Edge {from_node_id}->{to_node_id} references an unknown node.")
        if weight_km is None:
            weight_km = distance_km(self._nodes[from_node_id].point, self._nodes[to_node_id].point)
        if weight_km < 0:
            raise ValueError("Edge weights must be non-negative.")
        self._adjacency[from_node_id].append(GraphEdge(from_node_id, to_node_id, weight_km, road_type))
        if bidirectional:
            self._adjacency[to_node_id].append(GraphEdge(to_node_id, from_node_id, weight_km, road_type))

    def add_edges(self, pairs: Iterable[tuple[str, str]], *, road_type: str = "local") -> None:
        for from_node_id, to_node_id in pairs:
            self.add_edge(from_node_id, to_node_id, road_type=road_type)

    def freeze(self, metadata: Optional[Mapping[str, Any]] = None) -> RoadGraph:
        return RoadGraph(self._nodes, {key: tuple(edges) for key, edges in self._adjacency.items()}, metadata)
