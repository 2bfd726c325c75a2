"""Process-wide cache for built road graphs."""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Hashable, Optional

from ...config import settings
from .models import RoadGraph

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class _CacheEntry:
    graph: RoadGraph
    built_at: float


class GraphCache:
    """Bounded LRU cache that builds each graph once.

    Concurrent misses for the same key share one build; builds for different keys run in
    parallel. Expired entries are dropped whenever a new graph is stored and the least
    recently used graphs are evicted beyond ``max_entries``. A ``ttl_seconds`` of 0 keeps
    entries until evicted or invalidated.
    """

    def __init__(
        self,
        ttl_seconds: float = 0.0,
        max_entries: int = 8,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries < 1:
            raise ValueError("Graph cache must hold at least one entry.")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[Hashable, _CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self._build_locks: dict[Hashable, threading.Lock] = {}

    def _fresh(self, entry: Optional[_CacheEntry]) -> bool:
        if entry is None:
            return False
        if self.ttl_seconds <= 0:
            return True
        return self._clock() - entry.built_at < self.ttl_seconds

    def _lookup(self, key: Hashable) -> Optional[RoadGraph]:
        with self._lock:
            entry = self._entries.get(key)
            if not self._fresh(entry):
                return None
            self._entries.move_to_end(key)
            return entry.graph

    def _store(self, key: Hashable, graph: RoadGraph) -> None:
        with self._lock:
            for stale in [k for k, entry in self._entries.items() if not self._fresh(entry)]:
                del self._entries[stale]
            self._entries[key] = _CacheEntry(graph=graph, built_at=self._clock())
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"Evicted cached graph for key {evicted!r}")

    def get_or_build(self, key: Hashable, factory: Callable[[], RoadGraph]) -> RoadGraph:
        graph = self._lookup(key)
        if graph is not None:
            return graph

        with self._lock:
            build_lock = self._build_locks.setdefault(key, threading.Lock())
        try:
            with build_lock:
                graph = self._lookup(key)
                if graph is not None:
                    return graph
                graph = factory()
                self._store(key, graph)
                logger.debug(f"Cached graph for key {key!r}: {graph!r}")
                return graph
        finally:
            with self._lock:
                if self._build_locks.get(key) is build_lock:
                    del self._build_locks[key]

    def invalidate(self, key: Optional[Hashable] = None) -> None:
        with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)


graph_cache = GraphCache(
    ttl_seconds=settings.graph_cache_ttl_seconds,
    max_entries=settings.graph_cache_max_entries,
)
