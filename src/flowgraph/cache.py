"""
Short-lived memoization of traversal results.

Entries are keyed by flow id and carry a structural fingerprint of the
flow's nodes and edges. A hit requires the same fingerprint and an entry
younger than the TTL; anything else recomputes and replaces the entry.
Every write sweeps entries older than ttl * sweep_multiplier.

The store is guarded by a lock so one cache can serve several threads.
Concurrent misses for the same key are not coalesced; the last write wins.
"""

import threading
import time
from typing import Callable, Dict, Generic, Optional, Tuple, TypeVar
import logging

from .config import CacheConfig
from .models.flow import Flow
from .models.traversal import CacheEntry

logger = logging.getLogger(__name__)

T = TypeVar("T")


def nodes_fingerprint(flow: Flow) -> str:
    """Sorted 'id:type' pairs, joined."""
    return "|".join(sorted(f"{node.id}:{node.type}" for node in flow.nodes))


def edges_fingerprint(flow: Flow) -> str:
    """Sorted 'source:sourceHandle->target:targetHandle' triples, joined."""
    return "|".join(sorted(
        f"{edge.source}:{edge.source_handle or ''}->{edge.target}:{edge.target_handle or ''}"
        for edge in flow.edges
    ))


def flow_fingerprint(flow: Flow) -> Tuple[str, str]:
    return nodes_fingerprint(flow), edges_fingerprint(flow)


class TraversalCache(Generic[T]):
    """
    Fingerprint-checked TTL cache, one entry per flow id.

    Args:
        config: TTL policy
        clock: Monotonic time source in seconds, injectable for tests
        name: Label used in log messages
    """

    def __init__(
        self,
        config: Optional[CacheConfig] = None,
        clock: Callable[[], float] = time.monotonic,
        name: str = "traversal",
    ):
        self.config = config or CacheConfig()
        self.clock = clock
        self.name = name
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, flow_id: str) -> bool:
        with self._lock:
            return flow_id in self._entries

    def _is_fresh(self, entry: CacheEntry, fingerprint: Tuple[str, str], now: float) -> bool:
        return entry.fingerprint == fingerprint and now - entry.timestamp < self.config.ttl_s

    def get(self, flow: Flow) -> Optional[T]:
        """Cached result for this exact flow structure, or None."""
        if not self.config.enabled:
            return None
        fingerprint = flow_fingerprint(flow)
        now = self.clock()
        with self._lock:
            entry = self._entries.get(flow.id)
            if entry is not None and self._is_fresh(entry, fingerprint, now):
                self.hits += 1
                logger.debug(f"{self.name} cache hit for flow {flow.id}")
                return entry.result
            self.misses += 1
        logger.debug(f"{self.name} cache miss for flow {flow.id}")
        return None

    def put(self, flow: Flow, result: T, started_at: Optional[float] = None) -> bool:
        """
        Store a result, replacing any entry for this flow id.

        Args:
            flow: Snapshot the result was computed from
            result: Value to cache
            started_at: Clock reading taken before the computation began. When
                given, an entry written after that moment for a different
                fingerprint is kept, so a slow superseded computation cannot
                overwrite a newer one.

        Returns:
            True if the result was stored
        """
        if not self.config.enabled:
            return False
        nodes_hash, edges_hash = flow_fingerprint(flow)
        now = self.clock()
        with self._lock:
            existing = self._entries.get(flow.id)
            if (
                started_at is not None
                and existing is not None
                and existing.fingerprint != (nodes_hash, edges_hash)
                and existing.timestamp > started_at
            ):
                logger.debug(f"Dropped superseded {self.name} result for flow {flow.id}")
                return False
            self._entries[flow.id] = CacheEntry(
                flow_id=flow.id,
                nodes_hash=nodes_hash,
                edges_hash=edges_hash,
                result=result,
                timestamp=now,
            )
            self._sweep_locked(now)
        return True

    def get_or_compute(self, flow: Flow, compute: Callable[[Flow], T]) -> T:
        cached = self.get(flow)
        if cached is not None:
            return cached
        result = compute(flow)
        self.put(flow, result)
        return result

    def _sweep_locked(self, now: float) -> int:
        stale = [
            flow_id for flow_id, entry in self._entries.items()
            if now - entry.timestamp > self.config.stale_after_s
        ]
        for flow_id in stale:
            del self._entries[flow_id]
        if stale:
            logger.debug(f"Swept {len(stale)} stale {self.name} cache entries")
        return len(stale)

    def sweep(self) -> int:
        """Drop stale entries now. Returns how many were removed."""
        with self._lock:
            return self._sweep_locked(self.clock())

    def invalidate(self, flow_id: str) -> bool:
        with self._lock:
            return self._entries.pop(flow_id, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0
