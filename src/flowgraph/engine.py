"""
FlowTraversalEngine: the entry points the editor layer calls.

The engine owns its caches instead of relying on module-level state, so
each editor session (or test) composes its own instance.
"""

import time
from typing import Callable, List, Optional
import logging

from .cache import TraversalCache
from .colors import get_next_available_color, node_opacity, resolve_next_available_color
from .config import EngineConfig
from .diagnostics import ValidationIssue, validate_flow_path
from .enrichment import DataEnrichmentAdapter
from .models.flow import Flow
from .models.traversal import EnhancedTraversalResult, TraversalResult
from .services import NodeServices
from .topology.analyzer import FlowLike, empty_result, raw_process_ids, read_flow, traverse_flow

logger = logging.getLogger(__name__)


class FlowTraversalEngine:
    """
    Cached flow traversal plus enrichment, connectivity and color queries.

    Args:
        services: Lookups used for enrichment and service-backed colors
        config: Cache TTLs, concurrency, palette and opacities
        clock: Monotonic time source shared by both caches
    """

    def __init__(
        self,
        services: Optional[NodeServices] = None,
        config: Optional[EngineConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or EngineConfig()
        self.services = services or NodeServices()
        self.clock = clock
        self.basic_cache: TraversalCache[TraversalResult] = TraversalCache(
            self.config.basic_cache, clock=clock, name="traversal"
        )
        self.enhanced_cache: TraversalCache[EnhancedTraversalResult] = TraversalCache(
            self.config.enrichment.cache, clock=clock, name="enhanced traversal"
        )
        self.enrichment = DataEnrichmentAdapter(self.services, self.config.enrichment)

    def compute_traversal(self, flow: FlowLike) -> TraversalResult:
        """Traversal result for a snapshot, served from cache while fresh."""
        snapshot = read_flow(flow)
        if snapshot is None:
            return empty_result(raw_process_ids(flow))
        return self.basic_cache.get_or_compute(snapshot, traverse_flow)

    async def compute_enhanced_traversal(self, flow: FlowLike) -> EnhancedTraversalResult:
        """
        Traversal result joined with node names and colors.

        A newer snapshot's enrichment is never overwritten by a slower call
        that started earlier for an older snapshot.
        """
        snapshot = read_flow(flow)
        if snapshot is None:
            return EnhancedTraversalResult.from_basic(empty_result(raw_process_ids(flow)), {})

        cached = self.enhanced_cache.get(snapshot)
        if cached is not None:
            return cached

        started_at = self.clock()
        basic = self.compute_traversal(snapshot)
        enhanced = await self.enrichment.enrich(snapshot, basic)
        self.enhanced_cache.put(snapshot, enhanced, started_at=started_at)
        return enhanced

    def is_node_connected(self, node_id: str, flow: FlowLike) -> bool:
        """Whether the node is reachable from start and can reach end."""
        return self.compute_traversal(flow).get_position(node_id).is_connected

    def get_node_opacity(self, node_id: str, flow: FlowLike) -> float:
        return node_opacity(
            self.compute_traversal(flow),
            node_id,
            connected=self.config.connected_opacity,
            disconnected=self.config.disconnected_opacity,
        )

    def get_next_available_color(self, flow: FlowLike) -> str:
        """Color for a new node, from colors persisted on the snapshot."""
        snapshot = read_flow(flow)
        if snapshot is None:
            return self.config.palette[0]
        return get_next_available_color(snapshot, self.config.palette)

    async def resolve_next_available_color(self, flow: FlowLike) -> str:
        """Color for a new node, from colors held by the lookup services."""
        snapshot = read_flow(flow)
        if snapshot is None:
            return self.config.palette[0]
        return await resolve_next_available_color(snapshot, self.services, self.config.palette)

    def diagnose(self, flow: FlowLike) -> List[ValidationIssue]:
        """Structured reasons a flow is invalid (empty when it is valid)."""
        snapshot = read_flow(flow)
        if snapshot is None:
            return validate_flow_path(Flow(id=""), empty_result([]))
        return validate_flow_path(snapshot, self.compute_traversal(snapshot))

    def invalidate(self, flow_id: str) -> None:
        """Forget both cached results for a flow."""
        self.basic_cache.invalidate(flow_id)
        self.enhanced_cache.invalidate(flow_id)

    def clear_caches(self) -> None:
        self.basic_cache.clear()
        self.enhanced_cache.clear()
