"""
Tests for flowgraph.cache.

This module tests:
- Structural fingerprints (order independence, handle sensitivity)
- Hit/miss behavior under TTL and fingerprint changes
- Sweeping of stale entries on write
- The superseded-write guard
- Disabled caches
"""

import threading

import pytest

from flowgraph.cache import TraversalCache, edges_fingerprint, nodes_fingerprint
from flowgraph.config import CacheConfig
from flowgraph.models.flow import Flow, FlowEdge, FlowNode
from flowgraph.topology.analyzer import traverse_flow


def _flow(flow_id="flow-1", extra_edge=None, handle=None):
    nodes = [
        FlowNode(id="start", type="start"),
        FlowNode(id="A", type="agent", data={"name": "Writer"}),
        FlowNode(id="end", type="end"),
    ]
    edges = [
        FlowEdge(id="e1", source="start", target="A", source_handle=handle),
        FlowEdge(id="e2", source="A", target="end"),
    ]
    if extra_edge:
        edges.append(FlowEdge(id="e3", source=extra_edge[0], target=extra_edge[1]))
    return Flow(id=flow_id, nodes=nodes, edges=edges)


# =============================================================================
# Fingerprint Tests
# =============================================================================

class TestFingerprints:
    """Tests for structural fingerprints."""

    def test_nodes_fingerprint_ignores_order_and_payload(self):
        first = Flow(id="f", nodes=[
            FlowNode(id="b", type="agent", data={"name": "x"}),
            FlowNode(id="a", type="start"),
        ])
        second = Flow(id="f", nodes=[
            FlowNode(id="a", type="start", position={"x": 10.0, "y": 5.0}),
            FlowNode(id="b", type="agent", data={"name": "renamed"}),
        ])

        assert nodes_fingerprint(first) == nodes_fingerprint(second) == "a:start|b:agent"

    def test_edges_fingerprint_includes_handles(self):
        plain = _flow()
        handled = _flow(handle="true")

        assert edges_fingerprint(plain) != edges_fingerprint(handled)
        assert "start:true->A:" in edges_fingerprint(handled)

    def test_edges_fingerprint_ignores_edge_ids(self):
        first = Flow(id="f", edges=[FlowEdge(id="x", source="a", target="b")])
        second = Flow(id="f", edges=[FlowEdge(id="y", source="a", target="b")])

        assert edges_fingerprint(first) == edges_fingerprint(second)


# =============================================================================
# Hit / Miss Tests
# =============================================================================

class TestCacheLookup:
    """Tests for TTL and fingerprint checks."""

    def test_hit_within_ttl_returns_same_object(self, clock):
        cache = TraversalCache(CacheConfig(ttl_s=1.0), clock=clock)
        flow = _flow()

        first = cache.get_or_compute(flow, traverse_flow)
        clock.advance(0.5)
        second = cache.get_or_compute(flow, traverse_flow)

        assert second is first
        assert cache.hits == 1
        assert cache.misses == 1

    def test_equal_snapshot_hits(self, clock):
        """Test a rebuilt but structurally equal snapshot is a hit."""
        cache = TraversalCache(CacheConfig(), clock=clock)
        result = traverse_flow(_flow())
        cache.put(_flow(), result)

        assert cache.get(_flow()) is result

    def test_edge_change_forces_recompute(self, clock, mocker):
        cache = TraversalCache(CacheConfig(ttl_s=10.0), clock=clock)
        compute = mocker.Mock(side_effect=traverse_flow)

        cache.get_or_compute(_flow(), compute)
        cache.get_or_compute(_flow(extra_edge=("start", "end")), compute)

        assert compute.call_count == 2

    def test_expired_entry_recomputes(self, clock, mocker):
        cache = TraversalCache(CacheConfig(ttl_s=1.0), clock=clock)
        compute = mocker.Mock(side_effect=traverse_flow)

        cache.get_or_compute(_flow(), compute)
        clock.advance(1.0)
        cache.get_or_compute(_flow(), compute)

        assert compute.call_count == 2

    def test_entries_keyed_by_flow_id(self, clock):
        cache = TraversalCache(CacheConfig(), clock=clock)
        one = traverse_flow(_flow("one"))
        cache.put(_flow("one"), one)

        assert cache.get(_flow("two")) is None
        assert cache.get(_flow("one")) is one

    def test_put_replaces_entry_for_same_flow(self, clock):
        cache = TraversalCache(CacheConfig(), clock=clock)
        old = traverse_flow(_flow())
        new_flow = _flow(extra_edge=("start", "end"))
        new = traverse_flow(new_flow)

        cache.put(_flow(), old)
        cache.put(new_flow, new)

        assert len(cache) == 1
        assert cache.get(new_flow) is new
        assert cache.get(_flow()) is None


# =============================================================================
# Sweep Tests
# =============================================================================

class TestCacheSweep:
    """Tests for stale entry removal."""

    def test_put_sweeps_stale_entries(self, clock):
        cache = TraversalCache(CacheConfig(ttl_s=1.0, sweep_multiplier=2.0), clock=clock)
        cache.put(_flow("old"), "old-result")
        clock.advance(2.5)

        cache.put(_flow("new"), "new-result")

        assert "old" not in cache
        assert "new" in cache

    def test_expired_but_not_stale_survives_sweep(self, clock):
        cache = TraversalCache(CacheConfig(ttl_s=1.0, sweep_multiplier=2.0), clock=clock)
        cache.put(_flow("a"), "a-result")
        clock.advance(1.5)

        assert cache.sweep() == 0
        assert "a" in cache
        assert cache.get(_flow("a")) is None

    def test_explicit_sweep(self, clock):
        cache = TraversalCache(CacheConfig(ttl_s=1.0), clock=clock)
        cache.put(_flow("a"), "a")
        cache.put(_flow("b"), "b")
        clock.advance(5)

        assert cache.sweep() == 2
        assert len(cache) == 0


# =============================================================================
# Superseded Write Tests
# =============================================================================

class TestSupersededWrites:
    """Tests for the started_at guard."""

    def test_slow_older_write_does_not_replace_newer(self, clock):
        cache = TraversalCache(CacheConfig(ttl_s=10.0), clock=clock)
        old_flow = _flow()
        new_flow = _flow(extra_edge=("start", "end"))

        slow_started = clock()
        clock.advance(0.1)
        assert cache.put(new_flow, "new") is True
        clock.advance(0.1)
        stored = cache.put(old_flow, "old", started_at=slow_started)

        assert stored is False
        assert cache.get(new_flow) == "new"

    def test_same_fingerprint_write_is_kept(self, clock):
        cache = TraversalCache(CacheConfig(ttl_s=10.0), clock=clock)
        started = clock()
        clock.advance(0.1)
        cache.put(_flow(), "first")

        assert cache.put(_flow(), "second", started_at=started) is True
        assert cache.get(_flow()) == "second"

    def test_write_started_after_entry_is_kept(self, clock):
        cache = TraversalCache(CacheConfig(ttl_s=10.0), clock=clock)
        cache.put(_flow(), "old")
        clock.advance(0.1)
        started = clock()
        newer = _flow(extra_edge=("start", "end"))

        assert cache.put(newer, "new", started_at=started) is True
        assert cache.get(newer) == "new"


# =============================================================================
# Management Tests
# =============================================================================

class TestCacheManagement:
    """Tests for invalidate, clear and disabled mode."""

    def test_invalidate(self, clock):
        cache = TraversalCache(CacheConfig(), clock=clock)
        cache.put(_flow(), "result")

        assert cache.invalidate("flow-1") is True
        assert cache.invalidate("flow-1") is False
        assert cache.get(_flow()) is None

    def test_clear_resets_counters(self, clock):
        cache = TraversalCache(CacheConfig(), clock=clock)
        cache.get_or_compute(_flow(), traverse_flow)
        cache.get_or_compute(_flow(), traverse_flow)

        cache.clear()

        assert len(cache) == 0
        assert cache.hits == 0
        assert cache.misses == 0

    def test_disabled_cache_always_computes(self, clock, mocker):
        cache = TraversalCache(CacheConfig(enabled=False), clock=clock)
        compute = mocker.Mock(side_effect=traverse_flow)

        cache.get_or_compute(_flow(), compute)
        cache.get_or_compute(_flow(), compute)

        assert compute.call_count == 2
        assert cache.put(_flow(), "x") is False
        assert len(cache) == 0

    def test_concurrent_access(self, clock):
        """Test many threads reading and writing one cache."""
        cache = TraversalCache(CacheConfig(ttl_s=10.0), clock=clock)
        errors = []

        def worker(index):
            try:
                flow = _flow(f"flow-{index % 5}")
                for _ in range(50):
                    result = cache.get_or_compute(flow, traverse_flow)
                    assert result.connected_sequence == ["A"]
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(10)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert len(cache) == 5


@pytest.mark.parametrize("kwargs", [{"ttl_s": 0}, {"ttl_s": -1}, {"sweep_multiplier": 0.5}])
def test_invalid_cache_config(kwargs):
    from flowgraph.exceptions import FlowConfigurationError

    with pytest.raises(FlowConfigurationError):
        CacheConfig(**kwargs)
