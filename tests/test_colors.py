"""
Tests for flowgraph.colors.

This module tests:
- Least-used color selection and palette-order tie breaking
- Snapshot-based and service-backed next color resolution
- Opacity rules with and without an end node
- Hex color helpers
"""

from unittest.mock import AsyncMock

import pytest

from flowgraph.colors import (
    DISCONNECTED_OPACITY,
    NODE_HEX_COLORS,
    apply_opacity_to_hex_color,
    get_next_available_color,
    get_node_hex_color,
    hex_to_rgba,
    node_opacity,
    pick_least_used_color,
    resolve_next_available_color,
)
from flowgraph.services import InMemoryNodeRepository, NodeServices
from flowgraph.topology.analyzer import traverse_flow


# =============================================================================
# Color Selection Tests
# =============================================================================

class TestPickLeastUsedColor:
    """Tests for pick_least_used_color."""

    def test_empty_usage_returns_first(self):
        assert pick_least_used_color([]) == NODE_HEX_COLORS[0]

    def test_first_unused_color(self):
        used = NODE_HEX_COLORS[:3]

        assert pick_least_used_color(used) == NODE_HEX_COLORS[3]

    def test_gap_in_usage(self):
        used = [NODE_HEX_COLORS[0], NODE_HEX_COLORS[2]]

        assert pick_least_used_color(used) == NODE_HEX_COLORS[1]

    def test_all_used_picks_least_used(self):
        used = list(NODE_HEX_COLORS) * 2 + [NODE_HEX_COLORS[0]]
        used.remove(NODE_HEX_COLORS[5])

        assert pick_least_used_color(used) == NODE_HEX_COLORS[5]

    def test_tie_goes_to_palette_order(self):
        used = list(NODE_HEX_COLORS) + [NODE_HEX_COLORS[0], NODE_HEX_COLORS[1]]

        assert pick_least_used_color(used) == NODE_HEX_COLORS[2]

    def test_unknown_colors_ignored(self):
        assert pick_least_used_color(["#000000", "#FFFFFF"]) == NODE_HEX_COLORS[0]

    def test_custom_palette(self):
        assert pick_least_used_color(["red"], ["red", "green"]) == "green"


class TestNextAvailableColor:
    """Tests for snapshot and service-backed resolution."""

    def test_from_snapshot_colors(self, make_flow):
        flow = make_flow(
            [("start", "start"), ("A", "agent"), ("B", "if"), ("C", "dataStore")],
            data={
                "A": {"color": NODE_HEX_COLORS[0]},
                "B": {"color": NODE_HEX_COLORS[1]},
                "start": {"color": NODE_HEX_COLORS[2]},
            },
        )

        assert get_next_available_color(flow) == NODE_HEX_COLORS[2]

    @pytest.mark.asyncio
    async def test_from_services(self, branching_flow):
        agents = InMemoryNodeRepository()
        agents.add("A", {"color": NODE_HEX_COLORS[0]})
        agents.add("B", {"color": NODE_HEX_COLORS[1]})
        stores = InMemoryNodeRepository()
        stores.add("C", {"color": NODE_HEX_COLORS[2]})
        services = NodeServices(agents=agents, if_nodes=InMemoryNodeRepository(), data_stores=stores)

        color = await resolve_next_available_color(branching_flow, services)

        assert color == NODE_HEX_COLORS[3]

    @pytest.mark.asyncio
    async def test_failed_lookups_skipped(self, linear_flow):
        services = NodeServices(agents=AsyncMock(return_value=None))

        assert await resolve_next_available_color(linear_flow, services) == NODE_HEX_COLORS[0]

    @pytest.mark.asyncio
    async def test_crashing_lookup_skips_only_that_node(self, make_flow):
        """Test one lookup raising does not discard the other nodes' colors."""
        flow = make_flow([("start", "start"), ("A", "agent"), ("B", "agent")])

        async def lookup(node_id, flow_id=None):
            if node_id == "A":
                raise RuntimeError("agent store offline")
            return {"color": NODE_HEX_COLORS[0]}

        color = await resolve_next_available_color(flow, NodeServices(agents=lookup))

        assert color == NODE_HEX_COLORS[1]

    @pytest.mark.asyncio
    async def test_every_lookup_crashing_returns_first(self, linear_flow):
        services = NodeServices(agents=AsyncMock(side_effect=ConnectionError("offline")))

        color = await resolve_next_available_color(linear_flow, services, ["#111111", "#222222"])

        assert color == "#111111"


# =============================================================================
# Opacity Tests
# =============================================================================

class TestNodeOpacity:
    """Tests for node_opacity."""

    def test_connected_node_full_opacity(self, linear_flow):
        assert node_opacity(traverse_flow(linear_flow), "A") == 1.0

    def test_dead_end_node_dimmed(self, make_flow):
        flow = make_flow(
            [("start", "start"), ("A", "agent"), ("B", "agent"), ("end", "end")],
            [("start", "A"), ("A", "end"), ("start", "B")],
        )

        assert node_opacity(traverse_flow(flow), "B") == DISCONNECTED_OPACITY

    def test_without_end_node_start_connectivity_suffices(self, make_flow):
        flow = make_flow([("start", "start"), ("A", "agent"), ("B", "agent")], [("start", "A")])
        result = traverse_flow(flow)

        assert node_opacity(result, "A") == 1.0
        assert node_opacity(result, "B") == DISCONNECTED_OPACITY

    def test_unknown_node_dimmed(self, linear_flow):
        assert node_opacity(traverse_flow(linear_flow), "ghost", 1.0, 0.5) == 0.5


# =============================================================================
# Hex Helper Tests
# =============================================================================

class TestHexHelpers:
    """Tests for the hex color helpers."""

    def test_node_hex_color_prefers_persisted(self):
        assert get_node_hex_color("agent", "#123456") == "#123456"

    @pytest.mark.parametrize("node_type", ["agent", "if", "dataStore", "unknown"])
    def test_node_hex_color_defaults(self, node_type):
        assert get_node_hex_color(node_type) == "#A5B4FC"

    def test_apply_opacity(self):
        assert apply_opacity_to_hex_color("#A5B4FC", 1.0) == "#A5B4FC"
        assert apply_opacity_to_hex_color("#A5B4FC", 0.2) == "#A5B4FC33"
        assert apply_opacity_to_hex_color("#A5B4FC", 0) == "#A5B4FC00"

    def test_hex_to_rgba(self):
        assert hex_to_rgba("#A5B4FC") == "rgba(165, 180, 252, 1)"
        assert hex_to_rgba("#FDBA74", 0.5) == "rgba(253, 186, 116, 0.5)"
