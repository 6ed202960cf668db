"""
Color and opacity assignment for process nodes.

New nodes get the first palette color nobody uses yet, or the least-used
one once the palette is exhausted (ties go to palette order). Opacity is a
pure function of a node's traversal position record.
"""

import asyncio
from collections import Counter
from typing import Iterable, List, Optional, Sequence, Union
import logging

from .exceptions import NodeLookupError
from .models.flow import Flow, FlowNode, NodeType, parse_node_type
from .models.traversal import TraversalResult
from .services import NodeServices, read_entity_field

logger = logging.getLogger(__name__)

# Active (300) variants, in hand-out order
NODE_HEX_COLORS = [
    "#A5B4FC",  # indigo-300
    "#FDBA74",  # orange-300
    "#BEF264",  # lime-300
    "#FCA5A5",  # red-300
    "#93C5FD",  # blue-300
    "#FCD34D",  # amber-300
    "#67E8F9",  # cyan-300
    "#F0ABFC",  # fuchsia-300
    "#FDE047",  # yellow-300
    "#C4B5FD",  # violet-300
    "#86EFAC",  # green-300
    "#FDA4AF",  # rose-300
    "#7DD3FC",  # sky-300
    "#F9A8D4",  # pink-300
    "#6EE7B7",  # emerald-300
    "#D8B4FE",  # purple-300
    "#5EEAD4",  # teal-300
]

DEFAULT_AGENT_COLOR = "#A5B4FC"
DEFAULT_IF_NODE_COLOR = "#A5B4FC"
DEFAULT_DATA_STORE_COLOR = "#A5B4FC"

CONNECTED_OPACITY = 1.0
DISCONNECTED_OPACITY = 0.7

_DEFAULT_COLORS = {
    NodeType.AGENT: DEFAULT_AGENT_COLOR,
    NodeType.IF: DEFAULT_IF_NODE_COLOR,
    NodeType.DATA_STORE: DEFAULT_DATA_STORE_COLOR,
}


def pick_least_used_color(
    used_colors: Iterable[str],
    palette: Sequence[str] = NODE_HEX_COLORS,
) -> str:
    """
    First palette color with the lowest usage count.

    An unused color has count zero, so this returns the first unused color
    while any remain. Colors outside the palette are ignored.
    """
    counts = Counter(color for color in used_colors if color in palette)
    selected = palette[0]
    min_count = None
    for color in palette:
        count = counts.get(color, 0)
        if min_count is None or count < min_count:
            min_count = count
            selected = color
    return selected


def collect_used_colors(flow: Flow) -> List[str]:
    """Persisted colors of the flow's process nodes, one per node."""
    return [node.color for node in flow.process_nodes if node.color]


def get_next_available_color(
    flow: Flow,
    palette: Sequence[str] = NODE_HEX_COLORS,
) -> str:
    """Color for a node about to be added, from colors stored on the snapshot."""
    return pick_least_used_color(collect_used_colors(flow), palette)


async def resolve_next_available_color(
    flow: Flow,
    services: NodeServices,
    palette: Sequence[str] = NODE_HEX_COLORS,
) -> str:
    """
    Color for a new node, reading each process node's color from its service.

    Per-node lookup failures are logged and skipped; the remaining nodes
    still count toward usage.

    Args:
        flow: Current flow snapshot
        services: NodeServices used to resolve domain objects
        palette: Ordered candidate colors
    """
    async def color_of(node: FlowNode) -> Optional[str]:
        try:
            entity = await services.fetch(node.node_type, node.id, flow.id)
        except NodeLookupError as e:
            logger.warning(f"Failed to get {node.type} node {node.id} for color assignment: {e}")
            return None
        except Exception as e:
            logger.warning(
                f"Unexpected error getting {node.type} node {node.id} for color assignment: {e}",
                exc_info=True,
            )
            return None
        color = read_entity_field(entity, "color")
        return color if isinstance(color, str) else None

    colors = await asyncio.gather(*(color_of(node) for node in flow.process_nodes))
    return pick_least_used_color([c for c in colors if c], palette)


def get_node_hex_color(node_type: Union[NodeType, str], color: Optional[str] = None) -> str:
    """Persisted color, or the default for the node's type."""
    if color:
        return color
    return _DEFAULT_COLORS.get(parse_node_type(node_type), NODE_HEX_COLORS[0])


def node_opacity(
    result: TraversalResult,
    node_id: str,
    connected: float = CONNECTED_OPACITY,
    disconnected: float = DISCONNECTED_OPACITY,
) -> float:
    """
    Display opacity for a process node.

    Full opacity needs start and end connectivity, or start connectivity
    alone when the flow has no end node.
    """
    position = result.get_position(node_id)
    if result.has_end_node:
        wired = position.is_connected_to_start and position.is_connected_to_end
    else:
        wired = position.is_connected_to_start
    return connected if wired else disconnected


def apply_opacity_to_hex_color(hex_color: str, opacity: float) -> str:
    """Append an alpha byte when opacity is below 1."""
    if opacity >= 1:
        return hex_color
    return f"{hex_color}{round(opacity * 255):02x}"


def hex_to_rgba(hex_color: str, alpha: float = 1) -> str:
    r = int(hex_color[1:3], 16)
    g = int(hex_color[3:5], 16)
    b = int(hex_color[5:7], 16)
    return f"rgba({r}, {g}, {b}, {alpha})"
