"""
Traversal result types.

These are transient: rebuilt per query (or served from the cache) and
never persisted.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from .flow import ProcessNodeData


@dataclass(frozen=True)
class ProcessNodePosition:
    """Where a process node sits relative to the start and end nodes."""
    node_id: str
    position: int = -1  # index in connected_sequence, -1 if unreachable from start
    is_connected_to_start: bool = False
    is_connected_to_end: bool = False
    depth: int = -1  # breadth-first hops from start, -1 if unreachable

    @classmethod
    def disconnected(cls, node_id: str) -> 'ProcessNodePosition':
        return cls(node_id=node_id)

    @property
    def is_connected(self) -> bool:
        """Wired start-to-end."""
        return self.is_connected_to_start and self.is_connected_to_end


@dataclass
class TraversalResult:
    """
    Output of a flow traversal.

    Attributes:
        positions: Position record for every process node, keyed by id
        connected_sequence: Ids reachable from start, by depth then id
        disconnected_process_nodes: Ids unreachable from start
        has_valid_flow: Whether the flow forms a terminating pipeline
        has_end_node: Whether the snapshot had an end node
    """
    positions: Dict[str, ProcessNodePosition] = field(default_factory=dict)
    connected_sequence: List[str] = field(default_factory=list)
    disconnected_process_nodes: List[str] = field(default_factory=list)
    has_valid_flow: bool = False
    has_end_node: bool = False

    def get_position(self, node_id: str) -> ProcessNodePosition:
        """Position record for a node; unknown ids read as disconnected."""
        return self.positions.get(node_id) or ProcessNodePosition.disconnected(node_id)


@dataclass
class EnhancedTraversalResult(TraversalResult):
    """TraversalResult joined with each process node's domain data."""
    node_data: Dict[str, ProcessNodeData] = field(default_factory=dict)

    @classmethod
    def from_basic(
        cls,
        basic: TraversalResult,
        node_data: Dict[str, ProcessNodeData],
    ) -> 'EnhancedTraversalResult':
        return cls(
            positions=basic.positions,
            connected_sequence=basic.connected_sequence,
            disconnected_process_nodes=basic.disconnected_process_nodes,
            has_valid_flow=basic.has_valid_flow,
            has_end_node=basic.has_end_node,
            node_data=node_data,
        )


Fingerprint = Tuple[str, str]


@dataclass
class CacheEntry:
    """A memoized result for one flow id."""
    flow_id: str
    nodes_hash: str
    edges_hash: str
    result: Any
    timestamp: float

    @property
    def fingerprint(self) -> Fingerprint:
        return (self.nodes_hash, self.edges_hash)
