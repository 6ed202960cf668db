"""
Adjacency index and reachability passes over a flow snapshot.

FlowGraph is rebuilt for every analysis call and keeps no state between
calls, so concurrent callers never share one.
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Set
import logging

from ..models.flow import Flow, FlowEdge, FlowNode

logger = logging.getLogger(__name__)


@dataclass
class FlowGraph:
    """
    Forward and reverse adjacency for one flow snapshot.

    Every node id gets an (possibly empty) entry in both maps. Edges whose
    source or target is not a known node are still indexed, so a dangling
    edge shows up as a neighbor that has no entry of its own.
    """
    node_ids: List[str] = field(default_factory=list)
    forward: Dict[str, List[str]] = field(default_factory=dict)
    reverse: Dict[str, List[str]] = field(default_factory=dict)
    _known: Set[str] = field(default_factory=set, repr=False)

    @classmethod
    def from_flow(cls, flow: Flow) -> 'FlowGraph':
        return cls.build(flow.nodes, flow.edges)

    @classmethod
    def build(cls, nodes: Iterable[FlowNode], edges: Iterable[FlowEdge]) -> 'FlowGraph':
        graph = cls()
        for node in nodes:
            graph.add_node(node.id)
        edge_count = 0
        for edge in edges:
            graph.add_edge(edge.source, edge.target)
            edge_count += 1
        logger.debug(f"Indexed {len(graph.node_ids)} nodes and {edge_count} edges")
        return graph

    def add_node(self, node_id: str) -> None:
        if node_id not in self._known:
            self._known.add(node_id)
            self.node_ids.append(node_id)
            self.forward.setdefault(node_id, [])
            self.reverse.setdefault(node_id, [])

    def add_edge(self, source: str, target: str) -> None:
        """Index an edge; parallel edges are kept so if-node edge counts stay exact."""
        self.forward.setdefault(source, []).append(target)
        self.reverse.setdefault(target, []).append(source)

    def has_node(self, node_id: str) -> bool:
        return node_id in self._known

    def get_next(self, node_id: str) -> List[str]:
        return self.forward.get(node_id, [])

    def get_previous(self, node_id: str) -> List[str]:
        return self.reverse.get(node_id, [])

    def reachable_from(self, start_id: str) -> Set[str]:
        """All node ids reachable from start_id over forward edges, start included."""
        return self._depth_first(start_id, self.forward)

    def reaching(self, end_id: str) -> Set[str]:
        """All node ids that can reach end_id, end included."""
        return self._depth_first(end_id, self.reverse)

    def depths_from(self, start_id: str) -> Dict[str, int]:
        """Shortest hop count from start_id to every reachable node."""
        depths = {start_id: 0}
        queue = deque([start_id])
        while queue:
            current = queue.popleft()
            for neighbor in self.get_next(current):
                if neighbor not in depths:
                    depths[neighbor] = depths[current] + 1
                    queue.append(neighbor)
        return depths

    @staticmethod
    def _depth_first(origin: str, adjacency: Dict[str, List[str]]) -> Set[str]:
        visited: Set[str] = set()
        stack = [origin]
        while stack:
            current = stack.pop()
            if current in visited:
                continue
            visited.add(current)
            for neighbor in reversed(adjacency.get(current, [])):
                if neighbor not in visited:
                    stack.append(neighbor)
        return visited

    def to_dict(self) -> Dict[str, Dict[str, List[str]]]:
        """Convert graph to dictionary representation for debugging."""
        return {
            node_id: {
                "outgoing": list(self.get_next(node_id)),
                "incoming": list(self.get_previous(node_id)),
            }
            for node_id in self.node_ids
        }
