"""
Flow traversal analyzer.

Turns a flow snapshot into a TraversalResult: which process nodes are
reachable from start, which can reach end, their ordering by depth, and
whether the flow as a whole is a valid terminating pipeline.

Node-level connectivity and flow-level validity are computed
independently: a node can be wired start-to-end while the flow is still
invalid because of a broken branch elsewhere.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Set, Union
import logging

from ..exceptions import FlowSnapshotError
from ..models.flow import Flow, FlowNode, NodeRole, NodeType, classify_node
from ..models.traversal import ProcessNodePosition, TraversalResult
from .graph import FlowGraph
from .validator import check_if_nodes, validate_all_paths_reach_end

logger = logging.getLogger(__name__)

FlowLike = Union[Flow, Mapping[str, Any]]


@dataclass
class ReachabilityReport:
    """Raw output of the forward, backward and depth passes."""
    reachable: Set[str] = field(default_factory=set)
    can_reach_end: Set[str] = field(default_factory=set)
    depths: Dict[str, int] = field(default_factory=dict)
    reachable_process: Set[str] = field(default_factory=set)
    can_reach_end_process: Set[str] = field(default_factory=set)


def read_flow(flow: FlowLike) -> Optional[Flow]:
    """
    Coerce a snapshot into a Flow, or None when it cannot be read.

    The caller degrades to an all-disconnected result on None.
    """
    if isinstance(flow, Flow):
        return flow
    try:
        return Flow.from_dict(flow)
    except FlowSnapshotError as e:
        logger.warning(f"Unreadable flow snapshot, treating as disconnected: {e}")
        return None


def raw_process_ids(flow: Any) -> List[str]:
    """Best-effort process node ids from a snapshot that failed validation."""
    if not isinstance(flow, Mapping):
        return []
    raw_nodes = flow.get("nodes")
    if not isinstance(raw_nodes, (list, tuple)):
        return []
    ids: List[str] = []
    for raw in raw_nodes:
        if not isinstance(raw, Mapping):
            continue
        node_id = raw.get("id")
        if isinstance(node_id, str) and node_id and node_id not in ids:
            if classify_node(str(raw.get("type"))) is NodeRole.PROCESS:
                ids.append(node_id)
    return ids


def empty_result(process_ids: List[str], has_end_node: bool = False) -> TraversalResult:
    """Result with every process node disconnected and the flow invalid."""
    return TraversalResult(
        positions={
            node_id: ProcessNodePosition.disconnected(node_id) for node_id in process_ids
        },
        connected_sequence=[],
        disconnected_process_nodes=list(process_ids),
        has_valid_flow=False,
        has_end_node=has_end_node,
    )


def analyze_reachability(
    graph: FlowGraph,
    start_id: str,
    end_id: Optional[str],
    process_ids: Set[str],
) -> ReachabilityReport:
    reachable = graph.reachable_from(start_id)
    can_reach_end = graph.reaching(end_id) if end_id is not None else set()
    return ReachabilityReport(
        reachable=reachable,
        can_reach_end=can_reach_end,
        depths=graph.depths_from(start_id),
        reachable_process=reachable & process_ids,
        can_reach_end_process=can_reach_end & process_ids,
    )


def order_by_depth(node_ids: Set[str], depths: Dict[str, int]) -> List[str]:
    """Ascending depth, ties by ascending id."""
    return sorted(node_ids, key=lambda node_id: (depths.get(node_id, -1), node_id))


def traverse_flow(flow: FlowLike) -> TraversalResult:
    """
    Analyze a flow snapshot. Pure and synchronous; never raises on content.

    Malformed snapshots and flows without a start node produce a result
    where every process node is disconnected and has_valid_flow is False.
    """
    snapshot = read_flow(flow)
    if snapshot is None:
        return empty_result(raw_process_ids(flow))

    process_nodes: List[FlowNode] = snapshot.process_nodes
    process_ids = [node.id for node in process_nodes]
    start_node = snapshot.start_node
    end_node = snapshot.end_node

    if start_node is None:
        logger.debug(f"Flow {snapshot.id} has no start node")
        return empty_result(process_ids, has_end_node=end_node is not None)

    graph = FlowGraph.from_flow(snapshot)
    report = analyze_reachability(
        graph,
        start_node.id,
        end_node.id if end_node is not None else None,
        set(process_ids),
    )

    connected_sequence = order_by_depth(report.reachable_process, report.depths)
    positions: Dict[str, ProcessNodePosition] = {}
    for index, node_id in enumerate(connected_sequence):
        positions[node_id] = ProcessNodePosition(
            node_id=node_id,
            position=index,
            is_connected_to_start=True,
            is_connected_to_end=node_id in report.can_reach_end_process,
            depth=report.depths.get(node_id, -1),
        )
    disconnected = [node_id for node_id in process_ids if node_id not in positions]
    for node_id in disconnected:
        positions[node_id] = ProcessNodePosition.disconnected(node_id)

    if_node_ids = {node.id for node in process_nodes if node.node_type is NodeType.IF}
    if_nodes_valid = check_if_nodes(graph, if_node_ids)

    if end_node is not None:
        has_valid_flow = (
            bool(connected_sequence)
            and any(node_id in report.can_reach_end_process for node_id in connected_sequence)
            and if_nodes_valid
            and validate_all_paths_reach_end(
                graph,
                start_node.id,
                end_node.id,
                if_node_ids,
                can_reach_end=report.can_reach_end,
            )
        )
    else:
        has_valid_flow = bool(connected_sequence) and if_nodes_valid

    logger.debug(
        f"Traversed flow {snapshot.id}: {len(connected_sequence)} connected, "
        f"{len(disconnected)} disconnected, valid={has_valid_flow}"
    )
    return TraversalResult(
        positions=positions,
        connected_sequence=connected_sequence,
        disconnected_process_nodes=disconnected,
        has_valid_flow=has_valid_flow,
        has_end_node=end_node is not None,
    )
