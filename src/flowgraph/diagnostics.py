"""
Flow path diagnostics.

A TraversalResult only says whether a flow is valid. These validators
re-inspect an invalid (or branch-heavy) flow and explain what is wrong,
as structured issues the editor can list.
"""

from enum import Enum
from typing import List, Literal, Optional, Set
import logging

from pydantic import BaseModel, Field

from .models.flow import Flow, FlowEdge, FlowNode, NodeType
from .models.traversal import TraversalResult
from .topology.analyzer import traverse_flow
from .topology.graph import FlowGraph

logger = logging.getLogger(__name__)


class ValidationIssueCode(str, Enum):
    INVALID_FLOW_STRUCTURE = "INVALID_FLOW_STRUCTURE"
    IF_NODE_MISSING_BRANCHES = "IF_NODE_MISSING_BRANCHES"
    IF_NODE_BRANCH_NOT_REACHING_END = "IF_NODE_BRANCH_NOT_REACHING_END"


class ValidationIssue(BaseModel):
    """One problem found in a flow's structure."""
    id: str = Field(..., description="Stable id: code plus a discriminating suffix")
    code: ValidationIssueCode
    severity: Literal["error", "warning", "info"] = "error"
    title: str
    description: str
    suggestion: Optional[str] = None
    node_id: Optional[str] = None


def issue_id(code: ValidationIssueCode, suffix: Optional[str] = None) -> str:
    return f"{code.value}:{suffix}" if suffix else code.value


def _display_name(node: Optional[FlowNode], fallback: str) -> str:
    if node is None:
        return fallback
    return node.label or fallback


def _outgoing(flow: Flow, node_id: str) -> List[FlowEdge]:
    return [edge for edge in flow.edges if edge.source == node_id]


def _explain_invalid_flow(flow: Flow, result: TraversalResult) -> ValidationIssue:
    code = ValidationIssueCode.INVALID_FLOW_STRUCTURE
    if flow.start_node is None:
        return ValidationIssue(
            id=issue_id(code, "no_start"),
            code=code,
            title="Missing Start Node",
            description="Flow must have a start node",
            suggestion="Add a start node to your flow",
        )
    if flow.end_node is None:
        return ValidationIssue(
            id=issue_id(code, "no_end"),
            code=code,
            title="Missing End Node",
            description="Flow must have an end node",
            suggestion="Add an end node to your flow",
        )

    if_nodes = [node for node in flow.process_nodes if node.node_type is NodeType.IF]
    if if_nodes:
        names = [
            node.id if len(_outgoing(flow, node.id)) != 2 else _display_name(node, node.id)
            for node in if_nodes
        ]
        return ValidationIssue(
            id=issue_id(code, "if_branches"),
            code=code,
            title="Incomplete If-Node Branches",
            description=(
                "All branches of if-nodes must connect to the end node. The following "
                f"if-nodes have incomplete branches: {', '.join(names)}"
            ),
            suggestion=(
                "Connect both the true and false branches of each if-node to downstream "
                "nodes that eventually reach the end node"
            ),
        )

    if result.disconnected_process_nodes:
        names = [
            _display_name(flow.get_node(node_id), node_id)
            for node_id in result.disconnected_process_nodes
        ]
        return ValidationIssue(
            id=issue_id(code, "disconnected_nodes"),
            code=code,
            title="Disconnected Nodes",
            description=f"The following nodes are not connected to the flow: {', '.join(names)}",
            suggestion="Connect these nodes to the main flow path",
        )

    return ValidationIssue(
        id=issue_id(code),
        code=code,
        title="Invalid Flow Structure",
        description="The flow does not form a complete path from start to end",
        suggestion="Ensure all nodes form a complete path from start to end",
    )


def _if_node_issues(
    flow: Flow,
    node: FlowNode,
    can_reach_end: Optional[Set[str]],
) -> List[ValidationIssue]:
    edges = _outgoing(flow, node.id)
    name = _display_name(node, node.id)

    if not edges:
        code = ValidationIssueCode.IF_NODE_MISSING_BRANCHES
        return [ValidationIssue(
            id=issue_id(code, f"if_no_branches_{node.id}"),
            code=code,
            title="If-Node Missing Branches",
            description=f'If-node "{name}" has no outgoing connections',
            suggestion="Connect both true and false branches of the if-node",
            node_id=node.id,
        )]

    if len(edges) == 1:
        code = ValidationIssueCode.IF_NODE_MISSING_BRANCHES
        missing = "false" if edges[0].source_handle == "true" else "true"
        return [ValidationIssue(
            id=issue_id(code, f"if_missing_branch_{node.id}"),
            code=code,
            title="If-Node Missing Branch",
            description=f'If-node "{name}" is missing the {missing} branch connection',
            suggestion=f"Connect the {missing} branch of the if-node to a downstream node",
            node_id=node.id,
        )]

    issues = []
    if len(edges) == 2 and can_reach_end is not None:
        code = ValidationIssueCode.IF_NODE_BRANCH_NOT_REACHING_END
        for branch in ("true", "false"):
            edge = next((e for e in edges if e.source_handle == branch), None)
            if edge is None or edge.target in can_reach_end:
                continue
            issues.append(ValidationIssue(
                id=issue_id(code, f"if_{branch}_not_reaching_{node.id}"),
                code=code,
                title=f"If-Node {branch.capitalize()} Branch Not Reaching End",
                description=f'The {branch} branch of if-node "{name}" does not reach the end node',
                suggestion=f"Ensure the {branch} branch connects to nodes that eventually reach the end node",
                node_id=node.id,
            ))
    return issues


def validate_flow_path(
    flow: Flow,
    result: Optional[TraversalResult] = None,
) -> List[ValidationIssue]:
    """
    Explain why a flow is not a valid start-to-end pipeline.

    Args:
        flow: Snapshot to inspect
        result: Traversal of the same snapshot, if already computed

    Returns:
        Issues in a stable order: at most one flow-level issue first, then
        per-if-node issues for if-nodes reachable from start
    """
    if result is None:
        result = traverse_flow(flow)

    issues: List[ValidationIssue] = []
    if not result.has_valid_flow:
        issues.append(_explain_invalid_flow(flow, result))

    end_node = flow.end_node
    can_reach_end = None
    if end_node is not None:
        can_reach_end = FlowGraph.from_flow(flow).reaching(end_node.id)

    for node in flow.process_nodes:
        if node.node_type is not NodeType.IF:
            continue
        if not result.get_position(node.id).is_connected_to_start:
            continue
        issues.extend(_if_node_issues(flow, node, can_reach_end))

    if issues:
        logger.debug(f"Flow {flow.id} has {len(issues)} path issue(s)")
    return issues
