"""
Flow topology analysis: adjacency index, reachability and branch validation.
"""

from .analyzer import (
    FlowLike,
    ReachabilityReport,
    empty_result,
    raw_process_ids,
    read_flow,
    traverse_flow,
)
from .graph import FlowGraph
from .validator import (
    PathCompletenessChecker,
    PathState,
    StructuralViolation,
    check_if_nodes,
    find_structural_violations,
    validate_all_paths_reach_end,
)

__all__ = [
    "FlowGraph",
    "FlowLike",
    "PathCompletenessChecker",
    "PathState",
    "ReachabilityReport",
    "StructuralViolation",
    "check_if_nodes",
    "empty_result",
    "find_structural_violations",
    "raw_process_ids",
    "read_flow",
    "traverse_flow",
    "validate_all_paths_reach_end",
]
