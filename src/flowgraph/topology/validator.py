"""
Branch validation for flow graphs.

Two checks decide whether a flow is a terminating pipeline:

1. Structural: every if-node has exactly two outgoing edges and both
   targets exist in the flow.
2. Path completeness: every execution path leaving start reaches end.
   An if-node is complete only when all of its branches are; any other
   node needs at least one complete outgoing edge.

Path completeness is a single iterative depth-first pass that tags each
node UNVISITED / IN_PROGRESS / COMPLETE / FAILED, so no node is expanded
twice unless its earlier result depended on an open cycle.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import AbstractSet, Dict, Iterable, List, Optional, Tuple
import logging

from .graph import FlowGraph

logger = logging.getLogger(__name__)


class PathState(Enum):
    """Per-node state during the path-completeness pass."""
    UNVISITED = "unvisited"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass
class StructuralViolation:
    """An if-node that does not have two valid outgoing edges."""
    node_id: str
    reason: str
    targets: List[str] = field(default_factory=list)


def find_structural_violations(
    graph: FlowGraph,
    if_node_ids: Iterable[str],
) -> List[StructuralViolation]:
    """Collect every if-node with the wrong number of edges or a dangling target."""
    violations = []
    for node_id in if_node_ids:
        targets = graph.get_next(node_id)
        if len(targets) != 2:
            violations.append(StructuralViolation(
                node_id=node_id,
                reason=f"has {len(targets)} outgoing connections, expected 2",
                targets=list(targets),
            ))
            continue
        missing = [t for t in targets if not graph.has_node(t)]
        if missing:
            violations.append(StructuralViolation(
                node_id=node_id,
                reason=f"connects to non-existent node(s) {missing}",
                targets=list(targets),
            ))
    return violations


def check_if_nodes(graph: FlowGraph, if_node_ids: Iterable[str]) -> bool:
    """Structural check. One bad if-node fails the whole flow."""
    violations = find_structural_violations(graph, if_node_ids)
    for violation in violations:
        logger.warning(f"If node {violation.node_id} {violation.reason}")
    return not violations


@dataclass
class _PathFrame:
    """One node being expanded on the explicit DFS stack."""
    node_id: str
    targets: List[str]
    require_all: bool
    index: int = 0
    ok: bool = False
    decided: bool = False
    # Failure came through a node that was still IN_PROGRESS
    tainted: bool = False

    def __post_init__(self):
        # all-branches frames start optimistic, any-branch frames pessimistic
        self.ok = self.require_all

    @property
    def finished(self) -> bool:
        return self.decided or self.index >= len(self.targets)

    def next_target(self) -> str:
        target = self.targets[self.index]
        self.index += 1
        return target

    def absorb(self, ok: bool, tainted: bool) -> None:
        if self.require_all:
            if not ok:
                self.ok = False
                self.tainted = tainted
                self.decided = True
        elif ok:
            self.ok = True
            self.tainted = False
            self.decided = True
        else:
            self.tainted = self.tainted or tainted


class PathCompletenessChecker:
    """
    Decides whether every path from start terminates at end.

    Args:
        graph: Adjacency index for the flow
        end_id: Id of the end node
        if_node_ids: Ids of conditional nodes (all branches must complete)
        can_reach_end: Node ids found by the backward pass from end. A node
            outside this set can never complete, so it fails without being
            expanded.
    """

    def __init__(
        self,
        graph: FlowGraph,
        end_id: str,
        if_node_ids: AbstractSet[str],
        can_reach_end: AbstractSet[str],
    ):
        self.graph = graph
        self.end_id = end_id
        self.if_node_ids = if_node_ids
        self.can_reach_end = can_reach_end
        self.states: Dict[str, PathState] = {}

    def state_of(self, node_id: str) -> PathState:
        return self.states.get(node_id, PathState.UNVISITED)

    def _settle(self, node_id: str) -> Optional[Tuple[bool, bool]]:
        """
        Resolve a node without expanding it, if possible.

        Returns (ok, tainted), or None when the node must be expanded.
        """
        if node_id == self.end_id:
            return True, False
        state = self.state_of(node_id)
        if state is PathState.COMPLETE:
            return True, False
        if state is PathState.FAILED:
            return False, False
        if state is PathState.IN_PROGRESS:
            logger.warning(f"Circular reference detected at node {node_id}")
            return False, True
        if node_id not in self.can_reach_end or not self.graph.get_next(node_id):
            self.states[node_id] = PathState.FAILED
            return False, False
        return None

    def _open(self, node_id: str) -> _PathFrame:
        self.states[node_id] = PathState.IN_PROGRESS
        return _PathFrame(
            node_id=node_id,
            targets=list(self.graph.get_next(node_id)),
            require_all=node_id in self.if_node_ids,
        )

    def _close(self, frame: _PathFrame) -> Tuple[bool, bool]:
        if frame.ok:
            self.states[frame.node_id] = PathState.COMPLETE
            return True, False
        if frame.tainted:
            # Result depended on an open cycle; let a later visit re-evaluate
            self.states.pop(frame.node_id, None)
            return False, True
        self.states[frame.node_id] = PathState.FAILED
        return False, False

    def check(self, start_id: str) -> bool:
        settled = self._settle(start_id)
        if settled is not None:
            return settled[0]

        stack = [self._open(start_id)]
        returned: Optional[Tuple[bool, bool]] = None
        while stack:
            frame = stack[-1]
            if returned is not None:
                frame.absorb(*returned)
                returned = None
            if frame.finished:
                stack.pop()
                returned = self._close(frame)
                continue
            target = frame.next_target()
            settled = self._settle(target)
            if settled is not None:
                returned = settled
            else:
                stack.append(self._open(target))

        return bool(returned and returned[0])


def validate_all_paths_reach_end(
    graph: FlowGraph,
    start_id: str,
    end_id: str,
    if_node_ids: AbstractSet[str],
    can_reach_end: Optional[AbstractSet[str]] = None,
) -> bool:
    """Path-completeness check from start; see PathCompletenessChecker."""
    if can_reach_end is None:
        can_reach_end = graph.reaching(end_id)
    checker = PathCompletenessChecker(graph, end_id, if_node_ids, can_reach_end)
    return checker.check(start_id)
