"""
Shared fixtures for flowgraph tests.

- build_flow: compact flow construction from (id, type) and (source, target) tuples
- FakeClock: manually advanced time source for cache TTL tests
"""

from typing import Dict, Iterable, Optional, Sequence, Tuple, Union

import pytest

from flowgraph.models.flow import Flow, FlowEdge, FlowNode

EdgeSpec = Union[Tuple[str, str], Tuple[str, str, Optional[str]]]


def build_flow(
    nodes: Iterable[Tuple[str, str]],
    edges: Iterable[EdgeSpec] = (),
    flow_id: str = "flow-1",
    data: Optional[Dict[str, dict]] = None,
) -> Flow:
    """Build a Flow; edge tuples may carry a third sourceHandle element."""
    data = data or {}
    flow_nodes = [
        FlowNode(id=node_id, type=node_type, data=data.get(node_id, {}))
        for node_id, node_type in nodes
    ]
    flow_edges = []
    for index, spec in enumerate(edges):
        source, target = spec[0], spec[1]
        handle = spec[2] if len(spec) > 2 else None
        flow_edges.append(FlowEdge(
            id=f"e{index}",
            source=source,
            target=target,
            source_handle=handle,
        ))
    return Flow(id=flow_id, nodes=flow_nodes, edges=flow_edges)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def linear_flow() -> Flow:
    """start -> A -> end"""
    return build_flow(
        nodes=[("start", "start"), ("A", "agent"), ("end", "end")],
        edges=[("start", "A"), ("A", "end")],
    )


@pytest.fixture
def branching_flow() -> Flow:
    """start -> A -> if1 -(true)-> B -> end, if1 -(false)-> C -> end"""
    return build_flow(
        nodes=[
            ("start", "start"),
            ("A", "agent"),
            ("if1", "if"),
            ("B", "agent"),
            ("C", "dataStore"),
            ("end", "end"),
        ],
        edges=[
            ("start", "A"),
            ("A", "if1"),
            ("if1", "B", "true"),
            ("if1", "C", "false"),
            ("B", "end"),
            ("C", "end"),
        ],
    )


@pytest.fixture
def make_flow():
    """The build_flow helper as a fixture."""
    return build_flow
