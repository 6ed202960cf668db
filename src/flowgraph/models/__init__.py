"""Flow snapshot and traversal result models."""

from .flow import (
    AgentNodeData,
    DataStoreNodeData,
    Flow,
    FlowEdge,
    FlowNode,
    IfNodeData,
    NODE_DATA_CLASSES,
    NodeRole,
    NodeType,
    PROCESS_NODE_TYPES,
    ProcessNodeData,
    classify_node,
    parse_node_type,
)
from .traversal import (
    CacheEntry,
    EnhancedTraversalResult,
    ProcessNodePosition,
    TraversalResult,
)

__all__ = [
    "AgentNodeData",
    "CacheEntry",
    "DataStoreNodeData",
    "EnhancedTraversalResult",
    "Flow",
    "FlowEdge",
    "FlowNode",
    "IfNodeData",
    "NODE_DATA_CLASSES",
    "NodeRole",
    "NodeType",
    "PROCESS_NODE_TYPES",
    "ProcessNodeData",
    "ProcessNodePosition",
    "TraversalResult",
    "classify_node",
    "parse_node_type",
]
