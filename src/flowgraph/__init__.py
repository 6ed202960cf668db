"""
flowgraph - Flow graph traversal, validation and caching

Analyzes agent flows (start, end, agent, if and data-store nodes joined by
edges): which process nodes are reachable from start, which reach end,
whether every branch terminates, and how nodes should be colored.
"""

__version__ = "0.1.0"

# Snapshot and result models
from .models import (
    EnhancedTraversalResult,
    Flow,
    FlowEdge,
    FlowNode,
    NodeRole,
    NodeType,
    ProcessNodePosition,
    TraversalResult,
    classify_node,
)

# Analysis
from .topology import FlowGraph, traverse_flow

# Engine and collaborators
from .cache import TraversalCache
from .colors import NODE_HEX_COLORS, get_next_available_color
from .config import CacheConfig, EngineConfig, EnrichmentConfig
from .diagnostics import ValidationIssue, ValidationIssueCode, validate_flow_path
from .engine import FlowTraversalEngine
from .exceptions import (
    FlowConfigurationError,
    FlowGraphError,
    FlowSnapshotError,
    NodeLookupError,
)
from .logging_config import configure_logging
from .services import InMemoryNodeRepository, LookupResult, NodeServices

__all__ = [
    # Version
    "__version__",
    # Models
    "EnhancedTraversalResult",
    "Flow",
    "FlowEdge",
    "FlowNode",
    "NodeRole",
    "NodeType",
    "ProcessNodePosition",
    "TraversalResult",
    "classify_node",
    # Analysis
    "FlowGraph",
    "traverse_flow",
    "validate_flow_path",
    "ValidationIssue",
    "ValidationIssueCode",
    # Engine
    "FlowTraversalEngine",
    "TraversalCache",
    "NODE_HEX_COLORS",
    "get_next_available_color",
    # Config
    "CacheConfig",
    "EngineConfig",
    "EnrichmentConfig",
    # Services
    "InMemoryNodeRepository",
    "LookupResult",
    "NodeServices",
    # Errors
    "FlowConfigurationError",
    "FlowGraphError",
    "FlowSnapshotError",
    "NodeLookupError",
    # Logging
    "configure_logging",
]
