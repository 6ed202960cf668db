"""
Flow Graph Exception Hierarchy

This module defines the exceptions raised around the flow traversal engine.
The traversal entry points themselves never raise on graph content; these
errors surface at the edges (snapshot parsing, configuration, node lookups)
and are caught and logged where the engine degrades instead of failing.

The hierarchy is designed to:
1. Separate snapshot, configuration and lookup failures
2. Carry rich context (flow id, node id, timestamps)
3. Serialize cleanly for structured logging
"""

import time
from typing import Any, Dict, List, Optional


class FlowGraphError(Exception):
    """
    Base exception class for all flow graph errors.

    Attributes:
        error_code: Unique error code for programmatic handling
        flow_id: Identifier of the flow being analyzed (if applicable)
        node_id: Identifier of the node involved (if applicable)
        timestamp: When the error occurred
        context: Additional context information
        user_message: User-friendly error message
        developer_message: Detailed technical error message
        suggestion: Suggested fix or next steps (if applicable)
    """

    def __init__(
        self,
        message: str,
        error_code: str = "FLOW_GRAPH_ERROR",
        flow_id: Optional[str] = None,
        node_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        suggestion: Optional[str] = None,
    ):
        super().__init__(message)
        self.error_code = error_code
        self.flow_id = flow_id
        self.node_id = node_id
        self.timestamp = time.time()
        self.context = context or {}
        self.user_message = user_message or message
        self.developer_message = message
        self.suggestion = suggestion

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.developer_message,
            "user_message": self.user_message,
            "flow_id": self.flow_id,
            "node_id": self.node_id,
            "timestamp": self.timestamp,
            "context": self.context,
            "suggestion": self.suggestion,
        }

    def __str__(self) -> str:
        parts = [f"[{self.error_code}]"]
        if self.flow_id:
            parts.append(f"Flow:{self.flow_id}")
        if self.node_id:
            parts.append(f"Node:{self.node_id}")
        parts.append(self.developer_message)
        return " ".join(parts)


class FlowSnapshotError(FlowGraphError):
    """
    Raised when a flow snapshot cannot be read.

    Examples:
    - Node or edge collection missing or not a list
    - Node entries without an id or type
    - Edge entries without a source or target
    """

    def __init__(
        self,
        message: str,
        field_errors: Optional[List[str]] = None,
        **kwargs
    ):
        self.field_errors = field_errors or []

        context = kwargs.pop("context", {})
        if field_errors:
            context["field_errors"] = field_errors

        super().__init__(
            message,
            error_code="FLOW_SNAPSHOT_ERROR",
            context=context,
            user_message="The flow could not be read.",
            suggestion="Check that the flow has 'nodes' and 'edges' lists with valid entries.",
            **kwargs
        )


class FlowConfigurationError(FlowGraphError):
    """Raised when engine, cache or enrichment settings are invalid."""

    def __init__(
        self,
        message: str,
        config_field: Optional[str] = None,
        config_value: Any = None,
        **kwargs
    ):
        self.config_field = config_field
        self.config_value = config_value

        context = kwargs.pop("context", {})
        if config_field:
            context["config_field"] = config_field
            context["config_value"] = config_value

        super().__init__(
            message,
            error_code="FLOW_CONFIGURATION_ERROR",
            context=context,
            **kwargs
        )


class NodeLookupError(FlowGraphError):
    """
    Raised when the domain object behind a process node cannot be resolved.

    The enrichment adapter catches this per node; it never aborts an
    enrichment call or touches the basic traversal result.
    """

    def __init__(
        self,
        message: str,
        node_type: Optional[str] = None,
        **kwargs
    ):
        self.node_type = node_type

        context = kwargs.pop("context", {})
        if node_type:
            context["node_type"] = node_type

        super().__init__(
            message,
            error_code="NODE_LOOKUP_ERROR",
            context=context,
            user_message="Node details could not be loaded.",
            **kwargs
        )
