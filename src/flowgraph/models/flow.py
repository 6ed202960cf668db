"""
Flow snapshot models.

A flow is the editor's graph of typed nodes joined by edges. The engine
treats every snapshot as immutable: models are frozen and analysis never
writes back into them.
"""

from enum import Enum
from typing import Annotated, Any, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..exceptions import FlowSnapshotError


class NodeType(str, Enum):
    """Node types the editor can place on a flow."""
    START = "start"
    END = "end"
    AGENT = "agent"
    IF = "if"
    DATA_STORE = "dataStore"


class NodeRole(Enum):
    """Role a node plays in traversal."""
    START = "start"
    END = "end"
    PROCESS = "process"
    OTHER = "other"


PROCESS_NODE_TYPES = frozenset({NodeType.AGENT, NodeType.IF, NodeType.DATA_STORE})

_ROLE_BY_TYPE = {
    NodeType.START: NodeRole.START,
    NodeType.END: NodeRole.END,
    **{node_type: NodeRole.PROCESS for node_type in PROCESS_NODE_TYPES},
}


def parse_node_type(value: Any) -> Optional[NodeType]:
    """Map a raw type string onto NodeType, or None if it is not one."""
    if isinstance(value, NodeType):
        return value
    try:
        return NodeType(value)
    except ValueError:
        return None


def classify_node(node: Union["FlowNode", str, NodeType]) -> NodeRole:
    """
    Classify a node (or a bare type string) into its traversal role.

    This is the only place that interprets node type strings; unknown
    types come back as NodeRole.OTHER.
    """
    raw = node.type if isinstance(node, FlowNode) else node
    node_type = parse_node_type(raw)
    if node_type is None:
        return NodeRole.OTHER
    return _ROLE_BY_TYPE[node_type]


class FlowNode(BaseModel):
    """A node on the flow canvas."""
    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    id: str = Field(..., min_length=1, description="Node id, unique within a flow")
    type: str = Field(..., description="One of the NodeType values")
    data: Any = Field(default_factory=dict, description="Opaque editor payload")
    position: Any = Field(default=None, description="Canvas coordinates")

    @field_validator("data", mode="before")
    @classmethod
    def _default_data(cls, v: Any) -> Any:
        return {} if v is None else v

    @property
    def node_type(self) -> Optional[NodeType]:
        return parse_node_type(self.type)

    @property
    def role(self) -> NodeRole:
        return classify_node(self)

    @property
    def is_process(self) -> bool:
        return self.role is NodeRole.PROCESS

    @property
    def color(self) -> Optional[str]:
        """Persisted color from the payload, if any."""
        value = self.data.get("color") if isinstance(self.data, dict) else None
        return value if isinstance(value, str) and value else None

    @property
    def label(self) -> Optional[str]:
        if not isinstance(self.data, dict):
            return None
        value = self.data.get("label") or self.data.get("name")
        return value if isinstance(value, str) and value else None


class FlowEdge(BaseModel):
    """A directed connection between two nodes."""
    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    id: Any = None
    source: str = Field(..., description="Source node id")
    target: str = Field(..., description="Target node id")
    source_handle: Optional[str] = Field(default=None, alias="sourceHandle")
    target_handle: Optional[str] = Field(default=None, alias="targetHandle")
    label: Any = None


class Flow(BaseModel):
    """An immutable snapshot of a flow: id plus ordered nodes and edges."""
    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    id: str = Field(..., description="Flow identifier, used as the cache key")
    nodes: List[FlowNode] = Field(default_factory=list)
    edges: List[FlowEdge] = Field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Flow":
        """
        Validate a raw snapshot mapping.

        Raises:
            FlowSnapshotError: If the mapping is not a readable flow
        """
        if not isinstance(data, Mapping):
            raise FlowSnapshotError(
                f"Flow snapshot must be a mapping, got {type(data).__name__}"
            )
        flow_id = data.get("id")
        for key in ("nodes", "edges"):
            if not isinstance(data.get(key), (list, tuple)):
                raise FlowSnapshotError(
                    f"Flow '{key}' must be a list",
                    flow_id=str(flow_id) if flow_id is not None else None,
                    field_errors=[key],
                )
        payload = dict(data)
        payload["id"] = str(flow_id) if flow_id is not None else ""
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            raise FlowSnapshotError(
                f"Invalid flow snapshot: {e.error_count()} field error(s)",
                flow_id=str(flow_id) if flow_id is not None else None,
                field_errors=[".".join(str(p) for p in err["loc"]) for err in e.errors()],
            ) from e

    def find_first(self, node_type: NodeType) -> Optional[FlowNode]:
        """First node of the given type; later duplicates are ignored."""
        for node in self.nodes:
            if node.node_type is node_type:
                return node
        return None

    @property
    def start_node(self) -> Optional[FlowNode]:
        return self.find_first(NodeType.START)

    @property
    def end_node(self) -> Optional[FlowNode]:
        return self.find_first(NodeType.END)

    @property
    def process_nodes(self) -> List[FlowNode]:
        """Process nodes in snapshot order, first occurrence of each id."""
        seen = set()
        result = []
        for node in self.nodes:
            if node.is_process and node.id not in seen:
                seen.add(node.id)
                result.append(node)
        return result

    def get_node(self, node_id: str) -> Optional[FlowNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None


# Enriched node payloads, discriminated on the node type.

class _ProcessNodeData(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = ""
    color: Optional[str] = None
    entity: Any = Field(default=None, description="Raw domain object returned by the lookup")


class AgentNodeData(_ProcessNodeData):
    type: Literal["agent"] = "agent"


class IfNodeData(_ProcessNodeData):
    type: Literal["if"] = "if"


class DataStoreNodeData(_ProcessNodeData):
    type: Literal["dataStore"] = "dataStore"


ProcessNodeData = Annotated[
    Union[AgentNodeData, IfNodeData, DataStoreNodeData],
    Field(discriminator="type"),
]

NODE_DATA_CLASSES = {
    NodeType.AGENT: AgentNodeData,
    NodeType.IF: IfNodeData,
    NodeType.DATA_STORE: DataStoreNodeData,
}
