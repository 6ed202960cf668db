"""
Lookup boundary for process node domain objects.

The engine never owns agents, conditional nodes or data stores; it asks
three independent async lookups for them. Each lookup takes an entity id
and an optional flow id and returns either the domain object or a
LookupResult carrying success or failure.
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Generic, Mapping, Optional, TypeVar, Union

from .exceptions import NodeLookupError
from .models.flow import NodeType, parse_node_type

T = TypeVar("T")


@dataclass
class LookupResult(Generic[T]):
    """Success-or-failure envelope returned by lookup services."""
    success: bool
    value: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, value: T) -> 'LookupResult[T]':
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, error: str) -> 'LookupResult[T]':
        return cls(success=False, error=error)

    def unwrap(self, **context) -> T:
        """
        Value of a successful lookup.

        Raises:
            NodeLookupError: The lookup reported failure; context kwargs
                (node_id, flow_id, node_type) are attached to the error
        """
        if not self.success:
            raise NodeLookupError(self.error or "Lookup failed", **context)
        return self.value


NodeLookup = Callable[[str, Optional[str]], Awaitable[Union[LookupResult, Any]]]


def read_entity_field(entity: Any, name: str) -> Any:
    """
    Read a field from a domain object.

    Accepts mappings, plain attributes, and objects that keep their fields
    under a `props` attribute or key.
    """
    if entity is None:
        return None
    if isinstance(entity, Mapping):
        if name in entity:
            return entity[name]
        props = entity.get("props")
    else:
        if hasattr(entity, name):
            return getattr(entity, name)
        props = getattr(entity, "props", None)
    if props is not None and props is not entity:
        return read_entity_field(props, name)
    return None


@dataclass
class NodeServices:
    """
    The three lookups the enrichment adapter and color resolver use.

    Any lookup may be left unset; nodes of that type are then skipped.
    """
    agents: Optional[NodeLookup] = None
    if_nodes: Optional[NodeLookup] = None
    data_stores: Optional[NodeLookup] = None

    def for_type(self, node_type: Union[NodeType, str, None]) -> Optional[NodeLookup]:
        parsed = parse_node_type(node_type)
        if parsed is NodeType.AGENT:
            return self.agents
        if parsed is NodeType.IF:
            return self.if_nodes
        if parsed is NodeType.DATA_STORE:
            return self.data_stores
        return None

    async def fetch(
        self,
        node_type: Union[NodeType, str],
        node_id: str,
        flow_id: Optional[str] = None,
    ) -> Any:
        """
        Resolve one domain object.

        Raises:
            NodeLookupError: No lookup for this type, the lookup reported
                failure, or it returned nothing
        """
        lookup = self.for_type(node_type)
        type_name = getattr(node_type, "value", node_type)
        if lookup is None:
            raise NodeLookupError(
                f"No lookup configured for {type_name} nodes",
                node_id=node_id,
                flow_id=flow_id,
                node_type=type_name,
            )
        outcome = await lookup(node_id, flow_id)
        if isinstance(outcome, LookupResult):
            outcome = outcome.unwrap(node_id=node_id, flow_id=flow_id, node_type=type_name)
        if outcome is None:
            raise NodeLookupError(
                f"{type_name} node not found",
                node_id=node_id,
                flow_id=flow_id,
                node_type=type_name,
            )
        return outcome


@dataclass
class InMemoryNodeRepository:
    """
    Dict-backed lookup, usable as any of the three NodeServices lookups.

    Entities can be registered globally or scoped to a flow id; a scoped
    entry wins over a global one.
    """
    entities: Dict[str, Any] = field(default_factory=dict)
    scoped: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def add(self, node_id: str, entity: Any, flow_id: Optional[str] = None) -> None:
        if flow_id is None:
            self.entities[node_id] = entity
        else:
            self.scoped.setdefault(flow_id, {})[node_id] = entity

    def remove(self, node_id: str, flow_id: Optional[str] = None) -> None:
        if flow_id is None:
            self.entities.pop(node_id, None)
        else:
            self.scoped.get(flow_id, {}).pop(node_id, None)

    async def __call__(self, node_id: str, flow_id: Optional[str] = None) -> LookupResult:
        if flow_id is not None and node_id in self.scoped.get(flow_id, {}):
            return LookupResult.ok(self.scoped[flow_id][node_id])
        if node_id in self.entities:
            return LookupResult.ok(self.entities[node_id])
        return LookupResult.fail(f"Entity {node_id} not found")
