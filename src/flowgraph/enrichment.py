"""
Data enrichment for traversal results.

Joins a basic TraversalResult with each process node's domain object
(display name, persisted color) without re-running graph analysis.
Lookups run concurrently; a failed lookup drops that node from node_data
and is logged, nothing more.
"""

import asyncio
from typing import Dict, List, Optional, Tuple
import logging

from .config import EnrichmentConfig
from .exceptions import NodeLookupError
from .models.flow import NODE_DATA_CLASSES, Flow, FlowNode, ProcessNodeData
from .models.traversal import EnhancedTraversalResult, TraversalResult
from .services import NodeServices, read_entity_field

logger = logging.getLogger(__name__)


class DataEnrichmentAdapter:
    """
    Resolves process node domain objects through NodeServices.

    Args:
        services: Agent, if-node and data-store lookups
        config: Concurrency bound (the enhanced cache lives on the engine)
    """

    def __init__(self, services: NodeServices, config: Optional[EnrichmentConfig] = None):
        self.services = services
        self.config = config or EnrichmentConfig()

    async def enrich(self, flow: Flow, basic: TraversalResult) -> EnhancedTraversalResult:
        """Fetch every process node's domain object and merge into basic."""
        targets = [
            node for node in flow.process_nodes if node.id in basic.positions
        ]
        semaphore = asyncio.Semaphore(self.config.max_concurrency)

        async def bounded(node: FlowNode) -> Tuple[str, Optional[ProcessNodeData]]:
            async with semaphore:
                return node.id, await self._resolve(flow.id, node)

        resolved: List[Tuple[str, Optional[ProcessNodeData]]] = await asyncio.gather(
            *(bounded(node) for node in targets)
        )
        node_data: Dict[str, ProcessNodeData] = {
            node_id: data for node_id, data in resolved if data is not None
        }
        if len(node_data) < len(targets):
            logger.info(
                f"Enriched {len(node_data)} of {len(targets)} process nodes for flow {flow.id}"
            )
        return EnhancedTraversalResult.from_basic(basic, node_data)

    async def _resolve(self, flow_id: str, node: FlowNode) -> Optional[ProcessNodeData]:
        data_class = NODE_DATA_CLASSES.get(node.node_type)
        if data_class is None:
            return None
        try:
            entity = await self.services.fetch(node.node_type, node.id, flow_id)
        except NodeLookupError as e:
            logger.warning(f"Failed to load {node.type} node {node.id}: {e}")
            return None
        except Exception as e:
            logger.error(
                f"Unexpected error loading {node.type} node {node.id}: {e}",
                exc_info=True,
            )
            return None

        name = read_entity_field(entity, "name") or node.label or node.id
        color = read_entity_field(entity, "color")
        if not isinstance(color, str) or not color:
            color = node.color
        return data_class(name=str(name), color=color, entity=entity)
