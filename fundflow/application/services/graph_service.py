# fundflow/application/services/graph_service.py
from __future__ import annotations

import asyncio

from fundflow.domain.graph.entities import Edge, GraphSnapshot, Node
from fundflow.domain.graph.enums import CATEGORY_COLORS
from fundflow.domain.graph.rules import AssociationRule
from fundflow.domain.ledger.errors import DataSourceError, EntityNotFoundError
from fundflow.domain.ledger.repository import EntityDataSource
from fundflow.log import log

from ..dtos.graph_dto import (
    BatchItemDTO,
    BatchResultDTO,
    DiscoveryRequestDTO,
    DiscoveryResultDTO,
    EdgeDTO,
    FetchFailureDTO,
    GraphDTO,
    LevelStatsDTO,
    NodeDTO,
)
from .discovery_service import DEFAULT_FETCH_TIMEOUT, MultiLevelDiscoveryEngine


class GraphService:
    def __init__(self, data_source: EntityDataSource, fetch_timeout: float = DEFAULT_FETCH_TIMEOUT) -> None:
        self._engine = MultiLevelDiscoveryEngine(data_source, fetch_timeout=fetch_timeout)

    async def get_graph(self, entity_id: str, *, node_only: bool = False) -> GraphDTO:
        """Single-entity graph: the anchor node and its aggregated edges.

        Raises:
            EntityNotFoundError: the entity has no ledger activity.
            DataSourceError: the data source failed.
        """
        node, edges = await self._engine.fetch_entity(entity_id)
        if node.is_empty and not edges:
            raise EntityNotFoundError(entity_id, "no ledger activity")
        return GraphDTO(
            nodes=[node_to_dto(node)],
            edges=[] if node_only else [edge_to_dto(e) for e in edges],
        )

    async def get_batch(self, entity_ids: list[str]) -> BatchResultDTO:
        async def _one(entity_id: str) -> BatchItemDTO:
            try:
                graph = await self.get_graph(entity_id)
            except DataSourceError as err:
                return BatchItemDTO(entity_id=entity_id, success=False, error=str(err))
            except Exception as err:
                # One bad item never fails the batch.
                log(f"  batch {entity_id}: unexpected {type(err).__name__}: {err}")
                return BatchItemDTO(entity_id=entity_id, success=False, error=f"unexpected error: {err}")
            return BatchItemDTO(entity_id=entity_id, success=True, graph=graph)

        items = await asyncio.gather(*(_one(e) for e in entity_ids))
        return BatchResultDTO(
            items=list(items),
            requested_count=len(entity_ids),
            success_count=sum(1 for i in items if i.success),
        )

    async def discover(self, request: DiscoveryRequestDTO) -> DiscoveryResultDTO:
        rules = AssociationRule(**request.rules.model_dump())
        snapshot = await self._engine.discover(request.root_ids, request.max_depth, rules)
        return snapshot_to_dto(snapshot)


def node_to_dto(node: Node) -> NodeDTO:
    return NodeDTO(
        id=node.id,
        name=node.display_name,
        total_in=float(node.total_in_amount),
        total_out=float(node.total_out_amount),
        count_in=node.in_count,
        count_out=node.out_count,
        transaction_types=sorted(node.transaction_types),
        classification=node.classification_tag,
        category=node.category.value,
        color=CATEGORY_COLORS[node.category],
        visual_weight=node.visual_weight,
        level=node.level,
    )


def edge_to_dto(edge: Edge) -> EdgeDTO:
    return EdgeDTO(
        source=edge.source_id,
        target=edge.target_id,
        type=edge.transaction_type,
        direction=edge.direction.value,
        amount=float(edge.cumulative_amount),
        count=edge.occurrence_count,
        last_seen=edge.last_seen.isoformat() if edge.last_seen else None,
    )


def snapshot_to_dto(snapshot: GraphSnapshot) -> DiscoveryResultDTO:
    return DiscoveryResultDTO(
        nodes=[node_to_dto(n) for n in snapshot.nodes],
        edges=[edge_to_dto(e) for e in snapshot.edges],
        level_stats=[
            LevelStatsDTO(level=level, node_count=stats.node_count, link_count=stats.link_count)
            for level, stats in sorted(snapshot.level_stats.items())
        ],
        total_levels=snapshot.total_levels,
        failures=[
            FetchFailureDTO(entity_id=f.entity_id, level=f.level, code=f.code, message=f.message)
            for f in snapshot.failures
        ],
        truncated=snapshot.truncated,
    )
