# tests/application/test_graph_service.py
#
# GraphService: DTO shaping on top of the discovery engine.
from __future__ import annotations

from decimal import Decimal

import pytest

from fundflow.application.dtos.graph_dto import AssociationRuleDTO, DiscoveryRequestDTO
from fundflow.application.services.graph_service import GraphService
from fundflow.domain.ledger.entities import TransactionRecord
from fundflow.domain.ledger.errors import EntityNotFoundError, FetchTimeoutError
from fundflow.domain.ledger.value_objects import Direction

ANCHOR = "1001000000000001"
PAYEE = "2002000000000002"
DOWN = "3003000000000003"


class _StubSource:
    def __init__(self) -> None:
        out = TransactionRecord(
            owner_id=ANCHOR, counterpart_id=PAYEE, direction=Direction.OUT, amount=Decimal("120000")
        )
        self._records = {
            ANCHOR: [out],
            PAYEE: [
                TransactionRecord(
                    owner_id=PAYEE, counterpart_id=ANCHOR, direction=Direction.IN, amount=Decimal("120000")
                ),
                TransactionRecord(
                    owner_id=PAYEE, counterpart_id=DOWN, direction=Direction.OUT, amount=Decimal("90000")
                ),
            ],
        }

    async def fetch_entity_records(self, entity_id: str) -> list[TransactionRecord]:
        if entity_id == DOWN:
            raise FetchTimeoutError(entity_id, "stalled")
        return self._records.get(entity_id, [])

    async def fetch_classification(self, entity_id: str) -> str | None:
        return "shell company" if entity_id == PAYEE else None


@pytest.fixture()
def service() -> GraphService:
    return GraphService(_StubSource())


@pytest.mark.asyncio
async def test_get_graph_returns_anchor_and_edges(service: GraphService) -> None:
    graph = await service.get_graph(ANCHOR)

    assert [n.id for n in graph.nodes] == [ANCHOR]
    node = graph.nodes[0]
    assert node.total_out == 120000.0
    assert node.count_out == 1
    assert node.category == "blue"
    assert node.color == "#1890ff"
    assert node.level is None
    assert len(graph.edges) == 1
    assert graph.edges[0].direction == "outflow"


@pytest.mark.asyncio
async def test_node_only_omits_edges(service: GraphService) -> None:
    graph = await service.get_graph(PAYEE, node_only=True)

    assert graph.edges == []
    assert graph.nodes[0].category == "red"
    assert graph.nodes[0].color == "#cf1322"


@pytest.mark.asyncio
async def test_entity_without_activity_is_not_found(service: GraphService) -> None:
    with pytest.raises(EntityNotFoundError):
        await service.get_graph("9999999999999999")


@pytest.mark.asyncio
async def test_batch_reports_per_item_outcome(service: GraphService) -> None:
    result = await service.get_batch([ANCHOR, DOWN, "9999999999999999"])

    assert result.requested_count == 3
    assert result.success_count == 1
    assert [i.success for i in result.items] == [True, False, False]
    assert result.items[1].error is not None


@pytest.mark.asyncio
async def test_discover_maps_snapshot(service: GraphService) -> None:
    request = DiscoveryRequestDTO(root_ids=[ANCHOR], max_depth=3, rules=AssociationRuleDTO(min_amount=1000))

    result = await service.discover(request)

    assert {n.id: n.level for n in result.nodes} == {ANCHOR: 1, PAYEE: 2}
    assert [(s.level, s.node_count) for s in result.level_stats] == [(1, 1), (2, 1), (3, 0)]
    assert result.total_levels == 2
    assert [(f.entity_id, f.level, f.code) for f in result.failures] == [(DOWN, 3, "TIMEOUT")]
    assert result.truncated is False


class _BrokenPayloadSource(_StubSource):
    async def fetch_entity_records(self, entity_id: str) -> list[TransactionRecord]:
        if entity_id == PAYEE:
            raise RuntimeError("decoder blew up")
        return await super().fetch_entity_records(entity_id)


@pytest.mark.asyncio
async def test_batch_isolates_unexpected_item_errors() -> None:
    result = await GraphService(_BrokenPayloadSource()).get_batch([ANCHOR, PAYEE])

    assert [i.success for i in result.items] == [True, False]
    assert result.success_count == 1
    assert "decoder blew up" in (result.items[1].error or "")
