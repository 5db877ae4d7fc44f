# tests/integration/test_http_ledger_source.py
#
# HttpLedgerSource: error mapping against httpx.MockTransport, and a full
# discovery through the HTTP source against this service's own ledger routes.
from __future__ import annotations

from decimal import Decimal

import httpx
import pytest
from fastapi.testclient import TestClient

from fundflow.application.services.discovery_service import MultiLevelDiscoveryEngine
from fundflow.domain.ledger.errors import EntityNotFoundError, FetchTimeoutError, MalformedResponseError
from fundflow.infrastructure.http_ledger_source import HttpLedgerSource

ALICE = "6222000000000001"
BOB = "6222000000000002"
CAROL = "6222000000000003"


def _source(transport: httpx.MockTransport | None = None, **responses: httpx.Response) -> HttpLedgerSource:
    def _handle(request: httpx.Request) -> httpx.Response:
        return responses.get(request.url.path.rsplit("/", 1)[-1], httpx.Response(404))

    return HttpLedgerSource("http://ledger.test", transport=transport or httpx.MockTransport(_handle))


@pytest.mark.asyncio
async def test_records_payload_is_parsed_and_bad_rows_dropped() -> None:
    payload = {
        "entity_id": ALICE,
        "records": [
            {"owner_id": ALICE, "counterpart_id": BOB, "direction": "out", "amount": "10.50",
             "timestamp": "2025-06-01T10:00:00", "transaction_type": "transfer"},
            {"owner_id": ALICE, "counterpart_id": "", "direction": "out", "amount": "1"},
            "not a row",
        ],
    }
    async with _source(records=httpx.Response(200, json=payload)) as source:
        records = await source.fetch_entity_records(ALICE)

    assert len(records) == 1
    assert records[0].amount == Decimal("10.50")


@pytest.mark.asyncio
async def test_records_404_is_not_found() -> None:
    async with _source() as source:
        with pytest.raises(EntityNotFoundError):
            await source.fetch_entity_records(ALICE)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"detail": "boom"}),
        httpx.Response(200, content=b"<html>"),
        httpx.Response(200, json=[1, 2]),
        httpx.Response(200, json={"entity_id": ALICE}),
    ],
)
async def test_bad_responses_are_malformed(response: httpx.Response) -> None:
    async with _source(records=response) as source:
        with pytest.raises(MalformedResponseError):
            await source.fetch_entity_records(ALICE)


@pytest.mark.asyncio
async def test_timeout_maps_to_fetch_timeout() -> None:
    def _stall(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("stalled", request=request)

    async with _source(httpx.MockTransport(_stall)) as source:
        with pytest.raises(FetchTimeoutError):
            await source.fetch_entity_records(ALICE)


@pytest.mark.asyncio
async def test_classification_missing_is_none() -> None:
    ok = httpx.Response(200, json={"entity_id": BOB, "tag": "transit account"})
    async with _source(classification=ok) as source:
        assert await source.fetch_classification(BOB) == "transit account"
    async with _source() as source:
        assert await source.fetch_classification(BOB) is None


@pytest.mark.asyncio
async def test_discovery_through_http_source_matches_local(client: TestClient) -> None:
    from fundflow.interfaces.api.main import app

    transport = httpx.ASGITransport(app=app)
    async with HttpLedgerSource("http://fundflow.test", transport=transport) as source:
        snapshot = await MultiLevelDiscoveryEngine(source).discover([ALICE], max_depth=3)

    local = client.post("/api/graph/discover", json={"root_ids": [ALICE], "max_depth": 3}).json()
    assert {n.id: n.level for n in snapshot.nodes} == {n["id"]: n["level"] for n in local["nodes"]}
    assert snapshot.node(CAROL).classification_tag == "shell company"
    assert len(snapshot.edges) == len(local["edges"])


@pytest.mark.asyncio
async def test_inactive_remote_entity_is_empty_not_failed(client: TestClient) -> None:
    from fundflow.interfaces.api.main import app

    transport = httpx.ASGITransport(app=app)
    async with HttpLedgerSource("http://fundflow.test", transport=transport) as source:
        assert await source.fetch_entity_records("6222000000000099") == []
        snapshot = await MultiLevelDiscoveryEngine(source).discover(["6222000000000099"], max_depth=2)

    assert snapshot.failures == ()
    node = snapshot.node("6222000000000099")
    assert node is not None
    assert node.is_empty
