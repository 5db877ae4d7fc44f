# fundflow/infrastructure/http_ledger_source.py
#
# EntityDataSource that reads another fundflow instance over HTTP.
#
# Design decisions:
#   - One shared httpx.AsyncClient per source, so the concurrent fetches of a
#     discovery level reuse pooled connections. The owner closes it with
#     aclose() (or `async with`).
#   - Failure mapping is exhaustive and per entity:
#       404                        -> EntityNotFoundError
#       httpx.TimeoutException     -> FetchTimeoutError
#       other transport / status   -> MalformedResponseError
#       non-JSON or wrong shape    -> MalformedResponseError
#     so callers only ever see DataSourceError subclasses.
#   - The payload is the EntityRecordsDTO served by ledger_routes; rows go
#     through records_from_rows like DuckDB rows do.
from __future__ import annotations

from typing import Any

import httpx

from fundflow.domain.ledger.entities import TransactionRecord
from fundflow.domain.ledger.errors import EntityNotFoundError, FetchTimeoutError, MalformedResponseError
from fundflow.domain.ledger.records import records_from_rows
from fundflow.log import log


class HttpLedgerSource:
    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> HttpLedgerSource:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_entity_records(self, entity_id: str) -> list[TransactionRecord]:
        payload = await self._get_json(entity_id, f"/api/ledger/{entity_id}/records")
        rows = payload.get("records")
        if not isinstance(rows, list):
            raise MalformedResponseError(entity_id, "payload has no 'records' list")
        records, dropped = records_from_rows(r for r in rows if isinstance(r, dict))
        dropped += sum(1 for r in rows if not isinstance(r, dict))
        if dropped:
            log(f"    {entity_id}: dropped {dropped} malformed ledger rows")
        return records

    async def fetch_classification(self, entity_id: str) -> str | None:
        try:
            payload = await self._get_json(entity_id, f"/api/ledger/{entity_id}/classification")
        except EntityNotFoundError:
            return None
        tag = payload.get("tag")
        return str(tag) if tag is not None else None

    async def _get_json(self, entity_id: str, path: str) -> dict[str, Any]:
        try:
            response = await self._client.get(path)
        except httpx.TimeoutException as err:
            raise FetchTimeoutError(entity_id, f"timeout calling {path}") from err
        except httpx.HTTPError as err:
            raise MalformedResponseError(entity_id, f"transport error calling {path}: {err}") from err

        if response.status_code == 404:
            raise EntityNotFoundError(entity_id, f"{path} returned 404")
        if response.status_code != 200:
            raise MalformedResponseError(entity_id, f"{path} returned HTTP {response.status_code}")
        try:
            payload = response.json()
        except ValueError as err:
            raise MalformedResponseError(entity_id, f"{path} returned invalid JSON") from err
        if not isinstance(payload, dict):
            raise MalformedResponseError(entity_id, f"{path} returned a non-object payload")
        return payload
