# fundflow/infrastructure/repositories/duckdb_ledger_repo.py
#
# LedgerRepository (EntityDataSource plus paged listing) backed by the
# DuckDB file built by ledger_pipeline.
#
# Design decisions:
#   - DuckDB calls block, so each fetch runs in a worker thread via
#     asyncio.to_thread. The cursor for each call is created on the
#     event-loop thread and handed to the worker: a DuckDB connection must
#     not be used from several threads at once, cursors are independent
#     duplicates of it.
#   - Rows are turned into TransactionRecord through records_from_rows, which
#     drops malformed lines one by one. The drop count is logged, never raised.
#   - No records is an empty list, not EntityNotFoundError: "no known
#     activity" is a valid answer of this source.
#   - duckdb.Error is wrapped as MalformedResponseError so the engine can
#     isolate it like any other per-entity failure.
from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import TypeVar

import duckdb

from fundflow.domain.ledger.entities import TransactionRecord
from fundflow.domain.ledger.errors import MalformedResponseError
from fundflow.domain.ledger.records import records_from_rows
from fundflow.domain.ledger.statistics import PageRequest, RecordPage, SortField, SortOrder
from fundflow.log import log

# Keys of the row mappings handed to records_from_rows; same order as _SELECT_COLUMNS.
_RECORD_COLUMNS = (
    "owner_id",
    "owner_name",
    "id_document",
    "timestamp",
    "amount",
    "direction",
    "counterpart_id",
    "counterpart_name",
    "counterpart_bank",
    "description",
    "transaction_type",
    "running_balance",
)

_SELECT_COLUMNS = ", ".join(
    "transaction_time" if key == "timestamp" else key for key in _RECORD_COLUMNS
)

# Whitelisted ORDER BY columns; never interpolated from user input.
_SORT_COLUMNS: dict[SortField, str] = {
    SortField.DATE: "transaction_time",
    SortField.AMOUNT: "amount",
}

_T = TypeVar("_T")


class DuckDBLedgerRepo:
    def __init__(self, conn: duckdb.DuckDBPyConnection) -> None:
        self._conn = conn

    async def fetch_entity_records(self, entity_id: str) -> list[TransactionRecord]:
        return await self._in_worker(self.list_records, entity_id)

    async def fetch_classification(self, entity_id: str) -> str | None:
        return await self._in_worker(self.get_classification, entity_id)

    async def fetch_records_page(self, entity_id: str, request: PageRequest) -> RecordPage:
        return await self._in_worker(self.list_records_page, entity_id, request)

    async def _in_worker(self, query: Callable[..., _T], *args: object) -> _T:
        # Cursor created on the event-loop thread, used only by the worker thread.
        cursor = self._conn.cursor()
        try:
            return await asyncio.to_thread(query, *args, cursor=cursor)
        finally:
            cursor.close()

    def list_records(
        self,
        entity_id: str,
        cursor: duckdb.DuckDBPyConnection | None = None,
    ) -> list[TransactionRecord]:
        """All lines where entity_id is owner or counterpart, newest first."""
        conn = cursor or self._conn
        try:
            rows = conn.execute(
                f"""
                SELECT {_SELECT_COLUMNS}
                FROM fact_transaction
                WHERE owner_id = ? OR counterpart_id = ?
                ORDER BY transaction_time DESC NULLS LAST, pk_transaction
            """,  # noqa: S608
                [entity_id, entity_id],
            ).fetchall()
        except duckdb.Error as err:
            raise MalformedResponseError(entity_id, f"ledger query failed: {err}") from err

        records, dropped = records_from_rows(dict(zip(_RECORD_COLUMNS, row)) for row in rows)
        if dropped:
            log(f"    {entity_id}: dropped {dropped} malformed ledger rows")
        return records

    def list_records_page(
        self,
        entity_id: str,
        request: PageRequest,
        cursor: duckdb.DuckDBPyConnection | None = None,
    ) -> RecordPage:
        """One page of the lines where entity_id is owner or counterpart."""
        conn = cursor or self._conn
        direction = "ASC" if request.sort_order is SortOrder.ASC else "DESC"
        order_by = f"{_SORT_COLUMNS[request.sort_by]} {direction} NULLS LAST, pk_transaction"
        try:
            count_row = conn.execute(
                "SELECT count(*) FROM fact_transaction WHERE owner_id = ? OR counterpart_id = ?",
                [entity_id, entity_id],
            ).fetchone()
            rows = conn.execute(
                f"""
                SELECT {_SELECT_COLUMNS}
                FROM fact_transaction
                WHERE owner_id = ? OR counterpart_id = ?
                ORDER BY {order_by}
                LIMIT ? OFFSET ?
            """,  # noqa: S608
                [entity_id, entity_id, request.page_size, request.offset],
            ).fetchall()
        except duckdb.Error as err:
            raise MalformedResponseError(entity_id, f"ledger page query failed: {err}") from err

        records, dropped = records_from_rows(dict(zip(_RECORD_COLUMNS, row)) for row in rows)
        if dropped:
            log(f"    {entity_id}: dropped {dropped} malformed ledger rows on page {request.page}")
        return RecordPage(records=records, total_count=int(count_row[0]) if count_row else 0, request=request)

    def get_classification(
        self,
        entity_id: str,
        cursor: duckdb.DuckDBPyConnection | None = None,
    ) -> str | None:
        conn = cursor or self._conn
        try:
            row = conn.execute(
                "SELECT classification FROM dim_account WHERE entity_id = ?",
                [entity_id],
            ).fetchone()
        except duckdb.Error as err:
            raise MalformedResponseError(entity_id, f"classification query failed: {err}") from err
        if row is None or row[0] is None:
            return None
        return str(row[0])
