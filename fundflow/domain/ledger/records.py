# fundflow/domain/ledger/records.py
#
# Row -> TransactionRecord conversion, shared by every data source.
#
# Design decisions:
#   - Data sources hand over plain mappings (DuckDB rows, JSON objects) and
#     this module turns them into validated TransactionRecord instances in one
#     place, instead of each source re-checking optional fields.
#   - Lenient on values, strict on identity: an unparseable amount becomes 0,
#     an unparseable timestamp becomes None and a blank type becomes
#     "transfer", but a row without owner id, counterpart id or a known
#     direction cannot be placed on the graph and is dropped.
#   - Dropping is per row. One bad line never invalidates the batch.
from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime
from decimal import Decimal

from .entities import TransactionRecord
from .value_objects import DEFAULT_TRANSACTION_TYPE, Direction, parse_amount


def record_from_row(row: Mapping[str, object]) -> TransactionRecord:
    """Build one record from a canonical snake_case mapping.

    Raises:
        ValueError: when the row lacks a usable owner id, counterpart id or
            direction.
    """
    amount = parse_amount(row.get("amount"))
    if amount < Decimal("0"):
        amount = Decimal("0")
    balance_raw = row.get("running_balance")
    return TransactionRecord(
        owner_id=_text(row.get("owner_id")) or "",
        counterpart_id=_text(row.get("counterpart_id")) or "",
        direction=Direction.parse(row.get("direction")),
        amount=amount,
        owner_name=_text(row.get("owner_name")),
        id_document=_text(row.get("id_document")),
        timestamp=_timestamp(row.get("timestamp")),
        counterpart_name=_text(row.get("counterpart_name")),
        counterpart_bank=_text(row.get("counterpart_bank")),
        description=_text(row.get("description")),
        transaction_type=_text(row.get("transaction_type")) or DEFAULT_TRANSACTION_TYPE,
        running_balance=parse_amount(balance_raw) if balance_raw is not None else None,
    )


def records_from_rows(rows: Iterable[Mapping[str, object]]) -> tuple[list[TransactionRecord], int]:
    """Convert rows, dropping malformed ones.

    Returns:
        (records, dropped): the valid records in input order and the number of
        rows that were discarded.
    """
    records: list[TransactionRecord] = []
    dropped = 0
    for row in rows:
        try:
            records.append(record_from_row(row))
        except (ValueError, TypeError):
            dropped += 1
    return records, dropped


def _text(raw: object) -> str | None:
    if raw is None:
        return None
    text = str(raw).strip()
    return text or None


def _timestamp(raw: object) -> datetime | None:
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return raw
    try:
        return datetime.fromisoformat(str(raw).strip())
    except ValueError:
        return None
