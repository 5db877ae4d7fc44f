# tests/domain/test_ledger_records.py
#
# Row -> TransactionRecord conversion and the record's own validation.
from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest

from fundflow.domain.ledger.entities import TransactionRecord
from fundflow.domain.ledger.records import record_from_row, records_from_rows
from fundflow.domain.ledger.value_objects import Direction


def _row(**overrides: object) -> dict[str, object]:
    row: dict[str, object] = {
        "owner_id": "1001000000000001",
        "counterpart_id": "2002000000000002",
        "direction": "out",
        "amount": "1,250.75",
        "timestamp": "2024-05-01T10:30:00",
        "transaction_type": "transfer",
    }
    row.update(overrides)
    return row


def test_record_from_row_parses_values() -> None:
    record = record_from_row(_row(owner_name="  Alice  ", running_balance="99.5"))

    assert record.amount == Decimal("1250.75")
    assert record.direction is Direction.OUT
    assert record.timestamp == datetime(2024, 5, 1, 10, 30)
    assert record.owner_name == "Alice"
    assert record.running_balance == Decimal("99.5")
    assert record.counterpart_name is None


@pytest.mark.parametrize("raw", [None, "", "n/a", "NaN", True])
def test_unparseable_amount_counts_as_zero(raw: object) -> None:
    assert record_from_row(_row(amount=raw)).amount == Decimal("0")


def test_missing_type_defaults_to_transfer() -> None:
    assert record_from_row(_row(transaction_type="  ")).transaction_type == "transfer"
    assert record_from_row(_row(transaction_type=None)).transaction_type == "transfer"


@pytest.mark.parametrize(("label", "expected"), [("收", "in"), ("付", "out"), ("Inflow", "in"), ("debit", "out")])
def test_direction_aliases(label: str, expected: str) -> None:
    assert record_from_row(_row(direction=label)).direction == expected


def test_unparseable_timestamp_is_none() -> None:
    assert record_from_row(_row(timestamp="yesterday")).timestamp is None


def test_records_from_rows_drops_malformed_rows_only() -> None:
    rows = [
        _row(),
        _row(owner_id=""),
        _row(counterpart_id=None),
        _row(direction="sideways"),
        _row(amount="12"),
    ]

    records, dropped = records_from_rows(rows)

    assert dropped == 3
    assert [r.amount for r in records] == [Decimal("1250.75"), Decimal("12")]


def test_record_rejects_negative_amount() -> None:
    with pytest.raises(ValueError, match="negative"):
        TransactionRecord(
            owner_id="1",
            counterpart_id="2",
            direction=Direction.IN,
            amount=Decimal("-1"),
        )


def test_record_strips_ids_and_reports_involvement() -> None:
    record = TransactionRecord(owner_id=" 1 ", counterpart_id="2 ", direction=Direction.IN)

    assert record.owner_id == "1"
    assert record.involves("2")
    assert not record.involves("3")
