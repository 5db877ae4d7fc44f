# tests/pipeline/test_ledger_ingestion.py
#
# parse_ledger / validate_ledger and parse_accounts / validate_accounts
# against a bank export with native column headers.
from __future__ import annotations

import datetime
from pathlib import Path

import polars as pl
import pytest

from ledger_pipeline.sources.ledger.parse import (
    LEDGER_COLUMNS,
    LedgerSchemaError,
    parse_accounts,
    parse_ledger,
)
from ledger_pipeline.sources.ledger.validate import validate_accounts, validate_ledger

FIXTURES_DIR = Path(__file__).parent / "fixtures"
SAMPLE_LEDGER = FIXTURES_DIR / "sample_ledger.csv"
SAMPLE_ACCOUNTS = FIXTURES_DIR / "sample_accounts.csv"


def test_parse_maps_native_headers_to_canonical_columns() -> None:
    df = parse_ledger(SAMPLE_LEDGER)

    assert tuple(df.columns) == LEDGER_COLUMNS
    assert len(df) == 7
    assert all(dtype == pl.Utf8 for dtype in df.dtypes)
    assert df["owner_name"][0] == "张三"
    assert df["counterpart_bank"][0] == "工商银行"


def test_parse_accepts_canonical_and_camel_case_headers(tmp_path: Path) -> None:
    path = tmp_path / "export.csv"
    path.write_text(
        "cardId,counterpartCardId,direction,amount,transactionTime\n"
        "6222000000000001,6222000000000002,out,10,2025-01-01 00:00:00\n",
        encoding="utf-8",
    )

    df = parse_ledger(path)

    assert df["owner_id"][0] == "6222000000000001"
    assert df["transaction_time"][0] == "2025-01-01 00:00:00"
    assert df["transaction_type"].is_null().all()


def test_parse_reads_parquet(tmp_path: Path) -> None:
    path = tmp_path / "export.parquet"
    pl.DataFrame(
        {
            "owner_id": ["6222000000000001"],
            "counterpart_id": ["6222000000000002"],
            "direction": ["in"],
            "amount": [12.5],
        }
    ).write_parquet(path)

    df = parse_ledger(path)

    assert df["amount"][0] == "12.5"
    assert df["description"].is_null().all()


def test_parse_missing_required_column_raises(tmp_path: Path) -> None:
    path = tmp_path / "export.csv"
    path.write_text("交易卡号,交易金额\n6222000000000001,10\n", encoding="utf-8")

    with pytest.raises(LedgerSchemaError, match="counterpart_id"):
        parse_ledger(path)


def test_validate_drops_rows_without_identity_or_direction() -> None:
    df = validate_ledger(parse_ledger(SAMPLE_LEDGER))

    assert "" not in df["owner_id"].to_list()
    assert "6222000000000007" not in df["owner_id"].to_list()
    assert set(df["direction"].to_list()) <= {"in", "out"}


def test_validate_drops_negative_and_duplicate_rows() -> None:
    df = validate_ledger(parse_ledger(SAMPLE_LEDGER))

    assert len(df) == 3
    assert "6222000000000005" not in df["counterpart_id"].to_list()
    assert df["pk_transaction"].to_list() == [1, 2, 3]


def test_validate_coerces_values() -> None:
    df = validate_ledger(parse_ledger(SAMPLE_LEDGER))
    first, second, third = df.rows(named=True)

    assert first["amount"] == pytest.approx(150000.0)
    assert first["direction"] == "out"
    assert first["running_balance"] == pytest.approx(500000.0)
    assert first["transaction_time"] == datetime.datetime(2025, 6, 1, 10, 0)
    assert second["direction"] == "out"
    assert second["transaction_type"] == "transfer"
    assert second["description"] is None
    assert third["amount"] == 0.0
    assert third["direction"] == "in"
    assert third["transaction_time"] == datetime.datetime(2025, 6, 3, 16, 45)
    assert third["transaction_type"] == "现金"


def test_validate_accounts_maps_labels_and_dedups() -> None:
    df = validate_accounts(parse_accounts(SAMPLE_ACCOUNTS))

    assert dict(zip(df["entity_id"].to_list(), df["classification"].to_list())) == {
        "6222000000000002": "transit account",
        "6222000000000003": "shell company",
        "6222000000000004": "receiving account",
    }
