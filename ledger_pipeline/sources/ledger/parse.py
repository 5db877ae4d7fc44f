# ledger_pipeline/sources/ledger/parse.py
#
# Parse bank ledger exports (CSV or Parquet) into one canonical schema.
#
# Design decisions:
#   - Exports arrive with different headers: the bank's native export uses
#     Chinese column names (交易卡号, 收付标志, ...), the API dump uses camelCase
#     and re-exports use the canonical snake_case. HEADER_ALIASES maps every
#     known variant onto the canonical name; the first alias present wins.
#   - Every column is read as Utf8. Typing (amount, timestamps, direction
#     labels) is the validate step's job, so parse never drops a row.
#   - Missing optional columns are added as nulls so validate and the DuckDB
#     loader always see the same column set. Missing required columns raise
#     LedgerSchemaError: without ids, direction and amount there is no graph.
#
# Invariants:
#   - Output columns are exactly LEDGER_COLUMNS (or ACCOUNT_COLUMNS), all Utf8.
from __future__ import annotations

from pathlib import Path

import polars as pl

LEDGER_COLUMNS: tuple[str, ...] = (
    "owner_id",
    "owner_name",
    "id_document",
    "transaction_time",
    "amount",
    "direction",
    "counterpart_id",
    "counterpart_name",
    "counterpart_bank",
    "description",
    "transaction_type",
    "running_balance",
)

REQUIRED_LEDGER_COLUMNS: tuple[str, ...] = ("owner_id", "counterpart_id", "direction", "amount")

ACCOUNT_COLUMNS: tuple[str, ...] = ("entity_id", "classification")

HEADER_ALIASES: dict[str, tuple[str, ...]] = {
    "owner_id": ("owner_id", "交易卡号", "cardId"),
    "owner_name": ("owner_name", "交易户名", "cardName"),
    "id_document": ("id_document", "交易证件号码", "idCard"),
    "transaction_time": ("transaction_time", "timestamp", "交易时间", "transactionTime"),
    "amount": ("amount", "交易金额"),
    "direction": ("direction", "收付标志"),
    "counterpart_id": ("counterpart_id", "交易对手账卡号", "counterpartCardId"),
    "counterpart_name": ("counterpart_name", "对手户名", "counterpartName"),
    "counterpart_bank": ("counterpart_bank", "对手开户银行", "counterpartBank"),
    "description": ("description", "摘要说明"),
    "transaction_type": ("transaction_type", "交易类型", "transactionType"),
    "running_balance": ("running_balance", "交易余额", "balance"),
    "entity_id": ("entity_id", "主端卡号", "cardId"),
    "classification": ("classification", "卡性质", "cardType"),
}


class LedgerSchemaError(Exception):
    """Raised when an export lacks a column the graph cannot be built without.

    The message names the missing canonical columns and the file.
    """


def parse_ledger(path: Path, separator: str = ",") -> pl.DataFrame:
    """Parse a ledger export into the canonical LEDGER_COLUMNS schema.

    Args:
        path:      CSV (any extension but .parquet) or Parquet file.
        separator: CSV field separator.

    Raises:
        LedgerSchemaError: a REQUIRED_LEDGER_COLUMNS column has no known header.
    """
    return _canonical(_read(path, separator), LEDGER_COLUMNS, REQUIRED_LEDGER_COLUMNS, path)


def parse_accounts(path: Path, separator: str = ",") -> pl.DataFrame:
    """Parse an account classification export into ACCOUNT_COLUMNS."""
    return _canonical(_read(path, separator), ACCOUNT_COLUMNS, ACCOUNT_COLUMNS[:1], path)


def _read(path: Path, separator: str) -> pl.DataFrame:
    if path.suffix.lower() == ".parquet":
        df = pl.read_parquet(path)
    else:
        df = pl.read_csv(path, separator=separator, infer_schema_length=0, encoding="utf8-lossy")
    return df.rename({c: c.lstrip("\ufeff").strip() for c in df.columns})


def _canonical(
    df: pl.DataFrame,
    columns: tuple[str, ...],
    required: tuple[str, ...],
    path: Path,
) -> pl.DataFrame:
    exprs: list[pl.Expr] = []
    missing: list[str] = []
    for name in columns:
        source = next((alias for alias in HEADER_ALIASES[name] if alias in df.columns), None)
        if source is None:
            if name in required:
                missing.append(name)
            exprs.append(pl.lit(None, dtype=pl.Utf8).alias(name))
        else:
            exprs.append(pl.col(source).cast(pl.Utf8, strict=False).alias(name))

    if missing:
        raise LedgerSchemaError(f"{path.name}: missing required column(s) {', '.join(missing)}")

    return df.select(exprs)
