# ledger_pipeline/sources/ledger/validate.py
#
# Validate and clean parsed ledger and account DataFrames.
#
# Design decisions:
#   - Identity is strict, values are lenient. Rows without owner id,
#     counterpart id or a recognisable direction are dropped: they cannot be
#     placed on the graph. A missing or unparseable amount becomes 0, an
#     unparseable timestamp becomes null, a blank type becomes "transfer".
#   - Negative amounts are dropped rather than clamped: the direction flag
#     carries the sign in these exports, so a negative value is a corrupt row.
#   - Direction labels of every known export are folded onto "in"/"out";
#     classification labels of the native export onto the English tags the
#     graph domain maps to categories.
#   - Deduplication is on the full row, keeping the first occurrence: exports
#     of overlapping periods repeat identical lines.
#
# Invariants:
#   - owner_id, counterpart_id, direction, amount, transaction_type are
#     non-null in every surviving row; amount >= 0.
#   - pk_transaction is a contiguous 1-based index.
from __future__ import annotations

import polars as pl

from ledger_pipeline.log import log

DEFAULT_TRANSACTION_TYPE = "transfer"

DIRECTION_ALIASES: dict[str, str] = {
    "in": "in",
    "inflow": "in",
    "credit": "in",
    "收": "in",
    "进": "in",
    "out": "out",
    "outflow": "out",
    "debit": "out",
    "付": "out",
    "出": "out",
}

CLASSIFICATION_ALIASES: dict[str, str] = {
    "收款卡": "receiving account",
    "付款卡": "paying account",
    "中转卡": "transit account",
    "空壳公司": "shell company",
    "普通卡": "ordinary",
}

_TIME_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d %H:%M:%S%.f",
    "%Y-%m-%dT%H:%M:%S%.f",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
    "%Y/%m/%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
)

_TEXT_COLUMNS: tuple[str, ...] = (
    "owner_name",
    "id_document",
    "counterpart_name",
    "counterpart_bank",
    "description",
)


def validate_ledger(df: pl.DataFrame) -> pl.DataFrame:
    """Validate and clean a DataFrame returned by parse_ledger.

    Steps applied:
        1. Strip ids; drop rows without owner_id or counterpart_id.
        2. Normalise direction; drop rows with an unknown direction.
        3. Coerce amount (null/unparseable -> 0); drop negative amounts.
        4. Default transaction_type, parse transaction_time and balance.
        5. Deduplicate full rows, keeping the first.
        6. Assign pk_transaction 1..n.
    """
    total = len(df)

    df = df.with_columns(
        pl.col("owner_id").str.strip_chars(),
        pl.col("counterpart_id").str.strip_chars(),
        pl.col("direction")
        .str.strip_chars()
        .str.to_lowercase()
        .replace_strict(DIRECTION_ALIASES, default=None, return_dtype=pl.Utf8),
    )
    df = df.filter(
        pl.col("owner_id").is_not_null()
        & (pl.col("owner_id") != "")
        & pl.col("counterpart_id").is_not_null()
        & (pl.col("counterpart_id") != "")
        & pl.col("direction").is_not_null()
    )

    df = df.with_columns(
        _decimal_text(pl.col("amount")).fill_null(0.0).fill_nan(0.0).alias("amount"),
        _decimal_text(pl.col("running_balance")).fill_nan(None).alias("running_balance"),
        pl.when(pl.col("transaction_type").str.strip_chars().fill_null("") == "")
        .then(pl.lit(DEFAULT_TRANSACTION_TYPE))
        .otherwise(pl.col("transaction_type").str.strip_chars())
        .alias("transaction_type"),
        _timestamp(pl.col("transaction_time")).alias("transaction_time"),
        *[_blank_to_null(pl.col(c)).alias(c) for c in _TEXT_COLUMNS],
    )
    df = df.filter(pl.col("amount") >= 0)

    df = df.unique(keep="first", maintain_order=True)

    n = len(df)
    df = df.with_columns(pl.Series("pk_transaction", list(range(1, n + 1)), dtype=pl.Int64))

    dropped = total - n
    if dropped:
        log(f"  Ledger: dropped {dropped:,} of {total:,} rows (malformed or duplicate)")
    return df


def validate_accounts(df: pl.DataFrame) -> pl.DataFrame:
    """Validate and clean a DataFrame returned by parse_accounts.

    Drops rows without entity_id, maps native classification labels to the
    English tags and keeps the first row per entity_id.
    """
    df = df.with_columns(
        pl.col("entity_id").str.strip_chars(),
        pl.col("classification")
        .str.strip_chars()
        .str.to_lowercase()
        .replace(CLASSIFICATION_ALIASES),
    )
    df = df.with_columns(_blank_to_null(pl.col("classification")).alias("classification"))
    df = df.filter(pl.col("entity_id").is_not_null() & (pl.col("entity_id") != ""))
    return df.unique(subset=["entity_id"], keep="first", maintain_order=True)


def _decimal_text(col: pl.Expr) -> pl.Expr:
    return col.str.strip_chars().str.replace_all(",", "").cast(pl.Float64, strict=False)


def _timestamp(col: pl.Expr) -> pl.Expr:
    text = col.str.strip_chars()
    return pl.coalesce([text.str.strptime(pl.Datetime("us"), fmt, strict=False) for fmt in _TIME_FORMATS])


def _blank_to_null(col: pl.Expr) -> pl.Expr:
    stripped = col.str.strip_chars()
    return pl.when(stripped == "").then(None).otherwise(stripped)
