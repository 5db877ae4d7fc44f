# ledger_pipeline/staging/parquet_writer.py
#
# Standardised Parquet write for staging data.
#
# Design decisions:
#   - Thin wrapper around Polars I/O so every staging file is written the
#     same way; build_duckdb reads them back through DuckDB, not Polars.
#   - Parent directories are created automatically.
#   - No schema enforcement here: the validate step owns it.
from __future__ import annotations

from pathlib import Path

import polars as pl


def write_parquet(df: pl.DataFrame, path: Path) -> Path:
    """Write a DataFrame to a Parquet file, creating parent directories as needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    df.write_parquet(path)
    return path
