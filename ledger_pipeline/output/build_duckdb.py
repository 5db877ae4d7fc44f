# ledger_pipeline/output/build_duckdb.py
#
# Atomic DuckDB build: staging Parquet files -> the .duckdb file the API reads.
#
# Design decisions:
#   - The database is written to <output>.tmp.duckdb and renamed over the
#     final path only after every table loaded. A failed build removes the
#     tmp file and leaves the previous database in place, so a running API
#     never sees a half-loaded ledger.
#   - schema.sql is executed as text at build time; the API integration tests
#     execute the same file, so the two never drift.
#   - Parquets are loaded with DuckDB's read_parquet() rather than through
#     Python memory. Only the columns shared by the parquet and the table are
#     inserted: staging files may carry helper columns, and tables may have
#     columns (defaults) a staging file does not provide.
#   - STAGING_TO_TABLE is explicit. A staging file without a mapping is never
#     picked up by accident.
#
# Invariants:
#   - dim_account is loaded before fact_transaction.
#   - A missing staging file is skipped; the ledger file is checked by
#     run_pipeline before the build starts.
from __future__ import annotations

from pathlib import Path

import duckdb

from ledger_pipeline.log import log

SCHEMA_PATH = Path(__file__).parent / "schema.sql"

# Staging parquet stem -> table name in schema.sql, in load order.
STAGING_TO_TABLE: dict[str, str] = {
    "accounts": "dim_account",
    "ledger": "fact_transaction",
}


def build_duckdb(staging_dir: Path, output_path: Path) -> Path:
    """Build the DuckDB database atomically from staging Parquet files.

    Args:
        staging_dir:  Directory containing ``ledger.parquet`` and optionally
                      ``accounts.parquet``.
        output_path:  Final path of the database.

    Returns:
        output_path, once the tmp file has been renamed over it.

    Raises:
        duckdb.Error / OSError: propagated after the tmp file is removed.
    """
    tmp_path = output_path.with_suffix(".tmp.duckdb")
    output_path.parent.mkdir(parents=True, exist_ok=True)

    # Leftover from a crashed run.
    if tmp_path.exists():
        tmp_path.unlink()

    try:
        conn = duckdb.connect(str(tmp_path))
        try:
            conn.execute(SCHEMA_PATH.read_text(encoding="utf-8"))
            _load_staging_data(conn, staging_dir)
        finally:
            conn.close()

        if output_path.exists():
            output_path.unlink()
        tmp_path.rename(output_path)
        return output_path

    except Exception:
        if tmp_path.exists():
            tmp_path.unlink()
        raise


def _load_staging_data(conn: duckdb.DuckDBPyConnection, staging_dir: Path) -> None:
    loaded = 0
    for file_stem, table_name in STAGING_TO_TABLE.items():
        parquet_path = staging_dir / f"{file_stem}.parquet"
        if not parquet_path.exists():
            log(f"  {file_stem}.parquet not found, {table_name} left empty")
            continue

        # table_name comes from STAGING_TO_TABLE and posix_path from the local
        # staging dir; neither is user input.
        table_cols = [
            row[0]
            for row in conn.execute(
                "SELECT column_name FROM information_schema.columns "
                "WHERE table_name = ? ORDER BY ordinal_position",
                [table_name],
            ).fetchall()
        ]
        posix_path = parquet_path.as_posix()
        parquet_cols = {
            row[0]
            for row in conn.execute(
                f"SELECT name FROM parquet_schema('{posix_path}')"  # noqa: S608
            ).fetchall()
        }

        shared_cols = [c for c in table_cols if c in parquet_cols]
        if not shared_cols:
            log(f"  {file_stem}.parquet shares no columns with {table_name}, skipped")
            continue

        cols_sql = ", ".join(shared_cols)
        conn.execute(
            f"INSERT INTO {table_name} ({cols_sql}) "  # noqa: S608
            f"SELECT {cols_sql} FROM read_parquet('{posix_path}')"
        )
        row = conn.execute(f"SELECT COUNT(*) FROM {table_name}").fetchone()  # noqa: S608
        log(f"  Loaded {file_stem} -> {table_name}: {int(row[0]) if row else 0:,} rows")
        loaded += 1

    log(f"  DuckDB: {loaded} tables loaded")


def validate_tables(output_path: Path) -> dict[str, int]:
    """Open a finished database read-only and return row counts per table."""
    conn = duckdb.connect(str(output_path), read_only=True)
    try:
        counts: dict[str, int] = {}
        for (table_name,) in conn.execute("SHOW TABLES").fetchall():
            row = conn.execute(f"SELECT COUNT(*) FROM {table_name}").fetchone()  # noqa: S608
            counts[table_name] = int(row[0]) if row else 0
        return counts
    finally:
        conn.close()
