# ledger_pipeline/main.py
#
# Pipeline orchestrator: ledger export (+ optional account classifications)
# -> staging parquets -> DuckDB database served by the fundflow API.
#
# Design decisions:
#   - run_pipeline is the single entry point and takes a PipelineConfig, so
#     tests drive it with tmp paths instead of environment variables.
#   - Strict order: parse, validate, stage, build. Staging parquets are kept
#     on disk so a failed build can be inspected and re-run.
#   - A ledger with no valid rows aborts before the build: the existing
#     database stays in place instead of being replaced by an empty one.
#   - Progress goes to stdout through log(); this is a batch job.
from __future__ import annotations

from pathlib import Path

from ledger_pipeline.config import PipelineConfig, load_config
from ledger_pipeline.log import log
from ledger_pipeline.output.build_duckdb import build_duckdb, validate_tables
from ledger_pipeline.sources.ledger.parse import LedgerSchemaError, parse_accounts, parse_ledger
from ledger_pipeline.sources.ledger.validate import validate_accounts, validate_ledger
from ledger_pipeline.staging.parquet_writer import write_parquet


def run_pipeline(config: PipelineConfig) -> Path:
    """Run the full ingestion and return the path of the built database.

    Raises:
        LedgerSchemaError: the ledger export misses a required column or has
            no valid rows after validation.
    """
    staging_dir = config.staging_dir
    staging_dir.mkdir(parents=True, exist_ok=True)

    log(f"Parsing ledger export {config.ledger_source_path}...")
    ledger_df = validate_ledger(parse_ledger(config.ledger_source_path))
    if ledger_df.is_empty():
        raise LedgerSchemaError(f"{config.ledger_source_path.name}: no valid ledger rows after validation")
    write_parquet(ledger_df, staging_dir / "ledger.parquet")
    log(f"  Ledger: {len(ledger_df):,} rows staged")

    accounts_path = staging_dir / "accounts.parquet"
    if config.accounts_source_path is not None:
        log(f"Parsing account classifications {config.accounts_source_path}...")
        accounts_df = validate_accounts(parse_accounts(config.accounts_source_path))
        write_parquet(accounts_df, accounts_path)
        log(f"  Accounts: {len(accounts_df):,} rows staged")
    elif accounts_path.exists():
        # Stale file from an earlier run with a classification export.
        accounts_path.unlink()

    log("Building DuckDB...")
    output_path = build_duckdb(staging_dir, config.duckdb_output_path)
    for table_name, count in validate_tables(output_path).items():
        log(f"  {table_name}: {count:,} rows")
    log(f"Done. DuckDB written to: {output_path}")
    return output_path


if __name__ == "__main__":
    run_pipeline(load_config())
