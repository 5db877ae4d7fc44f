# ledger_pipeline/config.py
#
# Pipeline configuration loaded from environment variables.
#
# Design decisions:
#   - Frozen dataclass (not pydantic Settings): the pipeline is a standalone
#     offline process and pydantic is reserved for the API layer.
#   - LEDGER_SOURCE_PATH has no default: there is nothing to build without a
#     ledger export, and silently building an empty database would make every
#     discovery return empty graphs.
#   - The account classification export is optional. Without it every node
#     carries the default "ordinary" tag.
#   - Paths default to ledger_pipeline/data so the pipeline works out of the
#     box after a fresh checkout.
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

_PIPELINE_DIR = Path(__file__).parent


@dataclass(frozen=True)
class PipelineConfig:
    """Immutable pipeline configuration.

    Invariants:
      - ledger_source_path is always set (enforced by load_config).
      - staging_dir is derived from data_dir, never configured separately.
    """

    data_dir: Path
    ledger_source_path: Path
    duckdb_output_path: Path
    accounts_source_path: Path | None = None

    @property
    def staging_dir(self) -> Path:
        """Directory for cleaned Parquet staging files."""
        return self.data_dir / "staging"


def load_config() -> PipelineConfig:
    """Build PipelineConfig from environment variables.

    Raises:
        ValueError: if LEDGER_SOURCE_PATH is not set.
    """
    ledger_source = os.environ.get("LEDGER_SOURCE_PATH")
    if not ledger_source:
        raise ValueError(
            "LEDGER_SOURCE_PATH environment variable is required. "
            "Point it at the bank ledger export (CSV or Parquet)."
        )

    data_dir = Path(os.environ.get("PIPELINE_DATA_DIR", str(_PIPELINE_DIR / "data")))
    duckdb_output_path = Path(
        os.environ.get(
            "DUCKDB_OUTPUT_PATH",
            str(data_dir / "output" / "fundflow.duckdb"),
        )
    )
    accounts_source = os.environ.get("ACCOUNTS_SOURCE_PATH")

    return PipelineConfig(
        data_dir=data_dir,
        ledger_source_path=Path(ledger_source),
        duckdb_output_path=duckdb_output_path,
        accounts_source_path=Path(accounts_source) if accounts_source else None,
    )
