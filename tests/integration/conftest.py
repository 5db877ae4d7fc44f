# tests/integration/conftest.py
from __future__ import annotations

import os
from collections.abc import Generator
from pathlib import Path

import duckdb
import pytest
from fastapi.testclient import TestClient

SCHEMA_PATH = Path(__file__).parent.parent.parent / "ledger_pipeline" / "output" / "schema.sql"

ALICE = "6222000000000001"
BOB = "6222000000000002"
CAROL = "6222000000000003"
DAN = "6222000000000004"
ERIN = "6222000000000005"

# Disable rate limiting in tests
os.environ["API_RATE_LIMIT_PER_MINUTE"] = "0"
os.environ.pop("LEDGER_API_URL", None)


@pytest.fixture(scope="session")
def test_db() -> Generator[duckdb.DuckDBPyConnection, None, None]:
    """In-memory DuckDB with the pipeline schema and a small ledger.

    Each transfer appears once, in the payer's export:
        ALICE -> BOB    150000  transfer
        BOB   -> CAROL   80000  transfer
        ALICE -> DAN       100  transfer
        CAROL -> ALICE   30000  cash
        DAN   -> ERIN       50  transfer
    """
    conn = duckdb.connect(":memory:")
    conn.execute(SCHEMA_PATH.read_text(encoding="utf-8"))

    conn.execute(f"""
        INSERT INTO dim_account VALUES
        ('{BOB}', 'transit account'),
        ('{CAROL}', 'shell company')
    """)

    conn.execute(f"""
        INSERT INTO fact_transaction VALUES
        (1, '{ALICE}', 'Alice Zhang', '110101199001011234', '2025-06-01 10:00:00', 150000.00, 'out',
         '{BOB}', 'Bob Li', 'ICBC', 'invoice 42', 'transfer', 500000.00),
        (2, '{BOB}', 'Bob Li', NULL, '2025-06-02 09:30:00', 80000.00, 'out',
         '{CAROL}', 'Carol Wu', 'CCB', NULL, 'transfer', NULL),
        (3, '{ALICE}', 'Alice Zhang', NULL, '2025-06-03 16:45:00', 100.00, 'out',
         '{DAN}', 'Dan Ma', NULL, NULL, 'transfer', NULL),
        (4, '{CAROL}', 'Carol Wu', NULL, '2025-06-04 11:00:00', 30000.00, 'out',
         '{ALICE}', 'Alice Zhang', NULL, 'refund', 'cash', NULL),
        (5, '{DAN}', 'Dan Ma', NULL, NULL, 50.00, 'out',
         '{ERIN}', NULL, NULL, NULL, 'transfer', NULL)
    """)

    yield conn
    conn.close()


@pytest.fixture(scope="session")
def client(test_db: duckdb.DuckDBPyConnection) -> Generator[TestClient, None, None]:
    """FastAPI TestClient with the in-memory DuckDB injected."""
    from fundflow.infrastructure import duckdb_connection
    duckdb_connection.set_connection(test_db)

    # Pick up API_RATE_LIMIT_PER_MINUTE=0
    from fundflow.infrastructure.config import get_settings
    get_settings.cache_clear()

    from fundflow.interfaces.api.main import app
    with TestClient(app) as c:
        yield c
