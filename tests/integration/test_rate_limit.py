# tests/integration/test_rate_limit.py
from __future__ import annotations

import os
from collections.abc import Generator

import duckdb
import pytest
from fastapi.testclient import TestClient

ALICE = "6222000000000001"


@pytest.fixture()
def rate_limited_client(test_db: duckdb.DuckDBPyConnection) -> Generator[TestClient, None, None]:
    """Client with the limiter on at 3 requests per minute."""
    from fundflow.infrastructure import duckdb_connection
    duckdb_connection.set_connection(test_db)

    old_val = os.environ.get("API_RATE_LIMIT_PER_MINUTE", "0")
    os.environ["API_RATE_LIMIT_PER_MINUTE"] = "3"
    from fundflow.infrastructure.config import get_settings
    get_settings.cache_clear()

    from fundflow.interfaces.api.main import app
    with TestClient(app) as c:
        yield c

    os.environ["API_RATE_LIMIT_PER_MINUTE"] = old_val
    get_settings.cache_clear()


def test_discover_costs_more_than_the_whole_budget(rate_limited_client: TestClient) -> None:
    response = rate_limited_client.post("/api/graph/discover", json={"root_ids": [ALICE]})
    assert response.status_code == 429


def test_rate_limit_blocks_after_limit(rate_limited_client: TestClient) -> None:
    statuses = [rate_limited_client.get(f"/api/ledger/{ALICE}/classification").status_code for _ in range(4)]
    assert statuses[-1] == 429
    assert 200 in statuses
