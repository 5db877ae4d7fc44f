# fundflow/interfaces/api/dependencies.py
from collections.abc import AsyncGenerator

from fastapi import Depends

from fundflow.application.services.graph_service import GraphService
from fundflow.application.services.ledger_service import LedgerService
from fundflow.domain.ledger.repository import EntityDataSource
from fundflow.infrastructure.config import get_settings
from fundflow.infrastructure.duckdb_connection import get_connection
from fundflow.infrastructure.http_ledger_source import HttpLedgerSource
from fundflow.infrastructure.repositories.duckdb_ledger_repo import DuckDBLedgerRepo


async def get_data_source() -> AsyncGenerator[EntityDataSource, None]:
    """Remote ledger when LEDGER_API_URL is set, local DuckDB otherwise."""
    settings = get_settings()
    if settings.ledger_api_url:
        async with HttpLedgerSource(settings.ledger_api_url, timeout=settings.fetch_timeout_seconds) as source:
            yield source
    else:
        yield DuckDBLedgerRepo(get_connection())


def get_graph_service(
    data_source: EntityDataSource = Depends(get_data_source),  # noqa: B008
) -> GraphService:
    return GraphService(data_source, fetch_timeout=get_settings().fetch_timeout_seconds)


def get_ledger_service() -> LedgerService:
    # Always local: this is what remote instances read through HttpLedgerSource.
    return LedgerService(DuckDBLedgerRepo(get_connection()))
