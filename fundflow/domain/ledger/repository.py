# fundflow/domain/ledger/repository.py
from __future__ import annotations

from typing import Protocol

from .entities import TransactionRecord
from .statistics import PageRequest, RecordPage


class EntityDataSource(Protocol):
    """Asynchronous lookup of one entity's ledger lines and classification.

    fetch_entity_records returns the records where the entity is owner OR
    counterpart, newest first. An empty list is a valid answer ("no known
    activity"). Failures raise a fundflow.domain.ledger.errors.DataSourceError
    subclass."""

    async def fetch_entity_records(self, entity_id: str) -> list[TransactionRecord]: ...

    async def fetch_classification(self, entity_id: str) -> str | None: ...


class LedgerRepository(EntityDataSource, Protocol):
    """Local ledger store: the data source plus paged listing."""

    async def fetch_records_page(self, entity_id: str, request: PageRequest) -> RecordPage: ...
