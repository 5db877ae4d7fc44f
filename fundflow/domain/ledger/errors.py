# fundflow/domain/ledger/errors.py
#
# Failure taxonomy of an entity data source.
#
# Every error raised by a data source while fetching one entity is a subclass
# of DataSourceError, so the discovery engine can isolate a single entity's
# failure with one except clause and keep processing the rest of the level.
from __future__ import annotations


class DataSourceError(Exception):
    """Base class for per-entity fetch failures."""

    code = "UNKNOWN"

    def __init__(self, entity_id: str, message: str) -> None:
        super().__init__(f"{entity_id}: {message}")
        self.entity_id = entity_id


class EntityNotFoundError(DataSourceError):
    code = "NOT_FOUND"


class FetchTimeoutError(DataSourceError):
    code = "TIMEOUT"


class MalformedResponseError(DataSourceError):
    code = "MALFORMED_RESPONSE"
