# fundflow/application/services/discovery_service.py
#
# Multi-level association discovery: walk outward from root entities through
# successive hops of counterparties.
#
# Design decisions:
#   - One _DiscoveryRun context per discover() call owns the level stores, the
#     processed-id set and the failure log. Nothing is kept on the engine
#     between calls, so concurrent or successive runs never share state.
#   - Levels are an explicit bounded loop (2..max_depth) with three stop
#     predicates: empty previous level, empty admitted candidate set, and the
#     optional cancel event (checked between levels only).
#   - Each level is a fan-out/fan-in: every entity fetch is its own task,
#     joined with asyncio.gather(return_exceptions=True). Level stores and
#     the processed set are written only after the join, by this coroutine,
#     so no locking is needed.
#   - A fetch is records + classification, bounded by fetch_timeout. The
#     classification lookup runs as a sibling task that is cancelled and
#     awaited when the records fetch fails. Any failure (DataSourceError,
#     timeout, unexpected payload) excludes that entity from its level, is
#     logged and recorded in the snapshot, and is never re-raised. A missing classification only
#     degrades the tag to "ordinary".
#   - Failed ids are excluded from later candidate sets together with the
#     processed ids, so a failing entity is attempted at most once per run.
#
# Invariants:
#   - A node id is inserted into exactly one LevelStore (first level wins).
#   - Level numbers are contiguous from 1; at most max_depth fetch rounds.
#   - The processed-id set only grows during a run.
from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, replace
from datetime import datetime

from fundflow.domain.graph.aggregator import TransactionAggregator
from fundflow.domain.graph.entities import Edge, FetchFailure, GraphSnapshot, LevelProgress, LevelStore, Node
from fundflow.domain.graph.rules import AssociationRule
from fundflow.domain.graph.services import GraphDiscoveryService
from fundflow.domain.ledger.entities import TransactionRecord
from fundflow.domain.ledger.errors import DataSourceError, FetchTimeoutError
from fundflow.domain.ledger.repository import EntityDataSource
from fundflow.log import log

DEFAULT_FETCH_TIMEOUT = 10.0
FAILURE_WARNING_RATIO = 0.5

ProgressCallback = Callable[[LevelProgress], None]


class InvalidDiscoveryRequest(ValueError):
    """Raised before any fetch when root ids or max_depth are unusable."""


@dataclass
class _DiscoveryRun:
    levels: dict[int, LevelStore] = field(default_factory=dict)
    processed: set[str] = field(default_factory=set)
    failed: set[str] = field(default_factory=set)
    failures: list[FetchFailure] = field(default_factory=list)
    truncated: bool = False

    @property
    def excluded(self) -> set[str]:
        return self.processed | self.failed


class MultiLevelDiscoveryEngine:
    def __init__(
        self,
        data_source: EntityDataSource,
        fetch_timeout: float = DEFAULT_FETCH_TIMEOUT,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        if fetch_timeout <= 0:
            raise ValueError("fetch_timeout must be positive")
        self._source = data_source
        self._fetch_timeout = fetch_timeout
        self._clock = clock

    async def discover(
        self,
        root_ids: Iterable[str],
        max_depth: int = 3,
        rules: AssociationRule | None = None,
        progress: ProgressCallback | None = None,
        cancel: asyncio.Event | None = None,
    ) -> GraphSnapshot:
        """Build a GraphSnapshot rooted at root_ids.

        Args:
            root_ids:  Level-1 entities. Blank ids are ignored, duplicates kept once.
            max_depth: Maximum number of levels, >= 1. Level 1 is the roots.
            rules:     Inclusion rule; defaults to AssociationRule().
            progress:  Called once per completed level with LevelProgress.
            cancel:    When set, no further level is started.

        Returns:
            The merged snapshot. Partial results are returned when entities
            fail or a stop condition fires; the engine itself never raises
            after input validation.

        Raises:
            InvalidDiscoveryRequest: empty root_ids or max_depth <= 0.
        """
        roots = _normalize_ids(root_ids)
        if not roots:
            raise InvalidDiscoveryRequest("root_ids must contain at least one entity id")
        if isinstance(max_depth, bool) or not isinstance(max_depth, int) or max_depth <= 0:
            raise InvalidDiscoveryRequest(f"max_depth must be a positive integer, got {max_depth!r}")
        rules = rules or AssociationRule()
        reference = self._clock()

        run = _DiscoveryRun()
        log(f"Discovery: {len(roots)} root(s), max_depth={max_depth}")
        await self._fetch_level(run, 1, roots, progress)

        for level in range(2, max_depth + 1):
            if cancel is not None and cancel.is_set():
                log(f"  Level {level}: cancelled, stopping")
                break

            previous = run.levels[level - 1]
            if not previous.entity_ids:
                log(f"  Level {level}: previous level has no data, stopping")
                break

            selection = GraphDiscoveryService.select_candidates(previous, run.excluded, rules, reference)
            if selection.truncated:
                run.truncated = True
                log(
                    f"  Level {level}: {selection.considered} counterparties, capped to "
                    f"{rules.max_nodes_per_level} candidates"
                )
            if not selection.admitted:
                log(f"  Level {level}: no new associations admitted, stopping")
                break

            await self._fetch_level(run, level, list(selection.admitted), progress)

        snapshot = GraphDiscoveryService.merge_levels(
            run.levels.values(),
            include_indirect_links=rules.include_indirect_links,
            failures=run.failures,
            truncated=run.truncated,
        )
        log(
            f"Discovery done: {len(snapshot.nodes)} nodes, {len(snapshot.edges)} edges, "
            f"{snapshot.total_levels} level(s), {len(snapshot.failures)} failure(s)"
        )
        return snapshot

    async def _fetch_level(
        self,
        run: _DiscoveryRun,
        level: int,
        entity_ids: list[str],
        progress: ProgressCallback | None,
    ) -> None:
        store = LevelStore(level=level)
        run.levels[level] = store
        log(f"  Level {level}: fetching {len(entity_ids)} entities")

        results = await asyncio.gather(
            *(self.fetch_entity(entity_id) for entity_id in entity_ids),
            return_exceptions=True,
        )

        failures = 0
        for entity_id, outcome in zip(entity_ids, results):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                failures += 1
                code = outcome.code if isinstance(outcome, DataSourceError) else "UNEXPECTED"
                run.failed.add(entity_id)
                run.failures.append(FetchFailure(entity_id=entity_id, level=level, code=code, message=str(outcome)))
                log(f"    {entity_id}: fetch failed ({code}) {outcome}")
                continue
            node, edges = outcome
            # First-seen level wins: a processed id is never inserted again.
            if entity_id in run.processed:
                continue
            store.add(replace(node, level=level), edges)
            run.processed.add(entity_id)

        log(f"  Level {level}: {len(store.nodes)} ok, {failures} failed, {len(store.edges)} edges")
        if failures > len(entity_ids) * FAILURE_WARNING_RATIO:
            log(f"  WARNING level {level}: more than half of the fetches failed, graph may be incomplete")

        if progress is not None:
            progress(LevelProgress(level=level, discovered_count=len(store.nodes)))

    async def fetch_entity(self, entity_id: str) -> tuple[Node, list[Edge]]:
        """Fetch and aggregate one entity, bounded by the fetch timeout.

        Raises:
            DataSourceError: the records could not be fetched (including
                FetchTimeoutError on expiry).
        """
        try:
            records, tag = await asyncio.wait_for(self._fetch(entity_id), timeout=self._fetch_timeout)
        except TimeoutError as err:
            raise FetchTimeoutError(entity_id, f"no response within {self._fetch_timeout:g}s") from err
        return TransactionAggregator.aggregate(entity_id, records, tag)

    async def _fetch(self, entity_id: str) -> tuple[list[TransactionRecord], str | None]:
        tag_task = asyncio.create_task(self._classification(entity_id))
        try:
            records = await self._source.fetch_entity_records(entity_id)
        except BaseException:
            # The classification lookup never outlives a failed records fetch.
            tag_task.cancel()
            await asyncio.gather(tag_task, return_exceptions=True)
            raise
        return records, await tag_task

    async def _classification(self, entity_id: str) -> str | None:
        try:
            return await self._source.fetch_classification(entity_id)
        except DataSourceError as err:
            log(f"    {entity_id}: classification unavailable ({err.code}), using default")
            return None


def _normalize_ids(entity_ids: Iterable[str]) -> list[str]:
    if isinstance(entity_ids, str):
        entity_ids = [entity_ids]
    cleaned = (str(e).strip() for e in entity_ids if e is not None)
    return list(dict.fromkeys(e for e in cleaned if e))
