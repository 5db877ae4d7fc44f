# fundflow/application/services/ledger_service.py
from __future__ import annotations

import asyncio

from fundflow.domain.graph.aggregator import TransactionAggregator
from fundflow.domain.ledger.entities import TransactionRecord
from fundflow.domain.ledger.repository import LedgerRepository
from fundflow.domain.ledger.statistics import (
    RECENT_TRANSACTIONS,
    AccountSummary,
    FlowStats,
    LedgerStatistics,
    PageRequest,
    RecordPage,
    TimeRange,
)

from ..dtos.ledger_dto import (
    AccountSummaryDTO,
    ClassificationDTO,
    EntityRecordsDTO,
    FlowStatsDTO,
    NodeDetailDTO,
    PaginationDTO,
    TransactionPageDTO,
    TransactionRecordDTO,
    TypeTotalsDTO,
)
from .graph_service import node_to_dto


class LedgerService:
    """Per-account views over the local ledger.

    list_records and get_classification are the raw data-source view served
    to remote discovery instances. The other methods read the same lines
    (IO here) and hand them to LedgerStatistics (pure core).
    """

    def __init__(self, repo: LedgerRepository) -> None:
        self._repo = repo

    async def list_records(self, entity_id: str) -> EntityRecordsDTO:
        records = await self._repo.fetch_entity_records(entity_id)
        return EntityRecordsDTO(entity_id=entity_id, records=[record_to_dto(r) for r in records])

    async def get_classification(self, entity_id: str) -> ClassificationDTO:
        tag = await self._repo.fetch_classification(entity_id)
        return ClassificationDTO(entity_id=entity_id, tag=tag)

    async def list_transactions(self, entity_id: str, request: PageRequest) -> TransactionPageDTO:
        page = await self._repo.fetch_records_page(entity_id, request)
        return page_to_dto(entity_id, page)

    async def get_stats(self, entity_id: str, time_range: TimeRange = TimeRange.DAYS_30) -> FlowStatsDTO:
        records = await self._repo.fetch_entity_records(entity_id)
        return stats_to_dto(entity_id, LedgerStatistics.flow_stats(entity_id, records, time_range))

    async def get_summary(self, entity_id: str) -> AccountSummaryDTO | None:
        records, tag = await self._records_and_tag(entity_id)
        summary = LedgerStatistics.summarize(entity_id, records, tag)
        return summary_to_dto(summary) if summary is not None else None

    async def get_node_detail(self, entity_id: str) -> NodeDetailDTO | None:
        """Node card: aggregated node, account summary and latest lines.

        Returns None when the entity appears in no ledger line at all.
        """
        records, tag = await self._records_and_tag(entity_id)
        if not records:
            return None
        node, _ = TransactionAggregator.aggregate(entity_id, records, tag)
        summary = LedgerStatistics.summarize(entity_id, records, tag)
        id_document = next(
            (r.id_document for r in records if r.owner_id == entity_id and r.id_document),
            None,
        )
        return NodeDetailDTO(
            node=node_to_dto(node),
            id_document=id_document,
            summary=summary_to_dto(summary) if summary is not None else None,
            # fetch_entity_records is newest first.
            recent_transactions=[record_to_dto(r) for r in records[:RECENT_TRANSACTIONS]],
        )

    async def _records_and_tag(self, entity_id: str) -> tuple[list[TransactionRecord], str | None]:
        records, tag = await asyncio.gather(
            self._repo.fetch_entity_records(entity_id),
            self._repo.fetch_classification(entity_id),
        )
        return records, tag


def record_to_dto(record: TransactionRecord) -> TransactionRecordDTO:
    return TransactionRecordDTO(
        owner_id=record.owner_id,
        owner_name=record.owner_name,
        id_document=record.id_document,
        timestamp=record.timestamp.isoformat() if record.timestamp else None,
        amount=str(record.amount),
        direction=record.direction.value,
        counterpart_id=record.counterpart_id,
        counterpart_name=record.counterpart_name,
        counterpart_bank=record.counterpart_bank,
        description=record.description,
        transaction_type=record.transaction_type,
        running_balance=str(record.running_balance) if record.running_balance is not None else None,
    )


def page_to_dto(entity_id: str, page: RecordPage) -> TransactionPageDTO:
    return TransactionPageDTO(
        entity_id=entity_id,
        sort_by=page.request.sort_by.value,
        sort_order=page.request.sort_order.value,
        records=[record_to_dto(r) for r in page.records],
        pagination=PaginationDTO(
            current_page=page.request.page,
            page_size=page.request.page_size,
            total_count=page.total_count,
            total_pages=page.total_pages,
            has_next=page.has_next,
            has_prev=page.has_prev,
        ),
    )


def stats_to_dto(entity_id: str, stats: FlowStats) -> FlowStatsDTO:
    return FlowStatsDTO(
        entity_id=entity_id,
        time_range=stats.time_range.value,
        window_start=stats.window_start.isoformat() if stats.window_start else None,
        window_end=stats.window_end.isoformat() if stats.window_end else None,
        in_count=stats.in_count,
        out_count=stats.out_count,
        total_in=str(stats.total_in),
        total_out=str(stats.total_out),
        net_flow=str(stats.net_flow),
        max_amount=str(stats.max_amount),
        counterparty_count=stats.counterparty_count,
    )


def summary_to_dto(summary: AccountSummary) -> AccountSummaryDTO:
    first, last = summary.first_transaction_time, summary.last_transaction_time
    return AccountSummaryDTO(
        entity_id=summary.entity_id,
        first_transaction_time=first.isoformat() if first else None,
        last_transaction_time=last.isoformat() if last else None,
        transaction_count=summary.transaction_count,
        in_count=summary.in_count,
        out_count=summary.out_count,
        total_in=str(summary.total_in),
        total_out=str(summary.total_out),
        avg_in=str(summary.avg_in) if summary.avg_in is not None else None,
        avg_out=str(summary.avg_out) if summary.avg_out is not None else None,
        peak_date=summary.peak_date.isoformat() if summary.peak_date else None,
        peak_count=summary.peak_count,
        by_type=[
            TypeTotalsDTO(transaction_type=t.transaction_type, count=t.count, amount=str(t.amount))
            for t in summary.by_type
        ],
        in_out_ratio=summary.in_out_ratio,
        classification=summary.classification,
    )
