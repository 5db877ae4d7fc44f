# fundflow/domain/ledger/statistics.py
#
# Per-account reading of the ledger: paging parameters for the transaction
# listing, flow statistics over a time window, and the account summary.
#
# Design decisions:
#   - Statistics and summary are computed from the lines the entity owns.
#     Counterpart lines describe the other party's export and would count a
#     mirrored transfer twice (same rule as the graph node totals).
#   - The stats window is anchored to the entity's latest timestamped line,
#     not to the wall clock. Ledgers are historical exports: "last 30 days"
#     means the last 30 days of activity on file.
#   - Lines without a timestamp only fall into the "all" window and never
#     become first/last/peak values.
#
# Invariants:
#   - PageRequest: page >= 1, 1 <= page_size <= MAX_PAGE_SIZE.
#   - FlowStats and AccountSummary counts match the lines they were built from.
from __future__ import annotations

import math
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import StrEnum

from .entities import TransactionRecord
from .value_objects import Direction

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200
RECENT_TRANSACTIONS = 5

_CENT = Decimal("0.01")


class SortField(StrEnum):
    DATE = "date"
    AMOUNT = "amount"


class SortOrder(StrEnum):
    ASC = "asc"
    DESC = "desc"


class TimeRange(StrEnum):
    DAYS_7 = "7d"
    DAYS_30 = "30d"
    DAYS_90 = "90d"
    YEAR = "1y"
    ALL = "all"

    @property
    def days(self) -> int | None:
        return _RANGE_DAYS[self]


_RANGE_DAYS: dict[TimeRange, int | None] = {
    TimeRange.DAYS_7: 7,
    TimeRange.DAYS_30: 30,
    TimeRange.DAYS_90: 90,
    TimeRange.YEAR: 365,
    TimeRange.ALL: None,
}


@dataclass(frozen=True)
class PageRequest:
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    sort_by: SortField = SortField.DATE
    sort_order: SortOrder = SortOrder.DESC

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValueError("page must be >= 1")
        if not 1 <= self.page_size <= MAX_PAGE_SIZE:
            raise ValueError(f"page_size must be between 1 and {MAX_PAGE_SIZE}")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


@dataclass(frozen=True)
class RecordPage:
    records: list[TransactionRecord]
    total_count: int
    request: PageRequest

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.request.page_size)

    @property
    def has_next(self) -> bool:
        return self.request.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.request.page > 1


@dataclass(frozen=True)
class FlowStats:
    time_range: TimeRange
    window_start: datetime | None
    window_end: datetime | None
    in_count: int
    out_count: int
    total_in: Decimal
    total_out: Decimal
    max_amount: Decimal
    counterparty_count: int

    @property
    def net_flow(self) -> Decimal:
        return self.total_in - self.total_out


@dataclass(frozen=True)
class TypeTotals:
    transaction_type: str
    count: int
    amount: Decimal


@dataclass(frozen=True)
class AccountSummary:
    entity_id: str
    first_transaction_time: datetime | None
    last_transaction_time: datetime | None
    transaction_count: int
    in_count: int
    out_count: int
    total_in: Decimal
    total_out: Decimal
    avg_in: Decimal | None
    avg_out: Decimal | None
    peak_date: date | None
    peak_count: int
    by_type: tuple[TypeTotals, ...]
    classification: str | None

    @property
    def in_out_ratio(self) -> float | None:
        """total_in / total_out; None while nothing went out."""
        if self.total_out == 0:
            return None
        return round(float(self.total_in / self.total_out), 4)


class LedgerStatistics:
    """Pure functions over one entity's ledger lines."""

    @staticmethod
    def owned_lines(entity_id: str, records: Iterable[TransactionRecord]) -> list[TransactionRecord]:
        return [r for r in records if r.owner_id == entity_id]

    @staticmethod
    def flow_stats(
        entity_id: str,
        records: Iterable[TransactionRecord],
        time_range: TimeRange = TimeRange.DAYS_30,
    ) -> FlowStats:
        lines = LedgerStatistics.owned_lines(entity_id, records)
        stamps = [r.timestamp for r in lines if r.timestamp is not None]
        window_end = max(stamps) if stamps else None
        window_start: datetime | None = None

        days = time_range.days
        if days is not None:
            if window_end is None:
                lines = []
            else:
                window_start = window_end - timedelta(days=days)
                lines = [r for r in lines if r.timestamp is not None and r.timestamp >= window_start]

        inbound = [r for r in lines if r.direction is Direction.IN]
        outbound = [r for r in lines if r.direction is Direction.OUT]
        return FlowStats(
            time_range=time_range,
            window_start=window_start,
            window_end=window_end,
            in_count=len(inbound),
            out_count=len(outbound),
            total_in=sum((r.amount for r in inbound), Decimal("0")),
            total_out=sum((r.amount for r in outbound), Decimal("0")),
            max_amount=max((r.amount for r in lines), default=Decimal("0")),
            counterparty_count=len({r.counterpart_id for r in lines}),
        )

    @staticmethod
    def summarize(
        entity_id: str,
        records: Iterable[TransactionRecord],
        classification: str | None = None,
    ) -> AccountSummary | None:
        """Account summary, or None when the entity owns no lines."""
        lines = LedgerStatistics.owned_lines(entity_id, records)
        if not lines:
            return None

        inbound = [r.amount for r in lines if r.direction is Direction.IN]
        outbound = [r.amount for r in lines if r.direction is Direction.OUT]
        stamps = [r.timestamp for r in lines if r.timestamp is not None]

        peak_date: date | None = None
        peak_count = 0
        if stamps:
            per_day = Counter(ts.date() for ts in stamps)
            # Earliest day wins a tie.
            peak_date, peak_count = min(per_day.items(), key=lambda item: (-item[1], item[0]))

        type_counts: Counter[str] = Counter()
        type_amounts: dict[str, Decimal] = {}
        for r in lines:
            type_counts[r.transaction_type] += 1
            type_amounts[r.transaction_type] = type_amounts.get(r.transaction_type, Decimal("0")) + r.amount

        return AccountSummary(
            entity_id=entity_id,
            first_transaction_time=min(stamps) if stamps else None,
            last_transaction_time=max(stamps) if stamps else None,
            transaction_count=len(lines),
            in_count=len(inbound),
            out_count=len(outbound),
            total_in=sum(inbound, Decimal("0")),
            total_out=sum(outbound, Decimal("0")),
            avg_in=_average(inbound),
            avg_out=_average(outbound),
            peak_date=peak_date,
            peak_count=peak_count,
            by_type=tuple(
                TypeTotals(transaction_type=t, count=type_counts[t], amount=type_amounts[t])
                for t in sorted(type_counts)
            ),
            classification=classification,
        )


def _average(amounts: list[Decimal]) -> Decimal | None:
    if not amounts:
        return None
    return (sum(amounts, Decimal("0")) / len(amounts)).quantize(_CENT)
