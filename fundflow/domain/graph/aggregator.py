# fundflow/domain/graph/aggregator.py
#
# Pure domain service: one entity's ledger lines -> one Node + its Edges.
#
# Design decisions:
#   - Stateless and synchronous. No IO: records and the classification tag
#     are fetched by the caller (the discovery engine or GraphService) through
#     an EntityDataSource. This keeps the function trivially testable and
#     keeps suspension points out of aggregation.
#   - Every record is read from the anchor's perspective. The data source
#     returns lines where the anchor is either the owner or the counterpart;
#     for the latter the direction is flipped and the owner becomes the
#     counterparty. Lines that involve neither side are dropped.
#   - Totals, counts and the type set are only kept for the anchor and only
#     from lines the anchor owns. Lines where the anchor is the counterpart
#     feed the edges alone: a transfer present in both parties' exports is
#     the same money, once. Counterparties become nodes only when the
#     discovery engine fetches them in a later level.
#   - Output is order independent: sums are commutative, the display name is
#     chosen with min() over the candidate names, last_seen with max(), and
#     edges are returned sorted by key.
#
# Invariants:
#   - node.total_in_amount == sum of amounts of the anchor's own "in" lines,
#     node.in_count == number of those lines; same for outbound.
#   - Each EdgeKey appears at most once in the returned list.
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from fundflow.domain.ledger.entities import TransactionRecord
from fundflow.domain.ledger.value_objects import Direction

from .entities import Edge, EdgeKey, Node
from .enums import DEFAULT_CLASSIFICATION, EdgeDirection

UNKNOWN_NAME = "unknown"


@dataclass
class _EdgeAccumulator:
    direction: EdgeDirection
    amount: Decimal = Decimal("0")
    count: int = 0
    last_seen: datetime | None = None

    def fold(self, amount: Decimal, timestamp: datetime | None) -> None:
        self.amount += amount
        self.count += 1
        if timestamp is not None and (self.last_seen is None or timestamp > self.last_seen):
            self.last_seen = timestamp


@dataclass
class _NodeAccumulator:
    total_in: Decimal = Decimal("0")
    total_out: Decimal = Decimal("0")
    in_count: int = 0
    out_count: int = 0
    types: set[str] = field(default_factory=set)
    owner_names: set[str] = field(default_factory=set)
    counterpart_names: set[str] = field(default_factory=set)


class TransactionAggregator:
    """Folds an entity's ledger lines into node and edge statistics.

    All methods are static: the aggregator has no configuration. The class
    exists for namespacing, mirroring the other domain services.
    """

    @staticmethod
    def aggregate(
        anchor_id: str,
        records: Iterable[TransactionRecord],
        classification: str | None = None,
    ) -> tuple[Node, list[Edge]]:
        """Summarize anchor_id's records.

        Args:
            anchor_id:      Entity the records were fetched for.
            records:        Ledger lines where anchor_id is owner or counterpart.
            classification: Tag from the side lookup; None means "ordinary".

        Returns:
            (node, edges). An empty record list yields a node with zero totals
            and no edges, which callers treat as "no known activity".
        """
        acc = _NodeAccumulator()
        edge_acc: dict[EdgeKey, _EdgeAccumulator] = {}

        for record in records:
            if not record.involves(anchor_id):
                continue
            own_line = record.owner_id == anchor_id
            if own_line:
                direction = record.direction
                counterparty = record.counterpart_id
                if record.owner_name:
                    acc.owner_names.add(record.owner_name)
            else:
                direction = record.direction.flipped()
                counterparty = record.owner_id
                if record.counterpart_name:
                    acc.counterpart_names.add(record.counterpart_name)

            tx_type = record.transaction_type
            if direction is Direction.IN:
                key = EdgeKey(counterparty, anchor_id, tx_type)
                edge_direction = EdgeDirection.INFLOW
            else:
                key = EdgeKey(anchor_id, counterparty, tx_type)
                edge_direction = EdgeDirection.OUTFLOW

            # Anchor-owned lines only.
            if own_line:
                acc.types.add(tx_type)
                if direction is Direction.IN:
                    acc.total_in += record.amount
                    acc.in_count += 1
                else:
                    acc.total_out += record.amount
                    acc.out_count += 1

            if key not in edge_acc:
                edge_acc[key] = _EdgeAccumulator(direction=edge_direction)
            edge_acc[key].fold(record.amount, record.timestamp)

        tag = classification.strip() if classification and classification.strip() else DEFAULT_CLASSIFICATION
        names = acc.owner_names or acc.counterpart_names
        node = Node(
            id=anchor_id,
            display_name=min(names) if names else UNKNOWN_NAME,
            total_in_amount=acc.total_in,
            total_out_amount=acc.total_out,
            in_count=acc.in_count,
            out_count=acc.out_count,
            transaction_types=frozenset(acc.types),
            classification_tag=tag,
        )
        edges = [
            Edge(
                key=key,
                direction=e.direction,
                cumulative_amount=e.amount,
                occurrence_count=e.count,
                last_seen=e.last_seen,
            )
            for key, e in sorted(edge_acc.items())
        ]
        return node, edges
