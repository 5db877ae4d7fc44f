# fundflow/domain/graph/rules.py
#
# Inclusion rule deciding whether a counterparty reached through an edge is
# admitted to the next discovery level.
#
# Relevance score, in [0, 1]:
#   0.4 * min(amount / 100_000, 1)
# + 0.4 * min(occurrences / 10, 1)
# + 0.2 * recency_bonus     (RECENCY_BONUS when the edge was active within
#                            recent_window_days of the reference time, else 0)
#
# An edge below min_amount is always rejected. With the smart filter on, an
# edge scoring <= SCORE_THRESHOLD is rejected as well. The score is also the
# primary ordering key when a level has more candidates than
# max_nodes_per_level.
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal

from .entities import Edge

# Score weights and saturation points.
AMOUNT_WEIGHT = 0.4
COUNT_WEIGHT = 0.4
RECENCY_WEIGHT = 0.2
AMOUNT_SATURATION = Decimal("100000")
COUNT_SATURATION = 10
RECENCY_BONUS = 0.5
SCORE_THRESHOLD = 0.05


@dataclass(frozen=True)
class AssociationRule:
    """Tunables of a discovery run. The only configuration the core accepts."""

    min_amount: float = 500.0
    max_nodes_per_level: int = 15
    enable_smart_filter: bool = True
    include_indirect_links: bool = True
    recent_window_days: int = 30

    def __post_init__(self) -> None:
        if self.min_amount < 0:
            raise ValueError("min_amount cannot be negative")
        if self.max_nodes_per_level < 1:
            raise ValueError("max_nodes_per_level must be >= 1")
        if self.recent_window_days < 0:
            raise ValueError("recent_window_days cannot be negative")


def is_recent(edge: Edge, reference: datetime, window_days: int) -> bool:
    if edge.last_seen is None:
        return False
    last_seen = edge.last_seen
    # The reference takes the awareness of the ledger timestamp.
    if (last_seen.tzinfo is None) != (reference.tzinfo is None):
        reference = reference.replace(tzinfo=last_seen.tzinfo)
    return reference - last_seen <= timedelta(days=window_days)


def relevance_score(edge: Edge, reference: datetime | None = None, window_days: int = 30) -> float:
    amount_score = min(float(edge.cumulative_amount / AMOUNT_SATURATION), 1.0)
    count_score = min(max(edge.occurrence_count, 1) / COUNT_SATURATION, 1.0)
    recency = RECENCY_BONUS if reference is not None and is_recent(edge, reference, window_days) else 0.0
    return AMOUNT_WEIGHT * amount_score + COUNT_WEIGHT * count_score + RECENCY_WEIGHT * recency


def admits(edge: Edge, rules: AssociationRule, reference: datetime | None = None) -> bool:
    """True when the counterparty on this edge may enter the next level."""
    if edge.cumulative_amount < Decimal(str(rules.min_amount)):
        return False
    if rules.enable_smart_filter:
        return relevance_score(edge, reference, rules.recent_window_days) > SCORE_THRESHOLD
    return True
