# fundflow/domain/graph/entities.py
#
# Graph building blocks shared by the aggregator, the discovery engine and the
# presentation DTOs.
#
# Design decisions:
#   - Node and Edge are frozen dataclasses. The aggregator folds records into
#     private mutable accumulators and only emits the immutable result, so a
#     node or edge handed to the engine can never change afterwards.
#   - Edges are keyed by EdgeKey(source, target, transaction_type), a
#     NamedTuple, so deduplication is structural and independent of any
#     string formatting of the ids.
#   - category and visual_weight are derived properties: they cannot drift
#     from the totals or the classification tag they are computed from.
#   - LevelStore is the only mutable type here. It is owned by exactly one
#     discovery run and written only by the coordinating coroutine.
#
# Invariants:
#   - All amounts are non-negative Decimals; counts are non-negative ints.
#   - Node.level is None until the discovery engine stamps it, then >= 1.
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import NamedTuple

from .enums import DEFAULT_CLASSIFICATION, EdgeDirection, NodeCategory, category_for

VISUAL_WEIGHT_DIVISOR = Decimal("20000")
VISUAL_WEIGHT_MIN = 30.0
VISUAL_WEIGHT_MAX = 80.0


@dataclass(frozen=True)
class Node:
    """Summary of one entity's activity, seen from that entity's side."""

    id: str
    display_name: str
    total_in_amount: Decimal = Decimal("0")
    total_out_amount: Decimal = Decimal("0")
    in_count: int = 0
    out_count: int = 0
    transaction_types: frozenset[str] = frozenset()
    classification_tag: str = DEFAULT_CLASSIFICATION
    level: int | None = None

    @property
    def category(self) -> NodeCategory:
        return category_for(self.classification_tag)

    @property
    def total_volume(self) -> Decimal:
        return self.total_in_amount + self.total_out_amount

    @property
    def visual_weight(self) -> float:
        """clamp(volume / 20000, 30, 80). Rendering size only."""
        raw = float(self.total_volume / VISUAL_WEIGHT_DIVISOR)
        return min(max(raw, VISUAL_WEIGHT_MIN), VISUAL_WEIGHT_MAX)

    @property
    def is_empty(self) -> bool:
        return self.in_count == 0 and self.out_count == 0


class EdgeKey(NamedTuple):
    source_id: str
    target_id: str
    transaction_type: str


@dataclass(frozen=True)
class Edge:
    key: EdgeKey
    direction: EdgeDirection
    cumulative_amount: Decimal = Decimal("0")
    occurrence_count: int = 0
    last_seen: datetime | None = None

    @property
    def source_id(self) -> str:
        return self.key.source_id

    @property
    def target_id(self) -> str:
        return self.key.target_id

    @property
    def transaction_type(self) -> str:
        return self.key.transaction_type


@dataclass
class LevelStore:
    """Nodes, edges and entity ids discovered at one traversal level."""

    level: int
    nodes: dict[str, Node] = field(default_factory=dict)
    edges: dict[EdgeKey, Edge] = field(default_factory=dict)
    entity_ids: set[str] = field(default_factory=set)

    def add(self, node: Node, edges: list[Edge]) -> None:
        """Insert one aggregated entity. Re-inserting the same id is a no-op
        for the node; edges keep the first occurrence of each key."""
        if node.id not in self.nodes:
            self.nodes[node.id] = node
        self.entity_ids.add(node.id)
        for edge in edges:
            self.edges.setdefault(edge.key, edge)


@dataclass(frozen=True)
class LevelStats:
    node_count: int
    link_count: int


@dataclass(frozen=True)
class LevelProgress:
    """Payload of the progress callback, emitted once per completed level."""

    level: int
    discovered_count: int


@dataclass(frozen=True)
class FetchFailure:
    entity_id: str
    level: int
    code: str
    message: str


@dataclass(frozen=True)
class GraphSnapshot:
    """Merged, deduplicated result of one discovery run."""

    nodes: tuple[Node, ...]
    edges: tuple[Edge, ...]
    level_stats: dict[int, LevelStats]
    total_levels: int
    failures: tuple[FetchFailure, ...] = ()
    truncated: bool = False

    def node(self, entity_id: str) -> Node | None:
        for node in self.nodes:
            if node.id == entity_id:
                return node
        return None

    def nodes_at_level(self, level: int) -> list[Node]:
        return [n for n in self.nodes if n.level == level]
