# fundflow/domain/graph/services.py
#
# Pure domain services used by the multi-level discovery engine.
#
# Design decisions:
#   - Candidate selection and snapshot merging contain no IO and no async,
#     mirroring the aggregator. The engine in the application layer owns the
#     fetching and the per-run state; these functions only read what they
#     are handed.
#   - Candidate truncation is deterministic. When more counterparties pass the
#     inclusion rule than max_nodes_per_level allows, candidates are ranked by
#     their best relevance score (desc), then their best edge amount (desc),
#     then id (asc), and the head of that ranking is kept.
#   - Merging keeps the first occurrence of each node id and edge key, walking
#     the levels in ascending order, so a node's level is the level at which
#     it was first discovered and later levels never overwrite attributes.
#
# Invariants:
#   - select_candidates never returns an id contained in `excluded`.
#   - merge_levels returns each node id and each EdgeKey at most once.
from __future__ import annotations

from collections.abc import Iterable, Set
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from .entities import Edge, EdgeKey, FetchFailure, GraphSnapshot, LevelStats, LevelStore, Node
from .rules import AssociationRule, admits, relevance_score


@dataclass(frozen=True)
class CandidateSelection:
    """Outcome of scanning one level's edges for the next level."""

    admitted: tuple[str, ...]
    considered: int
    truncated: bool


@dataclass
class _Candidate:
    entity_id: str
    best_score: float
    best_amount: Decimal


class GraphDiscoveryService:
    """Pure operations over level stores. Stateless; methods are static."""

    @staticmethod
    def select_candidates(
        previous: LevelStore,
        excluded: Set[str],
        rules: AssociationRule,
        reference: datetime | None = None,
    ) -> CandidateSelection:
        """Find the counterparties of `previous` that may form the next level.

        For every edge of the previous level, the endpoint that belongs to the
        level is the known side and the opposite endpoint is a candidate unless
        it is in `excluded` (processed or failed ids). A candidate is admitted
        when at least one of its edges passes the inclusion rule.

        Args:
            previous:  Store of level n-1.
            excluded:  Ids that must never be fetched again in this run.
            rules:     Inclusion thresholds and the per-level cap.
            reference: Point in time for the recency bonus. None disables it.

        Returns:
            CandidateSelection with at most rules.max_nodes_per_level ids,
            ordered by rank.
        """
        candidates: dict[str, _Candidate] = {}
        considered: set[str] = set()

        for edge in previous.edges.values():
            for known, other in ((edge.source_id, edge.target_id), (edge.target_id, edge.source_id)):
                if known not in previous.entity_ids or other in excluded or other in previous.entity_ids:
                    continue
                considered.add(other)
                if not admits(edge, rules, reference):
                    continue
                score = relevance_score(edge, reference, rules.recent_window_days)
                current = candidates.get(other)
                if current is None:
                    candidates[other] = _Candidate(other, score, edge.cumulative_amount)
                else:
                    current.best_score = max(current.best_score, score)
                    current.best_amount = max(current.best_amount, edge.cumulative_amount)

        ranked = sorted(candidates.values(), key=lambda c: (-c.best_score, -c.best_amount, c.entity_id))
        truncated = len(ranked) > rules.max_nodes_per_level
        admitted = tuple(c.entity_id for c in ranked[: rules.max_nodes_per_level])
        return CandidateSelection(admitted=admitted, considered=len(considered), truncated=truncated)

    @staticmethod
    def merge_levels(
        stores: Iterable[LevelStore],
        *,
        include_indirect_links: bool = True,
        failures: Iterable[FetchFailure] = (),
        truncated: bool = False,
    ) -> GraphSnapshot:
        """Union every level into one GraphSnapshot.

        Args:
            stores:                 Level stores, any order; merged by level asc.
            include_indirect_links: When False, edges with an endpoint outside
                                    the merged node set are removed.
            failures:               Per-entity fetch failures to attach.
            truncated:              Whether any level's candidates were capped.
        """
        nodes: dict[str, Node] = {}
        edges: dict[EdgeKey, Edge] = {}
        level_stats: dict[int, LevelStats] = {}

        for store in sorted(stores, key=lambda s: s.level):
            level_stats[store.level] = LevelStats(node_count=len(store.nodes), link_count=len(store.edges))
            for node_id, node in store.nodes.items():
                if node_id not in nodes:
                    nodes[node_id] = node
            for key, edge in store.edges.items():
                if key not in edges:
                    edges[key] = edge

        edge_list = list(edges.values())
        if not include_indirect_links:
            edge_list = GraphDiscoveryService.prune_dangling_edges(nodes.keys(), edge_list)

        return GraphSnapshot(
            nodes=tuple(nodes.values()),
            edges=tuple(edge_list),
            level_stats=level_stats,
            total_levels=sum(1 for stats in level_stats.values() if stats.node_count > 0),
            failures=tuple(failures),
            truncated=truncated,
        )

    @staticmethod
    def prune_dangling_edges(node_ids: Iterable[str], edges: list[Edge]) -> list[Edge]:
        """Keep only edges whose source and target are both known nodes."""
        valid_ids = set(node_ids)
        return [e for e in edges if e.source_id in valid_ids and e.target_id in valid_ids]
