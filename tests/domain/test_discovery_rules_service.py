# tests/domain/test_discovery_rules_service.py
#
# GraphDiscoveryService: candidate selection between levels and the final
# merge. Pure: level stores are built by hand.
from __future__ import annotations

from decimal import Decimal

from fundflow.domain.graph.entities import Edge, EdgeKey, FetchFailure, LevelStore, Node
from fundflow.domain.graph.enums import EdgeDirection
from fundflow.domain.graph.rules import AssociationRule
from fundflow.domain.graph.services import GraphDiscoveryService


def _node(entity_id: str, level: int) -> Node:
    return Node(id=entity_id, display_name=entity_id, in_count=1, level=level)


def _edge(source: str, target: str, amount: str, count: int = 1) -> Edge:
    return Edge(
        key=EdgeKey(source, target, "transfer"),
        direction=EdgeDirection.OUTFLOW,
        cumulative_amount=Decimal(amount),
        occurrence_count=count,
    )


def _store(level: int, ids: list[str], edges: list[Edge]) -> LevelStore:
    store = LevelStore(level=level)
    for i, entity_id in enumerate(ids):
        store.add(_node(entity_id, level), edges if i == 0 else [])
    return store


def test_opposite_endpoint_of_either_direction_is_candidate() -> None:
    store = _store(1, ["A"], [_edge("A", "B", "50000"), _edge("C", "A", "50000")])

    selection = GraphDiscoveryService.select_candidates(store, {"A"}, AssociationRule())

    assert set(selection.admitted) == {"B", "C"}
    assert selection.truncated is False


def test_excluded_ids_are_never_candidates() -> None:
    store = _store(2, ["B"], [_edge("A", "B", "50000"), _edge("B", "D", "50000")])

    selection = GraphDiscoveryService.select_candidates(store, {"A", "B"}, AssociationRule())

    assert selection.admitted == ("D",)


def test_edges_between_members_of_the_level_yield_nothing() -> None:
    store = _store(1, ["A", "B"], [_edge("A", "B", "50000")])

    selection = GraphDiscoveryService.select_candidates(store, {"A", "B"}, AssociationRule())

    assert selection.admitted == ()
    assert selection.considered == 0


def test_rejected_edges_count_as_considered_but_not_admitted() -> None:
    store = _store(1, ["A"], [_edge("A", "B", "100"), _edge("A", "C", "50000")])

    selection = GraphDiscoveryService.select_candidates(store, {"A"}, AssociationRule())

    assert selection.admitted == ("C",)
    assert selection.considered == 2


def test_candidate_admitted_if_any_edge_passes() -> None:
    edges = [_edge("A", "B", "100"), _edge("B", "A", "60000")]
    store = _store(1, ["A"], edges)

    selection = GraphDiscoveryService.select_candidates(store, {"A"}, AssociationRule())

    assert selection.admitted == ("B",)


def test_truncation_keeps_highest_ranked_deterministically() -> None:
    edges = [_edge("A", f"N{i:02d}", str(5000 + i * 1000)) for i in range(10)]
    store = _store(1, ["A"], edges)
    rules = AssociationRule(max_nodes_per_level=3)

    first = GraphDiscoveryService.select_candidates(store, {"A"}, rules)
    again = GraphDiscoveryService.select_candidates(store, {"A"}, rules)

    assert first.admitted == ("N09", "N08", "N07")
    assert first == again
    assert first.truncated is True
    assert first.considered == 10


def test_ties_are_broken_by_id() -> None:
    edges = [_edge("A", name, "20000") for name in ("Z", "M", "B")]
    store = _store(1, ["A"], edges)

    selection = GraphDiscoveryService.select_candidates(store, {"A"}, AssociationRule(max_nodes_per_level=2))

    assert selection.admitted == ("B", "M")


def test_merge_first_level_wins_and_stats_per_level() -> None:
    level1 = _store(1, ["A"], [_edge("A", "B", "9000")])
    level2 = LevelStore(level=2)
    level2.add(_node("B", 2), [_edge("A", "B", "1"), _edge("B", "C", "9000")])
    level2.add(_node("A", 2), [])

    snapshot = GraphDiscoveryService.merge_levels([level2, level1])

    assert [n.id for n in snapshot.nodes] == ["A", "B"]
    assert snapshot.node("A").level == 1
    keys = [e.key for e in snapshot.edges]
    assert len(keys) == len(set(keys))
    ab = next(e for e in snapshot.edges if e.key == EdgeKey("A", "B", "transfer"))
    assert ab.cumulative_amount == Decimal("9000")
    assert snapshot.level_stats[1].node_count == 1
    assert snapshot.level_stats[2].link_count == 2
    assert snapshot.total_levels == 2


def test_merge_without_indirect_links_drops_dangling_edges() -> None:
    level1 = _store(1, ["A"], [_edge("A", "B", "9000"), _edge("A", "X", "9000")])
    level2 = _store(2, ["B"], [_edge("B", "Y", "9000")])

    kept = GraphDiscoveryService.merge_levels([level1, level2])
    pruned = GraphDiscoveryService.merge_levels([level1, level2], include_indirect_links=False)

    assert len(kept.edges) == 3
    assert [e.key for e in pruned.edges] == [EdgeKey("A", "B", "transfer")]


def test_merge_counts_only_levels_with_nodes() -> None:
    failure = FetchFailure(entity_id="A", level=1, code="NOT_FOUND", message="gone")

    snapshot = GraphDiscoveryService.merge_levels([LevelStore(level=1)], failures=[failure])

    assert snapshot.total_levels == 0
    assert snapshot.nodes == ()
    assert snapshot.failures == (failure,)
