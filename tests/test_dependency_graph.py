"""Dependency graph tests."""

from __future__ import annotations

import random
import threading

import pytest

from scheduling.dependency_graph import DependencyGraph
from scheduling.errors import CycleDetected, DependencyNotFound, DuplicateEdge, SelfDependency
from scheduling.types import DependencyType


def build_chain() -> DependencyGraph:
    graph = DependencyGraph()
    graph.add_edge("a", "b")
    graph.add_edge("b", "c", type=DependencyType.SS, lag=2)
    return graph


def test_outgoing_and_incoming_views_agree() -> None:
    graph = build_chain()

    assert graph.successors("a") == ["b"]
    assert graph.predecessors("c") == ["b"]
    for edge in graph.edges():
        assert edge in graph.outgoing(edge.predecessor)
        assert edge in graph.incoming(edge.successor)
    assert graph.task_ids() == {"a", "b", "c"}
    assert len(graph) == 2


def test_self_dependency_rejected() -> None:
    graph = DependencyGraph()
    with pytest.raises(SelfDependency):
        graph.add_edge("a", "a")
    assert len(graph) == 0


def test_cycle_rejected_with_path_and_graph_unchanged() -> None:
    graph = build_chain()

    with pytest.raises(CycleDetected) as excinfo:
        graph.add_edge("c", "a")

    assert excinfo.value.path == ["c", "a", "b", "c"]
    assert excinfo.value.to_dict()["circular_path"] == ["c", "a", "b", "c"]
    assert len(graph) == 2
    assert graph.find("c", "a") is None


def test_duplicate_pair_rejected() -> None:
    graph = build_chain()
    existing = graph.find("a", "b")

    with pytest.raises(DuplicateEdge) as excinfo:
        graph.add_edge("a", "b", type=DependencyType.FF)
    assert excinfo.value.existing_id == existing.id


def test_remove_edge_is_idempotent() -> None:
    graph = build_chain()
    edge = graph.find("a", "b")

    assert graph.remove_edge(edge.id) == edge
    assert graph.remove_edge(edge.id) is None
    assert graph.outgoing("a") == []
    assert graph.incoming("b") == []
    # The pair is free again.
    graph.add_edge("a", "b")


def test_remove_task_drops_both_directions() -> None:
    graph = build_chain()

    removed = graph.remove_task("b")

    assert len(removed) == 2
    assert len(graph) == 0
    assert graph.task_ids() == set()


def test_replace_keeps_endpoints() -> None:
    graph = build_chain()
    edge = graph.find("b", "c")

    graph.replace(edge.with_changes(lag=5, mandatory=False))
    assert graph.get(edge.id).lag == 5
    assert graph.get(edge.id).mandatory is False

    with pytest.raises(ValueError):
        graph.replace(edge.with_changes(successor="z"))
    with pytest.raises(DependencyNotFound):
        graph.require("missing")


def test_graph_rebuilt_from_edges_preserves_ids() -> None:
    graph = build_chain()
    rebuilt = DependencyGraph(graph.edges())

    assert {e.id for e in rebuilt} == {e.id for e in graph}
    with pytest.raises(CycleDetected):
        rebuilt.add_edge("c", "a")


def test_concurrent_inserts_never_close_a_cycle() -> None:
    graph = DependencyGraph()
    barrier = threading.Barrier(2)
    outcomes: list[str] = []

    def attempt(pred: str, succ: str) -> None:
        barrier.wait()
        try:
            graph.add_edge(pred, succ)
            outcomes.append("added")
        except CycleDetected:
            outcomes.append("cycle")

    threads = [threading.Thread(target=attempt, args=pair) for pair in (("a", "b"), ("b", "a"))]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(outcomes) == ["added", "cycle"]
    assert len(graph) == 1


def test_random_inserts_keep_graph_acyclic() -> None:
    rng = random.Random(7)
    graph = DependencyGraph()
    nodes = [f"t{i}" for i in range(25)]
    for _ in range(300):
        pred, succ = rng.sample(nodes, 2)
        try:
            graph.add_edge(pred, succ)
        except (CycleDetected, DuplicateEdge):
            pass

    # Kahn's algorithm consumes every node only when no cycle exists.
    indegree = {node: len(graph.incoming(node)) for node in nodes}
    ready = [node for node, count in indegree.items() if count == 0]
    visited = 0
    while ready:
        node = ready.pop()
        visited += 1
        for nxt in graph.successors(node):
            indegree[nxt] -= 1
            if indegree[nxt] == 0:
                ready.append(nxt)
    assert visited == len(nodes)
