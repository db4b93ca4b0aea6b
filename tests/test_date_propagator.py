"""Date propagation tests."""

from __future__ import annotations

from datetime import date

import pytest

from scheduling.date_propagator import DatePropagator
from scheduling.dependency_graph import DependencyGraph
from scheduling.types import DateWindow, DependencyType, TaskDates


def build_propagator(
    dates: dict[str, TaskDates], window: DateWindow | None = None
) -> tuple[DependencyGraph, DatePropagator]:
    graph = DependencyGraph()
    propagator = DatePropagator(graph, dates.__getitem__, window_of=lambda _task: window)
    return graph, propagator


def apply(dates: dict[str, TaskDates], result) -> None:
    for moved in result.moved_tasks:
        dates[moved.task_id] = moved.new


def test_downstream_order_is_topological() -> None:
    dates = {k: TaskDates() for k in "abcd"}
    graph, propagator = build_propagator(dates)
    graph.add_edge("a", "c")
    graph.add_edge("a", "b")
    graph.add_edge("b", "c")
    graph.add_edge("c", "d")

    order = propagator.downstream_order("a")

    assert order == ["b", "c", "d"]
    assert propagator.downstream_order("d") == []


def test_chain_shift_preserves_durations() -> None:
    dates = {
        "a": TaskDates(date(2024, 1, 1), date(2024, 1, 15)),
        "b": TaskDates(date(2024, 1, 10), date(2024, 1, 12)),
        "c": TaskDates(date(2024, 1, 13), date(2024, 1, 20)),
    }
    graph, propagator = build_propagator(dates)
    graph.add_edge("a", "b")
    graph.add_edge("b", "c", lag=1)

    result = propagator.auto_adjust("a")

    moved = {m.task_id: m.new for m in result.moved_tasks}
    assert moved["b"] == TaskDates(date(2024, 1, 15), date(2024, 1, 17))
    # c is checked against b's moved dates, not the stored ones.
    assert moved["c"] == TaskDates(date(2024, 1, 18), date(2024, 1, 25))
    for task_id, new in moved.items():
        assert new.duration == dates[task_id].duration
    assert result.unresolvable == []


def test_auto_adjust_is_idempotent() -> None:
    dates = {
        "a": TaskDates(date(2024, 1, 1), date(2024, 1, 15)),
        "b": TaskDates(date(2024, 1, 10), date(2024, 1, 12)),
    }
    graph, propagator = build_propagator(dates)
    graph.add_edge("a", "b")

    apply(dates, propagator.auto_adjust("a"))
    second = propagator.auto_adjust("a")

    assert second.moved_tasks == []
    assert second.unresolvable == []


def test_shift_uses_largest_shortfall_across_predecessors() -> None:
    dates = {
        "a": TaskDates(date(2024, 1, 1), date(2024, 1, 5)),
        "b": TaskDates(date(2024, 1, 1), date(2024, 1, 9)),
        "c": TaskDates(date(2024, 1, 3), date(2024, 1, 4)),
    }
    graph, propagator = build_propagator(dates)
    graph.add_edge("a", "c")
    graph.add_edge("b", "c", type=DependencyType.FF, lag=2)

    result = propagator.auto_adjust("a")

    # FS needs start >= 01-05 (2 days); FF needs end >= 01-11 (7 days).
    assert result.moved_tasks[0].new == TaskDates(date(2024, 1, 10), date(2024, 1, 11))


def test_advisory_edges_only_shift_when_included() -> None:
    dates = {
        "a": TaskDates(date(2024, 1, 1), date(2024, 1, 10)),
        "b": TaskDates(date(2024, 1, 5), date(2024, 1, 6)),
    }
    graph, propagator = build_propagator(dates)
    graph.add_edge("a", "b", mandatory=False)

    default = propagator.auto_adjust("a")
    assert default.moved_tasks == []
    assert [r.task_id for r in default.advisory] == ["b"]

    included = propagator.auto_adjust("a", include_advisory=True)
    assert included.moved_tasks[0].new == TaskDates(date(2024, 1, 10), date(2024, 1, 11))


def test_without_preserve_duration_only_violated_boundary_moves() -> None:
    dates = {
        "a": TaskDates(date(2024, 1, 1), date(2024, 1, 10)),
        "b": TaskDates(date(2024, 1, 5), date(2024, 1, 20)),
    }
    graph, propagator = build_propagator(dates)
    graph.add_edge("a", "b")

    result = propagator.auto_adjust("a", preserve_duration=False)

    assert result.moved_tasks[0].new == TaskDates(date(2024, 1, 10), date(2024, 1, 20))


def test_project_end_makes_shift_unresolvable_but_cascade_continues() -> None:
    dates = {
        "a": TaskDates(date(2024, 1, 1), date(2024, 1, 25)),
        "b": TaskDates(date(2024, 1, 10), date(2024, 1, 20)),
        "c": TaskDates(date(2024, 1, 2), date(2024, 1, 3)),
    }
    graph, propagator = build_propagator(dates, window=DateWindow(date(2024, 1, 1), date(2024, 1, 31)))
    graph.add_edge("a", "b")
    graph.add_edge("a", "c", type=DependencyType.SS, lag=3)

    result = propagator.auto_adjust("a")

    assert [c.task_id for c in result.unresolvable] == ["b"]
    assert "project end" in result.unresolvable[0].reason
    assert [m.task_id for m in result.moved_tasks] == ["c"]
    assert "b" not in {m.task_id for m in result.moved_tasks}


def test_unresolved_node_keeps_dates_for_its_dependents() -> None:
    dates = {
        "a": TaskDates(date(2024, 1, 1), date(2024, 1, 25)),
        "b": TaskDates(date(2024, 1, 10), date(2024, 1, 20)),
        "c": TaskDates(date(2024, 1, 21), date(2024, 1, 22)),
    }
    graph, propagator = build_propagator(dates, window=DateWindow(None, date(2024, 1, 31)))
    graph.add_edge("a", "b")
    graph.add_edge("b", "c")

    result = propagator.auto_adjust("a")

    assert [c.task_id for c in result.unresolvable] == ["b"]
    # b did not move, so c still satisfies b's stored end date.
    assert result.moved_tasks == []


def test_corrupted_graph_cycle_is_reported() -> None:
    dates = {k: TaskDates() for k in "ab"}
    graph, propagator = build_propagator(dates)
    graph.add_edge("a", "b")
    # Bypass insertion checks to simulate a corrupted edge set.
    graph._outgoing.setdefault("b", []).append(graph.find("a", "b").id)

    with pytest.raises(RuntimeError):
        propagator.downstream_order("a")
