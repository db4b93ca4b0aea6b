"""Cycle detection tests."""

from __future__ import annotations

from scheduling.cycle_detector import cycle_path, find_path, would_create_cycle


def build_adjacency(*pairs: tuple[str, str]):
    adjacency: dict[str, list[str]] = {}
    for pred, succ in pairs:
        adjacency.setdefault(pred, []).append(succ)
    return lambda node: adjacency.get(node, [])


def test_find_path_follows_edges_forward() -> None:
    successors = build_adjacency(("a", "b"), ("b", "c"), ("c", "d"))

    assert find_path(successors, "a", "d") == ["a", "b", "c", "d"]
    assert find_path(successors, "d", "a") is None
    assert find_path(successors, "b", "b") == ["b"]


def test_cycle_path_starts_and_ends_with_new_predecessor() -> None:
    successors = build_adjacency(("a", "b"), ("b", "c"))

    # Adding c -> a closes a -> b -> c -> a.
    assert cycle_path(successors, "c", "a") == ["c", "a", "b", "c"]
    assert would_create_cycle(successors, "c", "a") is True
    assert would_create_cycle(successors, "a", "c") is False


def test_diamond_is_not_a_cycle() -> None:
    successors = build_adjacency(("a", "b"), ("a", "c"), ("b", "d"), ("c", "d"))

    assert would_create_cycle(successors, "a", "d") is False
    assert cycle_path(successors, "d", "a") is not None


def test_long_chain_does_not_recurse() -> None:
    pairs = [(f"t{i}", f"t{i + 1}") for i in range(5000)]
    successors = build_adjacency(*pairs)

    path = cycle_path(successors, "t5000", "t0")
    assert path is not None
    assert path[0] == "t5000" and path[-1] == "t5000"
    assert len(path) == 5002
