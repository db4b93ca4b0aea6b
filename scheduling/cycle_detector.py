"""Cycle detection for tentative precedence edges."""

from __future__ import annotations

from collections.abc import Callable, Iterable


SuccessorLookup = Callable[[str], Iterable[str]]


def find_path(successors: SuccessorLookup, source: str, target: str) -> list[str] | None:
    """Return a forward path ``source -> ... -> target`` or None.

    Iterative depth-first search; each node is expanded at most once.
    """
    if source == target:
        return [source]
    parents: dict[str, str | None] = {source: None}
    stack = [source]
    while stack:
        node = stack.pop()
        for nxt in successors(node):
            if nxt in parents:
                continue
            parents[nxt] = node
            if nxt == target:
                path = [nxt]
                step = parents[nxt]
                while step is not None:
                    path.append(step)
                    step = parents[step]
                path.reverse()
                return path
            stack.append(nxt)
    return None


def cycle_path(successors: SuccessorLookup, predecessor: str, successor: str) -> list[str] | None:
    """Cycle the edge ``predecessor -> successor`` would close, as a node list.

    The returned list starts and ends with ``predecessor``.
    """
    path = find_path(successors, successor, predecessor)
    if path is None:
        return None
    return [predecessor, *path]


def would_create_cycle(successors: SuccessorLookup, predecessor: str, successor: str) -> bool:
    return cycle_path(successors, predecessor, successor) is not None
