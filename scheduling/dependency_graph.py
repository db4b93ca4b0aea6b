"""Task dependency graph.

Edges live in a single arena keyed by edge id. Two indexes map a task id to
the ids of the edges leaving it (``outgoing``: the task is the predecessor)
and entering it (``incoming``: the task is the successor). Nothing else holds
edge objects, so both views always describe the same edge set.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Iterable, Iterator

from scheduling.cycle_detector import cycle_path
from scheduling.errors import CycleDetected, DependencyNotFound, DuplicateEdge, SelfDependency
from scheduling.types import Dependency, DependencyType

logger = logging.getLogger("taskline.graph")


def new_edge_id() -> str:
    return uuid.uuid4().hex


class DependencyGraph:
    """Acyclic directed graph of typed precedence edges between task ids."""

    def __init__(self, edges: Iterable[Dependency] = ()) -> None:
        self._edges: dict[str, Dependency] = {}
        self._outgoing: dict[str, list[str]] = {}
        self._incoming: dict[str, list[str]] = {}
        self._pairs: dict[tuple[str, str], str] = {}
        self._lock = threading.RLock()
        for edge in edges:
            self.insert(edge)

    # -- mutation ---------------------------------------------------------

    def add_edge(
        self,
        predecessor: str,
        successor: str,
        type: DependencyType = DependencyType.FS,
        lag: int = 0,
        mandatory: bool = True,
        notes: str | None = None,
    ) -> Dependency:
        """Validate and insert a new edge with a fresh id."""
        edge = Dependency(
            id=new_edge_id(),
            predecessor=predecessor,
            successor=successor,
            type=DependencyType(type),
            lag=int(lag),
            mandatory=bool(mandatory),
            notes=notes,
        )
        return self.insert(edge)

    def insert(self, edge: Dependency) -> Dependency:
        """Insert a fully built edge; the cycle check and insert share one lock."""
        with self._lock:
            self.check_insertable(edge.predecessor, edge.successor)
            if edge.id in self._edges:
                raise ValueError(f"Edge id already in use: {edge.id}")
            self._edges[edge.id] = edge
            self._outgoing.setdefault(edge.predecessor, []).append(edge.id)
            self._incoming.setdefault(edge.successor, []).append(edge.id)
            self._pairs[(edge.predecessor, edge.successor)] = edge.id
        logger.debug("Added %s edge %s -> %s (%s)", edge.type.value, edge.predecessor, edge.successor, edge.id)
        return edge

    def check_insertable(self, predecessor: str, successor: str) -> None:
        """Raise the structural error adding ``predecessor -> successor`` would hit."""
        if predecessor == successor:
            raise SelfDependency(successor)
        with self._lock:
            existing = self._pairs.get((predecessor, successor))
            if existing is not None:
                raise DuplicateEdge(predecessor, successor, existing)
            path = cycle_path(self.successors, predecessor, successor)
        if path is not None:
            logger.info("Rejected edge %s -> %s: cycle %s", predecessor, successor, path)
            raise CycleDetected(path)

    def replace(self, edge: Dependency) -> Dependency:
        """Swap the attributes of an existing edge; endpoints cannot change."""
        with self._lock:
            current = self._edges.get(edge.id)
            if current is None:
                raise DependencyNotFound(edge.id)
            if (current.predecessor, current.successor) != (edge.predecessor, edge.successor):
                raise ValueError("Edge endpoints are immutable; remove and re-add instead.")
            self._edges[edge.id] = edge
        return edge

    def remove_edge(self, edge_id: str) -> Dependency | None:
        """Remove an edge from both indexes. Missing ids are a no-op."""
        with self._lock:
            edge = self._edges.pop(edge_id, None)
            if edge is None:
                return None
            self._outgoing[edge.predecessor].remove(edge_id)
            self._incoming[edge.successor].remove(edge_id)
            if not self._outgoing[edge.predecessor]:
                del self._outgoing[edge.predecessor]
            if not self._incoming[edge.successor]:
                del self._incoming[edge.successor]
            del self._pairs[(edge.predecessor, edge.successor)]
        logger.debug("Removed edge %s", edge_id)
        return edge

    def remove_task(self, task_id: str) -> list[Dependency]:
        """Drop every edge touching ``task_id``."""
        with self._lock:
            edge_ids = [*self._incoming.get(task_id, []), *self._outgoing.get(task_id, [])]
            removed = [self.remove_edge(edge_id) for edge_id in edge_ids]
        return [edge for edge in removed if edge is not None]

    # -- queries ----------------------------------------------------------

    def get(self, edge_id: str) -> Dependency | None:
        return self._edges.get(edge_id)

    def require(self, edge_id: str) -> Dependency:
        edge = self._edges.get(edge_id)
        if edge is None:
            raise DependencyNotFound(edge_id)
        return edge

    def find(self, predecessor: str, successor: str) -> Dependency | None:
        edge_id = self._pairs.get((predecessor, successor))
        return self._edges.get(edge_id) if edge_id else None

    def outgoing(self, task_id: str) -> list[Dependency]:
        """Edges where ``task_id`` is the predecessor, in insertion order."""
        with self._lock:
            return [self._edges[e] for e in self._outgoing.get(task_id, [])]

    def incoming(self, task_id: str) -> list[Dependency]:
        """Edges where ``task_id`` is the successor, in insertion order."""
        with self._lock:
            return [self._edges[e] for e in self._incoming.get(task_id, [])]

    def successors(self, task_id: str) -> list[str]:
        return [edge.successor for edge in self.outgoing(task_id)]

    def predecessors(self, task_id: str) -> list[str]:
        return [edge.predecessor for edge in self.incoming(task_id)]

    def edges(self) -> list[Dependency]:
        with self._lock:
            return list(self._edges.values())

    def task_ids(self) -> set[str]:
        with self._lock:
            return set(self._outgoing) | set(self._incoming)

    def __len__(self) -> int:
        return len(self._edges)

    def __iter__(self) -> Iterator[Dependency]:
        return iter(self.edges())

    def __contains__(self, edge_id: object) -> bool:
        return edge_id in self._edges
