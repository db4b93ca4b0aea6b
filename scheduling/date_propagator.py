"""Forward propagation of date shifts through the dependency graph."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable

from scheduling.dependency_graph import DependencyGraph
from scheduling.types import (
    AutoAdjustResult,
    Boundary,
    DateWindow,
    MovedTask,
    TaskDates,
    UnresolvableConflict,
    Violation,
)
from scheduling.violation_reporter import DatesLookup, ViolationReporter

logger = logging.getLogger("taskline.propagator")

WindowLookup = Callable[[str], DateWindow | None]


class DatePropagator:
    """Cascades the minimal fix from a changed task to everything downstream.

    Nodes are visited in topological order so each one is checked against
    predecessor dates that were already moved in the same pass. A node whose
    fix would break another hard limit is reported and keeps its dates; the
    cascade carries on past it.
    """

    def __init__(
        self,
        graph: DependencyGraph,
        get_dates: DatesLookup,
        window_of: WindowLookup | None = None,
    ) -> None:
        self.graph = graph
        self.reporter = ViolationReporter(graph, get_dates)
        self.window_of = window_of

    def downstream_order(self, task_id: str) -> list[str]:
        """Tasks reachable from ``task_id`` in topological order, source excluded."""
        reachable = {task_id}
        frontier = deque([task_id])
        while frontier:
            node = frontier.popleft()
            for nxt in self.graph.successors(node):
                if nxt not in reachable:
                    reachable.add(nxt)
                    frontier.append(nxt)

        indegree = {node: 0 for node in reachable}
        for node in reachable:
            for nxt in self.graph.successors(node):
                indegree[nxt] += 1

        order: list[str] = []
        ready = deque([task_id])
        while ready:
            node = ready.popleft()
            order.append(node)
            for nxt in self.graph.successors(node):
                indegree[nxt] -= 1
                if indegree[nxt] == 0:
                    ready.append(nxt)

        if len(order) != len(reachable):
            # The graph refuses cycles on insert, so this means it was corrupted.
            raise RuntimeError(f"Dependency graph contains a cycle downstream of {task_id}")
        return order[1:]

    def auto_adjust(
        self,
        task_id: str,
        preserve_duration: bool = True,
        include_advisory: bool = False,
    ) -> AutoAdjustResult:
        """Compute the moves needed downstream of ``task_id``. Nothing is persisted."""
        result = AutoAdjustResult(source_task_id=task_id)
        working: dict[str, TaskDates] = {}

        for node in self.downstream_order(task_id):
            report = self.reporter.check_task(node, working)
            triggering = list(report.mandatory_violations)
            if include_advisory:
                triggering.extend(report.advisory_violations)
            elif report.advisory_violations:
                result.advisory.append(report)
            if not triggering:
                continue

            candidate = self._fix(report.dates, triggering, preserve_duration)
            reason = self._conflict(node, candidate, working)
            if reason is not None:
                logger.info("Task %s left unmodified: %s", node, reason)
                result.unresolvable.append(
                    UnresolvableConflict(
                        task_id=node,
                        conflicting_edges=[v.edge for v in triggering],
                        reason=reason,
                        report=report,
                    )
                )
                continue

            working[node] = candidate
            result.moved_tasks.append(MovedTask(task_id=node, old=report.dates, new=candidate))

        logger.info(
            "Auto-adjust from %s: %d moved, %d unresolvable",
            task_id,
            len(result.moved_tasks),
            len(result.unresolvable),
        )
        return result

    @staticmethod
    def _fix(current: TaskDates, violations: list[Violation], preserve_duration: bool) -> TaskDates:
        if preserve_duration:
            return current.shifted(max(v.shortfall_days for v in violations))

        start, end = current.start, current.end
        for violation in violations:
            if violation.boundary is Boundary.START:
                start = max(start, violation.required_date) if start else violation.required_date
            else:
                end = max(end, violation.required_date) if end else violation.required_date
        if start is not None and end is not None and end < start:
            end = start
        return TaskDates(start=start, end=end)

    def _conflict(self, node: str, candidate: TaskDates, working: dict[str, TaskDates]) -> str | None:
        """Why ``candidate`` cannot be applied, or None when it is acceptable."""
        recheck = self.reporter.check_task(node, {**working, node: candidate})
        if recheck.mandatory_violations:
            broken = ", ".join(v.edge.id for v in recheck.mandatory_violations)
            return f"Fixing one predecessor constraint breaks another mandatory dependency ({broken})"

        window = self.window_of(node) if self.window_of else None
        if window is not None and window.end is not None:
            latest = candidate.end or candidate.start
            if latest is not None and latest > window.end:
                return (
                    f"Required shift moves the task to {latest.isoformat()}, "
                    f"past the project end {window.end.isoformat()}"
                )
        return None
