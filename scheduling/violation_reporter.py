"""Aggregate constraint evaluations over a task's inbound edges."""

from __future__ import annotations

from collections.abc import Callable, Mapping

from scheduling.constraint_evaluator import evaluate, required_date
from scheduling.dependency_graph import DependencyGraph
from scheduling.types import Boundary, Dependency, TaskDates, Violation, ViolationReport

DatesLookup = Callable[[str], TaskDates]


class ViolationReporter:
    """Builds violation reports from the graph and a task-dates source.

    ``overrides`` lets callers evaluate proposed dates (an edit being
    validated, or dates already moved earlier in a propagation pass) without
    touching the store.
    """

    def __init__(self, graph: DependencyGraph, get_dates: DatesLookup) -> None:
        self.graph = graph
        self.get_dates = get_dates

    def dates_of(self, task_id: str, overrides: Mapping[str, TaskDates] | None = None) -> TaskDates:
        if overrides and task_id in overrides:
            return overrides[task_id]
        return self.get_dates(task_id)

    def check_edge(
        self, edge: Dependency, overrides: Mapping[str, TaskDates] | None = None
    ) -> Violation | None:
        return evaluate(
            edge,
            self.dates_of(edge.predecessor, overrides),
            self.dates_of(edge.successor, overrides),
        )

    def check_task(
        self, task_id: str, overrides: Mapping[str, TaskDates] | None = None
    ) -> ViolationReport:
        """Evaluate every constraint ``task_id`` must satisfy."""
        dates = self.dates_of(task_id, overrides)
        edges = self.graph.incoming(task_id)
        report = ViolationReport(task_id=task_id, dates=dates, total_dependencies=len(edges))

        for edge in edges:
            predecessor = self.dates_of(edge.predecessor, overrides)
            bound = required_date(edge, predecessor)
            if bound is not None:
                if edge.type.successor_boundary is Boundary.START:
                    if report.earliest_start is None or bound > report.earliest_start:
                        report.earliest_start = bound
                elif report.earliest_end is None or bound > report.earliest_end:
                    report.earliest_end = bound

            violation = evaluate(edge, predecessor, dates)
            if violation is None:
                continue
            if edge.mandatory:
                report.mandatory_violations.append(violation)
            else:
                report.advisory_violations.append(violation)
        return report

    def check_dependents(
        self, task_id: str, overrides: Mapping[str, TaskDates] | None = None
    ) -> list[Violation]:
        """Violations ``task_id``'s dates cause on the tasks that depend on it."""
        hits: list[Violation] = []
        for edge in self.graph.outgoing(task_id):
            violation = self.check_edge(edge, overrides)
            if violation is not None:
                hits.append(violation)
        return hits
