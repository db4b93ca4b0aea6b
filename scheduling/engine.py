"""Dependency constraint engine: the write path for edges and task dates.

The engine owns the in-memory graph (rebuilt from the repository on start),
validates every change against it, and writes through to the task store and
the dependency repository. Writes for a project are serialized by a
per-project lock; read-only queries do not take it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from core.event_bus import (
    DEPENDENCY_ADDED,
    DEPENDENCY_REMOVED,
    DEPENDENCY_UPDATED,
    TASK_DELETED,
    EventBus,
)
from governance.audit_logger import AuditLogger
from scheduling.constraint_evaluator import suggested_dates
from scheduling.date_propagator import DatePropagator
from scheduling.dependency_graph import DependencyGraph, new_edge_id
from scheduling.errors import (
    CycleDetected,
    DateValidationError,
    DependencyNotFound,
    DuplicateEdge,
    InvalidDateRange,
    MandatoryViolation,
    SelfDependency,
    TaskNotFound,
)
from scheduling.locks import ProjectLocks
from scheduling.types import (
    AutoAdjustResult,
    DateImpact,
    Dependency,
    DependencyType,
    TaskDates,
    Violation,
    ViolationReport,
    iso,
)
from scheduling.violation_reporter import ViolationReporter
from storage.dependency_repository import DependencyRepository
from storage.task_store import TaskStore

logger = logging.getLogger("taskline.engine")


@dataclass
class AddDependencyResult:
    """Outcome of creating or updating an edge."""

    dependency: Dependency
    violations: list[Violation] = field(default_factory=list)
    forced: bool = False

    @property
    def warning(self) -> Violation | None:
        return self.violations[0] if self.violations else None

    def to_dict(self) -> dict[str, Any]:
        warnings = [v.to_dict() for v in self.violations]
        return {
            "dependency": self.dependency.to_dict(),
            "warning": warnings[0] if warnings else None,
            "warnings": warnings or None,
            "forced": self.forced,
            "message": (
                f"Dependency created with {len(warnings)} warning(s)"
                if warnings
                else "Dependency created successfully"
            ),
        }


@dataclass
class TaskUpdateResult:
    """Outcome of an accepted task date edit."""

    task: dict[str, Any]
    report: ViolationReport
    impacts: list[DateImpact] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    forced: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "task": self.task,
            "warnings": [v.to_dict() for v in self.report.advisory_violations],
            "overridden": self.errors,
            "impacts": [impact.to_dict() for impact in self.impacts],
            "impact_summary": (
                f"Changing dates will affect {len(self.impacts)} dependent task(s)"
                if self.impacts
                else "No dependent tasks will be affected"
            ),
            "forced": self.forced,
        }


class DependencyEngine:
    """Validates and applies dependency and date changes."""

    def __init__(
        self,
        task_store: TaskStore,
        repository: DependencyRepository | None = None,
        audit_logger: AuditLogger | None = None,
        event_bus: EventBus | None = None,
        strict_validation: bool = True,
        locks: ProjectLocks | None = None,
    ) -> None:
        self.task_store = task_store
        self.repository = repository
        self.audit = audit_logger or AuditLogger(None)
        self.event_bus = event_bus or task_store.event_bus
        self.strict_validation = strict_validation
        self.locks = locks or ProjectLocks()
        self.graph = DependencyGraph(repository.load_all() if repository else ())
        self.reporter = ViolationReporter(self.graph, task_store.get_dates)
        self.propagator = DatePropagator(self.graph, task_store.get_dates, task_store.window_of)
        self.event_bus.subscribe(TASK_DELETED, self._on_task_deleted)
        logger.info("Dependency engine ready with %d edge(s)", len(self.graph))

    # -- edges --------------------------------------------------------------

    def validate_dependency(
        self,
        task_id: str,
        depends_on_task_id: str,
        dependency_type: DependencyType | str = DependencyType.FS,
        lag_days: int = 0,
    ) -> dict[str, Any]:
        """Structural feasibility of ``depends_on_task_id -> task_id``; nothing is written."""
        self._require_tasks(task_id, depends_on_task_id)
        try:
            self.graph.check_insertable(depends_on_task_id, task_id)
        except (SelfDependency, CycleDetected) as exc:
            path = getattr(exc, "path", [task_id, depends_on_task_id])
            return {"valid": False, "error": exc.message, "circular_path": path}
        except DuplicateEdge as exc:
            return {"valid": False, "error": exc.message, "existing_dependency_id": exc.existing_id}

        candidate = Dependency(
            id="",
            predecessor=depends_on_task_id,
            successor=task_id,
            type=DependencyType(dependency_type),
            lag=int(lag_days),
        )
        predecessor = self.task_store.get_task(depends_on_task_id)
        suggested = suggested_dates(candidate, self.task_store.get_dates(depends_on_task_id))
        return {
            "valid": True,
            "suggested_dates": {k: iso(v) for k, v in suggested.items()} or None,
            "predecessor": predecessor,
        }

    def add_dependency(
        self,
        task_id: str,
        depends_on_task_id: str,
        dependency_type: DependencyType | str = DependencyType.FS,
        lag_days: int = 0,
        mandatory: bool = True,
        notes: str | None = None,
        force: bool = False,
        strict: bool | None = None,
    ) -> AddDependencyResult:
        """Create the edge ``depends_on_task_id -> task_id``.

        Structural errors always raise. A mandatory edge the current dates
        already violate raises ``MandatoryViolation`` unless ``force`` is set or
        strict validation is off; the edge is then created and the violation
        returned as a warning for a later auto-adjust.
        """
        self._require_tasks(task_id, depends_on_task_id)
        strict = self.strict_validation if strict is None else strict
        inputs = {
            "task_id": task_id,
            "depends_on_task_id": depends_on_task_id,
            "dependency_type": DependencyType(dependency_type).value,
            "lag_days": lag_days,
            "is_mandatory": mandatory,
        }
        with self.locks.hold(self._project(task_id), self._project(depends_on_task_id)):
            self.graph.check_insertable(depends_on_task_id, task_id)
            candidate = Dependency(
                id=new_edge_id(),
                predecessor=depends_on_task_id,
                successor=task_id,
                type=DependencyType(dependency_type),
                lag=int(lag_days),
                mandatory=bool(mandatory),
                notes=notes,
            )
            violation = self.reporter.check_edge(candidate)
            blocking = violation is not None and candidate.mandatory and strict
            if blocking and not force:
                self.audit.log("add_dependency", task_id, inputs, "rejected", details=violation.to_dict())
                raise MandatoryViolation(violation)

            self.graph.insert(candidate)
            self._persist(
                lambda: self.repository.insert(candidate),
                rollback=lambda: self.graph.remove_edge(candidate.id),
            )

        forced = blocking and force
        self.audit.log("add_dependency", task_id, inputs, "created", forced=forced, details={"id": candidate.id})
        self.event_bus.emit(DEPENDENCY_ADDED, candidate.to_dict())
        return AddDependencyResult(
            dependency=candidate,
            violations=[violation] if violation is not None else [],
            forced=forced,
        )

    def update_dependency(
        self,
        dependency_id: str,
        *,
        dependency_type: DependencyType | str | None = None,
        lag_days: int | None = None,
        mandatory: bool | None = None,
        notes: str | None = None,
        force: bool = False,
    ) -> AddDependencyResult:
        """Change type, lag, mandatory flag or notes of an existing edge."""
        edge = self.graph.require(dependency_id)
        changes: dict[str, Any] = {}
        if dependency_type is not None:
            changes["type"] = DependencyType(dependency_type)
        if lag_days is not None:
            changes["lag"] = int(lag_days)
        if mandatory is not None:
            changes["mandatory"] = bool(mandatory)
        if notes is not None:
            changes["notes"] = notes
        inputs = {"id": dependency_id, **{k: getattr(v, "value", v) for k, v in changes.items()}}

        with self.locks.hold(self._project(edge.successor), self._project(edge.predecessor)):
            edge = self.graph.require(dependency_id)
            updated = edge.with_changes(**changes)
            violation = self.reporter.check_edge(updated)
            blocking = violation is not None and updated.mandatory and self.strict_validation
            if blocking and not force:
                self.audit.log("update_dependency", updated.successor, inputs, "rejected", details=violation.to_dict())
                raise MandatoryViolation(violation, action="update")
            self.graph.replace(updated)
            self._persist(lambda: self.repository.update(updated), rollback=lambda: self.graph.replace(edge))

        forced = blocking and force
        self.audit.log(
            "update_dependency",
            updated.successor,
            inputs,
            "updated",
            forced=forced,
        )
        self.event_bus.emit(DEPENDENCY_UPDATED, updated.to_dict())
        return AddDependencyResult(
            dependency=updated,
            violations=[violation] if violation is not None else [],
            forced=forced,
        )

    def remove_dependency(self, dependency_id: str, task_id: str | None = None) -> bool:
        """Delete an edge. Returns False when it was already gone."""
        edge = self.graph.get(dependency_id)
        if edge is None:
            return False
        if task_id is not None and task_id not in (edge.successor, edge.predecessor):
            raise DependencyNotFound(dependency_id)

        with self.locks.hold(self._project(edge.successor), self._project(edge.predecessor)):
            removed = self.graph.remove_edge(dependency_id)
            if removed is None:
                return False
            self._persist(
                lambda: self.repository.delete(dependency_id),
                rollback=lambda: self.graph.insert(removed),
            )

        self.audit.log("remove_dependency", removed.successor, {"id": dependency_id}, "removed")
        self.event_bus.emit(DEPENDENCY_REMOVED, removed.to_dict())
        return True

    def get_dependencies(self, task_id: str) -> dict[str, Any]:
        """Edges the task must satisfy (``dependencies``) and edges it imposes (``dependents``)."""
        self._require_tasks(task_id)
        dependencies = []
        for edge in self.graph.incoming(task_id):
            payload = edge.to_dict()
            payload["depends_on_task"] = self._task_summary(edge.predecessor)
            dependencies.append(payload)
        dependents = []
        for edge in self.graph.outgoing(task_id):
            payload = edge.to_dict()
            payload["task"] = self._task_summary(edge.successor)
            dependents.append(payload)
        return {
            "dependencies": dependencies,
            "dependents": dependents,
            "summary": {
                "total_dependencies": len(dependencies),
                "total_dependents": len(dependents),
            },
        }

    # -- dates --------------------------------------------------------------

    def check_task(self, task_id: str) -> ViolationReport:
        self._require_tasks(task_id)
        return self.reporter.check_task(task_id)

    def update_task_dates(
        self,
        task_id: str,
        start: date | None,
        end: date | None,
        force: bool = False,
    ) -> TaskUpdateResult:
        """Apply a date edit to one task.

        ``start > end`` is always rejected. Leaving the project window or
        breaking one of the task's own mandatory dependencies is rejected
        unless ``force`` is set. Dependents that the edit now violates are
        reported as impacts and left for ``auto_adjust``.
        """
        self._require_tasks(task_id)
        if start is not None and end is not None and start > end:
            raise InvalidDateRange(
                f"Start date ({start.isoformat()}) must not be after the deadline ({end.isoformat()})"
            )
        proposed = TaskDates(start=start, end=end)
        inputs = {"task_id": task_id, **proposed.to_dict(), "force": force}

        with self.locks.hold(self._project(task_id)):
            errors: list[str] = []
            window = self.task_store.window_of(task_id)
            if window is not None:
                errors.extend(window.problems(proposed))
            report = self.reporter.check_task(task_id, {task_id: proposed})
            errors.extend(v.message for v in report.mandatory_violations)
            if errors and not force:
                self.audit.log("update_task_dates", task_id, inputs, "rejected", details={"errors": errors})
                raise DateValidationError(errors, report, can_force=True)

            self.task_store.set_dates(task_id, start, end)
            impacts = [DateImpact(v) for v in self.reporter.check_dependents(task_id)]

        forced = bool(errors)
        self.audit.log(
            "update_task_dates",
            task_id,
            inputs,
            "forced" if forced else "updated",
            forced=forced,
            details={"errors": errors, "impacted": [i.violation.edge.successor for i in impacts]},
        )
        return TaskUpdateResult(
            task=self.task_store.get_task(task_id),
            report=report,
            impacts=impacts,
            errors=errors,
            forced=forced,
        )

    def auto_adjust(
        self,
        task_id: str,
        preserve_duration: bool = True,
        include_advisory: bool = False,
        dry_run: bool = False,
    ) -> AutoAdjustResult:
        """Shift everything downstream of ``task_id`` so mandatory edges hold.

        All moves are written in a single task-store transaction. Every project
        in the downstream set is locked; if an edge added before the locks were
        taken widened that set, the locks are released and taken again.
        """
        self._require_tasks(task_id)
        projects = self._downstream_projects(task_id)
        while True:
            with self.locks.hold(*projects):
                current = self._downstream_projects(task_id)
                if current <= projects:
                    result = self.propagator.auto_adjust(
                        task_id,
                        preserve_duration=preserve_duration,
                        include_advisory=include_advisory,
                    )
                    if result.moved_tasks and not dry_run:
                        self.task_store.set_many_dates({m.task_id: m.new for m in result.moved_tasks})
                    break
            logger.debug("Downstream of %s grew to %s; relocking", task_id, sorted(map(str, current)))
            projects |= current

        self.audit.log(
            "auto_adjust",
            task_id,
            {"task_id": task_id, "preserve_duration": preserve_duration, "include_advisory": include_advisory},
            "dry_run" if dry_run else "applied",
            details={
                "moved": [m.task_id for m in result.moved_tasks],
                "unresolvable": [c.task_id for c in result.unresolvable],
            },
        )
        return result

    # -- views --------------------------------------------------------------

    def gantt(self, project_id: str) -> dict[str, Any]:
        """Tasks of a project with the stored (logical) dependency map."""
        tasks = self.task_store.list_tasks(project_id)
        dependency_map: dict[str, dict[str, list[dict[str, Any]]]] = {}
        seen: set[str] = set()
        for task in tasks:
            for edge in [*self.graph.incoming(task["id"]), *self.graph.outgoing(task["id"])]:
                if edge.id in seen:
                    continue
                seen.add(edge.id)
                payload = edge.to_dict()
                dependency_map.setdefault(edge.successor, {"dependencies": [], "dependents": []})[
                    "dependencies"
                ].append(payload)
                dependency_map.setdefault(edge.predecessor, {"dependencies": [], "dependents": []})[
                    "dependents"
                ].append(payload)
        return {
            "project_id": project_id,
            "tasks": tasks,
            "dependencies": dependency_map,
            "total_dependencies": len(seen),
        }

    # -- internals ----------------------------------------------------------

    def _on_task_deleted(self, payload: dict[str, Any]) -> None:
        task_id = str(payload["task_id"])
        with self.locks.hold(payload.get("project_id")):
            removed = self.graph.remove_task(task_id)
            self._persist(
                lambda: self.repository.delete_for_task(task_id),
                rollback=lambda: self._restore(removed),
            )
        if removed:
            logger.info("Cascade-removed %d edge(s) of deleted task %s", len(removed), task_id)
            self.audit.log(
                "cascade_delete",
                task_id,
                {"task_id": task_id},
                "removed",
                details={"edges": [edge.id for edge in removed]},
            )

    def _restore(self, edges: list[Dependency]) -> None:
        for edge in edges:
            self.graph.insert(edge)

    def _persist(self, write: Callable[[], Any], rollback: Callable[[], Any]) -> None:
        if self.repository is None:
            return
        try:
            write()
        except Exception:
            logger.exception("Persisting dependency change failed; reverting graph")
            rollback()
            raise

    def _require_tasks(self, *task_ids: str) -> None:
        for task_id in task_ids:
            if not self.task_store.exists(task_id):
                raise TaskNotFound(task_id)

    def _project(self, task_id: str) -> str | None:
        return self.task_store.project_of(task_id)

    def _downstream_projects(self, task_id: str) -> set[str | None]:
        return {self._project(t) for t in [task_id, *self.propagator.downstream_order(task_id)]}

    def _task_summary(self, task_id: str) -> dict[str, Any] | None:
        try:
            task = self.task_store.get_task(task_id)
        except TaskNotFound:
            return None
        return {
            "id": task["id"],
            "title": task["title"],
            "start_date": iso(task["start_date"]),
            "deadline": iso(task["deadline"]),
        }
