"""Exceptions raised by the dependency constraint engine."""

from __future__ import annotations

from typing import Any

from scheduling.types import Dependency, Violation, ViolationReport, iso


class SchedulingError(Exception):
    """Base class; ``code`` is stable and safe to expose to API clients."""

    code = "scheduling_error"
    forceable = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "message": self.message}


class TaskNotFound(SchedulingError):
    code = "task_not_found"

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


class DependencyNotFound(SchedulingError):
    code = "dependency_not_found"

    def __init__(self, dependency_id: str) -> None:
        super().__init__(f"Dependency not found: {dependency_id}")
        self.dependency_id = dependency_id


class SelfDependency(SchedulingError):
    code = "self_dependency"

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task {task_id} cannot depend on itself")
        self.task_id = task_id


class DuplicateEdge(SchedulingError):
    code = "duplicate_edge"

    def __init__(self, predecessor: str, successor: str, existing_id: str) -> None:
        super().__init__(f"Dependency {predecessor} -> {successor} already exists ({existing_id})")
        self.predecessor = predecessor
        self.successor = successor
        self.existing_id = existing_id

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["existing_dependency_id"] = self.existing_id
        return payload


class CycleDetected(SchedulingError):
    code = "cycle_detected"

    def __init__(self, path: list[str]) -> None:
        super().__init__(
            "Circular dependency detected - this would create a dependency loop: " + " -> ".join(path)
        )
        self.path = path

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["circular_path"] = list(self.path)
        return payload


class InvalidDateRange(SchedulingError):
    code = "invalid_date_range"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class MandatoryViolation(SchedulingError):
    """A mandatory edge would be left violated; the caller may force it."""

    code = "mandatory_violation"
    forceable = True

    def __init__(self, violation: Violation, action: str = "create") -> None:
        super().__init__(
            f"Cannot {action} dependency because it violates the date rules. " + violation.message
        )
        self.violation = violation

    @property
    def edge(self) -> Dependency:
        return self.violation.edge

    @property
    def required_date(self):
        return self.violation.required_date

    def to_dict(self) -> dict[str, Any]:
        fix = self.violation.suggested_fix
        return {
            "success": False,
            "error": "Date violation detected",
            "code": self.code,
            "message": self.message,
            "violation": self.violation.to_dict(),
            "suggestion": (
                f"Move task {fix.task_id} by {fix.shift_days} day(s) so it respects "
                f"{iso(self.violation.required_date)} or later"
            ),
            "can_auto_fix": True,
            "required_start_date": iso(fix.new_start),
        }


class DateValidationError(SchedulingError):
    """A task date edit was rejected."""

    code = "date_validation"

    def __init__(self, errors: list[str], report: ViolationReport | None, can_force: bool) -> None:
        super().__init__(". ".join(errors) if errors else "Date validation failed")
        self.errors = errors
        self.report = report
        self.forceable = can_force

    @property
    def can_force(self) -> bool:
        return self.forceable

    def to_dict(self) -> dict[str, Any]:
        violations = self.report.to_dict()["mandatory_violations"] if self.report else []
        return {
            "error": self.code,
            "message": self.message,
            "errors": list(self.errors),
            "violations": violations,
            "can_force": self.can_force,
        }
