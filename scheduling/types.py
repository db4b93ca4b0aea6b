"""Value types shared by the dependency constraint engine."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime, timedelta
from enum import Enum
from typing import Any


def utc_now() -> datetime:
    """Return an aware UTC timestamp."""
    return datetime.now(UTC)


def iso(value: date | datetime | None) -> str | None:
    """Render a date for JSON payloads."""
    return value.isoformat() if value is not None else None


class Boundary(str, Enum):
    """Which end of a task interval a constraint talks about."""

    START = "start"
    END = "end"


class DependencyType(str, Enum):
    """Temporal semantics of a precedence edge."""

    FS = "FS"
    SS = "SS"
    FF = "FF"
    SF = "SF"

    @property
    def label(self) -> str:
        return _LABELS[self]

    @property
    def predecessor_boundary(self) -> Boundary:
        return _BOUNDARIES[self][0]

    @property
    def successor_boundary(self) -> Boundary:
        return _BOUNDARIES[self][1]


_LABELS: dict[DependencyType, str] = {
    DependencyType.FS: "Finish-to-Start",
    DependencyType.SS: "Start-to-Start",
    DependencyType.FF: "Finish-to-Finish",
    DependencyType.SF: "Start-to-Finish",
}

# (predecessor boundary, successor boundary) per type.
_BOUNDARIES: dict[DependencyType, tuple[Boundary, Boundary]] = {
    DependencyType.FS: (Boundary.END, Boundary.START),
    DependencyType.SS: (Boundary.START, Boundary.START),
    DependencyType.FF: (Boundary.END, Boundary.END),
    DependencyType.SF: (Boundary.START, Boundary.END),
}


@dataclass(frozen=True)
class TaskDates:
    """Scheduled interval of a task; either side may be unset."""

    start: date | None = None
    end: date | None = None

    @property
    def duration(self) -> timedelta | None:
        if self.start is None or self.end is None:
            return None
        return self.end - self.start

    def boundary(self, which: Boundary) -> date | None:
        return self.start if which is Boundary.START else self.end

    def shifted(self, days: int) -> TaskDates:
        """Move both set boundaries by the same number of days."""
        delta = timedelta(days=days)
        return TaskDates(
            start=self.start + delta if self.start is not None else None,
            end=self.end + delta if self.end is not None else None,
        )

    def to_dict(self) -> dict[str, str | None]:
        return {"start_date": iso(self.start), "deadline": iso(self.end)}


@dataclass(frozen=True)
class DateWindow:
    """Inclusive date range a task must stay within (e.g. project dates)."""

    start: date | None = None
    end: date | None = None

    def problems(self, dates: TaskDates) -> list[str]:
        """Describe every way the interval escapes the window."""
        issues: list[str] = []
        for name, value in (("start date", dates.start), ("end date", dates.end)):
            if value is None:
                continue
            if self.start is not None and value < self.start:
                issues.append(f"Task {name} {value.isoformat()} is before project start {self.start.isoformat()}")
            if self.end is not None and value > self.end:
                issues.append(f"Task {name} {value.isoformat()} is after project end {self.end.isoformat()}")
        return issues


@dataclass(frozen=True)
class Dependency:
    """Precedence edge: ``successor`` is constrained relative to ``predecessor``."""

    id: str
    predecessor: str
    successor: str
    type: DependencyType = DependencyType.FS
    lag: int = 0
    mandatory: bool = True
    notes: str | None = None
    created_at: datetime = field(default_factory=utc_now)

    def with_changes(self, **changes: Any) -> Dependency:
        return replace(self, **changes)

    def describe_lag(self) -> str:
        if self.lag > 0:
            return f" with {self.lag} day(s) lag"
        if self.lag < 0:
            return f" with {abs(self.lag)} day(s) lead"
        return ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "task_id": self.successor,
            "depends_on_task_id": self.predecessor,
            "dependency_type": self.type.value,
            "lag_days": self.lag,
            "is_mandatory": self.mandatory,
            "notes": self.notes or "",
            "created_at": iso(self.created_at),
        }


@dataclass(frozen=True)
class ShiftSuggestion:
    """Move of the successor that satisfies one violated edge with equality."""

    task_id: str
    shift_days: int
    new_start: date | None
    new_end: date | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_id": self.task_id,
            "shift_days": self.shift_days,
            "new_start_date": iso(self.new_start),
            "new_deadline": iso(self.new_end),
        }


@dataclass(frozen=True)
class Violation:
    """A broken edge together with the minimal corrective date."""

    edge: Dependency
    boundary: Boundary
    required_date: date
    actual_date: date
    suggested_fix: ShiftSuggestion

    @property
    def mandatory(self) -> bool:
        return self.edge.mandatory

    @property
    def shortfall_days(self) -> int:
        return (self.required_date - self.actual_date).days

    @property
    def message(self) -> str:
        verb = "start" if self.boundary is Boundary.START else "finish"
        anchor = "finishes" if self.edge.type.predecessor_boundary is Boundary.END else "starts"
        return (
            f"Task {self.edge.successor} cannot {verb} before {self.required_date.isoformat()}: "
            f"predecessor {self.edge.predecessor} {anchor} "
            f"({self.edge.type.label}{self.edge.describe_lag()})."
        )

    def to_dict(self) -> dict[str, Any]:
        required_key = "required_start_date" if self.boundary is Boundary.START else "required_deadline"
        return {
            "type": self.edge.type.value,
            "dependency_id": self.edge.id,
            "predecessor": self.edge.predecessor,
            "is_mandatory": self.edge.mandatory,
            "boundary": self.boundary.value,
            "required_date": iso(self.required_date),
            "actual_date": iso(self.actual_date),
            required_key: iso(self.required_date),
            "lag_days": self.edge.lag,
            "message": self.message,
            "suggested_fix": self.suggested_fix.to_dict(),
        }


@dataclass
class ViolationReport:
    """Evaluation of every inbound edge of a task."""

    task_id: str
    dates: TaskDates
    mandatory_violations: list[Violation] = field(default_factory=list)
    advisory_violations: list[Violation] = field(default_factory=list)
    total_dependencies: int = 0
    earliest_start: date | None = None
    earliest_end: date | None = None

    @property
    def can_force(self) -> bool:
        return not self.mandatory_violations

    @property
    def is_valid(self) -> bool:
        return not self.mandatory_violations and not self.advisory_violations

    @property
    def violations(self) -> list[Violation]:
        return [*self.mandatory_violations, *self.advisory_violations]

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_id": self.task_id,
            "valid": self.is_valid,
            "can_force": self.can_force,
            "current_dates": self.dates.to_dict(),
            "earliest_start": iso(self.earliest_start),
            "earliest_end": iso(self.earliest_end),
            "mandatory_violations": [v.to_dict() for v in self.mandatory_violations],
            "advisory_violations": [v.to_dict() for v in self.advisory_violations],
            "summary": {
                "total_dependencies": self.total_dependencies,
                "violations_count": len(self.violations),
            },
        }


@dataclass(frozen=True)
class MovedTask:
    task_id: str
    old: TaskDates
    new: TaskDates

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_id": self.task_id,
            "old_start": iso(self.old.start),
            "old_end": iso(self.old.end),
            "new_start": iso(self.new.start),
            "new_end": iso(self.new.end),
        }


@dataclass
class UnresolvableConflict:
    """A node propagation could not fix without breaking another hard limit."""

    task_id: str
    conflicting_edges: list[Dependency]
    reason: str
    report: ViolationReport

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_id": self.task_id,
            "conflicting_edges": [edge.to_dict() for edge in self.conflicting_edges],
            "reason": self.reason,
            "report": self.report.to_dict(),
        }


@dataclass
class AutoAdjustResult:
    source_task_id: str
    moved_tasks: list[MovedTask] = field(default_factory=list)
    unresolvable: list[UnresolvableConflict] = field(default_factory=list)
    advisory: list[ViolationReport] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_task_id": self.source_task_id,
            "movedTasks": [m.to_dict() for m in self.moved_tasks],
            "unresolvable": [c.to_dict() for c in self.unresolvable],
            "advisory": [r.to_dict() for r in self.advisory],
        }


@dataclass(frozen=True)
class DateImpact:
    """A dependent task whose constraint an upstream edit now breaks."""

    violation: Violation

    def to_dict(self) -> dict[str, Any]:
        payload = self.violation.to_dict()
        payload["affected_task_id"] = self.violation.edge.successor
        payload["will_violate"] = True
        return payload
