"""Constraint evaluation tests for the four dependency types."""

from __future__ import annotations

from datetime import date

import pytest

from scheduling.constraint_evaluator import evaluate, required_date, suggested_dates
from scheduling.types import Boundary, Dependency, DependencyType, TaskDates


def build_edge(kind: DependencyType, lag: int = 0, mandatory: bool = True) -> Dependency:
    return Dependency(id="e1", predecessor="p", successor="s", type=kind, lag=lag, mandatory=mandatory)


PRED = TaskDates(start=date(2024, 1, 1), end=date(2024, 1, 10))


@pytest.mark.parametrize("kind", list(DependencyType))
def test_every_type_has_boundaries_and_label(kind: DependencyType) -> None:
    assert kind.predecessor_boundary in (Boundary.START, Boundary.END)
    assert kind.successor_boundary in (Boundary.START, Boundary.END)
    assert kind.label.endswith(("Start", "Finish"))


@pytest.mark.parametrize(
    ("kind", "successor", "required"),
    [
        (DependencyType.FS, TaskDates(date(2024, 1, 8), date(2024, 1, 12)), date(2024, 1, 10)),
        (DependencyType.SS, TaskDates(date(2023, 12, 30), date(2024, 1, 5)), date(2024, 1, 1)),
        (DependencyType.FF, TaskDates(date(2024, 1, 2), date(2024, 1, 9)), date(2024, 1, 10)),
        (DependencyType.SF, TaskDates(date(2023, 12, 20), date(2023, 12, 28)), date(2024, 1, 1)),
    ],
)
def test_violation_reports_required_date(kind: DependencyType, successor: TaskDates, required: date) -> None:
    violation = evaluate(build_edge(kind), PRED, successor)

    assert violation is not None
    assert violation.required_date == required
    assert violation.boundary is kind.successor_boundary
    assert violation.shortfall_days > 0


def test_fs_satisfied_on_the_boundary_day() -> None:
    successor = TaskDates(date(2024, 1, 10), date(2024, 1, 15))
    assert evaluate(build_edge(DependencyType.FS), PRED, successor) is None


def test_positive_lag_and_negative_lead() -> None:
    successor = TaskDates(date(2024, 1, 11), date(2024, 1, 15))

    assert required_date(build_edge(DependencyType.FS, lag=3), PRED) == date(2024, 1, 13)
    assert evaluate(build_edge(DependencyType.FS, lag=3), PRED, successor) is not None
    assert required_date(build_edge(DependencyType.FS, lag=-2), PRED) == date(2024, 1, 8)
    assert evaluate(build_edge(DependencyType.FS, lag=-2), PRED, TaskDates(date(2024, 1, 8), None)) is None


def test_unset_dates_are_vacuously_satisfied() -> None:
    edge = build_edge(DependencyType.FS)

    assert evaluate(edge, TaskDates(start=date(2024, 1, 1)), TaskDates(date(2023, 1, 1), None)) is None
    assert evaluate(edge, PRED, TaskDates(end=date(2023, 1, 1))) is None
    assert required_date(edge, TaskDates()) is None
    assert suggested_dates(edge, TaskDates()) == {}


def test_suggested_fix_preserves_duration() -> None:
    successor = TaskDates(date(2024, 1, 8), date(2024, 1, 12))
    violation = evaluate(build_edge(DependencyType.FS), PRED, successor)

    fix = violation.suggested_fix
    assert fix.shift_days == 2
    assert fix.new_start == date(2024, 1, 10)
    assert fix.new_end == date(2024, 1, 14)
    assert violation.to_dict()["required_start_date"] == "2024-01-10"


def test_finish_side_violation_uses_deadline_key() -> None:
    successor = TaskDates(date(2024, 1, 2), date(2024, 1, 9))
    violation = evaluate(build_edge(DependencyType.FF, lag=1), PRED, successor)

    payload = violation.to_dict()
    assert payload["required_deadline"] == "2024-01-11"
    assert "required_start_date" not in payload
    assert "1 day(s) lag" in violation.message


def test_suggested_dates_key_depends_on_successor_boundary() -> None:
    assert suggested_dates(build_edge(DependencyType.SS, lag=1), PRED) == {"earliest_start": date(2024, 1, 2)}
    assert suggested_dates(build_edge(DependencyType.FF), PRED) == {"earliest_end": date(2024, 1, 10)}


def test_fs_lag_two_boundary_days() -> None:
    edge = build_edge(DependencyType.FS, lag=2)

    assert evaluate(edge, PRED, TaskDates(date(2024, 1, 12), None)) is None
    violation = evaluate(edge, PRED, TaskDates(date(2024, 1, 11), None))
    assert violation is not None
    assert violation.required_date == date(2024, 1, 12)
