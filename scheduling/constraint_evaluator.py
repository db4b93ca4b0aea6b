"""Evaluate the date inequality implied by a single dependency edge.

Every dependency type reduces to one lower bound on a successor boundary::

    FS  successor.start >= predecessor.end   + lag
    SS  successor.start >= predecessor.start + lag
    FF  successor.end   >= predecessor.end   + lag
    SF  successor.end   >= predecessor.start + lag

Lag is plain calendar days. A constraint against an unset date is satisfied.
"""

from __future__ import annotations

from datetime import date, timedelta

from scheduling.types import Boundary, Dependency, ShiftSuggestion, TaskDates, Violation


def required_date(edge: Dependency, predecessor: TaskDates) -> date | None:
    """Earliest allowed value of the successor boundary, or None if unknown."""
    anchor = predecessor.boundary(edge.type.predecessor_boundary)
    if anchor is None:
        return None
    return anchor + timedelta(days=edge.lag)


def evaluate(edge: Dependency, predecessor: TaskDates, successor: TaskDates) -> Violation | None:
    """Return None when satisfied, else the violation with its minimal fix."""
    required = required_date(edge, predecessor)
    actual = successor.boundary(edge.type.successor_boundary)
    if required is None or actual is None or actual >= required:
        return None

    shift = (required - actual).days
    moved = successor.shifted(shift)
    return Violation(
        edge=edge,
        boundary=edge.type.successor_boundary,
        required_date=required,
        actual_date=actual,
        suggested_fix=ShiftSuggestion(
            task_id=edge.successor,
            shift_days=shift,
            new_start=moved.start,
            new_end=moved.end,
        ),
    )


def suggested_dates(edge: Dependency, predecessor: TaskDates) -> dict[str, date]:
    """Earliest start or finish the edge would impose, keyed like the API payload."""
    required = required_date(edge, predecessor)
    if required is None:
        return {}
    key = "earliest_start" if edge.type.successor_boundary is Boundary.START else "earliest_end"
    return {key: required}
