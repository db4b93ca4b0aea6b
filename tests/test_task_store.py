"""Task store and dependency repository persistence tests."""

from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest
from sqlalchemy.exc import IntegrityError

from core.event_bus import TASK_DATES_CHANGED, TASK_DELETED, EventBus
from scheduling.errors import InvalidDateRange, TaskNotFound
from scheduling.types import Dependency, DependencyType, TaskDates
from storage.dependency_repository import DependencyRepository
from storage.sql_store import SQLStore
from storage.task_store import TaskStore


def build_store(tmp_path: Path) -> TaskStore:
    sql_store = SQLStore(db_path=tmp_path / "taskline.db")
    sql_store.create_all()
    return TaskStore(sql_store=sql_store, event_bus=EventBus())


def test_task_crud_and_dates(tmp_path: Path) -> None:
    store = build_store(tmp_path)
    project = store.create_project("Launch", start=date(2024, 1, 1), end=date(2024, 3, 31))
    task = store.create_task("Design", project_id=project["id"], start=date(2024, 1, 2), end=date(2024, 1, 9))

    assert store.exists(task["id"])
    assert store.get_dates(task["id"]) == TaskDates(date(2024, 1, 2), date(2024, 1, 9))
    assert store.project_of(task["id"]) == project["id"]
    assert store.window_of(task["id"]).end == date(2024, 3, 31)
    assert [t["id"] for t in store.list_tasks(project["id"])] == [task["id"]]

    store.set_dates(task["id"], date(2024, 1, 5), None)
    assert store.get_task(task["id"])["start_date"] == date(2024, 1, 5)
    assert store.get_task(task["id"])["deadline"] is None


def test_invalid_ranges_and_missing_tasks(tmp_path: Path) -> None:
    store = build_store(tmp_path)

    with pytest.raises(InvalidDateRange):
        store.create_task("Backwards", start=date(2024, 2, 1), end=date(2024, 1, 1))
    with pytest.raises(InvalidDateRange):
        store.create_project("Backwards", start=date(2024, 2, 1), end=date(2024, 1, 1))
    with pytest.raises(TaskNotFound):
        store.get_dates("missing")
    assert store.window_of(store.create_task("Loose")["id"]) is None
    with pytest.raises(IntegrityError):
        store.create_task("Orphan", project_id="no-such-project")


def test_set_many_dates_is_all_or_nothing(tmp_path: Path) -> None:
    store = build_store(tmp_path)
    task = store.create_task("One", start=date(2024, 1, 1), end=date(2024, 1, 2))

    with pytest.raises(TaskNotFound):
        store.set_many_dates(
            {
                task["id"]: TaskDates(date(2024, 2, 1), date(2024, 2, 2)),
                "missing": TaskDates(date(2024, 2, 1), date(2024, 2, 2)),
            }
        )
    assert store.get_dates(task["id"]) == TaskDates(date(2024, 1, 1), date(2024, 1, 2))


def test_store_emits_events(tmp_path: Path) -> None:
    store = build_store(tmp_path)
    seen: list[tuple[str, dict]] = []
    store.event_bus.subscribe(TASK_DATES_CHANGED, lambda p: seen.append((TASK_DATES_CHANGED, p)))
    store.event_bus.subscribe(TASK_DELETED, lambda p: seen.append((TASK_DELETED, p)))
    task = store.create_task("Temp")

    store.set_dates(task["id"], date(2024, 1, 1), date(2024, 1, 3))
    store.delete_task(task["id"])

    assert seen[0] == (TASK_DATES_CHANGED, {"task_id": task["id"], "start_date": "2024-01-01", "deadline": "2024-01-03"})
    assert seen[1] == (TASK_DELETED, {"task_id": task["id"], "project_id": None})
    assert not store.exists(task["id"])


def test_dependency_repository_round_trip(tmp_path: Path) -> None:
    sql_store = SQLStore(db_path=tmp_path / "taskline.db")
    repository = DependencyRepository(sql_store=sql_store)
    edge = Dependency(id="e1", predecessor="a", successor="b", type=DependencyType.SF, lag=-2, mandatory=False)

    repository.insert(edge)
    repository.update(edge.with_changes(lag=4, notes="vendor slip"))
    loaded = repository.load_all()

    assert len(loaded) == 1
    assert loaded[0].type is DependencyType.SF
    assert loaded[0].lag == 4
    assert loaded[0].mandatory is False
    assert loaded[0].notes == "vendor slip"

    assert repository.delete_for_task("b") == 1
    assert repository.load_all() == []
    assert repository.delete("e1") is False
