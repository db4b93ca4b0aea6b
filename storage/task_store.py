"""SQL-backed task store: the authoritative source of task dates."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from datetime import date
from typing import Any

from core.event_bus import TASK_DATES_CHANGED, TASK_DELETED, EventBus
from scheduling.errors import InvalidDateRange, TaskNotFound
from scheduling.types import DateWindow, TaskDates
from storage.schemas import ProjectRecord, TaskRecord
from storage.sql_store import SQLStore

logger = logging.getLogger("taskline.task_store")


class TaskStore:
    """Reads and writes projects and task dates."""

    def __init__(self, sql_store: SQLStore, event_bus: EventBus | None = None) -> None:
        self.sql_store = sql_store
        self.sql_store.create_all()
        self.event_bus = event_bus or EventBus()

    # -- projects ---------------------------------------------------------

    def create_project(
        self,
        name: str,
        start: date | None = None,
        end: date | None = None,
        project_id: str | None = None,
    ) -> dict[str, Any]:
        """Insert a project with an optional date window."""
        if start is not None and end is not None and start > end:
            raise InvalidDateRange("Project start date must not be after its end date")
        record = ProjectRecord(id=project_id or uuid.uuid4().hex, name=name, start_date=start, end_date=end)
        with self.sql_store.session() as sess:
            sess.add(record)
            sess.flush()
            payload = self._project_to_dict(record)
        return payload

    def get_project(self, project_id: str) -> dict[str, Any] | None:
        with self.sql_store.session() as sess:
            row = sess.get(ProjectRecord, project_id)
            return self._project_to_dict(row) if row else None

    # -- tasks ------------------------------------------------------------

    def create_task(
        self,
        title: str,
        project_id: str | None = None,
        start: date | None = None,
        end: date | None = None,
        task_id: str | None = None,
    ) -> dict[str, Any]:
        """Insert a task."""
        if start is not None and end is not None and start > end:
            raise InvalidDateRange("Task start date must not be after its deadline")
        record = TaskRecord(
            id=task_id or uuid.uuid4().hex,
            project_id=project_id,
            title=title,
            start_date=start,
            end_date=end,
        )
        with self.sql_store.session() as sess:
            sess.add(record)
            sess.flush()
            payload = self._task_to_dict(record)
        return payload

    def get_task(self, task_id: str) -> dict[str, Any]:
        with self.sql_store.session() as sess:
            return self._task_to_dict(self._require(sess, task_id))

    def exists(self, task_id: str) -> bool:
        with self.sql_store.session() as sess:
            return sess.get(TaskRecord, task_id) is not None

    def list_tasks(self, project_id: str | None = None) -> list[dict[str, Any]]:
        with self.sql_store.session() as sess:
            query = sess.query(TaskRecord)
            if project_id is not None:
                query = query.filter(TaskRecord.project_id == project_id)
            rows = query.order_by(TaskRecord.created_at, TaskRecord.id).all()
            return [self._task_to_dict(row) for row in rows]

    def delete_task(self, task_id: str) -> None:
        """Delete a task and announce it so dependent edges cascade."""
        with self.sql_store.session() as sess:
            row = self._require(sess, task_id)
            project_id = row.project_id
            sess.delete(row)
        logger.info("Deleted task %s", task_id)
        self.event_bus.emit(TASK_DELETED, {"task_id": task_id, "project_id": project_id})

    # -- dates (the engine's interface) -----------------------------------

    def get_dates(self, task_id: str) -> TaskDates:
        with self.sql_store.session() as sess:
            row = self._require(sess, task_id)
            return TaskDates(start=row.start_date, end=row.end_date)

    def set_dates(self, task_id: str, start: date | None, end: date | None) -> None:
        self.set_many_dates({task_id: TaskDates(start=start, end=end)})

    def set_many_dates(self, moves: Mapping[str, TaskDates]) -> None:
        """Write all dates in one transaction: every row changes or none does."""
        if not moves:
            return
        with self.sql_store.session() as sess:
            for task_id, dates in moves.items():
                row = self._require(sess, task_id)
                row.start_date = dates.start
                row.end_date = dates.end
        for task_id, dates in moves.items():
            self.event_bus.emit(TASK_DATES_CHANGED, {"task_id": task_id, **dates.to_dict()})

    def project_of(self, task_id: str) -> str | None:
        with self.sql_store.session() as sess:
            return self._require(sess, task_id).project_id

    def window_of(self, task_id: str) -> DateWindow | None:
        """Date range of the task's project, if the project has one."""
        with self.sql_store.session() as sess:
            row = self._require(sess, task_id)
            if row.project_id is None:
                return None
            project = sess.get(ProjectRecord, row.project_id)
            if project is None or (project.start_date is None and project.end_date is None):
                return None
            return DateWindow(start=project.start_date, end=project.end_date)

    # -- helpers ----------------------------------------------------------

    @staticmethod
    def _require(sess: Any, task_id: str) -> TaskRecord:
        row = sess.get(TaskRecord, task_id)
        if row is None:
            raise TaskNotFound(task_id)
        return row

    @staticmethod
    def _task_to_dict(row: TaskRecord) -> dict[str, Any]:
        return {
            "id": row.id,
            "project_id": row.project_id,
            "title": row.title,
            "start_date": row.start_date,
            "deadline": row.end_date,
        }

    @staticmethod
    def _project_to_dict(row: ProjectRecord) -> dict[str, Any]:
        return {
            "id": row.id,
            "name": row.name,
            "start_date": row.start_date,
            "end_date": row.end_date,
        }
