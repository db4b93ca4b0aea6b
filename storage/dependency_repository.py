"""Persistence for dependency edges."""

from __future__ import annotations

from sqlalchemy import or_

from scheduling.types import Dependency, DependencyType
from storage.schemas import DependencyRecord
from storage.sql_store import SQLStore


class DependencyRepository:
    """Maps graph edges to ``task_dependencies`` rows."""

    def __init__(self, sql_store: SQLStore) -> None:
        self.sql_store = sql_store
        self.sql_store.create_all()

    def load_all(self) -> list[Dependency]:
        """All edges in creation order, ready to rebuild the graph."""
        with self.sql_store.session() as sess:
            rows = sess.query(DependencyRecord).order_by(DependencyRecord.created_at, DependencyRecord.id).all()
            return [self._to_edge(row) for row in rows]

    def insert(self, edge: Dependency) -> None:
        with self.sql_store.session() as sess:
            sess.add(
                DependencyRecord(
                    id=edge.id,
                    predecessor_id=edge.predecessor,
                    successor_id=edge.successor,
                    dependency_type=edge.type.value,
                    lag_days=edge.lag,
                    is_mandatory=edge.mandatory,
                    notes=edge.notes or "",
                    created_at=edge.created_at,
                )
            )

    def update(self, edge: Dependency) -> None:
        with self.sql_store.session() as sess:
            row = sess.get(DependencyRecord, edge.id)
            if row is None:
                return
            row.dependency_type = edge.type.value
            row.lag_days = edge.lag
            row.is_mandatory = edge.mandatory
            row.notes = edge.notes or ""

    def delete(self, edge_id: str) -> bool:
        with self.sql_store.session() as sess:
            row = sess.get(DependencyRecord, edge_id)
            if row is None:
                return False
            sess.delete(row)
            return True

    def delete_for_task(self, task_id: str) -> int:
        """Remove every edge touching ``task_id``; returns the row count."""
        with self.sql_store.session() as sess:
            return (
                sess.query(DependencyRecord)
                .filter(
                    or_(
                        DependencyRecord.predecessor_id == task_id,
                        DependencyRecord.successor_id == task_id,
                    )
                )
                .delete(synchronize_session=False)
            )

    @staticmethod
    def _to_edge(row: DependencyRecord) -> Dependency:
        return Dependency(
            id=row.id,
            predecessor=row.predecessor_id,
            successor=row.successor_id,
            type=DependencyType(row.dependency_type),
            lag=row.lag_days,
            mandatory=row.is_mandatory,
            notes=row.notes or None,
            created_at=row.created_at,
        )
