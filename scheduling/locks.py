"""Per-project write serialization."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class ProjectLocks:
    """Hands out one re-entrant lock per project id.

    Several projects are locked in sorted order so two writers touching the
    same pair of projects cannot deadlock.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.RLock] = {}

    def _lock_for(self, project_id: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(project_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[project_id] = lock
            return lock

    @contextmanager
    def hold(self, *project_ids: str | None) -> Iterator[None]:
        keys = sorted({pid or "" for pid in project_ids})
        locks = [self._lock_for(key) for key in keys]
        for lock in locks:
            lock.acquire()
        try:
            yield
        finally:
            for lock in reversed(locks):
                lock.release()
