"""Top-level application orchestrator."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from core.event_bus import EventBus
from core.policy_runtime import (
    configure_logging,
    ensure_runtime_dirs,
    load_effective_config,
    resolve_root,
)
from governance.audit_logger import AuditLogger
from scheduling.engine import DependencyEngine
from storage.dependency_repository import DependencyRepository
from storage.sql_store import SQLStore
from storage.task_store import TaskStore


@dataclass
class RuntimeBundle:
    """Holds initialized runtime components."""

    config: dict[str, Any]
    root: Path
    event_bus: EventBus
    task_store: TaskStore
    repository: DependencyRepository
    audit: AuditLogger
    engine: DependencyEngine


class Orchestrator:
    """Creates and wires runtime components for the CLI and the HTTP API."""

    def __init__(self, root: Path | None = None, overrides: dict[str, Any] | None = None) -> None:
        self.root = resolve_root(root)
        self.overrides = overrides or {}

    def build(self) -> RuntimeBundle:
        config = load_effective_config(self.root)
        for section, values in self.overrides.items():
            config.setdefault(section, {}).update(values)
        configure_logging(config.get("logging", {}).get("level", "INFO"))
        paths = ensure_runtime_dirs(self.root, config)

        sql_store = SQLStore(paths["db_path"])
        sql_store.create_all()

        event_bus = EventBus()
        task_store = TaskStore(sql_store=sql_store, event_bus=event_bus)
        repository = DependencyRepository(sql_store=sql_store)
        audit = AuditLogger(paths["audit_log_path"])
        engine = DependencyEngine(
            task_store=task_store,
            repository=repository,
            audit_logger=audit,
            event_bus=event_bus,
            strict_validation=bool(config.get("scheduling", {}).get("strict_validation", True)),
        )

        return RuntimeBundle(
            config=config,
            root=self.root,
            event_bus=event_bus,
            task_store=task_store,
            repository=repository,
            audit=audit,
            engine=engine,
        )
