"""Typer command handlers."""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import date, datetime
from pathlib import Path
from typing import Any

import typer
import uvicorn

from core.orchestrator import Orchestrator, RuntimeBundle
from scheduling.errors import SchedulingError


def _runtime(root: Path | None = None) -> RuntimeBundle:
    bundle = Orchestrator(root=root).build()
    return bundle


def _day(value: datetime | None) -> date | None:
    return value.date() if value is not None else None


def _emit(payload: object) -> None:
    typer.echo(json.dumps(_json_safe(payload), indent=2))


def _run(action: Callable[[], Any]) -> Any:
    """Run an engine call, turning a scheduling error into exit code 1."""
    try:
        return action()
    except SchedulingError as exc:
        typer.echo(json.dumps(_json_safe(exc.to_dict()), indent=2), err=True)
        raise typer.Exit(code=1) from exc


def project_add(name: str, start: datetime | None, end: datetime | None) -> None:
    """Create a project."""
    bundle = _runtime()
    project = _run(lambda: bundle.task_store.create_project(name=name, start=_day(start), end=_day(end)))
    typer.echo(f"Added project {project['id']}: {name}")


def task_add(title: str, project: str | None, start: datetime | None, end: datetime | None) -> None:
    """Create a task."""
    bundle = _runtime()
    if project is not None and bundle.task_store.get_project(project) is None:
        typer.echo(f"Project not found: {project}", err=True)
        raise typer.Exit(code=1)
    task = _run(
        lambda: bundle.task_store.create_task(
            title=title, project_id=project, start=_day(start), end=_day(end)
        )
    )
    typer.echo(f"Added task {task['id']}: {title}")


def task_dates(task_id: str, start: datetime | None, end: datetime | None, force: bool) -> None:
    """Change a task's dates; an option left out keeps the stored value."""
    bundle = _runtime()
    current = _run(lambda: bundle.task_store.get_dates(task_id))
    new_start = _day(start) if start is not None else current.start
    new_end = _day(end) if end is not None else current.end
    result = _run(lambda: bundle.engine.update_task_dates(task_id, new_start, new_end, force=force))
    _emit(result.to_dict())


def task_check(task_id: str) -> None:
    """Show the violation report of a task."""
    bundle = _runtime()
    report = _run(lambda: bundle.engine.check_task(task_id))
    _emit(report.to_dict())


def task_delete(task_id: str) -> None:
    """Delete a task; its dependencies go with it."""
    bundle = _runtime()
    _run(lambda: bundle.task_store.delete_task(task_id))
    typer.echo(f"Deleted task {task_id}")


def deps_add(
    task_id: str,
    depends_on: str,
    dependency_type: str | None,
    lag: int,
    mandatory: bool | None,
    notes: str | None,
    force: bool,
) -> None:
    """Create a dependency; unset type and mandatory flag come from config."""
    bundle = _runtime()
    defaults = bundle.config.get("scheduling", {})
    if dependency_type is None:
        dependency_type = str(defaults.get("default_dependency_type", "FS")).upper()
    if mandatory is None:
        mandatory = bool(defaults.get("default_mandatory", True))
    result = _run(
        lambda: bundle.engine.add_dependency(
            task_id,
            depends_on,
            dependency_type=dependency_type,
            lag_days=lag,
            mandatory=mandatory,
            notes=notes,
            force=force,
        )
    )
    _emit(result.to_dict())


def deps_validate(task_id: str, depends_on: str, dependency_type: str) -> None:
    """Check a dependency without creating it."""
    bundle = _runtime()
    _emit(_run(lambda: bundle.engine.validate_dependency(task_id, depends_on, dependency_type)))


def deps_list(task_id: str) -> None:
    """List dependencies and dependents."""
    bundle = _runtime()
    _emit(_run(lambda: bundle.engine.get_dependencies(task_id)))


def deps_remove(dependency_id: str) -> None:
    """Remove a dependency."""
    bundle = _runtime()
    if bundle.engine.remove_dependency(dependency_id):
        typer.echo(f"Removed dependency {dependency_id}")
    else:
        typer.echo(f"Dependency {dependency_id} was already gone")


def auto_adjust(task_id: str, preserve_duration: bool, include_advisory: bool, dry_run: bool) -> None:
    """Shift downstream tasks to satisfy their dependencies."""
    bundle = _runtime()
    result = _run(
        lambda: bundle.engine.auto_adjust(
            task_id,
            preserve_duration=preserve_duration,
            include_advisory=include_advisory,
            dry_run=dry_run,
        )
    )
    _emit(result.to_dict())
    if result.unresolvable:
        typer.echo(f"{len(result.unresolvable)} task(s) could not be adjusted", err=True)


def config_show() -> None:
    """Show effective runtime config."""
    bundle = _runtime()
    _emit(bundle.config)


def serve(host: str | None, port: int | None) -> None:
    """Serve the HTTP API with uvicorn."""
    bundle = _runtime()
    api_cfg = bundle.config.get("api", {})
    uvicorn.run(
        "api.app:create_app",
        factory=True,
        host=host or api_cfg.get("host", "127.0.0.1"),
        port=int(port or api_cfg.get("port", 8000)),
    )


def _json_safe(payload: object) -> object:
    """Convert dates and datetimes to strings for JSON output."""
    if isinstance(payload, dict):
        return {k: _json_safe(v) for k, v in payload.items()}
    if isinstance(payload, list):
        return [_json_safe(v) for v in payload]
    if hasattr(payload, "isoformat"):
        return payload.isoformat()
    return payload
