"""CLI entrypoint for taskline."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

import typer

from scheduling.types import DependencyType
from ui.cli import commands

app = typer.Typer(help="Task dependency constraint engine")
project_app = typer.Typer(help="Project commands")
task_app = typer.Typer(help="Task commands")
deps_app = typer.Typer(help="Dependency commands")
config_app = typer.Typer(help="Configuration commands")

DATE_FORMATS = ["%Y-%m-%d"]


@project_app.command("add")
def project_add_cmd(
    name: str = typer.Argument(..., help="Project name"),
    start: Optional[datetime] = typer.Option(None, formats=DATE_FORMATS, help="Project start date"),
    end: Optional[datetime] = typer.Option(None, formats=DATE_FORMATS, help="Project end date"),
) -> None:
    """Create a project."""
    commands.project_add(name=name, start=start, end=end)


@task_app.command("add")
def task_add_cmd(
    title: str = typer.Argument(..., help="Task title"),
    project: Optional[str] = typer.Option(None, "--project", help="Project id"),
    start: Optional[datetime] = typer.Option(None, formats=DATE_FORMATS),
    end: Optional[datetime] = typer.Option(None, formats=DATE_FORMATS, help="Deadline"),
) -> None:
    """Create a task."""
    commands.task_add(title=title, project=project, start=start, end=end)


@task_app.command("dates")
def task_dates_cmd(
    task_id: str = typer.Argument(...),
    start: Optional[datetime] = typer.Option(None, formats=DATE_FORMATS),
    end: Optional[datetime] = typer.Option(None, formats=DATE_FORMATS, help="Deadline"),
    force: bool = typer.Option(False, "--force", help="Apply even if a mandatory dependency breaks"),
) -> None:
    """Change a task's dates."""
    commands.task_dates(task_id=task_id, start=start, end=end, force=force)


@task_app.command("check")
def task_check_cmd(task_id: str) -> None:
    """Show the violation report of a task."""
    commands.task_check(task_id=task_id)


@task_app.command("delete")
def task_delete_cmd(task_id: str) -> None:
    """Delete a task and its dependencies."""
    commands.task_delete(task_id=task_id)


@deps_app.command("add")
def deps_add_cmd(
    task_id: str = typer.Argument(..., help="Successor task"),
    depends_on: str = typer.Argument(..., help="Predecessor task"),
    dependency_type: Optional[DependencyType] = typer.Option(
        None, "--type", case_sensitive=False, help="Defaults to scheduling.default_dependency_type"
    ),
    lag: int = typer.Option(0, "--lag", help="Lag (positive) or lead (negative) in days"),
    mandatory: Optional[bool] = typer.Option(
        None, "--mandatory/--advisory", help="Block or only warn on violation"
    ),
    notes: Optional[str] = typer.Option(None),
    force: bool = typer.Option(False, "--force"),
) -> None:
    """Make TASK_ID depend on DEPENDS_ON."""
    commands.deps_add(
        task_id=task_id,
        depends_on=depends_on,
        dependency_type=dependency_type,
        lag=lag,
        mandatory=mandatory,
        notes=notes,
        force=force,
    )


@deps_app.command("validate")
def deps_validate_cmd(
    task_id: str,
    depends_on: str,
    dependency_type: DependencyType = typer.Option(DependencyType.FS, "--type", case_sensitive=False),
) -> None:
    """Check whether a dependency could be added."""
    commands.deps_validate(task_id=task_id, depends_on=depends_on, dependency_type=dependency_type)


@deps_app.command("list")
def deps_list_cmd(task_id: str) -> None:
    """List dependencies and dependents of a task."""
    commands.deps_list(task_id=task_id)


@deps_app.command("remove")
def deps_remove_cmd(dependency_id: str) -> None:
    """Remove a dependency by id."""
    commands.deps_remove(dependency_id=dependency_id)


@app.command("auto-adjust")
def auto_adjust_cmd(
    task_id: str,
    no_preserve_duration: bool = typer.Option(False, "--no-preserve-duration"),
    include_advisory: bool = typer.Option(False, "--include-advisory"),
    dry_run: bool = typer.Option(False, "--dry-run"),
) -> None:
    """Shift every task downstream of TASK_ID so its mandatory dependencies hold."""
    commands.auto_adjust(
        task_id=task_id,
        preserve_duration=not no_preserve_duration,
        include_advisory=include_advisory,
        dry_run=dry_run,
    )


@app.command("serve")
def serve_cmd(
    host: Optional[str] = typer.Option(None),
    port: Optional[int] = typer.Option(None),
) -> None:
    """Run the HTTP API."""
    commands.serve(host=host, port=port)


@config_app.command("show")
def config_show_cmd() -> None:
    """Show effective configuration."""
    commands.config_show()


app.add_typer(project_app, name="project")
app.add_typer(task_app, name="task")
app.add_typer(deps_app, name="deps")
app.add_typer(config_app, name="config")


def main() -> None:
    """Console script entrypoint."""
    app()


if __name__ == "__main__":
    main()
