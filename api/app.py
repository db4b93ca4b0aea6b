"""FastAPI application exposing the dependency constraint engine."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from api.models import (
    AddDependencyRequest,
    AutoAdjustRequest,
    ProjectCreateRequest,
    TaskCreateRequest,
    TaskUpdateRequest,
    UpdateDependencyRequest,
    ValidateDependencyRequest,
)
from core.orchestrator import Orchestrator, RuntimeBundle
from scheduling.engine import DependencyEngine
from scheduling.errors import DependencyNotFound, SchedulingError, TaskNotFound
from storage.task_store import TaskStore

logger = logging.getLogger("taskline.api")

router = APIRouter(prefix="/api")


def _bundle(request: Request) -> RuntimeBundle:
    return request.app.state.bundle


def _engine(request: Request) -> DependencyEngine:
    return _bundle(request).engine


def _tasks(request: Request) -> TaskStore:
    return _bundle(request).task_store


# === Projects and tasks (reference task store) ===


@router.post("/projects", status_code=status.HTTP_201_CREATED)
def create_project(payload: ProjectCreateRequest, request: Request) -> Any:
    return _tasks(request).create_project(
        name=payload.name,
        start=payload.start_date,
        end=payload.end_date,
        project_id=payload.id,
    )


@router.post("/projects/{project_id}/tasks", status_code=status.HTTP_201_CREATED)
def create_task(project_id: str, payload: TaskCreateRequest, request: Request) -> Any:
    store = _tasks(request)
    if store.get_project(project_id) is None:
        raise HTTPException(status_code=404, detail=f"Project not found: {project_id}")
    return store.create_task(
        title=payload.title,
        project_id=project_id,
        start=payload.start_date,
        end=payload.deadline,
        task_id=payload.id,
    )


@router.get("/projects/{project_id}/gantt")
def project_gantt(project_id: str, request: Request) -> Any:
    return _engine(request).gantt(project_id)


@router.get("/tasks/{task_id}")
def get_task(task_id: str, request: Request) -> Any:
    return _tasks(request).get_task(task_id)


@router.patch("/tasks/{task_id}")
def update_task(task_id: str, payload: TaskUpdateRequest, request: Request) -> Any:
    current = _tasks(request).get_dates(task_id)
    fields = payload.model_fields_set
    start = payload.start_date if "start_date" in fields else current.start
    end = payload.deadline if "deadline" in fields else current.end
    result = _engine(request).update_task_dates(task_id, start, end, force=payload.force_update)
    return result.to_dict()


@router.delete("/tasks/{task_id}")
def delete_task(task_id: str, request: Request) -> Any:
    _tasks(request).delete_task(task_id)
    return {"success": True, "message": "Task and all of its dependencies were deleted"}


@router.get("/tasks/{task_id}/violations")
def task_violations(task_id: str, request: Request) -> Any:
    return _engine(request).check_task(task_id).to_dict()


# === Dependencies ===


@router.get("/tasks/{task_id}/dependencies")
def get_dependencies(task_id: str, request: Request) -> Any:
    return _engine(request).get_dependencies(task_id)


@router.post("/tasks/{task_id}/dependencies/validate")
def validate_dependency(task_id: str, payload: ValidateDependencyRequest, request: Request) -> Any:
    return _engine(request).validate_dependency(
        task_id,
        payload.depends_on_task_id,
        dependency_type=payload.dependency_type,
        lag_days=payload.lag_days,
    )


@router.post("/tasks/{task_id}/dependencies", status_code=status.HTTP_201_CREATED)
def add_dependency(task_id: str, payload: AddDependencyRequest, request: Request) -> Any:
    result = _engine(request).add_dependency(
        task_id,
        payload.depends_on_task_id,
        dependency_type=payload.dependency_type,
        lag_days=payload.lag_days,
        mandatory=payload.is_mandatory,
        notes=payload.notes,
        force=payload.force,
        strict=payload.strict_validation,
    )
    return result.to_dict()


@router.patch("/tasks/{task_id}/dependencies/{dependency_id}")
def update_dependency(
    task_id: str, dependency_id: str, payload: UpdateDependencyRequest, request: Request
) -> Any:
    engine = _engine(request)
    edge = engine.graph.get(dependency_id)
    if edge is None or task_id not in (edge.successor, edge.predecessor):
        raise DependencyNotFound(dependency_id)
    result = engine.update_dependency(
        dependency_id,
        dependency_type=payload.dependency_type,
        lag_days=payload.lag_days,
        mandatory=payload.is_mandatory,
        notes=payload.notes,
        force=payload.force,
    )
    return result.to_dict()


@router.delete("/tasks/{task_id}/dependencies/{dependency_id}")
def remove_dependency(task_id: str, dependency_id: str, request: Request) -> Any:
    removed = _engine(request).remove_dependency(dependency_id, task_id=task_id)
    return {"success": True, "removed": removed}


@router.post("/tasks/{task_id}/auto-adjust-dates")
def auto_adjust(task_id: str, request: Request, payload: AutoAdjustRequest | None = None) -> Any:
    payload = payload or AutoAdjustRequest()
    result = _engine(request).auto_adjust(
        task_id,
        preserve_duration=payload.preserve_duration,
        include_advisory=payload.include_advisory,
        dry_run=payload.dry_run,
    )
    return result.to_dict()


# === App factory ===


async def _scheduling_error_handler(request: Request, exc: SchedulingError) -> JSONResponse:
    code = status.HTTP_400_BAD_REQUEST
    if isinstance(exc, (TaskNotFound, DependencyNotFound)):
        code = status.HTTP_404_NOT_FOUND
    logger.info("%s %s -> %d %s", request.method, request.url.path, code, exc.code)
    return JSONResponse(status_code=code, content=jsonable_encoder(exc.to_dict()))


def create_app(bundle: RuntimeBundle | None = None) -> FastAPI:
    """Build the ASGI app; without a bundle the default runtime is wired."""
    app = FastAPI(
        title="Taskline",
        description="Task dependency constraint engine.",
        version="0.1.0",
    )
    app.state.bundle = bundle or Orchestrator().build()
    app.add_exception_handler(SchedulingError, _scheduling_error_handler)
    app.include_router(router)

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {"status": "ok", "dependencies": len(app.state.bundle.engine.graph)}

    logger.info("Taskline API initialised")
    return app
