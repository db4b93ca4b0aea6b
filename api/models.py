"""Request models for the Taskline HTTP API."""

from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field

from scheduling.types import DependencyType


class ProjectCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    id: Optional[str] = Field(None, description="Client supplied id; generated when omitted.")


class TaskCreateRequest(BaseModel):
    title: str = Field(..., min_length=1)
    start_date: Optional[date] = None
    deadline: Optional[date] = None
    id: Optional[str] = None


class TaskUpdateRequest(BaseModel):
    """PATCH body. Only fields present in the request are changed."""

    start_date: Optional[date] = None
    deadline: Optional[date] = None
    force_update: bool = False


class ValidateDependencyRequest(BaseModel):
    depends_on_task_id: str
    dependency_type: DependencyType = DependencyType.FS
    lag_days: int = 0


class AddDependencyRequest(BaseModel):
    depends_on_task_id: str
    dependency_type: DependencyType = DependencyType.FS
    lag_days: int = Field(0, description="Positive = delay (lag), negative = overlap (lead).")
    is_mandatory: bool = True
    notes: Optional[str] = None
    strict_validation: Optional[bool] = Field(
        None, description="Overrides the server setting for this request."
    )
    force: bool = False


class UpdateDependencyRequest(BaseModel):
    dependency_type: Optional[DependencyType] = None
    lag_days: Optional[int] = None
    is_mandatory: Optional[bool] = None
    notes: Optional[str] = None
    force: bool = False


class AutoAdjustRequest(BaseModel):
    preserve_duration: bool = True
    include_advisory: bool = False
    dry_run: bool = False
