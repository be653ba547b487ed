from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from .common import ProjectStatus, ProjectVisibility, SortDirection
from .users import UserSummary


def validate_date_range(start: Optional[date], end: Optional[date]) -> tuple[bool, str]:
    """Check that a project's end date is not before its start date.

    Returns (is_valid, error_message).
    """
    if start is None or end is None:
        return True, ""
    if end < start:
        return False, "The end date must be after or equal to the start date."
    return True, ""


class ProjectBase(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: ProjectStatus = ProjectStatus.PLANNING
    visibility: ProjectVisibility = ProjectVisibility.PUBLIC
    manager_id: Optional[UUID] = None

    @model_validator(mode="after")
    def _check_dates(self):
        ok, msg = validate_date_range(self.start_date, self.end_date)
        if not ok:
            raise ValueError(msg)
        return self


class ProjectCreate(ProjectBase):
    pass


class ProjectUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[ProjectStatus] = None
    visibility: Optional[ProjectVisibility] = None
    manager_id: Optional[UUID] = None

    @model_validator(mode="after")
    def _check_dates(self):
        ok, msg = validate_date_range(self.start_date, self.end_date)
        if not ok:
            raise ValueError(msg)
        return self


class ProjectFilters(BaseModel):
    status: Optional[ProjectStatus] = None
    visibility: Optional[ProjectVisibility] = None
    manager_id: Optional[UUID] = None
    search: Optional[str] = None
    include_archived: bool = False
    sort_by: str = "created_at"
    sort_direction: SortDirection = SortDirection.DESC


class ProjectRead(BaseModel):
    id: UUID
    organization_id: UUID
    title: str
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: ProjectStatus
    visibility: ProjectVisibility
    manager_id: Optional[UUID] = None
    created_by: Optional[UUID] = None
    manager: Optional[UserSummary] = None
    members: List[UserSummary] = Field(default_factory=list)
    tasks_count: int = 0
    completed_tasks_count: int = 0
    progress_percentage: float = 0
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None


class ProjectMemberAdd(BaseModel):
    user_id: UUID


def progress_percentage(total: int, completed: int) -> float:
    if total == 0:
        return 0
    return round(completed / total * 100, 2)
