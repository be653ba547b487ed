"""Task-related Pydantic schemas shared by the server and API clients."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .common import SortDirection, TaskPriority, TaskStatus
from .users import UserSummary


# ---------------------------------------------------------------------------
# Task CRUD
# ---------------------------------------------------------------------------

class TaskCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=5000)
    assignee_id: Optional[UUID] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.TODO
    due_date: Optional[datetime] = None
    due_date_timezone: str = Field(default="UTC", max_length=50)
    position: Optional[int] = Field(default=None, ge=0)


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=5000)
    assignee_id: Optional[UUID] = None
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None
    due_date: Optional[datetime] = None
    due_date_timezone: Optional[str] = Field(default=None, max_length=50)
    position: Optional[int] = Field(default=None, ge=0)


class TaskFilters(BaseModel):
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    assignee_id: Optional[UUID] = None
    search: Optional[str] = None
    due_date_from: Optional[datetime] = None
    due_date_to: Optional[datetime] = None
    include_archived: bool = False
    sort_by: str = "position"
    sort_direction: SortDirection = SortDirection.ASC


class MyTaskFilters(BaseModel):
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    project_id: Optional[UUID] = None
    sort_by: str = "due_date"
    sort_direction: SortDirection = SortDirection.ASC


class TaskSummary(BaseModel):
    """Compact task shape used inside dependency lists."""
    id: UUID
    project_id: UUID
    title: str
    status: TaskStatus
    priority: TaskPriority
    is_done: bool = False


class TaskRead(BaseModel):
    id: UUID
    project_id: UUID
    title: str
    description: Optional[str] = None
    priority: TaskPriority
    status: TaskStatus
    due_date: Optional[datetime] = None
    due_date_timezone: str = "UTC"
    position: int = 0
    is_overdue: bool = False
    is_done: bool = False
    is_blocked: bool = False
    assignee_id: Optional[UUID] = None
    created_by: Optional[UUID] = None
    updated_by: Optional[UUID] = None
    assignee: Optional[UserSummary] = None
    dependencies: Optional[List[TaskSummary]] = None
    has_uncompleted_dependencies: Optional[bool] = None
    comments_count: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

class DependencyAdd(BaseModel):
    """Request body for POST /tasks/{taskId}/dependencies."""
    depends_on_task_id: UUID


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------

class CommentCreate(BaseModel):
    content: str = Field(min_length=1, max_length=10000)
    mentions: Optional[List[UUID]] = None


class CommentUpdate(CommentCreate):
    pass


class CommentRead(BaseModel):
    id: UUID
    task_id: UUID
    user_id: UUID
    content: str
    mentions: List[UUID] = Field(default_factory=list)
    user: Optional[UserSummary] = None
    created_at: datetime
    updated_at: datetime
