"""
Task endpoints: CRUD, archiving, dependencies, comments.

- Managers and admins create, archive and restore tasks
- Any member with access to the project updates tasks and comments
- Dependencies: managers and admins add and remove "depends on" edges;
  an edge that would close a cycle is rejected
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import AuthContext, require_manager, require_member
from app.core.config import get_settings
from app.core.database import get_session
from app.services import comments as comment_service
from app.services import dependencies as dependency_service
from app.services import tasks as task_service
from taskboard_shared.schemas.common import (
    APIResponse,
    SortDirection,
    TaskPriority,
    TaskStatus,
)
from taskboard_shared.schemas.tasks import (
    CommentCreate,
    CommentRead,
    CommentUpdate,
    DependencyAdd,
    MyTaskFilters,
    TaskCreate,
    TaskFilters,
    TaskRead,
    TaskUpdate,
)

settings = get_settings()

# Mounted under /projects/{project_id}/tasks
router = APIRouter()
# Mounted at the API root
my_tasks_router = APIRouter()


# ---------------------------------------------------------------------------
# My tasks
# ---------------------------------------------------------------------------


@my_tasks_router.get("/my-tasks", response_model=APIResponse[List[TaskRead]])
async def my_tasks_endpoint(
    status_filter: Optional[TaskStatus] = Query(None, alias="status"),
    priority: Optional[TaskPriority] = None,
    project_id: Optional[uuid.UUID] = None,
    sort_by: str = "due_date",
    sort_direction: SortDirection = SortDirection.ASC,
    page: int = Query(1, ge=1),
    per_page: int = Query(settings.default_per_page, ge=1, le=settings.max_per_page),
    auth: AuthContext = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Tasks assigned to the caller in their organization."""
    filters = MyTaskFilters(
        status=status_filter,
        priority=priority,
        project_id=project_id,
        sort_by=sort_by,
        sort_direction=sort_direction,
    )
    tasks, meta = await task_service.my_tasks(session, auth, filters, page, per_page)
    return APIResponse(data=tasks, meta=meta, message="Tasks retrieved successfully")


# ---------------------------------------------------------------------------
# Task CRUD
# ---------------------------------------------------------------------------


@router.get("", response_model=APIResponse[List[TaskRead]])
async def list_tasks_endpoint(
    project_id: uuid.UUID,
    status_filter: Optional[TaskStatus] = Query(None, alias="status"),
    priority: Optional[TaskPriority] = None,
    assignee_id: Optional[uuid.UUID] = None,
    search: Optional[str] = None,
    due_date_from: Optional[datetime] = None,
    due_date_to: Optional[datetime] = None,
    include_archived: bool = False,
    sort_by: str = "position",
    sort_direction: SortDirection = SortDirection.ASC,
    page: int = Query(1, ge=1),
    per_page: int = Query(settings.default_per_page, ge=1, le=settings.max_per_page),
    auth: AuthContext = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """List a project's tasks with optional filters by status, priority, assignee, due date."""
    filters = TaskFilters(
        status=status_filter,
        priority=priority,
        assignee_id=assignee_id,
        search=search,
        due_date_from=due_date_from,
        due_date_to=due_date_to,
        include_archived=include_archived,
        sort_by=sort_by,
        sort_direction=sort_direction,
    )
    tasks, meta = await task_service.list_tasks(session, auth, project_id, filters, page, per_page)
    return APIResponse(data=tasks, meta=meta, message="Tasks retrieved successfully")


@router.post("", response_model=APIResponse[TaskRead], status_code=status.HTTP_201_CREATED)
async def create_task_endpoint(
    project_id: uuid.UUID,
    body: TaskCreate,
    auth: AuthContext = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    task = await task_service.create_task(session, auth, project_id, body)
    return APIResponse(data=task, message="Task created successfully")


@router.get("/{task_id}", response_model=APIResponse[TaskRead])
async def get_task_endpoint(
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    auth: AuthContext = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Get a task with its dependencies and comment count."""
    task = await task_service.get_task(session, auth, project_id, task_id)
    return APIResponse(data=task, message="Task retrieved successfully")


@router.put("/{task_id}", response_model=APIResponse[TaskRead])
async def update_task_endpoint(
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    body: TaskUpdate,
    auth: AuthContext = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    task = await task_service.update_task(session, auth, project_id, task_id, body)
    return APIResponse(data=task, message="Task updated successfully")


@router.delete("/{task_id}", response_model=APIResponse[None])
async def delete_task_endpoint(
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    auth: AuthContext = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    await task_service.delete_task(session, auth, project_id, task_id)
    return APIResponse(message="Task archived successfully")


@router.post("/{task_id}/restore", response_model=APIResponse[TaskRead])
async def restore_task_endpoint(
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    auth: AuthContext = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    task = await task_service.restore_task(session, auth, project_id, task_id)
    return APIResponse(data=task, message="Task restored successfully")


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


@router.get("/{task_id}/dependencies", response_model=APIResponse[List[TaskRead]])
async def list_dependencies_endpoint(
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    auth: AuthContext = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    deps = await dependency_service.list_dependencies(session, auth, project_id, task_id)
    return APIResponse(data=deps, message="Dependencies retrieved successfully")


@router.post(
    "/{task_id}/dependencies",
    response_model=APIResponse[TaskRead],
    status_code=status.HTTP_201_CREATED,
)
async def add_dependency_endpoint(
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    body: DependencyAdd,
    auth: AuthContext = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    """Make this task depend on another task of the same project."""
    task = await dependency_service.add_dependency(
        session, auth, project_id, task_id, body.depends_on_task_id
    )
    return APIResponse(data=task, message="Dependency added successfully")


@router.delete("/{task_id}/dependencies/{depends_on_task_id}", response_model=APIResponse[TaskRead])
async def remove_dependency_endpoint(
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    depends_on_task_id: uuid.UUID,
    auth: AuthContext = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    task = await dependency_service.remove_dependency(
        session, auth, project_id, task_id, depends_on_task_id
    )
    return APIResponse(data=task, message="Dependency removed successfully")


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------


@router.get("/{task_id}/comments", response_model=APIResponse[List[CommentRead]])
async def list_comments_endpoint(
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    auth: AuthContext = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    comments = await comment_service.list_comments(session, auth, project_id, task_id)
    return APIResponse(data=comments, message="Comments retrieved successfully")


@router.post(
    "/{task_id}/comments",
    response_model=APIResponse[CommentRead],
    status_code=status.HTTP_201_CREATED,
)
async def add_comment_endpoint(
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    body: CommentCreate,
    auth: AuthContext = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    comment = await comment_service.add_comment(session, auth, project_id, task_id, body)
    return APIResponse(data=comment, message="Comment added successfully")


@router.put("/{task_id}/comments/{comment_id}", response_model=APIResponse[CommentRead])
async def update_comment_endpoint(
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    comment_id: uuid.UUID,
    body: CommentUpdate,
    auth: AuthContext = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    comment = await comment_service.update_comment(
        session, auth, project_id, task_id, comment_id, body
    )
    return APIResponse(data=comment, message="Comment updated successfully")


@router.delete("/{task_id}/comments/{comment_id}", response_model=APIResponse[None])
async def delete_comment_endpoint(
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    comment_id: uuid.UUID,
    auth: AuthContext = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    await comment_service.delete_comment(session, auth, project_id, task_id, comment_id)
    return APIResponse(message="Comment deleted successfully")
