"""
Task service layer: business logic for tasks within a project.

Handles:
- Task CRUD scoped to a project the caller can see
- Archiving and restoring
- Assignment and status-change notifications
- Enrichment of task data for API responses
"""

from __future__ import annotations

import uuid
from typing import Optional, Sequence

from sqlalchemy import func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.activity import record_activity, snapshot
from app.core.auth import AuthContext
from app.core.errors import InvalidUserError, NotFoundError
from app.models.base import as_naive_utc, utcnow
from app.models.comment import TaskComment
from app.models.dependency import TaskDependency
from app.models.project import Project
from app.models.task import Task
from app.services import notifications
from app.services.projects import get_accessible_project, is_org_member, user_summaries
from app.services.query import apply_sort, column_values, paginate
from taskboard_shared.schemas.common import Pagination
from taskboard_shared.schemas.tasks import (
    MyTaskFilters,
    TaskCreate,
    TaskFilters,
    TaskRead,
    TaskSummary,
    TaskUpdate,
)

SORTABLE_FIELDS = ("title", "status", "priority", "due_date", "position", "created_at")
# Fields a partial update may explicitly clear
NULLABLE_FIELDS = frozenset({"description", "assignee_id", "due_date"})


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def find_task(
    session: AsyncSession,
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    *,
    include_archived: bool = False,
) -> Optional[Task]:
    task = await session.get(Task, task_id)
    if not task or task.project_id != project_id:
        return None
    if task.trashed and not include_archived:
        return None
    return task


async def get_task_or_404(
    session: AsyncSession,
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    *,
    include_archived: bool = False,
) -> Task:
    task = await find_task(session, project_id, task_id, include_archived=include_archived)
    if not task:
        raise NotFoundError("Task not found")
    return task


def summarize(task: Task) -> TaskSummary:
    return TaskSummary(
        id=task.id,
        project_id=task.project_id,
        title=task.title,
        status=task.status,
        priority=task.priority,
        is_done=task.is_done,
    )


async def dependency_tasks(session: AsyncSession, task_id: uuid.UUID) -> list[Task]:
    """Live tasks that ``task_id`` depends on."""
    result = await session.execute(
        select(Task)
        .join(TaskDependency, TaskDependency.depends_on_task_id == Task.id)
        .where(TaskDependency.task_id == task_id, Task.deleted_at.is_(None))
        .order_by(Task.position, Task.id)
    )
    return list(result.scalars().all())


async def _comments_count(session: AsyncSession, task_id: uuid.UUID) -> int:
    result = await session.execute(
        select(func.count(TaskComment.id)).where(
            TaskComment.task_id == task_id,
            TaskComment.deleted_at.is_(None),
        )
    )
    return result.scalar_one()


def _to_read(task: Task, assignees: dict) -> TaskRead:
    return TaskRead(
        id=task.id,
        project_id=task.project_id,
        title=task.title,
        description=task.description,
        priority=task.priority,
        status=task.status,
        due_date=task.due_date,
        due_date_timezone=task.due_date_timezone,
        position=task.position,
        is_overdue=task.is_overdue,
        is_done=task.is_done,
        is_blocked=task.is_blocked,
        assignee_id=task.assignee_id,
        created_by=task.created_by,
        updated_by=task.updated_by,
        assignee=assignees.get(task.assignee_id),
        created_at=task.created_at,
        updated_at=task.updated_at,
        deleted_at=task.deleted_at,
    )


async def enrich_task(
    session: AsyncSession,
    task: Task,
    *,
    with_dependencies: bool = False,
    with_comment_count: bool = False,
) -> TaskRead:
    """Convert a Task row to a TaskRead, optionally loading related data."""
    assignees = await user_summaries(session, [task.assignee_id])
    read = _to_read(task, assignees)
    if with_dependencies:
        deps = await dependency_tasks(session, task.id)
        read.dependencies = [summarize(d) for d in deps]
        read.has_uncompleted_dependencies = any(not d.is_done for d in deps)
    if with_comment_count:
        read.comments_count = await _comments_count(session, task.id)
    return read


async def enrich_tasks(session: AsyncSession, tasks: Sequence[Task]) -> list[TaskRead]:
    assignees = await user_summaries(session, [t.assignee_id for t in tasks])
    return [_to_read(t, assignees) for t in tasks]


async def _next_position(session: AsyncSession, project_id: uuid.UUID) -> int:
    result = await session.execute(
        select(func.max(Task.position)).where(Task.project_id == project_id)
    )
    return (result.scalar_one() or 0) + 1


async def _check_assignee(
    session: AsyncSession, auth: AuthContext, assignee_id: Optional[uuid.UUID]
) -> None:
    if assignee_id and not await is_org_member(session, auth.org_id, assignee_id):
        raise InvalidUserError("Assignee is not a member of this organization")


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def list_tasks(
    session: AsyncSession,
    auth: AuthContext,
    project_id: uuid.UUID,
    filters: TaskFilters,
    page: int,
    per_page: int,
) -> tuple[list[TaskRead], Pagination]:
    project = await get_accessible_project(session, auth, project_id)
    stmt = select(Task).where(Task.project_id == project.id)

    if not filters.include_archived:
        stmt = stmt.where(Task.deleted_at.is_(None))
    if filters.status:
        stmt = stmt.where(Task.status == filters.status.value)
    if filters.priority:
        stmt = stmt.where(Task.priority == filters.priority.value)
    if filters.assignee_id:
        stmt = stmt.where(Task.assignee_id == filters.assignee_id)
    if filters.search:
        pattern = f"%{filters.search}%"
        stmt = stmt.where(or_(Task.title.ilike(pattern), Task.description.ilike(pattern)))
    if filters.due_date_from:
        stmt = stmt.where(Task.due_date >= as_naive_utc(filters.due_date_from))
    if filters.due_date_to:
        stmt = stmt.where(Task.due_date <= as_naive_utc(filters.due_date_to))

    stmt = apply_sort(stmt, Task, filters.sort_by, filters.sort_direction, SORTABLE_FIELDS)
    rows, meta = await paginate(session, stmt, page, per_page)
    return await enrich_tasks(session, rows), meta


async def get_task(
    session: AsyncSession,
    auth: AuthContext,
    project_id: uuid.UUID,
    task_id: uuid.UUID,
) -> TaskRead:
    await get_accessible_project(session, auth, project_id)
    task = await get_task_or_404(session, project_id, task_id)
    return await enrich_task(session, task, with_dependencies=True, with_comment_count=True)


async def my_tasks(
    session: AsyncSession,
    auth: AuthContext,
    filters: MyTaskFilters,
    page: int,
    per_page: int,
) -> tuple[list[TaskRead], Pagination]:
    """Tasks assigned to the caller across the live projects of their org."""
    stmt = (
        select(Task)
        .join(Project, Project.id == Task.project_id)
        .where(
            Task.assignee_id == auth.user_id,
            Project.organization_id == auth.org_id,
            Task.deleted_at.is_(None),
            Project.deleted_at.is_(None),
        )
    )
    if filters.status:
        stmt = stmt.where(Task.status == filters.status.value)
    if filters.priority:
        stmt = stmt.where(Task.priority == filters.priority.value)
    if filters.project_id:
        stmt = stmt.where(Task.project_id == filters.project_id)

    stmt = apply_sort(stmt, Task, filters.sort_by, filters.sort_direction, SORTABLE_FIELDS)
    rows, meta = await paginate(session, stmt, page, per_page)
    return await enrich_tasks(session, rows), meta


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


async def create_task(
    session: AsyncSession,
    auth: AuthContext,
    project_id: uuid.UUID,
    data: TaskCreate,
) -> TaskRead:
    project = await get_accessible_project(session, auth, project_id)
    await _check_assignee(session, auth, data.assignee_id)

    values = column_values(data.model_dump(exclude={"position", "due_date"}))
    position = data.position
    if position is None:
        position = await _next_position(session, project.id)

    task = Task(
        project_id=project.id,
        created_by=auth.user_id,
        updated_by=auth.user_id,
        due_date=as_naive_utc(data.due_date),
        position=position,
        **values,
    )
    session.add(task)
    await session.flush()

    if task.assignee_id and task.assignee_id != auth.user_id:
        await notifications.notify_task_assigned(
            session, task.assignee_id, task.id, task.title, auth.user_id
        )

    await record_activity(
        session, auth, "created", task,
        f"Task '{task.title}' created",
        new_values=snapshot(task),
    )
    return await enrich_task(session, task)


async def update_task(
    session: AsyncSession,
    auth: AuthContext,
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    data: TaskUpdate,
) -> TaskRead:
    await get_accessible_project(session, auth, project_id)
    task = await get_task_or_404(session, project_id, task_id)

    changes = {
        k: v
        for k, v in column_values(data.model_dump(exclude_unset=True)).items()
        if v is not None or k in NULLABLE_FIELDS
    }
    if "due_date" in changes:
        changes["due_date"] = as_naive_utc(changes["due_date"])
    if changes.get("assignee_id"):
        await _check_assignee(session, auth, changes["assignee_id"])

    old_values = snapshot(task)
    old_assignee = task.assignee_id
    old_status = task.status

    for key, value in changes.items():
        setattr(task, key, value)
    task.updated_by = auth.user_id
    task.updated_at = utcnow()
    session.add(task)
    await session.flush()

    if (
        task.assignee_id
        and task.assignee_id != old_assignee
        and task.assignee_id != auth.user_id
    ):
        await notifications.notify_task_assigned(
            session, task.assignee_id, task.id, task.title, auth.user_id
        )
    if (
        task.status != old_status
        and task.assignee_id
        and task.assignee_id != auth.user_id
    ):
        await notifications.notify_task_status_changed(
            session, task.assignee_id, task.id, task.title, task.status
        )

    await record_activity(
        session, auth, "updated", task,
        f"Task '{task.title}' updated",
        old_values=old_values,
        new_values=snapshot(task),
    )
    return await enrich_task(session, task, with_dependencies=True)


async def delete_task(
    session: AsyncSession,
    auth: AuthContext,
    project_id: uuid.UUID,
    task_id: uuid.UUID,
) -> None:
    await get_accessible_project(session, auth, project_id)
    task = await get_task_or_404(session, project_id, task_id)
    task.deleted_at = utcnow()
    session.add(task)
    await session.flush()
    await record_activity(session, auth, "archived", task, f"Task '{task.title}' archived")


async def restore_task(
    session: AsyncSession,
    auth: AuthContext,
    project_id: uuid.UUID,
    task_id: uuid.UUID,
) -> TaskRead:
    await get_accessible_project(session, auth, project_id)
    task = await get_task_or_404(session, project_id, task_id, include_archived=True)
    if not task.trashed:
        raise NotFoundError("Task not found")
    task.deleted_at = None
    session.add(task)
    await session.flush()
    await record_activity(session, auth, "restored", task, f"Task '{task.title}' restored")
    return await enrich_task(session, task)
