"""
Dependency service: the "depends on" edges between tasks of one project.

An edge (task_id, depends_on_task_id) means task_id cannot complete before
depends_on_task_id. Each project's graph is kept acyclic: every insert is
checked by the cycle guard against a snapshot of the project's edges, and the
check and insert for one project run under a single lock.
"""

from __future__ import annotations

import asyncio
import uuid
import weakref

import structlog
from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased
from sqlmodel import select

from app.core.activity import record_activity
from app.core.auth import AuthContext
from app.core.errors import (
    AlreadyExistsError,
    CircularDependencyError,
    InvalidDependencyError,
    NotFoundError,
)
from app.models.dependency import TaskDependency
from app.models.task import Task
from app.services.dependency_graph import build_adjacency, would_create_cycle
from app.services.projects import get_accessible_project
from app.services.tasks import (
    dependency_tasks,
    enrich_task,
    enrich_tasks,
    find_task,
    get_task_or_404,
)
from taskboard_shared.schemas.tasks import TaskRead

log = structlog.get_logger()

# One writer per project per process; a lock lives only while someone holds it
_project_locks: weakref.WeakValueDictionary[uuid.UUID, asyncio.Lock] = weakref.WeakValueDictionary()


def _project_lock(project_id: uuid.UUID) -> asyncio.Lock:
    lock = _project_locks.get(project_id)
    if lock is None:
        lock = _project_locks[project_id] = asyncio.Lock()
    return lock


# ---------------------------------------------------------------------------
# Edge store
# ---------------------------------------------------------------------------


async def list_outgoing_edges(session: AsyncSession, task_id: uuid.UUID) -> set[uuid.UUID]:
    """Ids of the live tasks ``task_id`` depends on."""
    result = await session.execute(
        select(TaskDependency.depends_on_task_id)
        .join(Task, Task.id == TaskDependency.depends_on_task_id)
        .where(TaskDependency.task_id == task_id, Task.deleted_at.is_(None))
    )
    return set(result.scalars().all())


async def load_project_edges(
    session: AsyncSession, project_id: uuid.UUID
) -> dict[uuid.UUID, set[uuid.UUID]]:
    """Adjacency snapshot of the project's edges between live tasks.

    An edge with an archived endpoint is invisible to the cycle guard, the same
    way it is invisible to dependency listings.
    """
    source = aliased(Task)
    target = aliased(Task)
    result = await session.execute(
        select(TaskDependency.task_id, TaskDependency.depends_on_task_id)
        .join(source, source.id == TaskDependency.task_id)
        .join(target, target.id == TaskDependency.depends_on_task_id)
        .where(
            TaskDependency.project_id == project_id,
            source.deleted_at.is_(None),
            target.deleted_at.is_(None),
        )
    )
    return build_adjacency(result.all())


async def insert_edge(
    session: AsyncSession,
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    depends_on_id: uuid.UUID,
) -> TaskDependency:
    edge = TaskDependency(
        task_id=task_id,
        depends_on_task_id=depends_on_id,
        project_id=project_id,
    )
    session.add(edge)
    await session.flush()
    return edge


async def delete_edge(
    session: AsyncSession, task_id: uuid.UUID, depends_on_id: uuid.UUID
) -> bool:
    """Delete one edge. Returns False when there was nothing to delete."""
    result = await session.execute(
        delete(TaskDependency)
        .where(
            TaskDependency.task_id == task_id,
            TaskDependency.depends_on_task_id == depends_on_id,
        )
        .execution_options(synchronize_session=False)
    )
    return bool(result.rowcount)


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


async def add_dependency(
    session: AsyncSession,
    auth: AuthContext,
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    depends_on_id: uuid.UUID,
) -> TaskRead:
    """Make ``task_id`` depend on ``depends_on_id``.

    Raises NotFoundError, InvalidDependencyError, AlreadyExistsError or
    CircularDependencyError; on any of them the graph is unchanged.
    """
    await get_accessible_project(session, auth, project_id)
    task = await find_task(session, project_id, task_id)
    depends_on = await find_task(session, project_id, depends_on_id)
    if not task or not depends_on:
        raise NotFoundError("Task not found")

    if task_id == depends_on_id:
        raise InvalidDependencyError()

    lock = _project_lock(project_id)
    async with lock:
        if depends_on_id in await list_outgoing_edges(session, task_id):
            raise AlreadyExistsError()

        graph = await load_project_edges(session, project_id)
        if would_create_cycle(task_id, depends_on_id, lambda node: graph.get(node, ())):
            log.info(
                "dependency.rejected",
                project_id=str(project_id),
                task_id=str(task_id),
                depends_on_task_id=str(depends_on_id),
                reason="cycle",
            )
            raise CircularDependencyError()

        try:
            await insert_edge(session, project_id, task_id, depends_on_id)
        except IntegrityError:
            await session.rollback()
            raise AlreadyExistsError()

        await record_activity(
            session, auth, "dependency_added", task,
            f"Dependency added to task '{task.title}'",
            new_values={"depends_on_task_id": str(depends_on_id)},
        )
        # Commit before releasing the lock so the next writer sees this edge
        await session.commit()

    return await enrich_task(session, task, with_dependencies=True)


async def remove_dependency(
    session: AsyncSession,
    auth: AuthContext,
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    depends_on_id: uuid.UUID,
) -> TaskRead:
    """Remove an edge. Removing an edge that does not exist is a no-op."""
    await get_accessible_project(session, auth, project_id)
    task = await get_task_or_404(session, project_id, task_id)

    if await delete_edge(session, task_id, depends_on_id):
        await record_activity(
            session, auth, "dependency_removed", task,
            f"Dependency removed from task '{task.title}'",
            old_values={"depends_on_task_id": str(depends_on_id)},
        )
    return await enrich_task(session, task, with_dependencies=True)


async def list_dependencies(
    session: AsyncSession,
    auth: AuthContext,
    project_id: uuid.UUID,
    task_id: uuid.UUID,
) -> list[TaskRead]:
    await get_accessible_project(session, auth, project_id)
    task = await get_task_or_404(session, project_id, task_id)
    return await enrich_tasks(session, await dependency_tasks(session, task.id))
