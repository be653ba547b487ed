"""
Project service layer: visibility rules, CRUD, archiving and membership.

A project the caller cannot see is reported as missing, so callers never
learn whether a private project exists.
"""

from __future__ import annotations

import uuid
from typing import Sequence

from sqlalchemy import case, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.activity import record_activity, snapshot
from app.core.auth import AuthContext
from app.core.errors import (
    AlreadyMemberError,
    CannotRemoveManagerError,
    InvalidUserError,
    NotFoundError,
    ValidationFailedError,
)
from app.models.assignments import ProjectMember
from app.models.base import utcnow
from app.models.organization_user import OrganizationUser
from app.models.project import Project
from app.models.task import Task
from app.models.user import User
from app.services import notifications
from app.services.query import apply_sort, column_values, paginate
from taskboard_shared.schemas.common import Pagination, ProjectVisibility
from taskboard_shared.schemas.projects import (
    ProjectCreate,
    ProjectFilters,
    ProjectRead,
    ProjectUpdate,
    progress_percentage,
    validate_date_range,
)
from taskboard_shared.schemas.users import UserSummary

SORTABLE_FIELDS = ("title", "status", "start_date", "end_date", "created_at", "updated_at")

NULLABLE_FIELDS = frozenset({"description", "start_date", "end_date"})


# ---------------------------------------------------------------------------
# Access
# ---------------------------------------------------------------------------


async def is_org_member(
    session: AsyncSession, org_id: uuid.UUID, user_id: uuid.UUID
) -> bool:
    membership = await session.get(OrganizationUser, (org_id, user_id))
    return membership is not None


async def is_member(
    session: AsyncSession, project_id: uuid.UUID, user_id: uuid.UUID
) -> bool:
    membership = await session.get(ProjectMember, (project_id, user_id))
    return membership is not None


async def can_access_project(
    session: AsyncSession, project: Project, auth: AuthContext
) -> bool:
    if auth.can_manage:
        return True
    if project.visibility == ProjectVisibility.PUBLIC.value:
        return True
    return await is_member(session, project.id, auth.user_id)


async def get_accessible_project(
    session: AsyncSession,
    auth: AuthContext,
    project_id: uuid.UUID,
    *,
    include_archived: bool = False,
) -> Project:
    """Load a project of the caller's org that the caller may see."""
    project = await session.get(Project, project_id)
    if (
        not project
        or project.organization_id != auth.org_id
        or (project.trashed and not include_archived)
        or not await can_access_project(session, project, auth)
    ):
        raise NotFoundError("Project not found")
    return project


# ---------------------------------------------------------------------------
# Enrichment
# ---------------------------------------------------------------------------


async def user_summaries(
    session: AsyncSession, user_ids: Sequence[uuid.UUID]
) -> dict[uuid.UUID, UserSummary]:
    ids = {u for u in user_ids if u is not None}
    if not ids:
        return {}
    result = await session.execute(select(User).where(User.id.in_(ids)))
    return {u.id: UserSummary.model_validate(u) for u in result.scalars().all()}


async def _task_counts(
    session: AsyncSession, project_ids: list[uuid.UUID]
) -> dict[uuid.UUID, tuple[int, int]]:
    result = await session.execute(
        select(
            Task.project_id,
            func.count(Task.id),
            func.sum(case((Task.status == "done", 1), else_=0)),
        )
        .where(Task.project_id.in_(project_ids), Task.deleted_at.is_(None))
        .group_by(Task.project_id)
    )
    return {pid: (total, int(done or 0)) for pid, total, done in result.all()}


async def _members(
    session: AsyncSession, project_ids: list[uuid.UUID]
) -> dict[uuid.UUID, list[UserSummary]]:
    result = await session.execute(
        select(ProjectMember.project_id, User)
        .join(User, User.id == ProjectMember.user_id)
        .where(ProjectMember.project_id.in_(project_ids))
        .order_by(User.name)
    )
    members: dict[uuid.UUID, list[UserSummary]] = {pid: [] for pid in project_ids}
    for pid, user in result.all():
        members[pid].append(UserSummary.model_validate(user))
    return members


async def enrich_projects(
    session: AsyncSession, projects: Sequence[Project]
) -> list[ProjectRead]:
    """Convert Project rows to ProjectRead with counts, manager and members."""
    if not projects:
        return []
    ids = [p.id for p in projects]
    counts = await _task_counts(session, ids)
    members = await _members(session, ids)
    managers = await user_summaries(session, [p.manager_id for p in projects])

    enriched = []
    for project in projects:
        total, done = counts.get(project.id, (0, 0))
        enriched.append(
            ProjectRead(
                id=project.id,
                organization_id=project.organization_id,
                title=project.title,
                description=project.description,
                start_date=project.start_date,
                end_date=project.end_date,
                status=project.status,
                visibility=project.visibility,
                manager_id=project.manager_id,
                created_by=project.created_by,
                manager=managers.get(project.manager_id),
                members=members.get(project.id, []),
                tasks_count=total,
                completed_tasks_count=done,
                progress_percentage=progress_percentage(total, done),
                created_at=project.created_at,
                updated_at=project.updated_at,
                deleted_at=project.deleted_at,
            )
        )
    return enriched


async def enrich_project(session: AsyncSession, project: Project) -> ProjectRead:
    return (await enrich_projects(session, [project]))[0]


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


async def list_projects(
    session: AsyncSession,
    auth: AuthContext,
    filters: ProjectFilters,
    page: int,
    per_page: int,
) -> tuple[list[ProjectRead], Pagination]:
    stmt = select(Project).where(Project.organization_id == auth.org_id)

    if not auth.can_manage:
        member_of = select(ProjectMember.project_id).where(
            ProjectMember.user_id == auth.user_id
        )
        stmt = stmt.where(
            or_(
                Project.visibility == ProjectVisibility.PUBLIC.value,
                Project.id.in_(member_of),
            )
        )

    if not filters.include_archived:
        stmt = stmt.where(Project.deleted_at.is_(None))
    if filters.status:
        stmt = stmt.where(Project.status == filters.status.value)
    if filters.visibility:
        stmt = stmt.where(Project.visibility == filters.visibility.value)
    if filters.manager_id:
        stmt = stmt.where(Project.manager_id == filters.manager_id)
    if filters.search:
        pattern = f"%{filters.search}%"
        stmt = stmt.where(
            or_(Project.title.ilike(pattern), Project.description.ilike(pattern))
        )

    stmt = apply_sort(stmt, Project, filters.sort_by, filters.sort_direction, SORTABLE_FIELDS)
    rows, meta = await paginate(session, stmt, page, per_page)
    return await enrich_projects(session, rows), meta


async def get_project(
    session: AsyncSession, auth: AuthContext, project_id: uuid.UUID
) -> ProjectRead:
    project = await get_accessible_project(session, auth, project_id)
    return await enrich_project(session, project)


async def _ensure_member(
    session: AsyncSession, project_id: uuid.UUID, user_id: uuid.UUID
) -> bool:
    """Add a project membership if missing. Returns True when one was added."""
    if await is_member(session, project_id, user_id):
        return False
    session.add(ProjectMember(project_id=project_id, user_id=user_id))
    await session.flush()
    return True


async def create_project(
    session: AsyncSession, auth: AuthContext, data: ProjectCreate
) -> ProjectRead:
    manager_id = data.manager_id or auth.user_id
    if not await is_org_member(session, auth.org_id, manager_id):
        raise InvalidUserError()

    values = column_values(data.model_dump(exclude={"manager_id"}))
    project = Project(
        organization_id=auth.org_id,
        manager_id=manager_id,
        created_by=auth.user_id,
        **values,
    )
    session.add(project)
    await session.flush()

    await _ensure_member(session, project.id, auth.user_id)
    await _ensure_member(session, project.id, manager_id)

    await record_activity(
        session, auth, "created", project,
        f"Project '{project.title}' created",
        new_values=snapshot(project),
    )
    return await enrich_project(session, project)


async def update_project(
    session: AsyncSession,
    auth: AuthContext,
    project_id: uuid.UUID,
    data: ProjectUpdate,
) -> ProjectRead:
    project = await get_accessible_project(session, auth, project_id)
    changes = {
        k: v
        for k, v in column_values(data.model_dump(exclude_unset=True)).items()
        if v is not None or k in NULLABLE_FIELDS
    }

    ok, msg = validate_date_range(
        changes.get("start_date", project.start_date),
        changes.get("end_date", project.end_date),
    )
    if not ok:
        raise ValidationFailedError(msg, details={"end_date": [msg]})

    manager_id = changes.get("manager_id")
    if manager_id and not await is_org_member(session, auth.org_id, manager_id):
        raise InvalidUserError()

    old_values = snapshot(project)
    for key, value in changes.items():
        setattr(project, key, value)
    project.updated_at = utcnow()
    session.add(project)
    await session.flush()

    if manager_id:
        await _ensure_member(session, project.id, manager_id)

    await record_activity(
        session, auth, "updated", project,
        f"Project '{project.title}' updated",
        old_values=old_values,
        new_values=snapshot(project),
    )
    return await enrich_project(session, project)


async def delete_project(
    session: AsyncSession, auth: AuthContext, project_id: uuid.UUID
) -> None:
    project = await get_accessible_project(session, auth, project_id)
    project.deleted_at = utcnow()
    session.add(project)
    await session.flush()
    await record_activity(
        session, auth, "archived", project, f"Project '{project.title}' archived"
    )


async def restore_project(
    session: AsyncSession, auth: AuthContext, project_id: uuid.UUID
) -> ProjectRead:
    project = await get_accessible_project(
        session, auth, project_id, include_archived=True
    )
    if not project.trashed:
        raise NotFoundError("Project not found")
    project.deleted_at = None
    session.add(project)
    await session.flush()
    await record_activity(
        session, auth, "restored", project, f"Project '{project.title}' restored"
    )
    return await enrich_project(session, project)


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------


async def list_members(
    session: AsyncSession, auth: AuthContext, project_id: uuid.UUID
) -> list[UserSummary]:
    project = await get_accessible_project(session, auth, project_id)
    return (await _members(session, [project.id]))[project.id]


async def add_member(
    session: AsyncSession,
    auth: AuthContext,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
) -> list[UserSummary]:
    project = await get_accessible_project(session, auth, project_id)
    if not await is_org_member(session, auth.org_id, user_id):
        raise InvalidUserError()
    if not await _ensure_member(session, project.id, user_id):
        raise AlreadyMemberError()

    await notifications.notify_project_invite(
        session, user_id, project.id, project.title, auth.user_id
    )
    await record_activity(
        session, auth, "member_added", project,
        f"Member added to project '{project.title}'",
        new_values={"user_id": str(user_id)},
    )
    return (await _members(session, [project.id]))[project.id]


async def remove_member(
    session: AsyncSession,
    auth: AuthContext,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
) -> list[UserSummary]:
    project = await get_accessible_project(session, auth, project_id)
    if project.manager_id == user_id:
        raise CannotRemoveManagerError()

    membership = await session.get(ProjectMember, (project.id, user_id))
    if not membership:
        raise NotFoundError("User is not a member of this project")
    await session.delete(membership)
    await session.flush()

    await record_activity(
        session, auth, "member_removed", project,
        f"Member removed from project '{project.title}'",
        old_values={"user_id": str(user_id)},
    )
    return (await _members(session, [project.id]))[project.id]
