"""
Comment service: discussion threads on tasks, with mention notifications.
"""

from __future__ import annotations

import uuid
from typing import Sequence

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.activity import record_activity
from app.core.auth import AuthContext
from app.core.errors import ForbiddenError, NotFoundError
from app.models.base import utcnow
from app.models.comment import TaskComment
from app.models.task import Task
from app.services import notifications
from app.services.projects import get_accessible_project, is_org_member, user_summaries
from app.services.tasks import get_task_or_404
from taskboard_shared.schemas.tasks import CommentCreate, CommentRead, CommentUpdate


async def enrich_comments(
    session: AsyncSession, comments: Sequence[TaskComment]
) -> list[CommentRead]:
    authors = await user_summaries(session, [c.user_id for c in comments])
    return [
        CommentRead(
            id=c.id,
            task_id=c.task_id,
            user_id=c.user_id,
            content=c.content,
            mentions=c.mentions or [],
            user=authors.get(c.user_id),
            created_at=c.created_at,
            updated_at=c.updated_at,
        )
        for c in comments
    ]


async def _load_task(
    session: AsyncSession, auth: AuthContext, project_id: uuid.UUID, task_id: uuid.UUID
) -> Task:
    await get_accessible_project(session, auth, project_id)
    return await get_task_or_404(session, project_id, task_id)


async def _load_comment(
    session: AsyncSession, task: Task, comment_id: uuid.UUID
) -> TaskComment:
    comment = await session.get(TaskComment, comment_id)
    if not comment or comment.task_id != task.id or comment.trashed:
        raise NotFoundError("Comment not found")
    return comment


async def list_comments(
    session: AsyncSession, auth: AuthContext, project_id: uuid.UUID, task_id: uuid.UUID
) -> list[CommentRead]:
    task = await _load_task(session, auth, project_id, task_id)
    result = await session.execute(
        select(TaskComment)
        .where(TaskComment.task_id == task.id, TaskComment.deleted_at.is_(None))
        .order_by(TaskComment.created_at, TaskComment.id)
    )
    return await enrich_comments(session, result.scalars().all())


async def add_comment(
    session: AsyncSession,
    auth: AuthContext,
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    data: CommentCreate,
) -> CommentRead:
    task = await _load_task(session, auth, project_id, task_id)
    mentions = list(dict.fromkeys(data.mentions or []))

    comment = TaskComment(
        task_id=task.id,
        user_id=auth.user_id,
        content=data.content,
        mentions=[str(m) for m in mentions],
    )
    session.add(comment)
    await session.flush()

    for user_id in mentions:
        if user_id == auth.user_id or not await is_org_member(session, auth.org_id, user_id):
            continue
        await notifications.notify_mention(session, user_id, task.id, task.title, auth.user_id)

    if task.assignee_id and task.assignee_id != auth.user_id:
        await notifications.notify_task_comment(
            session, task.assignee_id, task.id, task.title, auth.user_id
        )

    await record_activity(
        session, auth, "comment_added", task,
        f"Comment added to task '{task.title}'",
        new_values={"comment_id": str(comment.id)},
    )
    return (await enrich_comments(session, [comment]))[0]


async def update_comment(
    session: AsyncSession,
    auth: AuthContext,
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    comment_id: uuid.UUID,
    data: CommentUpdate,
) -> CommentRead:
    task = await _load_task(session, auth, project_id, task_id)
    comment = await _load_comment(session, task, comment_id)
    if comment.user_id != auth.user_id:
        raise ForbiddenError("You can only edit your own comments")

    comment.content = data.content
    if data.mentions is not None:
        comment.mentions = [str(m) for m in dict.fromkeys(data.mentions)]
    comment.updated_at = utcnow()
    session.add(comment)
    await session.flush()
    return (await enrich_comments(session, [comment]))[0]


async def delete_comment(
    session: AsyncSession,
    auth: AuthContext,
    project_id: uuid.UUID,
    task_id: uuid.UUID,
    comment_id: uuid.UUID,
) -> None:
    task = await _load_task(session, auth, project_id, task_id)
    comment = await _load_comment(session, task, comment_id)
    if comment.user_id != auth.user_id and not auth.can_manage:
        raise ForbiddenError("You can only delete your own comments")

    comment.deleted_at = utcnow()
    session.add(comment)
    await session.flush()
    await record_activity(
        session, auth, "comment_deleted", task,
        f"Comment deleted from task '{task.title}'",
        old_values={"comment_id": str(comment.id)},
    )
