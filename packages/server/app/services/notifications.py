"""
Notification service: per-user inbox and the helpers other services use to
notify people about assignments, comments, mentions and invitations.
"""

from __future__ import annotations

import uuid
from typing import Any, Optional

import structlog
from sqlalchemy import delete, func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import NotFoundError
from app.models.base import utcnow
from app.models.notification import Notification
from app.services.query import paginate
from taskboard_shared.schemas.common import NotificationType, Pagination
from taskboard_shared.schemas.notifications import NotificationFilters, NotificationRead

log = structlog.get_logger()


def to_read(notification: Notification) -> NotificationRead:
    return NotificationRead(
        id=notification.id,
        user_id=notification.user_id,
        type=notification.type,
        title=notification.title,
        message=notification.message,
        data=notification.data or {},
        is_read=notification.is_read,
        read_at=notification.read_at,
        created_at=notification.created_at,
    )


# ---------------------------------------------------------------------------
# Inbox
# ---------------------------------------------------------------------------


async def list_notifications(
    session: AsyncSession,
    user_id: uuid.UUID,
    filters: NotificationFilters,
    page: int,
    per_page: int,
) -> tuple[list[NotificationRead], Pagination]:
    stmt = select(Notification).where(Notification.user_id == user_id)
    if filters.unread_only:
        stmt = stmt.where(Notification.read_at.is_(None))
    if filters.read_only:
        stmt = stmt.where(Notification.read_at.is_not(None))
    if filters.type:
        stmt = stmt.where(Notification.type == filters.type.value)
    stmt = stmt.order_by(Notification.created_at.desc(), Notification.id)

    rows, meta = await paginate(session, stmt, page, per_page)
    return [to_read(n) for n in rows], meta


async def unread_count(session: AsyncSession, user_id: uuid.UUID) -> int:
    result = await session.execute(
        select(func.count()).select_from(Notification).where(
            Notification.user_id == user_id,
            Notification.read_at.is_(None),
        )
    )
    return result.scalar_one()


async def get_notification(
    session: AsyncSession, user_id: uuid.UUID, notification_id: uuid.UUID
) -> Notification:
    notification = await session.get(Notification, notification_id)
    if not notification or notification.user_id != user_id:
        raise NotFoundError("Notification not found")
    return notification


async def mark_as_read(
    session: AsyncSession, user_id: uuid.UUID, notification_id: uuid.UUID
) -> Notification:
    notification = await get_notification(session, user_id, notification_id)
    if notification.read_at is None:
        notification.read_at = utcnow()
        session.add(notification)
        await session.flush()
    return notification


async def mark_as_unread(
    session: AsyncSession, user_id: uuid.UUID, notification_id: uuid.UUID
) -> Notification:
    notification = await get_notification(session, user_id, notification_id)
    notification.read_at = None
    session.add(notification)
    await session.flush()
    return notification


async def mark_all_as_read(session: AsyncSession, user_id: uuid.UUID) -> int:
    result = await session.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.read_at.is_(None))
        .values(read_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


async def delete_notification(
    session: AsyncSession, user_id: uuid.UUID, notification_id: uuid.UUID
) -> None:
    notification = await get_notification(session, user_id, notification_id)
    await session.delete(notification)
    await session.flush()


async def delete_all_read(session: AsyncSession, user_id: uuid.UUID) -> int:
    result = await session.execute(
        delete(Notification)
        .where(Notification.user_id == user_id, Notification.read_at.is_not(None))
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


# ---------------------------------------------------------------------------
# Creation helpers
# ---------------------------------------------------------------------------


async def create_notification(
    session: AsyncSession,
    user_id: uuid.UUID,
    type: NotificationType,
    title: str,
    message: str,
    data: Optional[dict[str, Any]] = None,
) -> Notification:
    notification = Notification(
        user_id=user_id,
        type=type.value,
        title=title,
        message=message,
        data=data or {},
    )
    session.add(notification)
    await session.flush()
    log.info("notification.created", user_id=str(user_id), type=type.value)
    return notification


async def notify_task_assigned(
    session: AsyncSession,
    user_id: uuid.UUID,
    task_id: uuid.UUID,
    task_title: str,
    assigned_by: uuid.UUID,
) -> Notification:
    return await create_notification(
        session,
        user_id,
        NotificationType.TASK_ASSIGNED,
        "Task Assigned",
        f"You have been assigned to task: {task_title}",
        {"task_id": str(task_id), "assigned_by": str(assigned_by)},
    )


async def notify_task_comment(
    session: AsyncSession,
    user_id: uuid.UUID,
    task_id: uuid.UUID,
    task_title: str,
    comment_by: uuid.UUID,
) -> Notification:
    return await create_notification(
        session,
        user_id,
        NotificationType.TASK_COMMENT,
        "New Comment",
        f"New comment on task: {task_title}",
        {"task_id": str(task_id), "comment_by": str(comment_by)},
    )


async def notify_task_status_changed(
    session: AsyncSession,
    user_id: uuid.UUID,
    task_id: uuid.UUID,
    task_title: str,
    new_status: str,
) -> Notification:
    return await create_notification(
        session,
        user_id,
        NotificationType.TASK_STATUS_CHANGED,
        "Task Status Updated",
        f"Task '{task_title}' status changed to: {new_status}",
        {"task_id": str(task_id), "new_status": new_status},
    )


async def notify_mention(
    session: AsyncSession,
    user_id: uuid.UUID,
    task_id: uuid.UUID,
    task_title: str,
    mentioned_by: uuid.UUID,
) -> Notification:
    return await create_notification(
        session,
        user_id,
        NotificationType.MENTION,
        "You were mentioned",
        f"You were mentioned in a comment on task: {task_title}",
        {"task_id": str(task_id), "mentioned_by": str(mentioned_by)},
    )


async def notify_project_invite(
    session: AsyncSession,
    user_id: uuid.UUID,
    project_id: uuid.UUID,
    project_title: str,
    invited_by: uuid.UUID,
) -> Notification:
    return await create_notification(
        session,
        user_id,
        NotificationType.PROJECT_INVITE,
        "Project Invitation",
        f"You have been added to project: {project_title}",
        {"project_id": str(project_id), "invited_by": str(invited_by)},
    )


async def notify_task_due_soon(
    session: AsyncSession,
    user_id: uuid.UUID,
    task_id: uuid.UUID,
    task_title: str,
    due_date: str,
) -> Notification:
    return await create_notification(
        session,
        user_id,
        NotificationType.TASK_DUE_SOON,
        "Task Due Soon",
        f"Task '{task_title}' is due on {due_date}",
        {"task_id": str(task_id), "due_date": due_date},
    )
