"""
Notification endpoints: the caller's inbox.

Every route is scoped to the authenticated user; another user's
notification is reported as not found.
"""

from __future__ import annotations

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import AuthContext, require_member
from app.core.config import get_settings
from app.core.database import get_session
from app.services import notifications as notification_service
from taskboard_shared.schemas.common import APIResponse, NotificationType
from taskboard_shared.schemas.notifications import (
    CountRead,
    NotificationFilters,
    NotificationRead,
)

settings = get_settings()
router = APIRouter()


@router.get("", response_model=APIResponse[List[NotificationRead]])
async def list_notifications_endpoint(
    unread_only: bool = False,
    read_only: bool = False,
    type: Optional[NotificationType] = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(settings.default_per_page, ge=1, le=settings.max_per_page),
    auth: AuthContext = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """List the caller's notifications, newest first."""
    filters = NotificationFilters(unread_only=unread_only, read_only=read_only, type=type)
    items, meta = await notification_service.list_notifications(
        session, auth.user_id, filters, page, per_page
    )
    return APIResponse(data=items, meta=meta, message="Notifications retrieved successfully")


@router.get("/unread-count", response_model=APIResponse[CountRead])
async def unread_count_endpoint(
    auth: AuthContext = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    count = await notification_service.unread_count(session, auth.user_id)
    return APIResponse(data=CountRead(count=count))


@router.post("/mark-all-read", response_model=APIResponse[CountRead])
async def mark_all_read_endpoint(
    auth: AuthContext = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    count = await notification_service.mark_all_as_read(session, auth.user_id)
    return APIResponse(data=CountRead(count=count), message="All notifications marked as read")


@router.delete("/read", response_model=APIResponse[CountRead])
async def delete_all_read_endpoint(
    auth: AuthContext = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    count = await notification_service.delete_all_read(session, auth.user_id)
    return APIResponse(data=CountRead(count=count), message="Read notifications deleted")


@router.get("/{notification_id}", response_model=APIResponse[NotificationRead])
async def get_notification_endpoint(
    notification_id: uuid.UUID,
    auth: AuthContext = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    notification = await notification_service.get_notification(
        session, auth.user_id, notification_id
    )
    return APIResponse(data=notification_service.to_read(notification))


@router.post("/{notification_id}/read", response_model=APIResponse[NotificationRead])
async def mark_read_endpoint(
    notification_id: uuid.UUID,
    auth: AuthContext = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    notification = await notification_service.mark_as_read(session, auth.user_id, notification_id)
    return APIResponse(
        data=notification_service.to_read(notification),
        message="Notification marked as read",
    )


@router.post("/{notification_id}/unread", response_model=APIResponse[NotificationRead])
async def mark_unread_endpoint(
    notification_id: uuid.UUID,
    auth: AuthContext = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    notification = await notification_service.mark_as_unread(
        session, auth.user_id, notification_id
    )
    return APIResponse(
        data=notification_service.to_read(notification),
        message="Notification marked as unread",
    )


@router.delete("/{notification_id}", response_model=APIResponse[None])
async def delete_notification_endpoint(
    notification_id: uuid.UUID,
    auth: AuthContext = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    await notification_service.delete_notification(session, auth.user_id, notification_id)
    return APIResponse(message="Notification deleted")
