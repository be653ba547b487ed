"""
Activity trail for projects and tasks.

Every mutating service operation calls record_activity, which persists an
ActivityLog row in the caller's session and mirrors it as a structured log
event. The row commits or rolls back together with the change it describes.
"""

from __future__ import annotations

from typing import Any, Optional, Union

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import AuthContext
from app.models.activity_log import ActivityLog
from app.models.project import Project
from app.models.task import Task

log = structlog.get_logger()

Loggable = Union[Project, Task]


def snapshot(obj: Loggable) -> dict[str, Any]:
    """JSON-safe copy of a model's columns for old/new value diffs."""
    return obj.model_dump(mode="json")


async def record_activity(
    session: AsyncSession,
    auth: AuthContext,
    action: str,
    subject: Loggable,
    description: str,
    old_values: Optional[dict[str, Any]] = None,
    new_values: Optional[dict[str, Any]] = None,
) -> ActivityLog:
    """Persist one activity entry. Does not commit."""
    loggable_type = subject.__tablename__.rstrip("s")
    entry = ActivityLog(
        user_id=auth.user_id,
        organization_id=auth.org_id,
        loggable_type=loggable_type,
        loggable_id=subject.id,
        action=action,
        description=description,
        old_values=old_values,
        new_values=new_values,
    )
    session.add(entry)

    log.info(
        f"{loggable_type}.{action}",
        loggable_id=str(subject.id),
        actor_id=str(auth.user_id),
        org_id=str(auth.org_id),
    )
    return entry
