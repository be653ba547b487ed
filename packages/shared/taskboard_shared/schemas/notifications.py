from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .common import NotificationType


class NotificationFilters(BaseModel):
    unread_only: bool = False
    read_only: bool = False
    type: Optional[NotificationType] = None


class NotificationRead(BaseModel):
    id: UUID
    user_id: UUID
    type: NotificationType
    title: str
    message: str
    data: Dict[str, Any] = Field(default_factory=dict)
    is_read: bool = False
    read_at: Optional[datetime] = None
    created_at: datetime


class CountRead(BaseModel):
    count: int
