"""Activity log model (append-only audit trail)."""

from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class ActivityLog(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "activity_logs"
    __table_args__ = (
        sa.Index("ix_activity_logs_loggable", "loggable_type", "loggable_id"),
    )

    user_id: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id", index=True)
    organization_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="organizations.id", index=True
    )
    loggable_type: str = Field(nullable=False)  # project | task
    loggable_id: uuid.UUID = Field(nullable=False)
    action: str = Field(nullable=False, index=True)
    description: Optional[str] = None
    old_values: Optional[dict] = Field(default=None, sa_type=sa.JSON)
    new_values: Optional[dict] = Field(default=None, sa_type=sa.JSON)
