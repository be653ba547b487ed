"""Per-user notification inbox."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Notification(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "notifications"

    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    type: str = Field(nullable=False, index=True)
    title: str = Field(nullable=False)
    message: str = Field(nullable=False)
    data: dict = Field(default_factory=dict, sa_type=sa.JSON, nullable=False)
    read_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime())

    @property
    def is_read(self) -> bool:
        return self.read_at is not None
