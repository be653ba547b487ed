"""Task comment model."""

from typing import List, Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import SoftDeleteMixin, TimestampMixin, UUIDMixin


class TaskComment(UUIDMixin, TimestampMixin, SoftDeleteMixin, SQLModel, table=True):
    __tablename__ = "task_comments"

    task_id: uuid.UUID = Field(foreign_key="tasks.id", nullable=False, index=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    content: str = Field(nullable=False)
    mentions: Optional[List[str]] = Field(default=None, sa_type=sa.JSON)  # user ids as strings
