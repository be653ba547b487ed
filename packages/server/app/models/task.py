"""Task model."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import SoftDeleteMixin, TimestampMixin, UUIDMixin, utcnow


class Task(UUIDMixin, TimestampMixin, SoftDeleteMixin, SQLModel, table=True):
    __tablename__ = "tasks"
    __table_args__ = (
        sa.Index("ix_tasks_project_status", "project_id", "status"),
        sa.Index("ix_tasks_project_position", "project_id", "position"),
        sa.Index("ix_tasks_assignee_status", "assignee_id", "status"),
    )

    project_id: uuid.UUID = Field(foreign_key="projects.id", nullable=False, index=True)
    assignee_id: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id", index=True)
    created_by: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")
    updated_by: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")
    title: str = Field(nullable=False)
    description: Optional[str] = None
    priority: str = Field(nullable=False, default="medium")  # low | medium | high | critical
    status: str = Field(nullable=False, default="todo")  # backlog | todo | in_progress | review | done | blocked
    due_date: Optional[datetime] = Field(default=None, sa_type=sa.DateTime())
    due_date_timezone: str = Field(nullable=False, default="UTC")
    position: int = Field(nullable=False, default=0)

    @property
    def is_done(self) -> bool:
        return self.status == "done"

    @property
    def is_blocked(self) -> bool:
        return self.status == "blocked"

    @property
    def is_overdue(self) -> bool:
        if self.due_date is None:
            return False
        return self.due_date < utcnow() and self.status not in ("done", "blocked")
