"""Task dependency edge: task_id depends on depends_on_task_id."""

from datetime import datetime
import uuid

import sqlalchemy as sa
from sqlalchemy import CheckConstraint
from sqlmodel import Field, SQLModel

from .base import utcnow


class TaskDependency(SQLModel, table=True):
    __tablename__ = "task_dependencies"
    __table_args__ = (
        CheckConstraint("task_id != depends_on_task_id", name="no_self_dependency"),
    )

    task_id: uuid.UUID = Field(foreign_key="tasks.id", primary_key=True)
    depends_on_task_id: uuid.UUID = Field(foreign_key="tasks.id", primary_key=True, index=True)
    project_id: uuid.UUID = Field(foreign_key="projects.id", nullable=False, index=True)
    created_at: datetime = Field(default_factory=utcnow, nullable=False, sa_type=sa.DateTime())
