"""Project model."""

from datetime import date
from typing import Optional
import uuid

from sqlmodel import Field, SQLModel

from .base import SoftDeleteMixin, TimestampMixin, UUIDMixin


class Project(UUIDMixin, TimestampMixin, SoftDeleteMixin, SQLModel, table=True):
    __tablename__ = "projects"

    organization_id: uuid.UUID = Field(foreign_key="organizations.id", nullable=False, index=True)
    manager_id: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id", index=True)
    created_by: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")
    title: str = Field(nullable=False)
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: str = Field(default="planning", nullable=False, index=True)  # planning | active | on_hold | completed
    visibility: str = Field(default="public", nullable=False)  # public | private
