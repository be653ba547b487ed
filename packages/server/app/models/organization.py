"""Organization (tenant) model."""

from typing import Optional

from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Organization(UUIDMixin, TimestampMixin, SQLModel, table=True):
    """Tenant boundary: every project, task and membership belongs to exactly one."""

    __tablename__ = "organizations"

    name: str = Field(max_length=255, index=True)
    slug: str = Field(max_length=100, unique=True, index=True)
    description: Optional[str] = None
