"""User-Organization membership (join table carrying the org role)."""

import uuid

from sqlmodel import Field, SQLModel

from .base import TimestampMixin


class OrganizationUser(TimestampMixin, SQLModel, table=True):
    __tablename__ = "organization_users"

    organization_id: uuid.UUID = Field(foreign_key="organizations.id", primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", primary_key=True, index=True)
    role: str = Field(nullable=False, default="member", index=True)  # admin | project_manager | member
