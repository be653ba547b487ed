"""User model."""

from typing import Optional

from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class User(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "users"

    name: str = Field(nullable=False)
    email: str = Field(unique=True, index=True, nullable=False)
    avatar: Optional[str] = None
    password_hash: Optional[str] = Field(default=None)  # bcrypt
