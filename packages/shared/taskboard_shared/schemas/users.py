"""User and authentication schemas."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from .common import Role


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class AuthUserRead(BaseModel):
    """The authenticated user as seen from one organization."""
    id: UUID
    name: str
    email: str
    role: Role
    org_id: UUID
    avatar: Optional[str] = None


class LoginResponse(BaseModel):
    token: str
    user: AuthUserRead


class UserSummary(BaseModel):
    id: UUID
    name: str
    email: Optional[str] = None
    avatar: Optional[str] = None

    model_config = {"from_attributes": True}
