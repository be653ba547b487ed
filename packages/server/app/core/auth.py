"""
Authentication and Authorization for Taskboard.

Supports:
- Email/Password login with bcrypt-hashed passwords
- Stateless JWT bearer tokens carrying the caller's org and role
- An explicit AuthContext passed into every service call
- Role-based authorization dependencies
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
import structlog
from fastapi import Depends
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import get_settings
from app.core.database import get_session
from app.core.errors import ForbiddenError, UnauthorizedError
from app.models.organization_user import OrganizationUser
from app.models.user import User
from taskboard_shared.schemas.common import can_manage

log = structlog.get_logger()
settings = get_settings()

bearer_header = APIKeyHeader(name="Authorization", auto_error=False)

_BEARER_RE = re.compile(r"^Bearer\s+(.+)$", re.IGNORECASE)

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

def hash_password(password: str) -> str:
    """Hash a password using bcrypt with cost factor 12."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=12)).decode()


def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against a bcrypt hash."""
    return bcrypt.checkpw(password.encode(), hashed.encode())


# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------

def create_jwt(
    user_id: uuid.UUID,
    email: str,
    org_id: uuid.UUID,
    role: str,
    *,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed JWT for one user in one organization."""
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    payload = {
        "sub": str(user_id),
        "email": email,
        "org_id": str(org_id),
        "role": role,
        "iat": now,
        "exp": exp,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_jwt(token: str) -> dict:
    """Decode and verify a JWT. Raises jwt.PyJWTError on failure."""
    return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])


def extract_bearer_token(header: Optional[str]) -> Optional[str]:
    if not header:
        return None
    match = _BEARER_RE.match(header.strip())
    return match.group(1).strip() if match else None


# ---------------------------------------------------------------------------
# Authorization context
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AuthContext:
    """Who is calling, in which organization, with which role."""

    user_id: uuid.UUID
    org_id: uuid.UUID
    role: str

    @property
    def can_manage(self) -> bool:
        return can_manage(self.role)


class AuthenticatedUser:
    """Container for an authenticated user + their org context."""

    def __init__(self, user: User, membership: OrganizationUser):
        self.user = user
        self.membership = membership
        self.context = AuthContext(
            user_id=user.id,
            org_id=membership.organization_id,
            role=membership.role,
        )


# ---------------------------------------------------------------------------
# Authentication dependencies
# ---------------------------------------------------------------------------

async def authenticate_token(token: str, session: AsyncSession) -> AuthenticatedUser:
    """Resolve a bearer token to a user and their current org membership."""
    try:
        payload = decode_jwt(token)
        user_id = uuid.UUID(payload["sub"])
        org_id = uuid.UUID(payload["org_id"])
    except (jwt.PyJWTError, KeyError, ValueError):
        raise UnauthorizedError("Invalid or expired token")

    user = await session.get(User, user_id)
    if not user:
        raise UnauthorizedError("Invalid or expired token")

    # Role is read from the membership row, not the token, so demotions apply immediately
    result = await session.execute(
        select(OrganizationUser).where(
            OrganizationUser.user_id == user_id,
            OrganizationUser.organization_id == org_id,
        )
    )
    membership = result.scalar_one_or_none()
    if not membership:
        log.warning("auth.membership_missing", user_id=str(user_id), org_id=str(org_id))
        raise UnauthorizedError("Invalid or expired token")

    structlog.contextvars.bind_contextvars(user_id=str(user_id), org_id=str(org_id))
    return AuthenticatedUser(user=user, membership=membership)


async def get_authenticated_user(
    authorization: Optional[str] = Depends(bearer_header),
    session: AsyncSession = Depends(get_session),
) -> AuthenticatedUser:
    """Main authentication dependency: Bearer JWT in the Authorization header."""
    token = extract_bearer_token(authorization)
    if not token:
        raise UnauthorizedError("No token provided")
    return await authenticate_token(token, session)


# ---------------------------------------------------------------------------
# Authorization dependencies (role checks)
# ---------------------------------------------------------------------------

async def require_member(
    auth: AuthenticatedUser = Depends(get_authenticated_user),
) -> AuthContext:
    """Any org member can access this endpoint."""
    return auth.context


async def require_manager(
    auth: AuthenticatedUser = Depends(get_authenticated_user),
) -> AuthContext:
    """Requires admin or project_manager role."""
    if not auth.context.can_manage:
        raise ForbiddenError("Only managers and admins can perform this action")
    return auth.context
