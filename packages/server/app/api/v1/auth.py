"""
Authentication endpoints.

- Email/Password login issuing a bearer JWT
- Current user lookup
- Stateless logout
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import (
    AuthenticatedUser,
    create_jwt,
    get_authenticated_user,
    verify_password,
)
from app.core.database import get_session
from app.core.errors import InvalidCredentialsError
from app.models.organization_user import OrganizationUser
from app.models.user import User
from taskboard_shared.schemas.common import APIResponse
from taskboard_shared.schemas.users import AuthUserRead, LoginRequest, LoginResponse

log = structlog.get_logger()
router = APIRouter()


def _auth_user(user: User, membership: OrganizationUser) -> AuthUserRead:
    return AuthUserRead(
        id=user.id,
        name=user.name,
        email=user.email,
        role=membership.role,
        org_id=membership.organization_id,
        avatar=user.avatar,
    )


@router.post("/login", response_model=APIResponse[LoginResponse])
async def login(
    body: LoginRequest,
    session: AsyncSession = Depends(get_session),
):
    """Authenticate with email/password and receive a bearer token."""
    result = await session.execute(select(User).where(User.email == body.email))
    user = result.scalar_one_or_none()

    if not user or not user.password_hash:
        log.warning("auth.login_failure", email=body.email, reason="unknown_user")
        raise InvalidCredentialsError()

    if not verify_password(body.password, user.password_hash):
        log.warning("auth.login_failure", email=body.email, reason="bad_password")
        raise InvalidCredentialsError()

    # The oldest membership is the active organization
    result = await session.execute(
        select(OrganizationUser)
        .where(OrganizationUser.user_id == user.id)
        .order_by(OrganizationUser.created_at)
    )
    membership = result.scalars().first()
    if not membership:
        log.warning("auth.login_failure", email=body.email, reason="no_organization")
        raise InvalidCredentialsError()

    token = create_jwt(
        user_id=user.id,
        email=user.email,
        org_id=membership.organization_id,
        role=membership.role,
    )

    log.info("auth.login_success", user_id=str(user.id), org_id=str(membership.organization_id))
    return APIResponse(
        data=LoginResponse(token=token, user=_auth_user(user, membership)),
        message="Login successful",
    )


@router.get("/me", response_model=APIResponse[AuthUserRead])
async def me(auth: AuthenticatedUser = Depends(get_authenticated_user)):
    """Return the authenticated user within their active organization."""
    return APIResponse(data=_auth_user(auth.user, auth.membership))


@router.post("/logout", response_model=APIResponse[None])
async def logout():
    """Tokens are stateless; the client discards its copy."""
    return APIResponse(message="Logged out successfully")
