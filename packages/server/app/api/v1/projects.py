"""
Project endpoints: CRUD, archiving, membership.

- Any org member lists and reads the projects they can see
- Managers and admins create, update, archive and restore projects
- Managers and admins add and remove project members
"""

from __future__ import annotations

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import AuthContext, require_manager, require_member
from app.core.config import get_settings
from app.core.database import get_session
from app.services import projects as project_service
from taskboard_shared.schemas.common import (
    APIResponse,
    ProjectStatus,
    ProjectVisibility,
    SortDirection,
)
from taskboard_shared.schemas.projects import (
    ProjectCreate,
    ProjectFilters,
    ProjectMemberAdd,
    ProjectRead,
    ProjectUpdate,
)
from taskboard_shared.schemas.users import UserSummary

settings = get_settings()
router = APIRouter()


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("", response_model=APIResponse[List[ProjectRead]])
async def list_projects_endpoint(
    status_filter: Optional[ProjectStatus] = Query(None, alias="status"),
    visibility: Optional[ProjectVisibility] = None,
    manager_id: Optional[uuid.UUID] = None,
    search: Optional[str] = None,
    include_archived: bool = False,
    sort_by: str = "created_at",
    sort_direction: SortDirection = SortDirection.DESC,
    page: int = Query(1, ge=1),
    per_page: int = Query(settings.default_per_page, ge=1, le=settings.max_per_page),
    auth: AuthContext = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """List the projects the caller can see, with filters and sorting."""
    filters = ProjectFilters(
        status=status_filter,
        visibility=visibility,
        manager_id=manager_id,
        search=search,
        include_archived=include_archived,
        sort_by=sort_by,
        sort_direction=sort_direction,
    )
    projects, meta = await project_service.list_projects(session, auth, filters, page, per_page)
    return APIResponse(data=projects, meta=meta, message="Projects retrieved successfully")


@router.post("", response_model=APIResponse[ProjectRead], status_code=status.HTTP_201_CREATED)
async def create_project_endpoint(
    body: ProjectCreate,
    auth: AuthContext = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    """Create a project. The creator and the manager become members."""
    project = await project_service.create_project(session, auth, body)
    return APIResponse(data=project, message="Project created successfully")


@router.get("/{project_id}", response_model=APIResponse[ProjectRead])
async def get_project_endpoint(
    project_id: uuid.UUID,
    auth: AuthContext = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    project = await project_service.get_project(session, auth, project_id)
    return APIResponse(data=project, message="Project retrieved successfully")


@router.put("/{project_id}", response_model=APIResponse[ProjectRead])
async def update_project_endpoint(
    project_id: uuid.UUID,
    body: ProjectUpdate,
    auth: AuthContext = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    project = await project_service.update_project(session, auth, project_id, body)
    return APIResponse(data=project, message="Project updated successfully")


@router.delete("/{project_id}", response_model=APIResponse[None])
async def delete_project_endpoint(
    project_id: uuid.UUID,
    auth: AuthContext = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    """Archive a project. It can be restored later."""
    await project_service.delete_project(session, auth, project_id)
    return APIResponse(message="Project archived successfully")


@router.post("/{project_id}/restore", response_model=APIResponse[ProjectRead])
async def restore_project_endpoint(
    project_id: uuid.UUID,
    auth: AuthContext = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    project = await project_service.restore_project(session, auth, project_id)
    return APIResponse(data=project, message="Project restored successfully")


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------


@router.get("/{project_id}/members", response_model=APIResponse[List[UserSummary]])
async def list_members_endpoint(
    project_id: uuid.UUID,
    auth: AuthContext = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    members = await project_service.list_members(session, auth, project_id)
    return APIResponse(data=members, message="Members retrieved successfully")


@router.post(
    "/{project_id}/members",
    response_model=APIResponse[List[UserSummary]],
    status_code=status.HTTP_201_CREATED,
)
async def add_member_endpoint(
    project_id: uuid.UUID,
    body: ProjectMemberAdd,
    auth: AuthContext = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    members = await project_service.add_member(session, auth, project_id, body.user_id)
    return APIResponse(data=members, message="Member added successfully")


@router.delete("/{project_id}/members/{user_id}", response_model=APIResponse[List[UserSummary]])
async def remove_member_endpoint(
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    auth: AuthContext = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    members = await project_service.remove_member(session, auth, project_id, user_id)
    return APIResponse(data=members, message="Member removed successfully")
