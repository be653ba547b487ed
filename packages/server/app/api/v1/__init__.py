"""
API v1 Router

Everything under /api/v1 requires a bearer token and is scoped to the
organization the token was issued for.
"""

from fastapi import APIRouter
from . import notifications, projects, tasks

router = APIRouter()

router.include_router(projects.router, prefix="/projects", tags=["Projects"])
router.include_router(tasks.router, prefix="/projects/{project_id}/tasks", tags=["Tasks"])
router.include_router(tasks.my_tasks_router, tags=["Tasks"])
router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])


@router.get("/", tags=["API"])
async def api_root():
    """API root: returns version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/projects",
            "/projects/{projectId}/tasks",
            "/projects/{projectId}/tasks/{taskId}/dependencies",
            "/projects/{projectId}/tasks/{taskId}/comments",
            "/my-tasks",
            "/notifications",
        ],
    }
