from enum import Enum
from math import ceil
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel


class Role(str, Enum):
    ADMIN = "admin"
    PROJECT_MANAGER = "project_manager"
    MEMBER = "member"


# Roles allowed to manage projects, tasks and dependencies
MANAGER_ROLES: frozenset[str] = frozenset({Role.ADMIN.value, Role.PROJECT_MANAGER.value})


def can_manage(role: str) -> bool:
    return role in MANAGER_ROLES


class TaskStatus(str, Enum):
    BACKLOG = "backlog"
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"
    DONE = "done"
    BLOCKED = "blocked"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ProjectStatus(str, Enum):
    PLANNING = "planning"
    ACTIVE = "active"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"


class ProjectVisibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class NotificationType(str, Enum):
    TASK_ASSIGNED = "task_assigned"
    TASK_COMMENT = "task_comment"
    TASK_STATUS_CHANGED = "task_status_changed"
    MENTION = "mention"
    PROJECT_INVITE = "project_invite"
    TASK_DUE_SOON = "task_due_soon"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class Pagination(BaseModel):
    page: int
    per_page: int
    total: int
    total_pages: int

    @classmethod
    def build(cls, page: int, per_page: int, total: int) -> "Pagination":
        return cls(
            page=page,
            per_page=per_page,
            total=total,
            total_pages=max(1, ceil(total / per_page)) if per_page else 1,
        )


T = TypeVar("T")


class APIResponse(BaseModel, Generic[T]):
    """Success envelope wrapping every payload returned by the API."""
    success: bool = True
    data: Optional[T] = None
    message: str = "Operation successful"
    meta: Optional[Pagination] = None
