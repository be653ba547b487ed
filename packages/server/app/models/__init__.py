# Importing the models registers their tables on SQLModel.metadata for create_all.
from .base import UUIDMixin, TimestampMixin, SoftDeleteMixin  # noqa: F401
from .organization import Organization  # noqa: F401
from .user import User  # noqa: F401
from .organization_user import OrganizationUser  # noqa: F401
from .project import Project  # noqa: F401
from .assignments import ProjectMember  # noqa: F401
from .task import Task  # noqa: F401
from .dependency import TaskDependency  # noqa: F401
from .comment import TaskComment  # noqa: F401
from .notification import Notification  # noqa: F401
from .activity_log import ActivityLog  # noqa: F401
