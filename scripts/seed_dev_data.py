#!/usr/bin/env python3
"""Seed a development database with demo organizations, users, a project and tasks.

Usage:
    python scripts/seed_dev_data.py

Uses TASKBOARD_DATABASE_URL (or the default local Postgres). Every demo user
logs in with the password "password". Re-running the script is a no-op.
"""

import asyncio
import uuid

import structlog

from app.core.auth import hash_password
from app.core.config import get_settings
from app.core.database import engine, get_session_context, init_db
from app.core.logging import configure_logging
from app.models.assignments import ProjectMember
from app.models.dependency import TaskDependency
from app.models.organization import Organization
from app.models.organization_user import OrganizationUser
from app.models.project import Project
from app.models.task import Task
from app.models.user import User

log = structlog.get_logger()

DEMO_PASSWORD = "password"

# Deterministic UUIDs for reproducibility
ORG_IDS = [uuid.UUID(f"00000000-0000-0000-0000-00000000000{i}") for i in (1, 2)]
USER_IDS = [uuid.UUID(f"00000000-0000-0000-0000-0000000000{i:02d}") for i in range(10, 15)]
PROJECT_ID = uuid.UUID("00000000-0000-0000-0000-000000000100")
TASK_IDS = [uuid.UUID(f"00000000-0000-0000-0000-0000000002{i:02d}") for i in range(5)]

ORGANIZATIONS = [
    ("Acme Corporation", "acme-corp", "Leading provider of innovative solutions"),
    ("Tech Startup Inc", "tech-startup", "Building the future of technology"),
]

# (name, email, org index, role)
USERS = [
    ("Admin User", "admin@acme.com", 0, "admin"),
    ("Project Manager", "manager@acme.com", 0, "project_manager"),
    ("John Developer", "john@acme.com", 0, "member"),
    ("Jane Designer", "jane@acme.com", 0, "member"),
    ("Startup Admin", "admin@startup.com", 1, "admin"),
]

# (title, priority, status, assignee index)
TASKS = [
    ("Design database schema", "high", "done", 2),
    ("Create wireframes", "medium", "done", 3),
    ("Implement authentication", "critical", "in_progress", 2),
    ("Build project dashboard", "high", "todo", 3),
    ("Write API documentation", "low", "backlog", None),
]


async def _populate(session) -> None:
    for oid, (name, slug, description) in zip(ORG_IDS, ORGANIZATIONS):
        session.add(Organization(id=oid, name=name, slug=slug, description=description))

    password_hash = hash_password(DEMO_PASSWORD)
    for uid, (name, email, org_index, role) in zip(USER_IDS, USERS):
        session.add(User(id=uid, name=name, email=email, password_hash=password_hash))
        session.add(OrganizationUser(organization_id=ORG_IDS[org_index], user_id=uid, role=role))
    await session.flush()

    admin_id, manager_id = USER_IDS[0], USER_IDS[1]
    session.add(
        Project(
            id=PROJECT_ID,
            organization_id=ORG_IDS[0],
            manager_id=manager_id,
            created_by=admin_id,
            title="Website Redesign",
            description="Complete overhaul of the company website",
            status="active",
            visibility="public",
        )
    )
    await session.flush()
    for uid in USER_IDS[:4]:
        session.add(ProjectMember(project_id=PROJECT_ID, user_id=uid))

    for position, (tid, (title, priority, status, assignee)) in enumerate(
        zip(TASK_IDS, TASKS), start=1
    ):
        session.add(
            Task(
                id=tid,
                project_id=PROJECT_ID,
                assignee_id=USER_IDS[assignee] if assignee is not None else None,
                created_by=manager_id,
                updated_by=manager_id,
                title=title,
                priority=priority,
                status=status,
                position=position,
            )
        )
    await session.flush()

    # The dashboard cannot be built before authentication exists
    session.add(
        TaskDependency(task_id=TASK_IDS[3], depends_on_task_id=TASK_IDS[2], project_id=PROJECT_ID)
    )


async def seed():
    settings = get_settings()
    configure_logging(settings.log_level, "console")
    await init_db()

    async with get_session_context() as session:
        if await session.get(Organization, ORG_IDS[0]):
            log.info("seed.skipped", reason="already seeded")
        else:
            await _populate(session)
            log.info(
                "seed.completed",
                organizations=len(ORGANIZATIONS),
                users=len(USERS),
                tasks=len(TASKS),
                password=DEMO_PASSWORD,
            )

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed())
