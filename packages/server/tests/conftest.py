"""
Shared fixtures: an in-memory SQLite database, a small organization with one
user per role, and an HTTP client wired to the same database.
"""

import os

os.environ.setdefault("TASKBOARD_DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("TASKBOARD_SECRET_KEY", "test-secret-key-with-at-least-32-bytes")

from dataclasses import dataclass

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.auth import AuthContext, create_jwt
from app.core.database import get_session, init_db
from app.main import app
from app.models.organization import Organization
from app.models.organization_user import OrganizationUser
from app.models.user import User
from taskboard_shared.schemas.common import Role


@dataclass
class Member:
    user: User
    org: Organization
    role: str

    @property
    def auth(self) -> AuthContext:
        return AuthContext(user_id=self.user.id, org_id=self.org.id, role=self.role)

    @property
    def headers(self) -> dict[str, str]:
        token = create_jwt(self.user.id, self.user.email, self.org.id, self.role)
        return {"Authorization": f"Bearer {token}"}


@dataclass
class World:
    org: Organization
    admin: Member
    manager: Member
    member: Member
    other_member: Member
    outsider: Member


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


async def _add_member(session, org: Organization, name: str, email: str, role: Role) -> Member:
    user = User(name=name, email=email)
    session.add(user)
    await session.flush()
    session.add(OrganizationUser(organization_id=org.id, user_id=user.id, role=role.value))
    await session.flush()
    return Member(user=user, org=org, role=role.value)


@pytest.fixture
async def world(session) -> World:
    org = Organization(name="Acme", slug="acme")
    other_org = Organization(name="Globex", slug="globex")
    session.add(org)
    session.add(other_org)
    await session.flush()

    world = World(
        org=org,
        admin=await _add_member(session, org, "Ada Admin", "admin@acme.com", Role.ADMIN),
        manager=await _add_member(
            session, org, "Pat Manager", "manager@acme.com", Role.PROJECT_MANAGER
        ),
        member=await _add_member(session, org, "Max Member", "member@acme.com", Role.MEMBER),
        other_member=await _add_member(
            session, org, "Mia Member", "mia@acme.com", Role.MEMBER
        ),
        outsider=await _add_member(
            session, other_org, "Olly Outsider", "olly@globex.com", Role.ADMIN
        ),
    )
    await session.commit()
    return world


@pytest.fixture
async def client(session_factory):
    async def override_get_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
