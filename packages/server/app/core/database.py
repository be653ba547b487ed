"""
Async engine and session handling.

Services only flush; the session opened here commits once the request (or the
script block) finishes and rolls back if anything raised.
"""

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from app.core.config import get_settings

_settings = get_settings()

engine: AsyncEngine = create_async_engine(_settings.database_url, echo=_settings.debug)

async_session_factory = async_sessionmaker(engine, expire_on_commit=False)


async def init_db(bind: AsyncEngine | None = None) -> None:
    """Create every table registered on the metadata. Used by tests and the dev seed."""
    import app.models  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


@asynccontextmanager
async def get_session_context() -> AsyncIterator[AsyncSession]:
    """Unit of work for code running outside a request."""
    async with async_session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        await session.commit()


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one committed unit of work per request."""
    async with get_session_context() as session:
        yield session
