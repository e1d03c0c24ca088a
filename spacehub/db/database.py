"""
Database connection and session management.
Uses SQLAlchemy async with PostgreSQL (asyncpg) or SQLite (aiosqlite).
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import event, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from spacehub.config import settings

logger = logging.getLogger(__name__)


# Convert sync URL to async URL if needed
def get_async_url(url: str) -> str:
    """Convert PostgreSQL URL to async format."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    elif url.startswith("postgresql+psycopg2://"):
        return url.replace("postgresql+psycopg2://", "postgresql+asyncpg://", 1)
    return url


def enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    """Turn on FK enforcement (and ON DELETE actions) for SQLite connections."""
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# Create async engine
engine = create_async_engine(
    get_async_url(settings.database_url),
    echo=settings.debug,
)
enable_sqlite_foreign_keys(engine)

# Session factory
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""

    pass


async def get_db_session() -> AsyncIterator[AsyncSession]:
    """Get an async database session."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


@asynccontextmanager
async def transaction(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Run a multi-statement unit of work atomically.

    Commits when the block exits normally; rolls back every statement issued
    in the block if it raises.
    """
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise


# Permission bitmask per role id
ROLE_PERMISSION_BITS = {
    1: 0b111,
    2: 0b011,
    3: 0b001,
}


async def seed_space_roles(session: AsyncSession) -> None:
    """Insert the fixed owner/editor/viewer catalog if missing."""
    from spacehub.core.roles import SpaceRole
    from spacehub.db.models import SpaceRoleModel

    result = await session.execute(select(SpaceRoleModel.id))
    existing = set(result.scalars().all())
    for role in SpaceRole:
        if role.value not in existing:
            session.add(
                SpaceRoleModel(
                    id=role.value,
                    name=role.label,
                    permission=ROLE_PERMISSION_BITS[role],
                )
            )
    await session.commit()


async def init_db(bind: AsyncEngine = engine) -> None:
    """Initialize database tables and the role catalog."""
    # Register every model on Base.metadata
    import spacehub.db.models  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(bind, expire_on_commit=False)
    async with session_factory() as session:
        await seed_space_roles(session)
    logger.info("Database initialized")
