"""
Database configuration and session management.

Provides async database sessions and metadata for ORM models.

DATABASE_URL is read from toolsmith.core.config (single resolution path).
"""
from typing import AsyncGenerator
import logging

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base

from toolsmith.core.config import DATABASE_URL, DATA_ROOT, DB_POOL_SIZE, DB_MAX_OVERFLOW

logger = logging.getLogger(__name__)

# Create declarative base for ORM models
Base = declarative_base()

# Convert to async URL if needed
if DATABASE_URL.startswith('postgresql://'):
    ASYNC_DATABASE_URL = DATABASE_URL.replace('postgresql://', 'postgresql+asyncpg://')
else:
    ASYNC_DATABASE_URL = DATABASE_URL

_engine_kwargs = {"echo": False, "pool_pre_ping": True}
if ASYNC_DATABASE_URL.startswith("postgresql+asyncpg://"):
    _engine_kwargs.update(
        pool_size=DB_POOL_SIZE,
        max_overflow=DB_MAX_OVERFLOW,
        connect_args={"server_settings": {"client_encoding": "utf8"}},
    )

engine = create_async_engine(ASYNC_DATABASE_URL, **_engine_kwargs)

# Create async session factory
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency for database sessions.

    Services commit explicitly at their transaction boundaries; anything
    left pending when the request ends is committed here.

    Yields:
        AsyncSession: Database session
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def import_models() -> None:
    """Import every ORM model so it is registered with Base.metadata."""
    from toolsmith.api.models import (  # noqa: F401
        Project, Step, Field, Choice,
        Deployment,
        ToolSession, Response,
        Package, UserPackage, UsageEvent,
        AIConfigVersion,
    )


async def init_database():
    """
    Initialize database - create tables if they don't exist.

    Note: In production, use Alembic migrations instead.
    This is mainly for development/testing.
    """
    import_models()

    if ASYNC_DATABASE_URL.startswith("sqlite"):
        DATA_ROOT.mkdir(parents=True, exist_ok=True)

    async with engine.begin() as conn:
        # Create all tables (idempotent)
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database initialized")
