"""
Database connection and session management.

Uses SQLite with aiosqlite for async support.
"""

import os
import logging
from typing import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from signalpro.db.models import Base
from signalpro.core.config import settings

logger = logging.getLogger(__name__)

# Database path - create data directory if needed
DATA_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(__file__))), "data")

SQLITE_PATH = settings.sqlite_path or os.path.join(DATA_DIR, "signalpro.db")
DATABASE_URL = f"sqlite+aiosqlite:///{SQLITE_PATH}"


def create_engine(url: str = DATABASE_URL) -> AsyncEngine:
    """SQLite requires check_same_thread=False for async."""
    return create_async_engine(
        url,
        echo=False,  # Set to True for SQL debugging
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


def create_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = create_engine()
AsyncSessionLocal = create_session_factory(engine)


async def init_db(bind: AsyncEngine = engine) -> None:
    """
    Initialize the database - create all tables.
    Called on application startup.
    """
    if bind is engine and settings.sqlite_path is None:
        os.makedirs(DATA_DIR, exist_ok=True)

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"Database initialized at: {bind.url.database}")


async def close_db(bind: AsyncEngine = engine) -> None:
    """
    Close database connections.
    Called on application shutdown.
    """
    await bind.dispose()
    logger.info("Database connections closed")


@asynccontextmanager
async def session_scope(
    factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal,
) -> AsyncGenerator[AsyncSession, None]:
    """
    Context manager for database sessions.
    Commits on success, rolls back on error.
    """
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
