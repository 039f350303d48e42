"""Database configuration and connection management"""

from typing import AsyncGenerator, Optional
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncSession,
    AsyncEngine
)
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import AsyncAdaptedQueuePool
from automation_engine.core.config import settings

# Import Base from models (defined in models/base.py)
# This ensures all models are registered with the same Base
from automation_engine.models.base import Base  # noqa: F401

# Async engine
db_engine: Optional[AsyncEngine] = None
async_session_factory: Optional[sessionmaker] = None


def get_database_url() -> str:
    """Construct the database connection URL; DATABASE_URL wins when set"""
    if settings.DATABASE_URL:
        return settings.DATABASE_URL
    return (
        f"mysql+aiomysql://{settings.MYSQL_USER}:{settings.MYSQL_PASSWORD}"
        f"@{settings.MYSQL_HOST}:{settings.MYSQL_PORT}/{settings.MYSQL_DATABASE}"
    )


async def init_db() -> None:
    """Initialize async engine and session factory"""
    global db_engine, async_session_factory

    database_url = get_database_url()

    if database_url.startswith("sqlite"):
        db_engine = create_async_engine(database_url, echo=settings.DEBUG)
    else:
        # Create async engine with connection pooling
        db_engine = create_async_engine(
            database_url,
            echo=settings.DEBUG,
            pool_size=10,  # Maximum number of connections in the pool
            max_overflow=20,  # Maximum overflow connections beyond pool_size
            pool_timeout=30,  # Timeout for getting connection from pool
            pool_recycle=3600,  # Recycle connections after 1 hour
            pool_pre_ping=True,  # Verify connections before using
            poolclass=AsyncAdaptedQueuePool,
        )

    # Create async session factory
    async_session_factory = sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


async def close_db() -> None:
    """Close engine and cleanup connections"""
    global db_engine, async_session_factory
    if db_engine:
        await db_engine.dispose()
        db_engine = None
        async_session_factory = None


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency injection for database sessions.

    Usage in FastAPI:
        @router.post("/process")
        async def process(db: AsyncSession = Depends(get_db)):
            ...
    """
    if async_session_factory is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")

    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def check_database_connection() -> bool:
    """
    Check if the database connection is healthy.
    Used for health checks.
    """
    if db_engine is None:
        return False

    try:
        async with db_engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
