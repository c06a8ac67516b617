"""
Database Configuration and Connection
"""
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
import structlog

from .config import settings

logger = structlog.get_logger()

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker] = None


def get_engine() -> AsyncEngine:
    """Create the async engine on first use"""
    global _engine
    if _engine is None:
        options = {"echo": settings.DEBUG, "pool_pre_ping": True}
        if not settings.DATABASE_URL.startswith("sqlite"):
            options.update(pool_size=10, max_overflow=20)
        _engine = create_async_engine(settings.DATABASE_URL, **options)
    return _engine


def get_session_factory() -> async_sessionmaker:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autocommit=False,
            autoflush=False
        )
    return _session_factory


async def init_database():
    """Initialize database connection"""
    logger.info("Initializing database connection", url=settings.DATABASE_URL.split('@')[-1])

    # Test connection
    async with get_engine().begin() as conn:
        await conn.run_sync(lambda _: None)

    logger.info("Database connection established")


async def close_database():
    """Close database connection"""
    global _engine, _session_factory
    if _engine is None:
        return
    logger.info("Closing database connection")
    await _engine.dispose()
    _engine = None
    _session_factory = None
