"""Database setup with async SQLAlchemy for PostgreSQL or SQLite."""
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from fastapi import Request
from app.core.config import Settings
import logging
import re
import time
from typing import AsyncGenerator

logger = logging.getLogger(__name__)


# Mask password in database URL for logging
def mask_db_url(url: str) -> str:
    """Mask password in database URL for safe logging."""
    return re.sub(r'://([^:]+):([^@]+)@', r'://\1:****@', url)


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


def create_engine_from_settings(settings: Settings) -> AsyncEngine:
    """Create the async engine described by ``settings.database_url``."""
    logger.info(f"Connecting to database: {mask_db_url(settings.database_url)}")
    logger.debug(f"Database URL scheme: {settings.database_url.split(':')[0]}")

    engine_args = {
        "echo": settings.log_level == "DEBUG",  # Log all SQL if DEBUG
        "pool_pre_ping": True,  # Verify connections before using
    }

    if settings.database_url.startswith("sqlite"):
        # SQLite serialises writers; wait for the lock instead of failing
        engine_args["connect_args"] = {"timeout": 15}
    else:
        engine_args.update({
            "pool_size": 10,  # Maintain 10 connections in pool
            "max_overflow": 20,  # Allow up to 20 additional connections
            "pool_timeout": settings.database_connect_timeout,
            "pool_recycle": 3600,  # Recycle connections every hour
        })
        logger.info(
            f"Configuring connection pool: pool_size=10, max_overflow=20, "
            f"pool_timeout={settings.database_connect_timeout}s, pool_recycle=3600s"
        )

    engine = create_async_engine(settings.database_url, **engine_args)
    logger.info("Database engine created")
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create the async session factory bound to ``engine``."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False
    )


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for getting database sessions.

    NOTE: This dependency does NOT auto-commit. Services must explicitly
    call await session.commit() when needed. This provides clearer
    transaction boundaries and avoids double-commit issues.
    """
    session_factory: async_sessionmaker[AsyncSession] = request.app.state.session_factory
    logger.debug("Creating new database session from pool")
    session_start_time = time.time()

    async with session_factory() as session:
        try:
            yield session
            logger.debug("Database session completed successfully")
        except Exception as e:
            await session.rollback()
            logger.error(f"Database session rolled back due to error: {str(e)}")
            logger.debug(f"Error type: {type(e).__name__}, Error details: {e}")
            raise
        finally:
            duration = time.time() - session_start_time
            logger.debug(f"Database session closed (duration: {duration:.3f}s)")


async def init_db(engine: AsyncEngine) -> None:
    """Initialize database tables."""
    # Make sure every model is registered on Base.metadata
    import app.models  # noqa: F401

    logger.info("Initializing database tables...")

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("✓ Database tables initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database tables: {str(e)}", exc_info=True)
        raise
