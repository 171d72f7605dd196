"""Health check endpoints for API and database monitoring."""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
from app.core.database import get_db
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy", "service": "newsletter-service"}


@router.get("/health/db")
async def check_database_health(request: Request, db: AsyncSession = Depends(get_db)):
    """
    Database connectivity check.

    Example response:
    {
        "status": "healthy",
        "database": "postgresql",
        "connection_pool": "QueuePool(size=10, ...)"
    }
    """
    logger.debug("Starting database health check")

    try:
        await db.execute(text("SELECT 1"))
        logger.debug("✓ Database connection successful")

        engine = request.app.state.engine
        return {
            "status": "healthy",
            "database": engine.dialect.name,
            "connection_pool": engine.pool.status()
        }

    except Exception as e:
        logger.error(f"Database health check failed: {e}", exc_info=True)
        return {
            "status": "unhealthy",
            "error": str(e),
            "error_type": type(e).__name__
        }
