"""Health check endpoints for monitoring."""

import logging

from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from pagevault.api.deps import DB
from pagevault.core.config import settings
from pagevault.utils.envelopes import api_success

router = APIRouter(tags=["health"])
logger = logging.getLogger(__name__)


async def _database_ok(db) -> bool:
    try:
        await db.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        logger.exception("Database health check failed")
        return False


@router.get("/health", response_model=dict)
async def health_check(db: DB):
    """Health check endpoint for load balancers and monitoring."""
    db_ok = await _database_ok(db)
    return api_success(
        {
            "status": "ok" if db_ok else "degraded",
            "service": settings.APP_NAME,
            "database": "healthy" if db_ok else "unhealthy",
        }
    )


@router.get("/health/ready", response_model=dict)
async def readiness_check(db: DB):
    return api_success({"ready": await _database_ok(db)})


@router.get("/health/live", response_model=dict)
async def liveness_check():
    return api_success({"alive": True})
