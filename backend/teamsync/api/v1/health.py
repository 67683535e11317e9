"""Health check endpoints."""

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError

from teamsync.api.deps import AppSettings
from teamsync.db.session import Database, get_database

router = APIRouter()
logger = structlog.get_logger()


@router.get("/health")
async def health_check(settings: AppSettings) -> dict[str, str]:
    """Basic health check."""
    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
    }


@router.get("/health/ready")
async def readiness_check(
    settings: AppSettings,
    database: Database = Depends(get_database),
) -> dict[str, str | dict[str, str]]:
    """Readiness check including database connectivity."""
    checks: dict[str, str] = {}

    try:
        await database.ping()
        checks["database"] = "healthy"
    except (SQLAlchemyError, OSError) as e:
        logger.warning("database_unhealthy", error=str(e))
        checks["database"] = "unhealthy"

    overall_status = "healthy" if all(v == "healthy" for v in checks.values()) else "unhealthy"

    return {
        "status": overall_status,
        "version": settings.app_version,
        "checks": checks,
    }
