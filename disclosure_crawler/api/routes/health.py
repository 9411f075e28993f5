"""
Health check endpoint.
"""

import time

import structlog
from fastapi import APIRouter, Depends

from disclosure_crawler.api.dependencies import get_database
from disclosure_crawler.api.models import ComponentHealth, HealthResponse
from disclosure_crawler.storage.database import Database

router = APIRouter()
logger = structlog.get_logger(__name__)

VERSION = "0.1.0"


async def _check_database(db: Database) -> ComponentHealth:
    """Check database connectivity and measure latency."""
    start = time.perf_counter()
    try:
        healthy = await db.health_check()
        details = None
    except Exception as e:
        healthy = False
        details = {"error": str(e)}

    return ComponentHealth(
        status="healthy" if healthy else "unhealthy",
        latency_ms=round((time.perf_counter() - start) * 1000, 2),
        details=details,
    )


@router.get("/health", response_model=HealthResponse)
async def health_check(db: Database = Depends(get_database)) -> HealthResponse:
    """Report service status based on database connectivity."""
    database = await _check_database(db)
    if database.status != "healthy":
        logger.warning("Health check failed", component="database", details=database.details)

    return HealthResponse(
        status=database.status,
        version=VERSION,
        components={"database": database},
    )
