"""
FastAPI application factory.
"""

import time
import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from disclosure_crawler.api.dependencies import cleanup_dependencies
from disclosure_crawler.api.middleware.timeout import TimeoutMiddleware
from disclosure_crawler.api.routes import crawler, health
from disclosure_crawler.api.routes.health import VERSION
from disclosure_crawler.config.settings import get_settings
from disclosure_crawler.crawler.errors import (
    DataNotFoundError,
    InvalidPeriod,
    PersistenceWriteError,
)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Disclosure crawler API starting up")

    yield

    logger.info("Disclosure crawler API shutting down")
    await cleanup_dependencies()


def _error(status_code: int, message: str, error) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, "error": error},
    )


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application
    """
    settings = get_settings()

    openapi_tags = [
        {"name": "health", "description": "Service health checks"},
        {"name": "crawler", "description": "Periodic equity disclosures by period"},
    ]

    app = FastAPI(
        title="Taiwan Equity Disclosure Crawler",
        description="""
Serves daily prices, monthly revenues and quarterly financial statement
summaries for TWSE-listed and TPEx (OTC) securities.

Periods not yet stored are crawled from TWSE, TPEx and MOPS on first
request and persisted; later requests are answered from storage.
        """,
        version=VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
        openapi_tags=openapi_tags,
    )

    # Add CORS middleware (origins from CORS_ORIGINS env var, comma-separated)
    cors_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
    )

    # Added before the logging middleware so the timeout wraps the whole request
    if settings.request_timeout_seconds > 0:
        app.add_middleware(
            TimeoutMiddleware,
            timeout_seconds=settings.request_timeout_seconds,
        )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        # Correlation ID: use incoming header or generate a new one
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        structlog.contextvars.bind_contextvars(request_id=request_id)

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            logger.info(
                "HTTP request",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
            return response
        finally:
            structlog.contextvars.clear_contextvars()

    @app.exception_handler(InvalidPeriod)
    async def invalid_period_handler(request: Request, exc: InvalidPeriod):
        return _error(400, "Validation Error", str(exc))

    @app.exception_handler(DataNotFoundError)
    async def not_found_handler(request: Request, exc: DataNotFoundError):
        logger.info("No data for period", entity=exc.entity, period=exc.period)
        return _error(404, str(exc), "Not Found")

    @app.exception_handler(PersistenceWriteError)
    async def persistence_error_handler(request: Request, exc: PersistenceWriteError):
        return _error(500, "Failed to store crawled data", str(exc))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return _error(500, "Internal server error", "internal")

    app.include_router(health.router, tags=["health"])
    app.include_router(crawler.router, tags=["crawler"])

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "service": "Taiwan Equity Disclosure Crawler",
            "version": VERSION,
            "docs": "/docs",
        }

    return app
