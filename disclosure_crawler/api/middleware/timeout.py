"""
Request timeout middleware.

A cache miss can fan out to several upstream sources, each bounded by the
per-source timeout. This middleware bounds the whole request on top of that
and answers 504 with the standard error envelope when it expires.
"""

import asyncio
from collections.abc import Sequence

import structlog
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = structlog.get_logger(__name__)

DEFAULT_EXEMPT_PATHS = ("/health",)


class TimeoutMiddleware(BaseHTTPMiddleware):
    """Abort requests exceeding ``timeout_seconds`` with 504 Gateway Timeout."""

    def __init__(
        self,
        app,
        timeout_seconds: float = 120.0,
        exempt_paths: Sequence[str] = DEFAULT_EXEMPT_PATHS,
    ):
        super().__init__(app)
        self.timeout_seconds = timeout_seconds
        self.exempt_paths = tuple(exempt_paths)

    async def dispatch(self, request: Request, call_next):
        if request.url.path.startswith(self.exempt_paths):
            return await call_next(request)

        try:
            async with asyncio.timeout(self.timeout_seconds):
                return await call_next(request)
        except TimeoutError:
            logger.warning(
                "Request exceeded timeout",
                method=request.method,
                path=request.url.path,
                timeout_seconds=self.timeout_seconds,
            )
            return JSONResponse(
                status_code=504,
                content={
                    "success": False,
                    "message": "Request timed out",
                    "error": f"No response within {self.timeout_seconds}s",
                },
            )
