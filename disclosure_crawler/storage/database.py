"""
PostgreSQL connection pool.

Thin asyncpg wrapper shared by the repositories: pool lifecycle, the
query helpers they need, and transactions for multi-statement upserts.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import asyncpg

from disclosure_crawler.config.settings import Settings, get_settings

logger = logging.getLogger(__name__)

APPLICATION_NAME = "disclosure-crawler"


class Database:
    """
    Async PostgreSQL connection pool.

    Usage:
        async with Database() as db:
            async with db.transaction() as conn:
                await conn.execute("INSERT INTO securities ...")
                await conn.execute("INSERT INTO quarterly_eps ...")
    """

    def __init__(
        self,
        database_url: str | None = None,
        min_size: int | None = None,
        max_size: int | None = None,
        settings: Settings | None = None,
    ):
        settings = settings or get_settings()

        self._database_url = database_url or str(settings.database_url)
        self._min_size = min_size or settings.db_pool_min_size
        self._max_size = max_size or settings.db_pool_max_size
        self._command_timeout = settings.db_command_timeout_seconds
        self._pool: asyncpg.Pool | None = None

    @property
    def connected(self) -> bool:
        return self._pool is not None

    @property
    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._pool

    async def connect(self) -> None:
        """Create the connection pool (no-op when already connected)."""
        if self._pool is not None:
            return

        try:
            self._pool = await asyncpg.create_pool(
                self._database_url,
                min_size=self._min_size,
                max_size=self._max_size,
                command_timeout=self._command_timeout,
                server_settings={"application_name": APPLICATION_NAME},
            )
        except Exception as e:
            logger.error(f"Failed to connect to database: {e}")
            raise

        logger.info(f"Database connected (pool: {self._min_size}-{self._max_size})")

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info("Database connection closed")

    async def __aenter__(self) -> "Database":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[asyncpg.Connection]:
        """Yield a pooled connection inside a transaction; rolled back on error."""
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                yield conn

    async def execute(self, query: str, *args: Any) -> str:
        """Run a statement; returns the PostgreSQL status string."""
        async with self.pool.acquire() as conn:
            return await conn.execute(query, *args)

    async def fetch(self, query: str, *args: Any) -> list[asyncpg.Record]:
        async with self.pool.acquire() as conn:
            return await conn.fetch(query, *args)

    async def fetchrow(self, query: str, *args: Any) -> asyncpg.Record | None:
        async with self.pool.acquire() as conn:
            return await conn.fetchrow(query, *args)

    async def fetchval(self, query: str, *args: Any) -> Any:
        async with self.pool.acquire() as conn:
            return await conn.fetchval(query, *args)

    async def health_check(self) -> bool:
        """True when a trivial query succeeds."""
        try:
            return await self.fetchval("SELECT 1") == 1
        except Exception as e:
            logger.warning(f"Database health check failed: {e}")
            return False
