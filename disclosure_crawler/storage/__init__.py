"""Storage layer: asyncpg connection pool."""

from disclosure_crawler.storage.database import Database

__all__ = ["Database"]
