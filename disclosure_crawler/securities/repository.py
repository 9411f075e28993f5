"""Database repository for the securities table."""

import logging

import asyncpg

from disclosure_crawler.securities.schemas import Security
from disclosure_crawler.storage.database import Database

logger = logging.getLogger(__name__)

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS securities (
    code        TEXT PRIMARY KEY,
    name        TEXT NOT NULL DEFAULT '',
    created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""

_BULK_UPSERT_SQL = """
INSERT INTO securities (code, name)
SELECT * FROM unnest($1::text[], $2::text[])
ON CONFLICT (code) DO UPDATE SET
    name = EXCLUDED.name,
    updated_at = NOW()
WHERE securities.name IS DISTINCT FROM EXCLUDED.name
"""


def dedupe_securities(securities: list[Security]) -> list[Security]:
    """Collapse repeated codes, keeping the last name seen for each."""
    by_code: dict[str, Security] = {}
    for security in securities:
        by_code[security.code] = security
    return list(by_code.values())


class SecurityRepository:
    """CRUD operations for the securities table."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        """Create the securities table (idempotent)."""
        await self._db.execute(_CREATE_TABLE_SQL)
        logger.info("Securities table ensured")

    async def bulk_upsert(
        self,
        securities: list[Security],
        conn: asyncpg.Connection | None = None,
    ) -> int:
        """Insert or update securities by code in one statement.

        Pass ``conn`` to run inside a caller-owned transaction.
        Returns the number of distinct codes processed.
        """
        if not securities:
            return 0

        unique = dedupe_securities(securities)
        codes = [s.code for s in unique]
        names = [s.name for s in unique]

        executor = conn if conn is not None else self._db
        await executor.execute(_BULK_UPSERT_SQL, codes, names)
        logger.debug("Bulk upserted %d securities", len(unique))
        return len(unique)
