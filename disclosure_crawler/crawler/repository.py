"""
Database repository for period records.

Every entity type is stored in its own table keyed by
``(stock_code, period)``, where ``period`` is the first-of-period date.
One generic repository serves all of them, driven by a
:class:`PeriodTable` description of the table's value columns.
"""

import logging
from dataclasses import dataclass, fields
from datetime import date
from typing import Any

from disclosure_crawler.crawler.schemas import (
    DailyPrice,
    MonthlyRevenue,
    QuarterlyCapital,
    QuarterlyCashFlow,
    QuarterlyEps,
)
from disclosure_crawler.observability.metrics import MetricsCollector
from disclosure_crawler.securities.repository import SecurityRepository
from disclosure_crawler.securities.schemas import Security
from disclosure_crawler.storage.database import Database

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValueColumn:
    """A non-identity column; ``name`` matches the record field name."""

    name: str
    sql_type: str
    nullable: bool = False


@dataclass(frozen=True)
class PeriodTable:
    """Table layout for one period record type."""

    name: str
    record_cls: type
    columns: tuple[ValueColumn, ...]

    def __post_init__(self) -> None:
        expected = {f.name for f in fields(self.record_cls)} - {"code", "name"}
        actual = {c.name for c in self.columns}
        if expected != actual:
            raise ValueError(
                f"{self.name} columns {sorted(actual)} do not match "
                f"{self.record_cls.__name__} fields {sorted(expected)}"
            )

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    def create_sql(self) -> str:
        value_defs = ",\n".join(
            f"    {c.name} {c.sql_type}{'' if c.nullable else ' NOT NULL'}"
            for c in self.columns
        )
        return f"""
CREATE TABLE IF NOT EXISTS {self.name} (
    id          BIGSERIAL PRIMARY KEY,
    stock_code  TEXT NOT NULL REFERENCES securities(code)
                ON DELETE CASCADE ON UPDATE CASCADE,
    period      DATE NOT NULL,
{value_defs},
    created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    UNIQUE (stock_code, period)
);

CREATE INDEX IF NOT EXISTS idx_{self.name}_period ON {self.name}(period);
"""

    def upsert_sql(self) -> str:
        names = self.column_names
        # $1 is the period, $2 the codes, value arrays follow in column order
        arrays = ", ".join(
            f"${i + 3}::{c.sql_type}[]" for i, c in enumerate(self.columns)
        )
        column_list = ", ".join(names)
        selected = ", ".join(f"u.{n}" for n in names)
        updates = ",\n    ".join(f"{n} = EXCLUDED.{n}" for n in names)
        current = ", ".join(f"{self.name}.{n}" for n in names)
        excluded = ", ".join(f"EXCLUDED.{n}" for n in names)
        return f"""
INSERT INTO {self.name} (stock_code, period, {column_list})
SELECT u.stock_code, $1::date, {selected}
FROM unnest($2::text[], {arrays}) AS u(stock_code, {column_list})
ON CONFLICT (stock_code, period) DO UPDATE SET
    {updates},
    updated_at = NOW()
WHERE ({current}) IS DISTINCT FROM ({excluded})
"""

    def select_sql(self) -> str:
        values = ", ".join(f"t.{n}" for n in self.column_names)
        return f"""
SELECT s.code, s.name, {values}
FROM {self.name} t
JOIN securities s ON s.code = t.stock_code
WHERE t.period = $1
ORDER BY s.code
"""


DAILY_PRICES = PeriodTable(
    name="daily_prices",
    record_cls=DailyPrice,
    columns=(
        ValueColumn("open", "NUMERIC(12, 2)"),
        ValueColumn("high", "NUMERIC(12, 2)"),
        ValueColumn("low", "NUMERIC(12, 2)"),
        ValueColumn("close", "NUMERIC(12, 2)"),
        ValueColumn("volume", "BIGINT"),
    ),
)

MONTHLY_REVENUES = PeriodTable(
    name="monthly_revenues",
    record_cls=MonthlyRevenue,
    columns=(
        ValueColumn("monthly_revenue", "BIGINT"),
        ValueColumn("last_month_revenue", "BIGINT"),
        ValueColumn("last_year_monthly_revenue", "BIGINT"),
        ValueColumn("previous_month_change_percent", "DOUBLE PRECISION"),
        ValueColumn("last_year_same_month_change_percent", "DOUBLE PRECISION"),
        ValueColumn("cumulative_revenue", "BIGINT"),
        ValueColumn("last_year_cumulative_revenue", "BIGINT"),
        ValueColumn("cumulative_previous_period_change_percent", "DOUBLE PRECISION"),
        ValueColumn("remarks", "TEXT", nullable=True),
    ),
)

QUARTERLY_EPS = PeriodTable(
    name="quarterly_eps",
    record_cls=QuarterlyEps,
    columns=(ValueColumn("eps", "NUMERIC(12, 2)"),),
)

QUARTERLY_CAPITAL = PeriodTable(
    name="quarterly_capital",
    record_cls=QuarterlyCapital,
    columns=(ValueColumn("capital", "BIGINT"),),
)

QUARTERLY_CASH_FLOWS = PeriodTable(
    name="quarterly_cash_flows",
    record_cls=QuarterlyCashFlow,
    columns=(
        ValueColumn("operating_cash_flow", "BIGINT"),
        ValueColumn("investing_cash_flow", "BIGINT"),
        ValueColumn("financing_cash_flow", "BIGINT"),
        ValueColumn("exchange_rate_effect", "BIGINT"),
        ValueColumn("net_cash_change", "BIGINT"),
        ValueColumn("beginning_cash_balance", "BIGINT"),
        ValueColumn("ending_cash_balance", "BIGINT"),
    ),
)

ALL_TABLES = (
    DAILY_PRICES,
    MONTHLY_REVENUES,
    QUARTERLY_EPS,
    QUARTERLY_CAPITAL,
    QUARTERLY_CASH_FLOWS,
)


def dedupe_records(records: list[Any]) -> list[Any]:
    """Collapse repeated security codes, keeping the last record for each."""
    by_code: dict[str, Any] = {}
    for record in records:
        by_code[record.code] = record
    return list(by_code.values())


class PeriodRecordRepository:
    """Read and upsert one period record table."""

    def __init__(
        self,
        database: Database,
        table: PeriodTable,
        metrics: MetricsCollector | None = None,
        entity: str | None = None,
    ) -> None:
        """
        Args:
            database: Connected database.
            table: Table description for one entity type.
            metrics: Collector for swallowed read failures (optional).
            entity: Metrics label; defaults to the table name.
        """
        self._db = database
        self._table = table
        self._securities = SecurityRepository(database)
        self._metrics = metrics
        self._entity = entity or table.name

    @property
    def table(self) -> PeriodTable:
        return self._table

    async def create_table(self) -> None:
        """Create the table and its index (idempotent)."""
        await self._db.execute(self._table.create_sql())
        logger.info("Table %s ensured", self._table.name)

    def _record_from_row(self, row) -> Any:
        values = {name: row[name] for name in self._table.column_names}
        return self._table.record_cls(code=row["code"], name=row["name"], **values)

    async def read_by_period(self, key: date) -> list[Any]:
        """Stored records for ``key`` joined with security names.

        Storage errors are logged and reported as an empty result, so the
        caller treats an unavailable store like a period not yet crawled.
        """
        try:
            rows = await self._db.fetch(self._table.select_sql(), key)
        except Exception as e:
            if self._metrics is not None:
                self._metrics.record_persistence_error(self._entity, "read")
            logger.warning(
                "Failed to read %s for %s, treating as cache miss: %s",
                self._table.name,
                key.isoformat(),
                e,
            )
            return []
        return [self._record_from_row(row) for row in rows]

    async def upsert(self, records: list[Any], key: date) -> int:
        """Insert or update ``records`` for period ``key``.

        Securities are upserted first (name overwritten on conflict), then
        period rows by ``(stock_code, period)``. Unchanged rows are left
        untouched. Returns the number of distinct securities written.

        Raises:
            Exception: Any storage error, unmodified
        """
        if not records:
            return 0

        unique = dedupe_records(records)
        securities = [Security(code=r.code, name=r.name) for r in unique]
        value_arrays = [
            [getattr(r, name) for r in unique] for name in self._table.column_names
        ]

        async with self._db.transaction() as conn:
            await self._securities.bulk_upsert(securities, conn=conn)
            await conn.execute(
                self._table.upsert_sql(),
                key,
                [r.code for r in unique],
                *value_arrays,
            )

        logger.info(
            "Saved %d %s records for %s", len(unique), self._table.name, key.isoformat()
        )
        return len(unique)
