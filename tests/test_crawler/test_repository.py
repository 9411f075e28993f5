"""Tests for PeriodRecordRepository and table definitions."""

from dataclasses import replace
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from disclosure_crawler.crawler.repository import (
    ALL_TABLES,
    DAILY_PRICES,
    MONTHLY_REVENUES,
    QUARTERLY_EPS,
    PeriodRecordRepository,
    PeriodTable,
    ValueColumn,
    dedupe_records,
)
from disclosure_crawler.crawler.schemas import QuarterlyEps

Q1 = date(2024, 1, 1)


class TestPeriodTable:
    """Tests for generated SQL."""

    def test_columns_must_match_record(self):
        with pytest.raises(ValueError, match="do not match"):
            PeriodTable(
                name="quarterly_eps",
                record_cls=QuarterlyEps,
                columns=(ValueColumn("diluted_eps", "NUMERIC(12, 2)"),),
            )

    @pytest.mark.parametrize("table", ALL_TABLES, ids=lambda t: t.name)
    def test_create_sql(self, table):
        sql = table.create_sql()
        assert f"CREATE TABLE IF NOT EXISTS {table.name}" in sql
        assert "REFERENCES securities(code)" in sql
        assert "ON DELETE CASCADE ON UPDATE CASCADE" in sql
        assert "UNIQUE (stock_code, period)" in sql
        for name in table.column_names:
            assert name in sql

    def test_nullable_remarks(self):
        sql = MONTHLY_REVENUES.create_sql()
        assert "remarks TEXT,\n" in sql or "remarks TEXT\n" in sql
        assert "monthly_revenue BIGINT NOT NULL" in sql

    def test_upsert_sql_parameters(self):
        sql = DAILY_PRICES.upsert_sql()
        assert "ON CONFLICT (stock_code, period) DO UPDATE" in sql
        assert "$1::date" in sql
        assert "unnest($2::text[], $3::NUMERIC(12, 2)[]" in sql
        assert "$7::BIGINT[]" in sql
        assert "AS u(stock_code, open, high, low, close, volume)" in sql
        assert "IS DISTINCT FROM" in sql
        for name in DAILY_PRICES.column_names:
            assert f"{name} = EXCLUDED.{name}" in sql

    def test_select_sql_joins_securities(self):
        sql = QUARTERLY_EPS.select_sql()
        assert "JOIN securities s ON s.code = t.stock_code" in sql
        assert "WHERE t.period = $1" in sql


class TestReadByPeriod:
    """Tests for cache reads."""

    @pytest.mark.asyncio
    async def test_maps_rows_to_records(self, mock_database: AsyncMock):
        mock_database.fetch.return_value = [
            {"code": "2330", "name": "台積電", "eps": Decimal("8.70")},
        ]
        repo = PeriodRecordRepository(mock_database, QUARTERLY_EPS)

        records = await repo.read_by_period(Q1)

        assert records == [QuarterlyEps(code="2330", name="台積電", eps=Decimal("8.70"))]
        assert mock_database.fetch.call_args[0][1] == Q1

    @pytest.mark.asyncio
    async def test_nothing_stored(self, mock_database: AsyncMock):
        repo = PeriodRecordRepository(mock_database, QUARTERLY_EPS)
        assert await repo.read_by_period(Q1) == []

    @pytest.mark.asyncio
    async def test_storage_error_reads_as_empty(self, mock_database: AsyncMock):
        mock_database.fetch.side_effect = ConnectionError("pool closed")
        repo = PeriodRecordRepository(mock_database, QUARTERLY_EPS)

        assert await repo.read_by_period(Q1) == []

    @pytest.mark.asyncio
    async def test_storage_error_counted(self, mock_database: AsyncMock, mock_metrics):
        mock_database.fetch.side_effect = ConnectionError("pool closed")
        repo = PeriodRecordRepository(
            mock_database, QUARTERLY_EPS, metrics=mock_metrics, entity="quarterly_eps"
        )

        assert await repo.read_by_period(Q1) == []
        mock_metrics.record_persistence_error.assert_called_once_with("quarterly_eps", "read")

    @pytest.mark.asyncio
    async def test_successful_read_not_counted(self, mock_database: AsyncMock, mock_metrics):
        repo = PeriodRecordRepository(mock_database, QUARTERLY_EPS, metrics=mock_metrics)

        await repo.read_by_period(Q1)

        mock_metrics.record_persistence_error.assert_not_called()


class TestUpsert:
    """Tests for transactional upserts."""

    @pytest.mark.asyncio
    async def test_empty_is_noop(self, mock_database: AsyncMock):
        repo = PeriodRecordRepository(mock_database, QUARTERLY_EPS)

        assert await repo.upsert([], Q1) == 0
        mock_database.transaction.assert_not_called()

    @pytest.mark.asyncio
    async def test_securities_written_before_period_rows(
        self, mock_database: AsyncMock, mock_connection: AsyncMock, sample_eps
    ):
        repo = PeriodRecordRepository(mock_database, QUARTERLY_EPS)

        count = await repo.upsert(sample_eps, Q1)

        assert count == 3
        assert mock_connection.execute.call_count == 2
        securities_call, period_call = mock_connection.execute.call_args_list

        sql, codes, names = securities_call[0]
        assert "INSERT INTO securities" in sql
        assert "ON CONFLICT (code) DO UPDATE" in sql
        assert codes == ["2330", "2317", "1101"]
        assert names == ["台積電", "鴻海", "台泥"]

        sql, key, codes, eps = period_call[0]
        assert "INSERT INTO quarterly_eps" in sql
        assert key == Q1
        assert codes == ["2330", "2317", "1101"]
        assert eps == [Decimal("8.70"), Decimal("1.58"), Decimal("-0.12")]

    @pytest.mark.asyncio
    async def test_duplicate_codes_last_wins(
        self, mock_database: AsyncMock, mock_connection: AsyncMock
    ):
        repo = PeriodRecordRepository(mock_database, QUARTERLY_EPS)
        records = [
            QuarterlyEps(code="2330", name="台積電", eps=Decimal("1.00")),
            QuarterlyEps(code="2330", name="台灣積體電路", eps=Decimal("8.70")),
        ]

        assert await repo.upsert(records, Q1) == 1

        _, codes, names = mock_connection.execute.call_args_list[0][0]
        assert names == ["台灣積體電路"]
        _, _, codes, eps = mock_connection.execute.call_args_list[1][0]
        assert eps == [Decimal("8.70")]

    @pytest.mark.asyncio
    async def test_same_batch_twice_sends_identical_values(
        self, mock_database: AsyncMock, mock_connection: AsyncMock, sample_eps
    ):
        repo = PeriodRecordRepository(mock_database, QUARTERLY_EPS)

        await repo.upsert(sample_eps, Q1)
        first = mock_connection.execute.call_args_list[1]
        await repo.upsert(sample_eps, Q1)
        second = mock_connection.execute.call_args_list[3]

        assert first == second

    @pytest.mark.asyncio
    async def test_changed_value_sent_for_overwrite(
        self, mock_database: AsyncMock, mock_connection: AsyncMock, sample_eps
    ):
        repo = PeriodRecordRepository(mock_database, QUARTERLY_EPS)
        revised = [replace(sample_eps[0], eps=Decimal("8.71")), *sample_eps[1:]]

        await repo.upsert(sample_eps, Q1)
        await repo.upsert(revised, Q1)

        _, _, _, eps = mock_connection.execute.call_args_list[3][0]
        assert eps[0] == Decimal("8.71")

    @pytest.mark.asyncio
    async def test_revenue_value_arrays_in_column_order(
        self, mock_database: AsyncMock, mock_connection: AsyncMock, sample_revenue
    ):
        repo = PeriodRecordRepository(mock_database, MONTHLY_REVENUES)

        await repo.upsert([sample_revenue], date(2024, 3, 1))

        args = mock_connection.execute.call_args_list[1][0]
        assert args[3] == [195_210_804]
        assert args[-1] == [None]  # remarks
        assert len(args) == 3 + len(MONTHLY_REVENUES.columns)

    @pytest.mark.asyncio
    async def test_errors_propagate(
        self, mock_database: AsyncMock, mock_connection: AsyncMock, sample_eps
    ):
        mock_connection.execute.side_effect = RuntimeError("deadlock detected")
        repo = PeriodRecordRepository(mock_database, QUARTERLY_EPS)

        with pytest.raises(RuntimeError, match="deadlock"):
            await repo.upsert(sample_eps, Q1)

    @pytest.mark.asyncio
    async def test_create_table(self, mock_database: AsyncMock):
        repo = PeriodRecordRepository(mock_database, DAILY_PRICES)
        await repo.create_table()
        assert "CREATE TABLE IF NOT EXISTS daily_prices" in mock_database.execute.call_args[0][0]


def test_dedupe_records_keeps_first_position():
    records = [
        QuarterlyEps(code="A", name="a", eps=Decimal(1)),
        QuarterlyEps(code="B", name="b", eps=Decimal(2)),
        QuarterlyEps(code="A", name="a2", eps=Decimal(3)),
    ]
    assert [(r.code, r.name) for r in dedupe_records(records)] == [("A", "a2"), ("B", "b")]
