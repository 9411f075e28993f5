"""
Cache-or-crawl orchestration for period records.

A request for (entity type, period) is answered from storage when the
period has already been crawled. Otherwise every upstream fetcher of the
entity runs concurrently, their records are merged and persisted, and the
merged records are returned.

States:
    CheckCache -> (hit) Done
    CheckCache -> (miss) Crawl -> Evaluate -> Persist -> Done

Evaluate applies the entity's empty-result policy: an empty crawl is a
``DataNotFoundError`` for authoritative entities and a valid empty result
for best-effort ones.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any

from disclosure_crawler.config.settings import Settings, get_settings
from disclosure_crawler.crawler.errors import DataNotFoundError, PersistenceWriteError
from disclosure_crawler.crawler.http_client import HTTPClient
from disclosure_crawler.crawler.periods import Period, parse_period
from disclosure_crawler.crawler.registry import DEFINITIONS, EntityDefinition, get_definition
from disclosure_crawler.crawler.repository import PeriodRecordRepository, dedupe_records
from disclosure_crawler.crawler.schemas import EntityType
from disclosure_crawler.observability.logging import get_logger
from disclosure_crawler.observability.metrics import MetricsCollector, get_metrics
from disclosure_crawler.storage.database import Database


@dataclass
class CrawlResult:
    """Records for one (entity type, period) request."""

    entity_type: EntityType
    period: Period
    records: list[Any] = field(default_factory=list)
    from_cache: bool = False

    @property
    def count(self) -> int:
        return len(self.records)


class CrawlService:
    """
    Serves period records from storage, crawling upstream sources on a miss.

    Usage:
        async with HTTPClient(timeout=20.0) as client:
            service = CrawlService(database, client)
            result = await service.get_records(EntityType.QUARTERLY_EPS, "2024-Q1")
    """

    def __init__(
        self,
        database: Database,
        client: HTTPClient,
        settings: Settings | None = None,
        logger: Any = None,
        metrics: MetricsCollector | None = None,
        definitions: dict[EntityType, EntityDefinition] | None = None,
        repositories: dict[EntityType, PeriodRecordRepository] | None = None,
    ) -> None:
        """
        Initialize the service.

        Args:
            database: Connected database wrapper.
            client: Open HTTP client shared by all fetchers.
            settings: Settings for source URLs and timeouts.
            logger: Logger for crawl diagnostics; also handed to fetchers.
            metrics: Metrics collector. Uses the global collector if None.
            definitions: Entity definitions. Uses the built-in registry if None.
            repositories: Per-entity repositories, built lazily when absent.
        """
        self._db = database
        self._client = client
        self._settings = settings or get_settings()
        self._logger = logger or get_logger(__name__)
        self._metrics = metrics or get_metrics()
        self._definitions = definitions or DEFINITIONS
        self._repositories: dict[EntityType, PeriodRecordRepository] = dict(
            repositories or {}
        )

    def _definition(self, entity_type: EntityType | str) -> EntityDefinition:
        return get_definition(entity_type, self._definitions)

    def repository(self, entity_type: EntityType) -> PeriodRecordRepository:
        """Repository for an entity's table."""
        if entity_type not in self._repositories:
            definition = self._definition(entity_type)
            self._repositories[entity_type] = PeriodRecordRepository(
                self._db,
                definition.table,
                metrics=self._metrics,
                entity=definition.entity_type.value,
            )
        return self._repositories[entity_type]

    async def get_records(self, entity_type: EntityType | str, period: str) -> CrawlResult:
        """
        Return stored records for the period, crawling on a cache miss.

        Args:
            entity_type: Entity to serve.
            period: Request period string in the entity's shape.

        Returns:
            CrawlResult with ``from_cache`` set when served from storage

        Raises:
            InvalidPeriod: If ``period`` does not match the entity's shape
            DataNotFoundError: If an authoritative entity crawled empty
            PersistenceWriteError: If crawled records could not be stored
        """
        definition = self._definition(entity_type)
        parsed = parse_period(period, definition.granularity)
        entity = definition.entity_type.value

        cached = await self.repository(definition.entity_type).read_by_period(
            parsed.storage_key
        )
        self._metrics.record_cache_lookup(entity, hit=bool(cached))

        if cached:
            self._logger.debug(
                "Serving records from storage",
                entity=entity,
                period=str(parsed),
                records=len(cached),
            )
            return CrawlResult(definition.entity_type, parsed, cached, from_cache=True)

        return await self._crawl_and_persist(definition, parsed)

    async def refresh(self, entity_type: EntityType | str, period: str) -> CrawlResult:
        """Crawl the period regardless of what is stored, then persist it.

        Raises the same errors as :meth:`get_records`.
        """
        definition = self._definition(entity_type)
        parsed = parse_period(period, definition.granularity)
        return await self._crawl_and_persist(definition, parsed)

    async def _crawl_and_persist(
        self, definition: EntityDefinition, period: Period
    ) -> CrawlResult:
        entity = definition.entity_type.value
        records = await self._crawl(definition, period)

        if not records:
            if definition.empty_is_error:
                raise DataNotFoundError(entity, str(period))
            self._logger.info("Crawl returned no records", entity=entity, period=str(period))
            return CrawlResult(definition.entity_type, period, [], from_cache=False)

        # Returned records must equal what a later cache read yields
        records = dedupe_records(records)
        repository = self.repository(definition.entity_type)
        try:
            saved = await repository.upsert(records, period.storage_key)
        except Exception as e:
            self._metrics.record_persistence_error(entity, "write")
            self._logger.error(
                "Failed to persist crawled records",
                entity=entity,
                period=str(period),
                records=len(records),
                error=str(e),
            )
            raise PersistenceWriteError(
                f"Failed to store {entity} records for {period}: {e}"
            ) from e

        self._metrics.record_persisted(entity, saved)
        return CrawlResult(definition.entity_type, period, records, from_cache=False)

    async def _crawl(self, definition: EntityDefinition, period: Period) -> list[Any]:
        """Run every fetcher concurrently and concatenate in fetcher order."""
        fetchers = definition.build_fetchers(
            self._client,
            self._settings,
            {
                "timeout": self._settings.source_timeout_seconds,
                "logger": self._logger,
                "metrics": self._metrics,
            },
        )

        start = time.perf_counter()
        # Fetchers recover their own failures, so gather never short-circuits
        results = await asyncio.gather(*(f.fetch(period) for f in fetchers))

        records: list[Any] = []
        for batch in results:
            records.extend(batch)

        self._logger.info(
            "Crawl complete",
            entity=definition.entity_type.value,
            period=str(period),
            records=len(records),
            per_source={f.name: len(batch) for f, batch in zip(fetchers, results)},
            latency_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return records
