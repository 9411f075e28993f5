"""Crawler: fetch, normalize and persist periodic Taiwan equity disclosures."""

from disclosure_crawler.crawler.errors import (
    CrawlerError,
    DataNotFoundError,
    InvalidPeriod,
    PersistenceWriteError,
    SourceFetchError,
)
from disclosure_crawler.crawler.periods import Granularity, Period, parse_period
from disclosure_crawler.crawler.registry import DEFINITIONS, EntityDefinition
from disclosure_crawler.crawler.repository import ALL_TABLES, PeriodRecordRepository
from disclosure_crawler.crawler.schemas import EntityType, Market
from disclosure_crawler.crawler.service import CrawlResult, CrawlService

__all__ = [
    "ALL_TABLES",
    "CrawlResult",
    "CrawlService",
    "CrawlerError",
    "DEFINITIONS",
    "DataNotFoundError",
    "EntityDefinition",
    "EntityType",
    "Granularity",
    "InvalidPeriod",
    "Market",
    "Period",
    "PeriodRecordRepository",
    "PersistenceWriteError",
    "SourceFetchError",
    "parse_period",
]
