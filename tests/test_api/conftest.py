"""Shared fixtures for API tests."""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from disclosure_crawler.api.app import create_app
from disclosure_crawler.api.dependencies import get_crawl_service, get_database
from disclosure_crawler.crawler.periods import Granularity, parse_period
from disclosure_crawler.crawler.registry import get_definition
from disclosure_crawler.crawler.service import CrawlResult


def make_result(entity_type, period: str, records: list, from_cache: bool = False) -> CrawlResult:
    """Build the CrawlResult a service would return for ``period``."""
    granularity: Granularity = get_definition(entity_type).granularity
    return CrawlResult(
        entity_type=entity_type,
        period=parse_period(period, granularity),
        records=records,
        from_cache=from_cache,
    )


@pytest.fixture
def mock_crawl_service() -> AsyncMock:
    service = AsyncMock()
    service.get_records = AsyncMock()
    return service


@pytest.fixture
def app(mock_crawl_service, mock_database):
    app = create_app()
    app.dependency_overrides[get_crawl_service] = lambda: mock_crawl_service
    app.dependency_overrides[get_database] = lambda: mock_database
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)
