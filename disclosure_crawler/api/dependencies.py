"""
Dependency injection for FastAPI endpoints.
"""

from disclosure_crawler.config.settings import Settings, get_settings
from disclosure_crawler.crawler.http_client import HTTPClient, RetryConfig
from disclosure_crawler.crawler.service import CrawlService
from disclosure_crawler.storage.database import Database

# Global instances (initialized on first request)
_database: Database | None = None
_http_client: HTTPClient | None = None
_crawl_service: CrawlService | None = None


async def get_database() -> Database:
    """Get the connected database, connecting on first use."""
    global _database

    if _database is None:
        _database = Database()
        await _database.connect()

    return _database


def create_http_client(settings: Settings) -> HTTPClient:
    """Build an (unopened) outbound HTTP client from settings."""
    return HTTPClient(
        retry_config=RetryConfig(
            max_retries=settings.max_http_retries,
            max_backoff_seconds=settings.max_backoff_seconds,
        ),
        timeout=settings.http_timeout_seconds,
        headers={"User-Agent": settings.user_agent},
    )


async def get_http_client() -> HTTPClient:
    """
    Get the shared outbound HTTP client.

    The client is entered once and kept open for the process lifetime;
    :func:`cleanup_dependencies` closes it.
    """
    global _http_client

    if _http_client is None:
        _http_client = await create_http_client(get_settings()).__aenter__()

    return _http_client


async def get_crawl_service() -> CrawlService:
    """Get the crawl service singleton."""
    global _crawl_service

    if _crawl_service is None:
        database = await get_database()
        client = await get_http_client()
        _crawl_service = CrawlService(database, client, settings=get_settings())

    return _crawl_service


async def cleanup_dependencies() -> None:
    """Release the HTTP client and database pool on shutdown."""
    global _database, _http_client, _crawl_service

    _crawl_service = None

    if _http_client is not None:
        await _http_client.close()
        _http_client = None

    if _database is not None:
        await _database.close()
        _database = None
