"""
Command-line interface for the disclosure crawler.

Usage:
    disclosure-crawler serve                          # Run the API server
    disclosure-crawler init-db                        # Create tables
    disclosure-crawler fetch quarterly_eps 2024-Q1    # Fetch (or load) one period
    disclosure-crawler health                         # Check database connectivity
"""

import asyncio
import csv
import dataclasses
import json
import sys

import click

from disclosure_crawler.config.settings import get_settings
from disclosure_crawler.crawler.schemas import EntityType
from disclosure_crawler.observability.logging import get_logger, setup_logging
from disclosure_crawler.observability.metrics import get_metrics


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """Disclosure Crawler - Taiwan equity prices, revenues and statements."""
    setup_logging(level="DEBUG" if debug else None)


@main.command()
@click.option("--host", default=None, help="API server host")
@click.option("--port", default=None, type=int, help="API server port")
@click.option("--reload", is_flag=True, help="Enable auto-reload (dev only)")
@click.option("--metrics/--no-metrics", default=None, help="Expose Prometheus metrics")
def serve(host: str | None, port: int | None, reload: bool, metrics: bool | None) -> None:
    """Start the crawler API server."""
    import uvicorn

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port

    if metrics is None:
        metrics = settings.metrics_enabled

    if metrics:
        get_metrics().start_server(port=settings.metrics_port)
        click.echo(f"Metrics available on http://localhost:{settings.metrics_port}/metrics")

    click.echo(f"Starting API server on {host}:{port}")
    click.echo(f"API docs available on http://localhost:{port}/docs")

    uvicorn.run(
        "disclosure_crawler.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


@main.command("init-db")
def init_db() -> None:
    """Create the securities table and one table per entity type."""
    from disclosure_crawler.crawler.repository import ALL_TABLES, PeriodRecordRepository
    from disclosure_crawler.securities.repository import SecurityRepository
    from disclosure_crawler.storage.database import Database

    async def run():
        db = Database()
        await db.connect()
        try:
            # Period tables reference securities(code)
            await SecurityRepository(db).create_table()
            for table in ALL_TABLES:
                await PeriodRecordRepository(db, table).create_table()
        finally:
            await db.close()

        click.echo("Database initialized successfully")

    asyncio.run(run())


def _write_records(records: list, output_format: str) -> None:
    rows = [dataclasses.asdict(r) for r in records]
    if output_format == "csv":
        if not rows:
            return
        writer = csv.DictWriter(sys.stdout, fieldnames=list(rows[0]))
        writer.writeheader()
        writer.writerows(rows)
    else:
        click.echo(json.dumps(rows, ensure_ascii=False, indent=2, default=str))


@main.command()
@click.argument("entity", type=click.Choice([e.value for e in EntityType]))
@click.argument("period")
@click.option("--refresh", is_flag=True, help="Re-crawl even if the period is stored")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["json", "csv"]),
    default="json",
    help="Output format",
)
def fetch(entity: str, period: str, refresh: bool, output_format: str) -> None:
    """Fetch one period of ENTITY and print its records.

    PERIOD is YYYY-MM-DD for daily_price, YYYY-MM for monthly_revenue and
    YYYY-Q# for the quarterly entities.

    Example:
        disclosure-crawler fetch monthly_revenue 2024-03 --format csv
    """
    from disclosure_crawler.api.dependencies import create_http_client
    from disclosure_crawler.crawler.errors import CrawlerError, InvalidPeriod
    from disclosure_crawler.crawler.service import CrawlService
    from disclosure_crawler.storage.database import Database

    async def run():
        settings = get_settings()
        db = Database()
        await db.connect()
        try:
            async with create_http_client(settings) as client:
                service = CrawlService(db, client, settings=settings)
                if refresh:
                    return await service.refresh(entity, period)
                return await service.get_records(entity, period)
        finally:
            await db.close()

    try:
        result = asyncio.run(run())
    except InvalidPeriod as e:
        raise click.BadParameter(str(e), param_hint="PERIOD") from e
    except CrawlerError as e:
        raise click.ClickException(str(e)) from e

    source = "storage" if result.from_cache else "upstream sources"
    click.echo(
        click.style(f"{result.count} {entity} records for {result.period} from {source}", fg="green"),
        err=True,
    )
    _write_records(result.records, output_format)


@main.command()
def health() -> None:
    """Check database connectivity."""
    logger = get_logger(__name__)

    async def check() -> bool:
        from disclosure_crawler.storage.database import Database

        try:
            db = Database()
            await db.connect()
            try:
                return await db.health_check()
            finally:
                await db.close()
        except Exception as e:
            logger.error("Postgres health check failed", error=str(e))
            return False

    healthy = asyncio.run(check())

    icon = "✓" if healthy else "✗"
    color = "green" if healthy else "red"
    click.echo(click.style(f"  {icon} postgres: {healthy}", fg=color))
    sys.exit(0 if healthy else 1)


if __name__ == "__main__":
    main()
