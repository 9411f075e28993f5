"""
Prometheus metrics for monitoring the crawl pipeline.

Defines and exposes metrics for:
- Source fetch outcomes and latency
- Records crawled per entity and source
- Cache hits and misses
- Persistence writes and storage errors

Metrics are exposed via HTTP endpoint for Prometheus scraping.
"""

import logging

from prometheus_client import (
    REGISTRY,
    Counter,
    Histogram,
    start_http_server,
)

from disclosure_crawler.config.settings import get_settings

logger = logging.getLogger(__name__)

# Buckets for latency histograms (in seconds)
LATENCY_BUCKETS = (0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0)


class MetricsCollector:
    """
    Prometheus metrics collector for the disclosure crawler.

    Usage:
        metrics = MetricsCollector()
        metrics.start_server()

        metrics.record_fetch("twse", "sii", "success", count=1200, latency=1.4)
        metrics.record_cache_lookup("daily_price", hit=False)
    """

    def __init__(self):
        """Initialize Prometheus metrics."""
        self._server_port: int | None = None

        self.source_fetches = Counter(
            "disclosure_crawler_source_fetches_total",
            "Total outbound source fetches",
            ["source", "market", "status"],  # status: success, failure
        )

        self.records_fetched = Counter(
            "disclosure_crawler_records_fetched_total",
            "Total records extracted from source responses",
            ["source", "market"],
        )

        self.fetch_latency = Histogram(
            "disclosure_crawler_fetch_latency_seconds",
            "Time to fetch and parse one source response",
            ["source"],
            buckets=LATENCY_BUCKETS,
        )

        self.cache_lookups = Counter(
            "disclosure_crawler_cache_lookups_total",
            "Storage lookups before crawling",
            ["entity", "result"],  # result: hit, miss
        )

        self.records_persisted = Counter(
            "disclosure_crawler_records_persisted_total",
            "Total period records upserted",
            ["entity"],
        )

        self.persistence_errors = Counter(
            "disclosure_crawler_persistence_errors_total",
            "Total storage errors",
            ["entity", "operation"],  # operation: read, write
        )

    def start_server(self, port: int | None = None) -> None:
        """
        Start Prometheus metrics HTTP server (no-op once started).

        Args:
            port: Port to expose metrics on (default from settings)
        """
        if self._server_port is not None:
            logger.debug(f"Prometheus metrics server already running on port {self._server_port}")
            return

        settings = get_settings()
        port = port or settings.metrics_port

        start_http_server(port, registry=REGISTRY)
        self._server_port = port
        logger.info(f"Prometheus metrics server started on port {port}")

    # Convenience methods

    def record_fetch(
        self,
        source: str,
        market: str,
        status: str,
        count: int = 0,
        latency: float | None = None,
    ) -> None:
        """
        Record one source fetch.

        Args:
            source: Source name (twse, tpex, mops)
            market: Market segment (sii, otc)
            status: success or failure
            count: Number of records extracted
            latency: Optional fetch latency in seconds
        """
        self.source_fetches.labels(source=source, market=market, status=status).inc()
        if count:
            self.records_fetched.labels(source=source, market=market).inc(count)
        if latency is not None:
            self.fetch_latency.labels(source=source).observe(latency)

    def record_cache_lookup(self, entity: str, hit: bool) -> None:
        """Record a storage lookup made before crawling."""
        self.cache_lookups.labels(entity=entity, result="hit" if hit else "miss").inc()

    def record_persisted(self, entity: str, count: int) -> None:
        """Record upserted period rows."""
        self.records_persisted.labels(entity=entity).inc(count)

    def record_persistence_error(self, entity: str, operation: str) -> None:
        """Record a storage read or write failure."""
        self.persistence_errors.labels(entity=entity, operation=operation).inc()


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
