"""Observability layer - structured logging and Prometheus metrics."""

from disclosure_crawler.observability.logging import get_logger, setup_logging
from disclosure_crawler.observability.metrics import MetricsCollector, get_metrics

__all__ = ["setup_logging", "get_logger", "MetricsCollector", "get_metrics"]
