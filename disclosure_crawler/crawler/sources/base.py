"""
Base class for upstream source fetchers.

A fetcher issues exactly one request for one market segment and turns
the response into typed records. Fetchers never raise to their caller:
transport errors, non-success statuses, unexpected payload shapes and
timeouts are logged once and degrade to an empty result, so one failing
source never affects the others fetched alongside it.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

import httpx

from disclosure_crawler.crawler.errors import SourceFetchError
from disclosure_crawler.crawler.http_client import HTTPClient
from disclosure_crawler.crawler.periods import Period
from disclosure_crawler.crawler.schemas import Market
from disclosure_crawler.crawler.tables import RawTable
from disclosure_crawler.observability.logging import get_logger
from disclosure_crawler.observability.metrics import MetricsCollector, get_metrics

R = TypeVar("R")

DEFAULT_SOURCE_TIMEOUT = 30.0


class SourceFetcher(ABC, Generic[R]):
    """
    One outbound request per (source, market segment) pair.

    Subclasses implement :meth:`_fetch`, raising on any failure, and may
    override :meth:`_post_filter`. Callers only use :meth:`fetch`.
    """

    source: str = "unknown"

    def __init__(
        self,
        client: HTTPClient,
        market: Market,
        base_url: str,
        timeout: float = DEFAULT_SOURCE_TIMEOUT,
        logger: Any = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._client = client
        self.market = market
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._logger = logger or get_logger(__name__)
        self._metrics = metrics

    @property
    def name(self) -> str:
        return f"{self.source}:{self.market.value}"

    async def fetch(self, period: Period) -> list[R]:
        """Fetch records for ``period``; returns [] on any failure."""
        metrics = self._metrics or get_metrics()
        start = time.perf_counter()

        try:
            async with asyncio.timeout(self._timeout):
                records = self._post_filter(await self._fetch(period))
        except Exception as e:
            latency = time.perf_counter() - start
            self._logger.warning(
                "Source fetch failed",
                fetcher=self.name,
                source=self.source,
                market=self.market.value,
                period=str(period),
                status_code=getattr(e, "status_code", None),
                stat=getattr(e, "stat", None),
                error=_describe(e, self._timeout),
            )
            metrics.record_fetch(self.source, self.market.value, "failure", latency=latency)
            return []

        latency = time.perf_counter() - start
        self._logger.info(
            "Source fetch succeeded",
            fetcher=self.name,
            source=self.source,
            market=self.market.value,
            period=str(period),
            records=len(records),
            latency_ms=round(latency * 1000, 2),
        )
        metrics.record_fetch(
            self.source, self.market.value, "success", count=len(records), latency=latency
        )
        return records

    @abstractmethod
    async def _fetch(self, period: Period) -> list[R]:
        """Issue the request and extract records, raising on any failure."""

    def _post_filter(self, records: list[R]) -> list[R]:
        return records

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name})"


def _describe(exc: Exception, timeout: float) -> str:
    if isinstance(exc, TimeoutError):
        return f"timed out after {timeout}s"
    return f"{type(exc).__name__}: {exc}"


def json_payload(response: httpx.Response) -> dict:
    """Decode a JSON object body, raising SourceFetchError otherwise."""
    try:
        payload = response.json()
    except ValueError as e:
        raise SourceFetchError(
            "response is not valid JSON", status_code=response.status_code
        ) from e

    if not isinstance(payload, dict):
        raise SourceFetchError(
            "JSON response is not an object", status_code=response.status_code
        )
    return payload


def json_table(payload: dict, position: int, status_code: int | None = None) -> RawTable:
    """Return the table at ``position`` of the payload's ``tables`` array."""
    tables = payload.get("tables")
    stat = payload.get("stat")

    if not isinstance(tables, list):
        raise SourceFetchError(
            '"tables" is not an array', status_code=status_code, stat=stat
        )
    if len(tables) <= position:
        raise SourceFetchError(
            f"table {position} not found ({len(tables)} tables)",
            status_code=status_code,
            stat=stat,
        )

    table = RawTable.from_json(tables[position])
    if table is None:
        raise SourceFetchError(
            f"table {position} has no fields/data arrays",
            status_code=status_code,
            stat=stat,
        )
    return table
