"""Upstream source fetchers (TWSE, TPEx, MOPS)."""

from disclosure_crawler.crawler.sources.base import SourceFetcher
from disclosure_crawler.crawler.sources.exchange import (
    TpexDailyPriceFetcher,
    TwseDailyPriceFetcher,
)
from disclosure_crawler.crawler.sources.mops import (
    MopsRevenueFetcher,
    MopsStatementFetcher,
    capital_fetcher,
    cash_flow_fetcher,
    eps_fetcher,
)

__all__ = [
    "SourceFetcher",
    "TwseDailyPriceFetcher",
    "TpexDailyPriceFetcher",
    "MopsRevenueFetcher",
    "MopsStatementFetcher",
    "eps_fetcher",
    "capital_fetcher",
    "cash_flow_fetcher",
]
