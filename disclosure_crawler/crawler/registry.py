"""
Entity definitions: granularity, storage table and upstream fetchers per entity type.

Each entity crawls a fixed set of fetchers, one per (source, market segment)
pair, and declares whether an empty crawl means the period has no data
(``empty_is_error``) or is a valid empty result.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from disclosure_crawler.config.settings import Settings
from disclosure_crawler.crawler.http_client import HTTPClient
from disclosure_crawler.crawler.periods import Granularity
from disclosure_crawler.crawler.repository import (
    DAILY_PRICES,
    MONTHLY_REVENUES,
    QUARTERLY_CAPITAL,
    QUARTERLY_CASH_FLOWS,
    QUARTERLY_EPS,
    PeriodTable,
)
from disclosure_crawler.crawler.schemas import EntityType, Market
from disclosure_crawler.crawler.sources import (
    MopsRevenueFetcher,
    SourceFetcher,
    TpexDailyPriceFetcher,
    TwseDailyPriceFetcher,
    capital_fetcher,
    cash_flow_fetcher,
    eps_fetcher,
)

# (client, settings, fetcher kwargs) -> fetchers
FetcherFactory = Callable[[HTTPClient, Settings, dict[str, Any]], Sequence[SourceFetcher]]

SEGMENTS = (Market.LISTED, Market.OTC)


@dataclass(frozen=True)
class EntityDefinition:
    """How one entity type is requested, stored and crawled."""

    entity_type: EntityType
    granularity: Granularity
    table: PeriodTable
    empty_is_error: bool
    build_fetchers: FetcherFactory

    @property
    def record_cls(self) -> type:
        return self.table.record_cls


def _daily_price_fetchers(client, settings, kwargs):
    return [
        TwseDailyPriceFetcher(client, settings.twse_base_url, **kwargs),
        TpexDailyPriceFetcher(client, settings.tpex_base_url, **kwargs),
    ]


def _revenue_fetchers(client, settings, kwargs):
    return [
        MopsRevenueFetcher(client, market, settings.mops_base_url, **kwargs)
        for market in SEGMENTS
    ]


def _statement_fetchers(factory):
    def build(client, settings, kwargs):
        return [factory(client, market, settings.mops_base_url, **kwargs) for market in SEGMENTS]

    return build


DEFINITIONS: dict[EntityType, EntityDefinition] = {
    EntityType.DAILY_PRICE: EntityDefinition(
        entity_type=EntityType.DAILY_PRICE,
        granularity=Granularity.DAY,
        table=DAILY_PRICES,
        empty_is_error=True,
        build_fetchers=_daily_price_fetchers,
    ),
    EntityType.MONTHLY_REVENUE: EntityDefinition(
        entity_type=EntityType.MONTHLY_REVENUE,
        granularity=Granularity.MONTH,
        table=MONTHLY_REVENUES,
        # An unpublished month is a valid empty answer, not an error
        empty_is_error=False,
        build_fetchers=_revenue_fetchers,
    ),
    EntityType.QUARTERLY_EPS: EntityDefinition(
        entity_type=EntityType.QUARTERLY_EPS,
        granularity=Granularity.QUARTER,
        table=QUARTERLY_EPS,
        empty_is_error=True,
        build_fetchers=_statement_fetchers(eps_fetcher),
    ),
    EntityType.QUARTERLY_CAPITAL: EntityDefinition(
        entity_type=EntityType.QUARTERLY_CAPITAL,
        granularity=Granularity.QUARTER,
        table=QUARTERLY_CAPITAL,
        empty_is_error=True,
        build_fetchers=_statement_fetchers(capital_fetcher),
    ),
    EntityType.QUARTERLY_CASH_FLOW: EntityDefinition(
        entity_type=EntityType.QUARTERLY_CASH_FLOW,
        granularity=Granularity.QUARTER,
        table=QUARTERLY_CASH_FLOWS,
        empty_is_error=True,
        build_fetchers=_statement_fetchers(cash_flow_fetcher),
    ),
}


def get_definition(
    entity_type: EntityType | str,
    definitions: dict[EntityType, EntityDefinition] | None = None,
) -> EntityDefinition:
    """Look up an entity definition by enum or value string.

    Raises:
        KeyError: If the entity type is unknown
    """
    definitions = definitions if definitions is not None else DEFINITIONS
    try:
        return definitions[EntityType(entity_type)]
    except ValueError as e:
        raise KeyError(f"Unknown entity type: {entity_type}") from e
