"""
Crawler endpoints: one GET route per entity type, keyed by period.

Each route serves stored records or crawls upstream sources on a miss.
Errors are translated to responses by the app's exception handlers.
"""

import structlog
from fastapi import APIRouter, Depends, Path

from disclosure_crawler.api.dependencies import get_crawl_service
from disclosure_crawler.api.models import (
    CrawlResponse,
    DailyPriceData,
    ErrorResponse,
    MonthlyRevenueData,
    QuarterlyCapitalData,
    QuarterlyCashFlowData,
    QuarterlyEpsData,
    RecordModel,
)
from disclosure_crawler.crawler.schemas import EntityType
from disclosure_crawler.crawler.service import CrawlService

router = APIRouter(prefix="/crawler")
logger = structlog.get_logger(__name__)

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Malformed period"},
    404: {"model": ErrorResponse, "description": "No data for the period"},
    500: {"model": ErrorResponse, "description": "Storage failure"},
}


async def _serve(
    service: CrawlService,
    entity_type: EntityType,
    period: str,
    model: type[RecordModel],
) -> CrawlResponse:
    result = await service.get_records(entity_type, period)
    logger.info(
        "Records served",
        entity=entity_type.value,
        period=str(result.period),
        count=result.count,
        from_cache=result.from_cache,
    )
    return CrawlResponse(
        count=result.count,
        data=[model.model_validate(record) for record in result.records],
    )


@router.get(
    "/daily-prices/{date}",
    response_model=CrawlResponse[DailyPriceData],
    responses=_ERROR_RESPONSES,
)
async def get_daily_prices(
    date: str = Path(..., description="Trading day (YYYY-MM-DD)"),
    service: CrawlService = Depends(get_crawl_service),
) -> CrawlResponse:
    """Daily OHLC prices and volume for listed and OTC securities."""
    return await _serve(service, EntityType.DAILY_PRICE, date, DailyPriceData)


@router.get(
    "/monthly-revenues/{month}",
    response_model=CrawlResponse[MonthlyRevenueData],
    responses=_ERROR_RESPONSES,
)
async def get_monthly_revenues(
    month: str = Path(..., description="Revenue month (YYYY-MM)"),
    service: CrawlService = Depends(get_crawl_service),
) -> CrawlResponse:
    """Monthly revenue reports. A month not yet published returns count 0."""
    return await _serve(service, EntityType.MONTHLY_REVENUE, month, MonthlyRevenueData)


@router.get(
    "/quarterly-eps/{quarter}",
    response_model=CrawlResponse[QuarterlyEpsData],
    responses=_ERROR_RESPONSES,
)
async def get_quarterly_eps(
    quarter: str = Path(..., description="Fiscal quarter (YYYY-Q#)"),
    service: CrawlService = Depends(get_crawl_service),
) -> CrawlResponse:
    """Basic EPS per security for a quarter."""
    return await _serve(service, EntityType.QUARTERLY_EPS, quarter, QuarterlyEpsData)


@router.get(
    "/quarterly-capital/{quarter}",
    response_model=CrawlResponse[QuarterlyCapitalData],
    responses=_ERROR_RESPONSES,
)
async def get_quarterly_capital(
    quarter: str = Path(..., description="Fiscal quarter (YYYY-Q#)"),
    service: CrawlService = Depends(get_crawl_service),
) -> CrawlResponse:
    """Paid-in capital per security for a quarter."""
    return await _serve(service, EntityType.QUARTERLY_CAPITAL, quarter, QuarterlyCapitalData)


@router.get(
    "/quarterly-cash-flows/{quarter}",
    response_model=CrawlResponse[QuarterlyCashFlowData],
    responses=_ERROR_RESPONSES,
)
async def get_quarterly_cash_flows(
    quarter: str = Path(..., description="Fiscal quarter (YYYY-Q#)"),
    service: CrawlService = Depends(get_crawl_service),
) -> CrawlResponse:
    """Cash flow statement summary per security for a quarter."""
    return await _serve(
        service, EntityType.QUARTERLY_CASH_FLOW, quarter, QuarterlyCashFlowData
    )
