"""
Response models for the crawler API.

Record fields are exposed in camelCase (``monthlyRevenue``,
``operatingCashFlow``) while the Python side keeps snake_case.
"""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")

SUCCESS_MESSAGE = "Data fetched successfully!"


class RecordModel(BaseModel):
    """Base for record payloads: camelCase aliases, built from dataclasses."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    code: str = Field(..., description="Security code")
    name: str = Field(..., description="Security name")


class DailyPriceData(RecordModel):
    open: float
    high: float
    low: float
    close: float
    volume: int = Field(..., description="Traded shares")


class MonthlyRevenueData(RecordModel):
    """Revenue amounts are in thousand TWD."""

    monthly_revenue: int
    last_month_revenue: int
    last_year_monthly_revenue: int
    previous_month_change_percent: float
    last_year_same_month_change_percent: float
    cumulative_revenue: int
    last_year_cumulative_revenue: int
    cumulative_previous_period_change_percent: float
    remarks: str | None = None


class QuarterlyEpsData(RecordModel):
    eps: float = Field(..., description="Basic earnings per share (TWD)")


class QuarterlyCapitalData(RecordModel):
    capital: int = Field(..., description="Paid-in capital (thousand TWD)")


class QuarterlyCashFlowData(RecordModel):
    operating_cash_flow: int
    investing_cash_flow: int
    financing_cash_flow: int
    exchange_rate_effect: int
    net_cash_change: int
    beginning_cash_balance: int
    ending_cash_balance: int


class CrawlResponse(BaseModel, Generic[T]):
    """Success envelope for record listings."""

    success: bool = True
    message: str = SUCCESS_MESSAGE
    count: int = Field(..., description="Number of records in data")
    data: list[T] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Error envelope shared by 4xx/5xx responses."""

    success: bool = False
    message: str = Field(..., description="Error summary")
    error: Any = Field(default=None, description="Error detail")


class ComponentHealth(BaseModel):
    """Health status of one dependency."""

    status: str = Field(..., description="healthy or unhealthy")
    latency_ms: float | None = Field(default=None, description="Check latency")
    details: dict[str, Any] | None = None


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str = Field(..., description="Overall service status")
    version: str
    components: dict[str, ComponentHealth] = Field(default_factory=dict)
