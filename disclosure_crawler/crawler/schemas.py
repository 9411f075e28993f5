"""Data models for crawled period records."""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


class EntityType(str, Enum):
    """Kinds of periodic disclosure the crawler serves."""

    DAILY_PRICE = "daily_price"
    MONTHLY_REVENUE = "monthly_revenue"
    QUARTERLY_EPS = "quarterly_eps"
    QUARTERLY_CAPITAL = "quarterly_capital"
    QUARTERLY_CASH_FLOW = "quarterly_cash_flow"


class Market(str, Enum):
    """Market segment, using the MOPS ``TYPEK`` codes."""

    LISTED = "sii"
    OTC = "otc"


@dataclass
class DailyPrice:
    """One security's daily OHLC prices and traded share volume."""

    code: str
    name: str
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: int


@dataclass
class MonthlyRevenue:
    """Monthly revenue (thousand TWD) with prior-period comparisons."""

    code: str
    name: str
    monthly_revenue: int
    last_month_revenue: int
    last_year_monthly_revenue: int
    previous_month_change_percent: float
    last_year_same_month_change_percent: float
    cumulative_revenue: int
    last_year_cumulative_revenue: int
    cumulative_previous_period_change_percent: float
    remarks: str | None = None


@dataclass
class QuarterlyEps:
    """Basic earnings per share for a quarter."""

    code: str
    name: str
    eps: Decimal


@dataclass
class QuarterlyCapital:
    """Paid-in capital reported for a quarter."""

    code: str
    name: str
    capital: int


@dataclass
class QuarterlyCashFlow:
    """Cash flow statement summary for a quarter."""

    code: str
    name: str
    operating_cash_flow: int
    investing_cash_flow: int
    financing_cash_flow: int
    exchange_rate_effect: int
    net_cash_change: int
    beginning_cash_balance: int
    ending_cash_balance: int


PeriodRecord = DailyPrice | MonthlyRevenue | QuarterlyEps | QuarterlyCapital | QuarterlyCashFlow
