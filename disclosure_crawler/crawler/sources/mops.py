"""
Fetchers for the MOPS disclosure system.

Quarterly statements (EPS, capital, cash flow) are served by ``ajax_t163sbNN``
endpoints answering a form POST keyed by ROC year, zero-padded quarter and
market segment. Monthly revenue is a static Big5-encoded page per ROC
year/month and market segment. Both answer with HTML holding one table per
industry group; columns are resolved by header text.
"""

from collections.abc import Sequence

from disclosure_crawler.crawler.errors import SourceFetchError
from disclosure_crawler.crawler.numeric import (
    parse_decimal,
    parse_float,
    parse_integer,
    parse_text,
)
from disclosure_crawler.crawler.periods import Granularity, Period
from disclosure_crawler.crawler.schemas import (
    Market,
    MonthlyRevenue,
    QuarterlyCapital,
    QuarterlyCashFlow,
    QuarterlyEps,
)
from disclosure_crawler.crawler.sources.base import R, SourceFetcher
from disclosure_crawler.crawler.tables import (
    Column,
    HtmlTableLayout,
    extract_from_tables,
    html_tables,
)

REVENUE_ENCODING = "cp950"

STATEMENT_LAYOUT = HtmlTableLayout(
    table_selector="table.hasBorder",
    header_selector="tr.tblHead",
    row_selector="tr.even, tr.odd",
)

REVENUE_LAYOUT = HtmlTableLayout(
    table_selector='table[border="5"]',
    row_selector='tr[align="right"]',
)

EPS_COLUMNS = (
    Column("公司代號", "code"),
    Column("公司名稱", "name"),
    Column("基本每股盈餘（元）", "eps", parse_decimal),
)

CAPITAL_COLUMNS = (
    Column("公司代號", "code"),
    Column("公司名稱", "name"),
    Column("股本", "capital", parse_integer),
)

CASH_FLOW_COLUMNS = (
    Column("公司代號", "code"),
    Column("公司名稱", "name"),
    Column("營業活動之淨現金流入（流出）", "operating_cash_flow", parse_integer),
    Column("投資活動之淨現金流入（流出）", "investing_cash_flow", parse_integer),
    Column("籌資活動之淨現金流入（流出）", "financing_cash_flow", parse_integer),
    Column("匯率變動對現金及約當現金之影響", "exchange_rate_effect", parse_integer),
    Column("本期現金及約當現金增加（減少）數", "net_cash_change", parse_integer),
    Column("期初現金及約當現金餘額", "beginning_cash_balance", parse_integer),
    Column("期末現金及約當現金餘額", "ending_cash_balance", parse_integer),
)

REVENUE_COLUMNS = (
    Column("公司代號", "code"),
    Column("公司名稱", "name"),
    Column("當月營收", "monthly_revenue", parse_integer),
    Column("上月營收", "last_month_revenue", parse_integer),
    Column("去年當月營收", "last_year_monthly_revenue", parse_integer),
    Column("上月比較增減(%)", "previous_month_change_percent", parse_float),
    Column("去年同月增減(%)", "last_year_same_month_change_percent", parse_float),
    Column("當月累計營收", "cumulative_revenue", parse_integer),
    Column("去年累計營收", "last_year_cumulative_revenue", parse_integer),
    Column("前期比較增減(%)", "cumulative_previous_period_change_percent", parse_float),
    Column("備註", "remarks", parse_text),
)


def statement_form(period: Period, market: Market) -> dict[str, str]:
    """Form fields for an ``ajax_t163sbNN`` query."""
    if period.granularity is not Granularity.QUARTER or period.quarter is None:
        raise ValueError(f"statement queries need a quarter period, got {period}")
    return {
        "encodeURIComponent": "1",
        "step": "1",
        "firstin": "1",
        "off": "1",
        "isQuery": "Y",
        "TYPEK": market.value,
        "year": str(period.local_year),
        "season": f"{period.quarter:02d}",
    }


class MopsStatementFetcher(SourceFetcher[R]):
    """Quarterly statement summary for one market segment."""

    source = "mops"

    def __init__(
        self,
        client,
        market: Market,
        base_url: str,
        endpoint: str,
        columns: Sequence[Column],
        record_cls: type[R],
        **kwargs,
    ) -> None:
        super().__init__(client, market, base_url, **kwargs)
        self.endpoint = endpoint
        self._columns = columns
        self._record_cls = record_cls

    @property
    def name(self) -> str:
        return f"{self.source}:{self.endpoint}:{self.market.value}"

    async def _fetch(self, period: Period) -> list[R]:
        response = await self._client.post_form(
            f"{self._base_url}/mops/web/{self.endpoint}",
            data=statement_form(period, self.market),
        )

        tables = html_tables(response.text, STATEMENT_LAYOUT)
        if not tables:
            raise SourceFetchError(
                "no statement tables in response", status_code=response.status_code
            )
        return extract_from_tables(tables, self._columns, self._record_cls)


class MopsRevenueFetcher(SourceFetcher[MonthlyRevenue]):
    """Monthly revenue report (``t21sc03``) for one market segment."""

    source = "mops"

    @property
    def name(self) -> str:
        return f"{self.source}:t21sc03:{self.market.value}"

    async def _fetch(self, period: Period) -> list[MonthlyRevenue]:
        if period.granularity is not Granularity.MONTH:
            raise ValueError(f"revenue reports need a month period, got {period}")

        page = f"t21sc03_{period.local_year}_{period.month}_0.html"
        response = await self._client.get(
            f"{self._base_url}/nas/t21/{self.market.value}/{page}"
        )

        html = response.content.decode(REVENUE_ENCODING, errors="replace")
        tables = html_tables(html, REVENUE_LAYOUT)
        if not tables:
            raise SourceFetchError(
                "no revenue tables in response", status_code=response.status_code
            )
        return extract_from_tables(tables, REVENUE_COLUMNS, MonthlyRevenue)


def eps_fetcher(client, market: Market, base_url: str, **kwargs) -> MopsStatementFetcher:
    return MopsStatementFetcher(
        client, market, base_url, "ajax_t163sb04", EPS_COLUMNS, QuarterlyEps, **kwargs
    )


def capital_fetcher(client, market: Market, base_url: str, **kwargs) -> MopsStatementFetcher:
    return MopsStatementFetcher(
        client, market, base_url, "ajax_t163sb05", CAPITAL_COLUMNS, QuarterlyCapital, **kwargs
    )


def cash_flow_fetcher(client, market: Market, base_url: str, **kwargs) -> MopsStatementFetcher:
    return MopsStatementFetcher(
        client,
        market,
        base_url,
        "ajax_t163sb20",
        CASH_FLOW_COLUMNS,
        QuarterlyCashFlow,
        **kwargs,
    )
