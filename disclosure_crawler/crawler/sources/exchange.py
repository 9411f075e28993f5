"""Daily quote fetchers for the TWSE (listed) and TPEx (OTC) JSON APIs."""

from disclosure_crawler.crawler.errors import SourceFetchError
from disclosure_crawler.crawler.numeric import parse_decimal, parse_integer
from disclosure_crawler.crawler.periods import Granularity, Period
from disclosure_crawler.crawler.schemas import DailyPrice, Market
from disclosure_crawler.crawler.sources.base import SourceFetcher, json_payload, json_table
from disclosure_crawler.crawler.tables import Column, extract_records

# MI_INDEX returns a fixed sequence of tables; the per-security quotes are the ninth
TWSE_QUOTES_TABLE = 8
TPEX_QUOTES_TABLE = 0

# Codes of six or more characters are warrants and other non-common-stock instruments
TPEX_MAX_CODE_LENGTH = 5

TWSE_COLUMNS = (
    Column("證券代號", "code"),
    Column("證券名稱", "name"),
    Column("開盤價", "open", parse_decimal),
    Column("最高價", "high", parse_decimal),
    Column("最低價", "low", parse_decimal),
    Column("收盤價", "close", parse_decimal),
    Column("成交股數", "volume", parse_integer),
)

TPEX_COLUMNS = (
    Column("代號", "code"),
    Column("名稱", "name"),
    Column("收盤", "close", parse_decimal),
    Column("開盤", "open", parse_decimal),
    Column("最高", "high", parse_decimal),
    Column("最低", "low", parse_decimal),
    Column("成交股數", "volume", parse_integer),
)


def _require_day(period: Period) -> None:
    if period.granularity is not Granularity.DAY:
        raise ValueError(f"daily quotes need a day period, got {period}")


class TwseDailyPriceFetcher(SourceFetcher[DailyPrice]):
    """Listed-market daily quotes from the TWSE ``MI_INDEX`` report."""

    source = "twse"

    def __init__(self, client, base_url: str, **kwargs) -> None:
        super().__init__(client, Market.LISTED, base_url, **kwargs)

    async def _fetch(self, period: Period) -> list[DailyPrice]:
        _require_day(period)
        response = await self._client.get(
            f"{self._base_url}/rwd/zh/afterTrading/MI_INDEX",
            params={
                "date": period.storage_key.strftime("%Y%m%d"),
                "type": "ALLBUT0999",
                "response": "json",
            },
        )

        payload = json_payload(response)
        stat = payload.get("stat")
        if stat != "OK":
            raise SourceFetchError(
                "stat is not OK", status_code=response.status_code, stat=stat
            )

        table = json_table(payload, TWSE_QUOTES_TABLE, response.status_code)
        return extract_records(table, TWSE_COLUMNS, DailyPrice)


class TpexDailyPriceFetcher(SourceFetcher[DailyPrice]):
    """OTC-market daily quotes from the TPEx ``dailyQuotes`` report."""

    source = "tpex"

    def __init__(self, client, base_url: str, **kwargs) -> None:
        super().__init__(client, Market.OTC, base_url, **kwargs)

    async def _fetch(self, period: Period) -> list[DailyPrice]:
        _require_day(period)
        response = await self._client.get(
            f"{self._base_url}/www/zh-tw/afterTrading/dailyQuotes",
            params={
                "date": period.storage_key.strftime("%Y/%m/%d"),
                "id": "",
                "response": "json",
            },
        )

        payload = json_payload(response)
        stat = payload.get("stat")
        # TPEx answers "ok" or "OK"
        if not isinstance(stat, str) or stat.lower() != "ok":
            raise SourceFetchError(
                "stat is not ok", status_code=response.status_code, stat=stat
            )

        table = json_table(payload, TPEX_QUOTES_TABLE, response.status_code)
        return extract_records(table, TPEX_COLUMNS, DailyPrice)

    def _post_filter(self, records: list[DailyPrice]) -> list[DailyPrice]:
        return [r for r in records if len(r.code) <= TPEX_MAX_CODE_LENGTH]
