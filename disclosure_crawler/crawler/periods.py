"""
Period translation between request strings, ROC years and storage keys.

Every period is stored as the first calendar day of the period:
days map to themselves, months to day 1 and quarters to day 1 of the
quarter's first month (Q1 -> Jan, Q2 -> Apr, Q3 -> Jul, Q4 -> Oct).

Upstream disclosure systems number years on the ROC calendar, which is
the Gregorian year minus 1911.
"""

import re
from dataclasses import dataclass
from datetime import date
from enum import Enum

from disclosure_crawler.crawler.errors import InvalidPeriod

ROC_EPOCH_OFFSET = 1911

_DAY_RE = re.compile(r"([0-9]{4})-([0-9]{2})-([0-9]{2})")
_MONTH_RE = re.compile(r"([0-9]{4})-([0-9]{2})")
_QUARTER_RE = re.compile(r"([0-9]{4})-Q([1-4])")


class Granularity(str, Enum):
    """Period granularity of an entity type."""

    DAY = "day"
    MONTH = "month"
    QUARTER = "quarter"

    @property
    def pattern(self) -> str:
        """Human-readable request shape."""
        return _EXPECTED[self]


_EXPECTED = {
    Granularity.DAY: "YYYY-MM-DD",
    Granularity.MONTH: "YYYY-MM",
    Granularity.QUARTER: "YYYY-Q#",
}


@dataclass(frozen=True)
class Period:
    """A parsed request period and its source/storage representations."""

    granularity: Granularity
    year: int
    month: int
    day: int = 1
    quarter: int | None = None

    @property
    def storage_key(self) -> date:
        """Canonical first-of-period date used as the storage identifier."""
        if self.granularity is Granularity.DAY:
            return date(self.year, self.month, self.day)
        return date(self.year, self.month, 1)

    @property
    def local_year(self) -> int:
        """Year on the ROC calendar."""
        return to_local_year(self.year)

    @property
    def label(self) -> str:
        """Request-style string for this period."""
        if self.granularity is Granularity.QUARTER:
            return format_quarter(self.year, self.quarter)
        if self.granularity is Granularity.MONTH:
            return f"{self.year:04d}-{self.month:02d}"
        return self.storage_key.isoformat()

    def __str__(self) -> str:
        return self.label


def to_local_year(year: int) -> int:
    """Convert a Gregorian year to the ROC year (2024 -> 113)."""
    local = year - ROC_EPOCH_OFFSET
    if local < 1:
        raise InvalidPeriod(year, f"a year after {ROC_EPOCH_OFFSET}")
    return local


def from_local_year(local_year: int) -> int:
    """Convert an ROC year back to the Gregorian year (113 -> 2024)."""
    if local_year < 1:
        raise InvalidPeriod(local_year, "a positive ROC year")
    return local_year + ROC_EPOCH_OFFSET


def quarter_to_storage_key(year: int, quarter: int) -> date:
    """Map (year, quarter) to day 1 of the quarter's first month."""
    if quarter not in (1, 2, 3, 4):
        raise InvalidPeriod(quarter, "a quarter between 1 and 4")
    return date(year, (quarter - 1) * 3 + 1, 1)


def storage_key_to_quarter(key: date) -> tuple[int, int]:
    """Inverse of :func:`quarter_to_storage_key`."""
    if key.day != 1 or key.month not in (1, 4, 7, 10):
        raise InvalidPeriod(key.isoformat(), "the first day of a quarter")
    return key.year, (key.month - 1) // 3 + 1


def month_to_storage_key(year: int, month: int) -> date:
    """Map (year, month) to day 1 of that month."""
    if not 1 <= month <= 12:
        raise InvalidPeriod(month, "a month between 1 and 12")
    return date(year, month, 1)


def format_quarter(year: int, quarter: int) -> str:
    """Render a quarter as ``YYYY-Q#``."""
    if quarter not in (1, 2, 3, 4):
        raise InvalidPeriod(quarter, "a quarter between 1 and 4")
    return f"{year:04d}-Q{quarter}"


def parse_quarter(value: str) -> tuple[int, int]:
    """Parse ``YYYY-Q#`` into (year, quarter)."""
    match = _QUARTER_RE.fullmatch(value or "")
    if not match:
        raise InvalidPeriod(value, _EXPECTED[Granularity.QUARTER])
    return int(match.group(1)), int(match.group(2))


def parse_month(value: str) -> tuple[int, int]:
    """Parse ``YYYY-MM`` into (year, month)."""
    match = _MONTH_RE.fullmatch(value or "")
    if not match:
        raise InvalidPeriod(value, _EXPECTED[Granularity.MONTH])
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise InvalidPeriod(value, _EXPECTED[Granularity.MONTH])
    return year, month


def parse_day(value: str) -> date:
    """Parse ``YYYY-MM-DD`` into a calendar date."""
    match = _DAY_RE.fullmatch(value or "")
    if not match:
        raise InvalidPeriod(value, _EXPECTED[Granularity.DAY])
    try:
        return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError as e:
        raise InvalidPeriod(value, _EXPECTED[Granularity.DAY]) from e


def parse_period(value: str, granularity: Granularity) -> Period:
    """Parse a request period string of the given granularity.

    Raises:
        InvalidPeriod: If the string does not match the granularity's shape
    """
    if granularity is Granularity.QUARTER:
        year, quarter = parse_quarter(value)
        key = quarter_to_storage_key(year, quarter)
        period = Period(granularity, year, key.month, quarter=quarter)
    elif granularity is Granularity.MONTH:
        year, month = parse_month(value)
        period = Period(granularity, year, month)
    else:
        day = parse_day(value)
        period = Period(granularity, day.year, day.month, day.day)

    # Reject years the upstream ROC numbering cannot express
    to_local_year(period.year)
    return period


def period_from_storage_key(key: date, granularity: Granularity) -> Period:
    """Rebuild a Period from its storage key."""
    if granularity is Granularity.QUARTER:
        year, quarter = storage_key_to_quarter(key)
        return Period(granularity, year, key.month, quarter=quarter)
    if granularity is Granularity.MONTH:
        if key.day != 1:
            raise InvalidPeriod(key.isoformat(), "the first day of a month")
        return Period(granularity, key.year, key.month)
    return Period(granularity, key.year, key.month, key.day)
