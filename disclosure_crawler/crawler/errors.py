"""Exceptions raised by the crawl pipeline."""


class CrawlerError(Exception):
    """Base exception for crawl pipeline errors."""

    pass


class InvalidPeriod(CrawlerError, ValueError):
    """A period string or component does not have the required shape."""

    def __init__(self, value: object, expected: str):
        super().__init__(f"Invalid period {value!r}: expected {expected}")
        self.value = value
        self.expected = expected


class SourceFetchError(CrawlerError):
    """One upstream source returned an unusable response.

    Raised inside fetchers only; the fetcher base class recovers it into
    an empty contribution.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        stat: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.stat = stat


class DataNotFoundError(CrawlerError):
    """No source produced records for a period of an authoritative entity."""

    def __init__(self, entity: str, period: str):
        super().__init__(
            f"No {entity} data found for {period}. "
            "The data may not be available yet or the period is invalid."
        )
        self.entity = entity
        self.period = period


class PersistenceWriteError(CrawlerError):
    """Crawled records could not be stored."""

    pass
