"""Securities: the shared parent table referenced by every period record."""

from disclosure_crawler.securities.repository import SecurityRepository
from disclosure_crawler.securities.schemas import Security

__all__ = ["Security", "SecurityRepository"]
