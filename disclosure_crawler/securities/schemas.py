"""Data models for listed securities."""

from dataclasses import dataclass


@dataclass
class Security:
    """A listed security keyed by its exchange code.

    The code is stable; the display name follows the latest crawl
    (last write wins).
    """

    code: str
    name: str = ""
