"""
Numeric normalization for exchange table cells.

Source tables format numbers for display: thousands separators
("1,234,567"), accounting negatives ("(1,234)"), placeholder dashes
("-", "--") and stray markup or whitespace. Every parser here returns a
number for any input and never raises.
"""

import math
import re
from decimal import Decimal, InvalidOperation

_NON_INTEGER_CHARS = re.compile(r"[^0-9\-]")
_NON_DECIMAL_CHARS = re.compile(r"[^0-9\-.]")


def _is_blank(raw: str | None) -> bool:
    return raw is None or raw.strip() in ("", "-")


def _is_parenthesized(raw: str) -> bool:
    return "(" in raw and ")" in raw


def parse_integer(raw: str | None) -> int:
    """Parse an integral cell (volume, capital, cash flow, revenue).

    Examples:
        "1,234,567" -> 1234567
        "(1,234)"   -> -1234
        "-"         -> 0
        "  42 "     -> 42
    """
    if _is_blank(raw):
        return 0

    cleaned = _NON_INTEGER_CHARS.sub("", raw)
    try:
        value = int(cleaned)
    except ValueError:
        return 0

    return -abs(value) if _is_parenthesized(raw) else value


def parse_decimal(raw: str | None) -> Decimal:
    """Parse a fractional cell (prices, EPS) into a Decimal.

    Follows the same rules as :func:`parse_integer` but keeps the
    decimal point.
    """
    if _is_blank(raw):
        return Decimal(0)

    cleaned = _NON_DECIMAL_CHARS.sub("", raw)
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return Decimal(0)

    if not value.is_finite():
        return Decimal(0)
    return -abs(value) if _is_parenthesized(raw) else value


def parse_float(raw: str | None) -> float:
    """Parse a percent-change cell: commas stripped, float parse, 0.0 on failure."""
    if raw is None:
        return 0.0

    cleaned = raw.replace(",", "").strip()
    try:
        value = float(cleaned)
    except ValueError:
        return 0.0

    return value if math.isfinite(value) else 0.0


def parse_text(raw: str | None) -> str | None:
    """Trim free text; blank cells become None."""
    if raw is None:
        return None
    text = raw.strip()
    return text or None
