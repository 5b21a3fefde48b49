"""
Currency formatting and parsing.

Amounts are whole currency units (no minor units). The form shows them
grouped with a thousands separator ("-200.000"); storage receives the
plain signed integer. Both directions use the same stripping rule, so
anything format_amount produces is a valid parse_amount input.
"""

import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from tabungan.errors import InvalidAmountError


DEFAULT_SEPARATOR = "."
DEFAULT_SYMBOL = "Rp"

# Storage column is a signed 64-bit integer
INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1

_NON_AMOUNT_CHARS = re.compile(r"[^0-9-]")
_LEADING_INTEGER = re.compile(r"-?\d+")


def clean_amount_text(raw: Optional[str]) -> str:
    """Drop every character except digits and minus signs."""
    return _NON_AMOUNT_CHARS.sub("", raw or "")


def _group(digits: str, separator: str) -> str:
    head = len(digits) % 3 or 3
    parts = [digits[:head]]
    parts.extend(digits[i:i + 3] for i in range(head, len(digits), 3))
    return separator.join(parts)


def format_amount(raw: Optional[str], separator: str = DEFAULT_SEPARATOR) -> str:
    """Format free-form input as a grouped, signed display string.

    Example:
        >>> format_amount("-200000")
        '-200.000'
        >>> format_amount("abc123")
        '123'
    """
    cleaned = clean_amount_text(raw)
    digits = cleaned.replace("-", "")
    if not digits:
        return ""
    grouped = _group(digits, separator)
    return "-" + grouped if cleaned.startswith("-") else grouped


def parse_amount(display: Optional[str]) -> int:
    """Parse a display string back to a signed integer.

    Only the leading ``-?digits`` run of the cleaned text counts, so
    "1-2" parses as 1 while "-" and "--5" are rejected.

    Raises:
        InvalidAmountError: no digits, or outside the 64-bit range
    """
    match = _LEADING_INTEGER.match(clean_amount_text(display))
    if match is None:
        raise InvalidAmountError(display, "no digits found")
    try:
        value = int(match.group())
    except ValueError:
        raise InvalidAmountError(display, "too many digits")
    if not INT64_MIN <= value <= INT64_MAX:
        raise InvalidAmountError(display, "outside the supported range")
    return value


def group_digits(amount: int, separator: str = DEFAULT_SEPARATOR) -> str:
    """Group an integer amount, keeping its sign ("-200.000")."""
    return format_amount(str(amount), separator) or "0"


def format_rupiah(
    amount: int,
    symbol: str = DEFAULT_SYMBOL,
    separator: str = DEFAULT_SEPARATOR,
) -> str:
    """List-view style: "Rp 500.000" or "-Rp 200.000"."""
    sign = "" if amount >= 0 else "-"
    return f"{sign}{symbol} {group_digits(abs(amount), separator)}"


def format_signed_rupiah(
    amount: int,
    sign: str,
    symbol: str = DEFAULT_SYMBOL,
    separator: str = DEFAULT_SEPARATOR,
) -> str:
    """Explicitly signed total: "+Rp 1.000" for income, "-Rp 1.000" for expense."""
    return f"{sign}{symbol} {group_digits(abs(amount), separator)}"


def format_axis_thousands(
    value: Union[int, float],
    symbol: str = DEFAULT_SYMBOL,
) -> str:
    """Chart axis tick in thousands, e.g. "Rp 500k"."""
    thousands = (Decimal(str(value)) / Decimal(1000)).quantize(
        Decimal("1"), rounding=ROUND_HALF_UP
    )
    return f"{symbol} {thousands}k"
