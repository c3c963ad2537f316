from __future__ import annotations

"""Strict field parsers for vendor and series data.

Malformed numbers and dates raise instead of defaulting to zero.
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation

VENDOR_DATE_FORMAT = "%Y-%m-%d"
SERIES_DATE_FORMAT = "%Y%m%d"


class TrueBeatParseError(ValueError):
    """Raised when a required field cannot be parsed."""


def is_data_line(line: str) -> bool:
    """Return True when a raw line starts with a digit; headers and blanks never do."""
    return line[:1].isdigit()


def split_fields(line: str) -> list[str]:
    return line.rstrip("\r\n").split(",")


def parse_int(value: str, field: str = "value") -> int:
    """Parse an integer field.

    Args:
        value (str): Raw field text.
        field (str): Field name used in the error message.

    Returns:
        int: Parsed integer.
    """
    stripped = value.strip()
    if "_" in stripped:
        raise TrueBeatParseError(f"Invalid integer for {field}: {value!r}")
    try:
        return int(stripped)
    except ValueError:
        raise TrueBeatParseError(f"Invalid integer for {field}: {value!r}") from None


def parse_decimal(value: str, field: str = "value") -> Decimal:
    """Parse a decimal field in any standard, locale-invariant notation.

    Args:
        value (str): Raw field text, e.g. ``0.5432``, ``-1.2e-3`` or ``+3``.
        field (str): Field name used in the error message.

    Returns:
        Decimal: Parsed finite decimal.
    """
    stripped = value.strip()
    # Digit group underscores are valid Python literals but never vendor data.
    if "_" in stripped:
        raise TrueBeatParseError(f"Invalid decimal for {field}: {value!r}")
    try:
        parsed = Decimal(stripped)
    except InvalidOperation:
        raise TrueBeatParseError(f"Invalid decimal for {field}: {value!r}") from None
    if not parsed.is_finite():
        raise TrueBeatParseError(f"Non-finite decimal for {field}: {value!r}")
    return parsed


def parse_optional_decimal(value: str, field: str = "value") -> Decimal | None:
    return parse_decimal(value, field) if value.strip() else None


def parse_date_exact(value: str, fmt: str, field: str = "date") -> date:
    """Parse a date that must match ``fmt`` exactly (zero padded).

    Args:
        value (str): Raw field text.
        fmt (str): ``strptime`` format the text must round-trip through.
        field (str): Field name used in the error message.

    Returns:
        date: Parsed calendar date.
    """
    stripped = value.strip()
    try:
        parsed = datetime.strptime(stripped, fmt).date()
    except ValueError:
        raise TrueBeatParseError(f"Invalid {field}: {value!r} (expected {fmt})") from None
    if parsed.strftime(fmt) != stripped:
        raise TrueBeatParseError(f"Invalid {field}: {value!r} (expected {fmt})")
    return parsed


def format_decimal(value: Decimal) -> str:
    """Render a decimal without trailing zeros or exponent notation."""
    if value == 0:
        return "0"
    return format(value.normalize(), "f")
