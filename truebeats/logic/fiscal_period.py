from __future__ import annotations

import re

from truebeats.logic.parsing import TrueBeatParseError

_NON_DIGIT = re.compile(r"\D")


class FiscalPeriodParseError(TrueBeatParseError):
    """Raised when a fiscal period token is malformed."""


def parse_fiscal_period(token: str) -> tuple[int, int | None]:
    """Parse a vendor fiscal period token.

    Args:
        token (str): ``"2021"`` for an annual period or ``"2021 Q3"`` for a
            quarter.

    Returns:
        tuple[int, int | None]: Fiscal year and quarter (None when annual).
    """
    parts = token.split()
    if not parts:
        raise FiscalPeriodParseError(f"Missing fiscal year in period {token!r}")
    try:
        fiscal_year = int(parts[0])
    except ValueError:
        raise FiscalPeriodParseError(f"Invalid fiscal year in period {token!r}") from None
    if len(parts) == 1:
        return fiscal_year, None
    # Quarter numbers are not range checked.
    digits = _NON_DIGIT.sub("", parts[1])
    if not digits:
        raise FiscalPeriodParseError(f"Invalid fiscal quarter in period {token!r}")
    return fiscal_year, int(digits)
