from __future__ import annotations

from datetime import date
from enum import Enum
from typing import NamedTuple

from pydantic import BaseModel, ConfigDict


class EarningsMetric(Enum):
    """Earnings figure being forecast; declaration order is the sort order."""

    EPS = "eps"
    REVENUE = "revenue"

    @property
    def vendor_token(self) -> str:
        """Return the metric name used in raw vendor file names."""
        return "EPS" if self is EarningsMetric.EPS else "SALES"

    @property
    def sort_index(self) -> int:
        return _METRIC_ORDER.index(self)


_METRIC_ORDER = tuple(EarningsMetric)


class FeedVariant(Enum):
    """TrueBeat dataset variant; declaration order is the processing order."""

    ALL = "All"
    FQ1 = "FQ1"


class FiscalPeriod(BaseModel):
    model_config = ConfigDict(frozen=True)

    fiscal_year: int
    fiscal_quarter: int | None = None
    end: date | None = None
    expected_report_date: date | None = None

    @property
    def is_annual(self) -> bool:
        return self.fiscal_quarter is None

    @property
    def is_quarterly(self) -> bool:
        return not self.is_annual


class IdentityKey(NamedTuple):
    """Merge identity of a record within one ticker."""

    earnings_metric: EarningsMetric
    fiscal_year: int
    fiscal_quarter: int | None
