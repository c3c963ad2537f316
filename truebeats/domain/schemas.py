from __future__ import annotations

from datetime import date, datetime
from datetime import time as time_of_day
from decimal import Decimal
from zoneinfo import ZoneInfo

from pydantic import BaseModel

from truebeats.types.common import EarningsMetric, FiscalPeriod, IdentityKey

EXCHANGE_TIMEZONE = ZoneInfo("America/New_York")
END_TIME_OF_DAY = time_of_day(12, 30)


class TrueBeatRecord(BaseModel):
    """TrueBeat forecast for one ticker, fiscal period and earnings metric.

    Records are mutated in place while the raw feeds are merged, so unlike the
    reference types this model is not frozen.
    """

    symbol: str
    earnings_metric: EarningsMetric
    fiscal_period: FiscalPeriod
    time: date
    analyst_estimates_count: int = 0
    true_beat: Decimal = Decimal(0)
    expert_beat: Decimal | None = None
    trend_beat: Decimal | None = None
    management_beat: Decimal | None = None

    @property
    def end_time(self) -> datetime:
        """Return the moment the record becomes available to consumers."""
        return datetime.combine(self.time, END_TIME_OF_DAY, tzinfo=EXCHANGE_TIMEZONE)

    @property
    def identity(self) -> IdentityKey:
        return IdentityKey(
            self.earnings_metric,
            self.fiscal_period.fiscal_year,
            self.fiscal_period.fiscal_quarter,
        )

    @property
    def has_components(self) -> bool:
        """Return True when the expert, trend and management beats are all set."""
        return (
            self.expert_beat is not None
            and self.trend_beat is not None
            and self.management_beat is not None
        )

    def reset_beats(self) -> None:
        """Clear every value derived from the TrueBeat feeds."""
        self.analyst_estimates_count = 0
        self.true_beat = Decimal(0)
        self.expert_beat = None
        self.trend_beat = None
        self.management_beat = None


def series_sort_key(record: TrueBeatRecord) -> tuple[date, int, int, int]:
    """Sort key for persisted series: time, fiscal year, quarter, metric."""
    return (
        record.time,
        record.fiscal_period.fiscal_year,
        record.fiscal_period.fiscal_quarter or 0,
        record.earnings_metric.sort_index,
    )

