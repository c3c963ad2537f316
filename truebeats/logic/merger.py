from __future__ import annotations

"""Fold the TrueBeat feeds into the fiscal-period working set."""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from toolz.dicttoolz import valmap

from truebeats.domain.schemas import TrueBeatRecord
from truebeats.domain.working_set import WorkingSet
from truebeats.io.sources import RawDataSource
from truebeats.logic.fiscal_period import parse_fiscal_period
from truebeats.logic.parsing import (
    is_data_line,
    parse_decimal,
    parse_int,
    split_fields,
)
from truebeats.types.common import EarningsMetric, FeedVariant, FiscalPeriod, IdentityKey

logger = logging.getLogger(__name__)

TICKER_INDEX = 1
FISCAL_PERIOD_INDEX = 4
ANALYST_COUNT_INDEX = 5
TRUE_BEAT_INDEX = 6
EXPERT_BEAT_INDEX = 7
TREND_BEAT_INDEX = 8
MANAGEMENT_BEAT_INDEX = 9


@dataclass(frozen=True)
class TrueBeatRow:
    """Typed values of one TrueBeat feed line."""

    ticker: str
    fiscal_year: int
    fiscal_quarter: int | None
    true_beat: Decimal
    analyst_count: int | None = None
    expert_beat: Decimal | None = None
    trend_beat: Decimal | None = None
    management_beat: Decimal | None = None


def parse_true_beat_row(line: str, variant: FeedVariant) -> TrueBeatRow:
    """Parse a TrueBeat data line for the given feed variant.

    Args:
        line (str): Raw data line (header lines must be filtered out first).
        variant (FeedVariant): ``ALL`` carries the analyst count, ``FQ1``
            carries the expert/trend/management breakdown.

    Returns:
        TrueBeatRow: Parsed values; malformed numbers raise TrueBeatParseError.
    """
    fields = split_fields(line)
    fiscal_year, fiscal_quarter = parse_fiscal_period(fields[FISCAL_PERIOD_INDEX])
    true_beat = parse_decimal(fields[TRUE_BEAT_INDEX], "true_beat")
    if variant is FeedVariant.ALL:
        return TrueBeatRow(
            ticker=fields[TICKER_INDEX],
            fiscal_year=fiscal_year,
            fiscal_quarter=fiscal_quarter,
            true_beat=true_beat,
            analyst_count=parse_int(fields[ANALYST_COUNT_INDEX], "analyst_count"),
        )
    return TrueBeatRow(
        ticker=fields[TICKER_INDEX],
        fiscal_year=fiscal_year,
        fiscal_quarter=fiscal_quarter,
        true_beat=true_beat,
        expert_beat=parse_decimal(fields[EXPERT_BEAT_INDEX], "expert_beat"),
        trend_beat=parse_decimal(fields[TREND_BEAT_INDEX], "trend_beat"),
        management_beat=parse_decimal(fields[MANAGEMENT_BEAT_INDEX], "management_beat"),
    )


class TrueBeatMerger:
    """Reconcile the All and FQ1 TrueBeat feeds into per-ticker records.

    One merger lives for a whole run so duplicate FQ1 rows are reported once
    per ticker even when the historical driver merges many days.
    """

    def __init__(self, source: RawDataSource) -> None:
        self.source = source
        self.duplicate_tickers: set[str] = set()

    def merge(self, working_set: WorkingSet, processing_date: date) -> dict[str, list[TrueBeatRecord]]:
        """Merge every TrueBeat feed for a processing date into the working set.

        The All variant runs before FQ1 for every metric: FQ1 duplicate
        detection relies on the sub-components still being absent after the
        All pass.

        Args:
            working_set (WorkingSet): Records built from the fiscal-period feed;
                mutated in place and extended with new records.
            processing_date (date): Date stamped on every touched record.

        Returns:
            dict[str, list[TrueBeatRecord]]: Records touched by this call, by ticker.
        """
        touched: dict[str, dict[IdentityKey, TrueBeatRecord]] = {}
        for variant in FeedVariant:
            for metric in EarningsMetric:
                lines = self.source.true_beat_lines(metric, variant, processing_date)
                merged = sum(
                    self._merge_line(line, metric, variant, working_set, touched, processing_date)
                    for line in lines
                    if is_data_line(line)
                )
                logger.debug(
                    "Merged %d %s %s TrueBeat rows for %s",
                    merged,
                    variant.value,
                    metric.vendor_token,
                    processing_date,
                )
        return valmap(lambda records: list(records.values()), touched)

    def _merge_line(
        self,
        line: str,
        metric: EarningsMetric,
        variant: FeedVariant,
        working_set: WorkingSet,
        touched: dict[str, dict[IdentityKey, TrueBeatRecord]],
        processing_date: date,
    ) -> bool:
        """Fold one data line into its record; return False when skipped."""
        row = parse_true_beat_row(line, variant)
        key = IdentityKey(metric, row.fiscal_year, row.fiscal_quarter)

        if variant is FeedVariant.FQ1 and any(
            record.has_components for record in working_set.find_all(row.ticker, key)
        ):
            # Vendor FQ1 files repeat tickers; the repeats usually match the
            # first row but the TrueBeat occasionally flips between two values.
            if row.ticker not in self.duplicate_tickers:
                self.duplicate_tickers.add(row.ticker)
                logger.error(
                    "Duplicate data encountered in FQ1 dataset for ticker: %s - skipping",
                    row.ticker,
                )
            return False

        ticker_touched = touched.setdefault(row.ticker, {})
        record = ticker_touched.get(key)
        if record is None:
            record = working_set.find(row.ticker, key)
        is_new = record is None
        if record is None:
            record = TrueBeatRecord(
                symbol=row.ticker,
                earnings_metric=metric,
                fiscal_period=FiscalPeriod(
                    fiscal_year=row.fiscal_year,
                    fiscal_quarter=row.fiscal_quarter,
                ),
                time=processing_date,
            )

        if row.analyst_count is not None:
            record.analyst_estimates_count = row.analyst_count
        record.true_beat = row.true_beat
        if record.expert_beat is None:
            record.expert_beat = row.expert_beat
        if record.trend_beat is None:
            record.trend_beat = row.trend_beat
        if record.management_beat is None:
            record.management_beat = row.management_beat

        if record.has_components:
            record.true_beat = record.expert_beat + record.trend_beat + record.management_beat

        record.time = processing_date
        ticker_touched[key] = record
        if is_new:
            working_set.add(row.ticker, record)
        return True
