from __future__ import annotations

"""Build the per-ticker reference records from the fiscal-period feed."""

import logging
from datetime import date
from typing import Iterable

from truebeats.domain.schemas import TrueBeatRecord
from truebeats.domain.working_set import WorkingSet
from truebeats.logic.fiscal_period import parse_fiscal_period
from truebeats.logic.parsing import VENDOR_DATE_FORMAT, is_data_line, parse_date_exact, split_fields
from truebeats.types.common import EarningsMetric, FiscalPeriod

logger = logging.getLogger(__name__)

TICKER_INDEX = 1
METRIC_INDEX = 4
FISCAL_PERIOD_INDEX = 6
PERIOD_END_INDEX = 7
REPORT_DATE_INDEX = 8

FISCAL_METRIC_TOKENS: dict[str, EarningsMetric] = {
    "eps": EarningsMetric.EPS,
    "sales": EarningsMetric.REVENUE,
}


def build_fiscal_period_index(
    lines: Iterable[str],
    processing_date: date,
    working_set: WorkingSet | None = None,
    duplicate_tickers: set[str] | None = None,
    unknown_metric_tickers: set[str] | None = None,
) -> WorkingSet:
    """Parse fiscal-period rows into bare records keyed by ticker.

    Args:
        lines (Iterable[str]): Raw fiscal-period feed lines, header included.
        processing_date (date): Date stamped on every created record.
        working_set (WorkingSet | None): Store to extend; a new one by default.
        duplicate_tickers (set[str] | None): Tickers already reported as
            having duplicate rows; shared across calls to log once per run.
        unknown_metric_tickers (set[str] | None): Tickers already reported as
            having an unknown metric token.

    Returns:
        WorkingSet: Reference records with no beat values yet.
    """
    index = working_set if working_set is not None else WorkingSet()
    reported = duplicate_tickers if duplicate_tickers is not None else set()
    unknown_reported = unknown_metric_tickers if unknown_metric_tickers is not None else set()
    for line in lines:
        if not is_data_line(line):
            continue
        fields = split_fields(line)
        ticker = fields[TICKER_INDEX]
        metric = FISCAL_METRIC_TOKENS.get(fields[METRIC_INDEX].strip().lower())
        if metric is None:
            if ticker not in unknown_reported:
                unknown_reported.add(ticker)
                logger.error("Encountered unknown earnings metric: %s - skipping", fields[METRIC_INDEX])
            continue
        fiscal_year, fiscal_quarter = parse_fiscal_period(fields[FISCAL_PERIOD_INDEX])
        record = TrueBeatRecord(
            symbol=ticker,
            earnings_metric=metric,
            fiscal_period=FiscalPeriod(
                fiscal_year=fiscal_year,
                fiscal_quarter=fiscal_quarter,
                end=parse_date_exact(fields[PERIOD_END_INDEX], VENDOR_DATE_FORMAT, "period end date"),
                expected_report_date=parse_date_exact(
                    fields[REPORT_DATE_INDEX], VENDOR_DATE_FORMAT, "expected report date"
                ),
            ),
            time=processing_date,
        )
        if index.find_matching(ticker, record) is not None:
            if ticker not in reported:
                reported.add(ticker)
                logger.error(
                    "Duplicate data encountered in fiscal periods dataset for ticker: %s - skipping",
                    ticker,
                )
            continue
        index.add(ticker, record)
    logger.debug("Indexed %d fiscal period records across %d tickers", len(index), len(index.tickers()))
    return index
