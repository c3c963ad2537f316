from __future__ import annotations

"""Canonical text form of TrueBeat records in the per-ticker series files."""

from datetime import date
from decimal import Decimal

from truebeats.domain.schemas import TrueBeatRecord
from truebeats.logic.parsing import (
    SERIES_DATE_FORMAT,
    TrueBeatParseError,
    format_decimal,
    parse_date_exact,
    parse_decimal,
    parse_int,
    parse_optional_decimal,
    split_fields,
)
from truebeats.types.common import EarningsMetric, FiscalPeriod

SERIES_COLUMNS = (
    "date",
    "earnings_metric",
    "analyst_estimates_count",
    "true_beat",
    "expert_beat",
    "trend_beat",
    "management_beat",
    "fiscal_year",
    "fiscal_quarter",
    "period_end",
    "expected_report_date",
)


def encode_record(record: TrueBeatRecord) -> str:
    """Serialize a record to its canonical series line.

    Args:
        record (TrueBeatRecord): Record to serialize.

    Returns:
        str: Comma-delimited line without a trailing newline.
    """
    period = record.fiscal_period
    return ",".join(
        (
            record.time.strftime(SERIES_DATE_FORMAT),
            record.earnings_metric.name.lower(),
            str(record.analyst_estimates_count),
            format_decimal(record.true_beat),
            _optional_decimal(record.expert_beat),
            _optional_decimal(record.trend_beat),
            _optional_decimal(record.management_beat),
            str(period.fiscal_year),
            "" if period.fiscal_quarter is None else str(period.fiscal_quarter),
            _optional_date(period.end),
            _optional_date(period.expected_report_date),
        )
    )


def decode_record(line: str, symbol: str) -> TrueBeatRecord:
    """Parse a canonical series line back into a record.

    The observation date always comes from the line itself so that reloaded
    history keeps its original date.

    Args:
        line (str): Series line as written by :func:`encode_record`.
        symbol (str): Ticker the series belongs to.

    Returns:
        TrueBeatRecord: Decoded record.
    """
    fields = split_fields(line)
    if len(fields) != len(SERIES_COLUMNS):
        raise TrueBeatParseError(
            f"Expected {len(SERIES_COLUMNS)} columns in series line for {symbol}, got {len(fields)}: {line!r}"
        )
    (
        time_value,
        metric_value,
        count_value,
        true_beat_value,
        expert_value,
        trend_value,
        management_value,
        year_value,
        quarter_value,
        end_value,
        expected_value,
    ) = fields
    return TrueBeatRecord(
        symbol=symbol,
        time=parse_date_exact(time_value, SERIES_DATE_FORMAT, "series date"),
        earnings_metric=_parse_metric_name(metric_value),
        analyst_estimates_count=parse_int(count_value, "analyst_estimates_count"),
        true_beat=parse_decimal(true_beat_value, "true_beat"),
        expert_beat=parse_optional_decimal(expert_value, "expert_beat"),
        trend_beat=parse_optional_decimal(trend_value, "trend_beat"),
        management_beat=parse_optional_decimal(management_value, "management_beat"),
        fiscal_period=FiscalPeriod(
            fiscal_year=parse_int(year_value, "fiscal_year"),
            fiscal_quarter=parse_int(quarter_value, "fiscal_quarter") if quarter_value else None,
            end=_parse_optional_date(end_value, "period_end"),
            expected_report_date=_parse_optional_date(expected_value, "expected_report_date"),
        ),
    )


def _parse_metric_name(value: str) -> EarningsMetric:
    try:
        return EarningsMetric[value.strip().upper()]
    except KeyError:
        raise TrueBeatParseError(f"Unknown earnings metric in series line: {value!r}") from None


def _optional_decimal(value: Decimal | None) -> str:
    return "" if value is None else format_decimal(value)


def _optional_date(value: date | None) -> str:
    return "" if value is None else value.strftime(SERIES_DATE_FORMAT)


def _parse_optional_date(value: str, field: str) -> date | None:
    return parse_date_exact(value, SERIES_DATE_FORMAT, field) if value else None
