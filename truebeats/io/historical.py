from __future__ import annotations

"""Split the multi-year vendor history into the daily raw file layout.

History files can exceed 10GB, so they are streamed and each day's lines are
flushed to disk as soon as the date column moves on.
"""

import logging
from datetime import date
from pathlib import Path
from typing import Iterable, Iterator

from truebeats.config import DEFAULT_HISTORY_SUFFIX
from truebeats.io.sources import DirectoryRawDataSource, RawDataSource, iter_file_lines, true_beat_filename
from truebeats.logic.parsing import VENDOR_DATE_FORMAT, is_data_line, parse_date_exact, split_fields
from truebeats.types.common import EarningsMetric, FeedVariant

logger = logging.getLogger(__name__)

# History rows interleave extra identifier columns; these pick the columns of
# the daily layout (date, ticker, CUSIP, ISIN, period, count or report date,
# TrueBeat), followed by the FQ1 expert/trend/management columns.
TRUE_BEAT_HISTORY_COLUMNS = (0, 2, 4, 6, 7, 8, 9)
FQ1_HISTORY_EXTRA_COLUMNS = (10, 11, 12)
FISCAL_HISTORY_COLUMNS = (1, 3, 5, 6, 7, 8, 9, 10)


def true_beat_history_filename(metric: EarningsMetric, variant: FeedVariant, suffix: str) -> str:
    return f"ExtractAlpha_{variant.value}_TrueBeats_{metric.vendor_token}_History_US_{suffix}.csv"


def fiscal_history_filename(suffix: str) -> str:
    return f"ExtractAlpha_Fiscal_Periods_EPSSales_History_US_{suffix}.csv"


def history_columns(variant: FeedVariant) -> tuple[int, ...]:
    if variant is FeedVariant.FQ1:
        return TRUE_BEAT_HISTORY_COLUMNS + FQ1_HISTORY_EXTRA_COLUMNS
    return TRUE_BEAT_HISTORY_COLUMNS


def split_history_file(
    history_path: Path,
    output_dir: Path,
    metric: EarningsMetric,
    variant: FeedVariant,
    start_date: date,
    end_date: date | None = None,
) -> list[date]:
    """Stream one history file into per-day raw TrueBeat files.

    Args:
        history_path (Path): Chronologically ordered history file.
        output_dir (Path): Directory receiving the daily files.
        metric (EarningsMetric): Metric of the history file.
        variant (FeedVariant): Variant of the history file.
        start_date (date): Rows dated before this are skipped.
        end_date (date | None): Reading stops at the first row after this.

    Returns:
        list[date]: Days written, in file order.
    """
    columns = history_columns(variant)
    buffer: list[str] = []
    previous: date | None = None
    written: list[date] = []
    skipped: set[str] = set()

    def flush(day: date) -> None:
        # A day seen again later in an unordered file is appended, not lost.
        mode = "a" if day in written else "w"
        path = output_dir / true_beat_filename(metric, variant, day)
        with path.open(mode, encoding="utf-8") as handle:
            handle.write("\n".join(buffer) + "\n")
        if day not in written:
            written.append(day)
        logger.debug(
            "Finished processing %s %s history for %s (%d rows)",
            variant.value,
            metric.vendor_token,
            day,
            len(buffer),
        )

    for line in iter_file_lines(history_path):
        if not is_data_line(line):
            continue
        fields = split_fields(line)
        day = parse_date_exact(fields[0], VENDOR_DATE_FORMAT, "history date")
        if day < start_date:
            if fields[0] not in skipped:
                skipped.add(fields[0])
                logger.debug("Skipping history rows dated %s", fields[0])
            continue
        if end_date is not None and day > end_date:
            break
        if buffer and day != previous:
            flush(previous)
            buffer = []
        buffer.append(",".join(fields[index] for index in columns))
        previous = day

    if buffer and previous is not None:
        flush(previous)
    return written


def split_historical_feeds(
    raw_dir: Path,
    start_date: date,
    end_date: date | None = None,
    suffix: str = DEFAULT_HISTORY_SUFFIX,
) -> dict[tuple[EarningsMetric, FeedVariant], list[date]]:
    """Split every TrueBeat history file in the raw directory into daily files.

    Args:
        raw_dir (Path): Directory holding the history files; daily files are
            written next to them.
        start_date (date): First day to keep.
        end_date (date | None): Last day to keep.
        suffix (str): Date range suffix of the history file names.

    Returns:
        dict[tuple[EarningsMetric, FeedVariant], list[date]]: Days written per feed.
    """
    logger.info("Splitting raw TrueBeat history in %s into daily files", raw_dir)
    written: dict[tuple[EarningsMetric, FeedVariant], list[date]] = {}
    for variant in FeedVariant:
        for metric in EarningsMetric:
            history_path = raw_dir / true_beat_history_filename(metric, variant, suffix)
            days = split_history_file(history_path, raw_dir, metric, variant, start_date, end_date)
            written[(metric, variant)] = days
            logger.info(
                "Completed splitting %s %s history into %d daily files",
                variant.value,
                metric.vendor_token,
                len(days),
            )
    return written


def historical_fiscal_period_lines(history_path: Path, stamp_date: date) -> Iterator[str]:
    """Reformat the fiscal-period history into the daily fiscal-period layout.

    Args:
        history_path (Path): Fiscal-period history file.
        stamp_date (date): Date written into the date column of every row.

    Returns:
        Iterator[str]: Daily-layout lines, header and blank lines removed.
    """
    lines = iter_file_lines(history_path)
    next(lines, None)
    stamp = stamp_date.strftime(VENDOR_DATE_FORMAT)
    for line in lines:
        if not line.strip():
            continue
        fields = split_fields(line)
        yield ",".join((stamp, *(fields[index] for index in FISCAL_HISTORY_COLUMNS)))


class HistoricalRawDataSource(RawDataSource):
    """Serves the split history as if it had been delivered day by day."""

    def __init__(self, raw_dir: Path | str, suffix: str = DEFAULT_HISTORY_SUFFIX) -> None:
        self.raw_dir = Path(raw_dir)
        self.suffix = suffix
        self._daily = DirectoryRawDataSource(self.raw_dir, missing_ok=True)

    def fiscal_period_lines(self, processing_date: date) -> Iterable[str]:
        return historical_fiscal_period_lines(
            self.raw_dir / fiscal_history_filename(self.suffix),
            processing_date,
        )

    def true_beat_lines(
        self,
        metric: EarningsMetric,
        variant: FeedVariant,
        processing_date: date,
    ) -> Iterable[str]:
        return self._daily.true_beat_lines(metric, variant, processing_date)
