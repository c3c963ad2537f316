from __future__ import annotations

import argparse
import logging
import sys
from datetime import date, datetime, timedelta
from operator import attrgetter
from pathlib import Path
from typing import Iterator

from tqdm import tqdm  # type: ignore[import-untyped]
from toolz.itertoolz import groupby

from truebeats.config import (
    get_deployment_date,
    get_directories,
    get_historical_date_range,
    get_history_file_suffix,
    is_historical_requested,
)
from truebeats.domain.schemas import TrueBeatRecord
from truebeats.io.historical import HistoricalRawDataSource, split_historical_feeds
from truebeats.io.series import SeriesStore
from truebeats.io.sources import DirectoryRawDataSource, RawDataSource
from truebeats.logic.fiscal_index import build_fiscal_period_index
from truebeats.logic.merger import TrueBeatMerger


logger = logging.getLogger(__name__)


def _parse_date(value: str, fmt: str) -> date:
    """Parse a CLI date argument, reporting errors through argparse."""
    try:
        return datetime.strptime(value, fmt).date()
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid date {value!r}: {exc}") from None


def _parse_args(argv: list[str], historical_default: bool = False) -> argparse.Namespace:
    """Parse CLI arguments for the converter commands."""
    parser = argparse.ArgumentParser(description="ExtractAlpha TrueBeats converter")
    subparsers = parser.add_subparsers(dest="command")
    live = subparsers.add_parser("live", help="Convert the raw files delivered for one date.")
    live.add_argument(
        "--date",
        type=lambda value: _parse_date(value, "%Y%m%d"),
        default=None,
        help="Processing date as yyyymmdd (default: deployment date from the environment)",
    )
    historical = subparsers.add_parser("historical", help="Split and convert the full vendor history.")
    historical.add_argument("--start", type=lambda value: _parse_date(value, "%Y-%m-%d"), default=None)
    historical.add_argument("--end", type=lambda value: _parse_date(value, "%Y-%m-%d"), default=None)
    for sub in (live, historical):
        sub.add_argument("--raw-dir", type=Path, default=None, help="Directory holding raw vendor files")
        sub.add_argument("--existing-dir", type=Path, default=None, help="Processed data folder to merge with")
        sub.add_argument("--output-dir", type=Path, default=None, help="Folder receiving the series files")
    if not argv:
        argv = ["historical" if historical_default else "live"]
    elif argv[0] not in {"live", "historical"}:
        argv = ["historical" if historical_default else "live", *argv]
    return parser.parse_args(argv)


def run_live_pipeline(
    processing_date: date,
    source: RawDataSource,
    store: SeriesStore,
) -> dict[str, list[TrueBeatRecord]]:
    """Reconcile one day of vendor files and update the affected series.

    Every record of the working set is written, including fiscal-period
    records that received no TrueBeat data.

    Args:
        processing_date (date): Delivery date of the raw files.
        source (RawDataSource): Supplier of the raw feed lines.
        store (SeriesStore): Destination of the per-ticker series.

    Returns:
        dict[str, list[TrueBeatRecord]]: Records written, by ticker.
    """
    logger.info("Starting TrueBeats conversion for %s", processing_date)
    working_set = build_fiscal_period_index(source.fiscal_period_lines(processing_date), processing_date)
    logger.info("Loaded fiscal periods for %d tickers", len(working_set.tickers()))
    merged = TrueBeatMerger(source).merge(working_set, processing_date)
    logger.info("Merged TrueBeats data for %d tickers", len(merged))
    records_by_ticker = groupby(attrgetter("symbol"), working_set)
    if not records_by_ticker:
        logger.info("No fiscal period or TrueBeats data found for %s", processing_date)
        return records_by_ticker
    store.write_all(records_by_ticker)
    logger.info("Wrote TrueBeats series for %d tickers", len(records_by_ticker))
    return records_by_ticker


def run_historical_pipeline(
    raw_dir: Path,
    store: SeriesStore,
    start_date: date,
    end_date: date,
    suffix: str,
    split: bool = True,
) -> list[date]:
    """Split the vendor history and replay the conversion day by day.

    The fiscal-period history is indexed once, stamped with the first day, and
    reused for every day in the range.

    Args:
        raw_dir (Path): Directory holding the history files.
        store (SeriesStore): Destination of the per-ticker series.
        start_date (date): First day to convert.
        end_date (date): Last day to convert (inclusive).
        suffix (str): Date-range suffix of the history file names.
        split (bool): Set False when the daily files were already produced.

    Returns:
        list[date]: Days for which series were written.
    """
    logger.info("Starting historical TrueBeats conversion from %s to %s", start_date, end_date)
    if split:
        split_historical_feeds(raw_dir, start_date, end_date, suffix)
    source = HistoricalRawDataSource(raw_dir, suffix)
    working_set = build_fiscal_period_index(source.fiscal_period_lines(start_date), start_date)
    if len(working_set) == 0:
        raise RuntimeError("No historical fiscal period data found; aborting historical conversion")

    merger = TrueBeatMerger(source)
    written_days: list[date] = []
    days = list(_date_range(start_date, end_date))
    day_iterator = tqdm(
        days,
        total=len(days),
        desc="Historical days",
        unit="day",
        ascii=True,
        disable=not sys.stderr.isatty(),
    )
    for day in day_iterator:
        merged = merger.merge(working_set, day)
        if not merged:
            logger.debug("No historical data exists for %s - skipping", day)
            continue
        store.write_all(merged)
        written_days.append(day)
        # FQ1 duplicate detection expects empty sub-components each day.
        working_set.reset_beats()
    logger.info("Historical conversion complete: wrote data for %d days", len(written_days))
    return written_days


def run(args: argparse.Namespace) -> None:
    """Dispatch a parsed command line to the matching pipeline."""
    raw_default, existing_default, output_default = get_directories()
    raw_dir = args.raw_dir or raw_default
    store = SeriesStore(args.existing_dir or existing_default, args.output_dir or output_default)
    if args.command == "historical":
        start_default, end_default = get_historical_date_range()
        run_historical_pipeline(
            raw_dir,
            store,
            args.start or start_default,
            args.end or end_default,
            get_history_file_suffix(),
        )
    else:
        processing_date = args.date or get_deployment_date()
        run_live_pipeline(processing_date, DirectoryRawDataSource(raw_dir), store)


def _date_range(start_date: date, end_date: date) -> Iterator[date]:
    """Yield every calendar day from start to end inclusive."""
    day = start_date
    while day <= end_date:
        yield day
        day += timedelta(days=1)


def _build_log_dir(log_root: Path) -> Path:
    """Create a timestamped log directory for the current run.

    Args:
        log_root (Path): Base directory for run logs.

    Returns:
        Path: Directory path for this run's log file.
    """
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    run_dir = log_root / timestamp
    run_dir.mkdir(parents=True, exist_ok=True)
    return run_dir


if __name__ == "__main__":
    log_dir = _build_log_dir(Path(__file__).resolve().parent / "logs")
    formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(formatter)

    file_handler = logging.FileHandler(log_dir / "run.log")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)

    logging.basicConfig(level=logging.DEBUG, handlers=[console_handler, file_handler])
    logger.info("Run log directory: %s", log_dir)
    args = _parse_args(sys.argv[1:], historical_default=is_historical_requested())
    try:
        run(args)
    except (ValueError, RuntimeError, OSError) as exc:
        logger.exception("TrueBeats conversion aborted: %s", exc)
        sys.exit(1)
