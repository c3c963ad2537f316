from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from more_itertools import unique_everseen

from truebeats.domain.schemas import TrueBeatRecord, series_sort_key
from truebeats.io.sources import iter_file_lines
from truebeats.logic.codec import decode_record, encode_record


logger = logging.getLogger(__name__)


SERIES_SUBDIRECTORY = Path("alternative") / "extractalpha" / "truebeats"


def series_path(base_dir: Path | str, ticker: str) -> Path:
    """Build the series file location for a ticker under a data directory.

    Args:
        base_dir (Path | str): Root of the data folder.
        ticker (str): Ticker symbol; lowercased for the file name.

    Returns:
        Path: ``<base>/alternative/extractalpha/truebeats/<ticker>.csv``.
    """
    return Path(base_dir) / SERIES_SUBDIRECTORY / f"{ticker.strip().lower()}.csv"


def read_series(path: Path, symbol: str) -> list[TrueBeatRecord]:
    """Decode a persisted series file, returning an empty list when missing.

    Args:
        path (Path): Series file to read.
        symbol (str): Ticker the series belongs to.

    Returns:
        list[TrueBeatRecord]: Records in file order.
    """
    if not path.exists():
        logger.debug("No existing series found at %s", path)
        return []
    return [decode_record(line, symbol) for line in iter_file_lines(path) if line.strip()]


def merge_series_lines(
    existing: Iterable[TrueBeatRecord],
    incoming: Iterable[TrueBeatRecord],
) -> list[str]:
    """Combine prior and new records into sorted, de-duplicated series lines.

    Args:
        existing (Iterable[TrueBeatRecord]): Records already on disk.
        incoming (Iterable[TrueBeatRecord]): Newly reconciled records.

    Returns:
        list[str]: Encoded lines; repeats keep their first occurrence.
    """
    ordered = sorted([*existing, *incoming], key=series_sort_key)
    return list(unique_everseen(map(encode_record, ordered)))


class SeriesStore:
    """Reads and rewrites the per-ticker series files.

    Prior state is read from the output directory when this run already wrote
    the ticker there (day-by-day historical processing), otherwise from the
    existing processed data directory.
    """

    def __init__(self, existing_dir: Path | str, output_dir: Path | str) -> None:
        self.existing_dir = Path(existing_dir)
        self.output_dir = Path(output_dir)

    def load(self, ticker: str) -> list[TrueBeatRecord]:
        output_path = series_path(self.output_dir, ticker)
        if output_path.exists():
            return read_series(output_path, ticker)
        return read_series(series_path(self.existing_dir, ticker), ticker)

    def write(self, ticker: str, records: Iterable[TrueBeatRecord]) -> Path:
        """Merge records into the ticker's series and rewrite the file.

        Args:
            ticker (str): Ticker whose series is updated.
            records (Iterable[TrueBeatRecord]): Newly reconciled records.

        Returns:
            Path: Path of the written series file.
        """
        lines = merge_series_lines(self.load(ticker), records)
        path = series_path(self.output_dir, ticker)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("\n".join(lines), encoding="utf-8")
        logger.debug("Wrote %d series lines to %s", len(lines), path)
        return path

    def write_all(self, records_by_ticker: dict[str, list[TrueBeatRecord]]) -> list[Path]:
        return [self.write(ticker, records) for ticker, records in records_by_ticker.items()]
