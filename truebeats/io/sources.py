from __future__ import annotations

"""Raw vendor feed sources consumed by the fiscal-period index and the merger."""

import logging
from abc import ABC, abstractmethod
from datetime import date
from pathlib import Path
from typing import Iterable, Iterator, Mapping

from truebeats.types.common import EarningsMetric, FeedVariant

logger = logging.getLogger(__name__)


def fiscal_period_filename(processing_date: date) -> str:
    return f"Fiscal_Periods_EPSSales_US_{processing_date:%Y%m%d}.csv"


def true_beat_filename(metric: EarningsMetric, variant: FeedVariant, processing_date: date) -> str:
    """Build the daily vendor file name for a TrueBeat feed.

    Args:
        metric (EarningsMetric): Earnings metric of the feed.
        variant (FeedVariant): All quarters or first quarter only.
        processing_date (date): Delivery date of the file.

    Returns:
        str: File name, e.g. ``ExtractAlpha_FQ1_TrueBeats_EPS_US_20210501.csv``.
    """
    return f"ExtractAlpha_{variant.value}_TrueBeats_{metric.vendor_token}_US_{processing_date:%Y%m%d}.csv"


def iter_file_lines(path: Path) -> Iterator[str]:
    """Stream a text file line by line without trailing newlines."""
    with path.open("r", encoding="utf-8") as handle:
        for line in handle:
            yield line.rstrip("\r\n")


class RawDataSource(ABC):
    """Supplies raw feed lines for one processing date."""

    @abstractmethod
    def fiscal_period_lines(self, processing_date: date) -> Iterable[str]:
        """Return the fiscal-period feed lines, header included."""
        ...

    @abstractmethod
    def true_beat_lines(
        self,
        metric: EarningsMetric,
        variant: FeedVariant,
        processing_date: date,
    ) -> Iterable[str]:
        """Return the TrueBeat feed lines for a metric and variant."""
        ...


class DirectoryRawDataSource(RawDataSource):
    """Reads the daily vendor files from a raw data directory.

    With ``missing_ok`` a missing TrueBeat file reads as empty, which is how
    days without vendor data are handled during historical processing.
    """

    def __init__(self, raw_dir: Path | str, missing_ok: bool = False) -> None:
        self.raw_dir = Path(raw_dir)
        self.missing_ok = missing_ok

    def fiscal_period_lines(self, processing_date: date) -> Iterable[str]:
        return iter_file_lines(self.raw_dir / fiscal_period_filename(processing_date))

    def true_beat_lines(
        self,
        metric: EarningsMetric,
        variant: FeedVariant,
        processing_date: date,
    ) -> Iterable[str]:
        path = self.raw_dir / true_beat_filename(metric, variant, processing_date)
        if self.missing_ok and not path.exists():
            logger.debug("No raw TrueBeat file at %s; treating as empty", path)
            return []
        return iter_file_lines(path)


class InMemoryRawDataSource(RawDataSource):
    """Serves feed lines held in memory, regardless of processing date."""

    def __init__(
        self,
        fiscal_period_lines: Iterable[str] = (),
        true_beat_lines: Mapping[tuple[EarningsMetric, FeedVariant], Iterable[str]] | None = None,
    ) -> None:
        self._fiscal_period_lines = list(fiscal_period_lines)
        self._true_beat_lines = {
            key: list(lines) for key, lines in (true_beat_lines or {}).items()
        }

    def fiscal_period_lines(self, processing_date: date) -> Iterable[str]:
        return list(self._fiscal_period_lines)

    def true_beat_lines(
        self,
        metric: EarningsMetric,
        variant: FeedVariant,
        processing_date: date,
    ) -> Iterable[str]:
        return list(self._true_beat_lines.get((metric, variant), []))
