from __future__ import annotations

from datetime import date
from decimal import Decimal
from pathlib import Path

from truebeats.domain.schemas import TrueBeatRecord
from truebeats.io.series import SeriesStore, merge_series_lines, read_series, series_path
from truebeats.types.common import EarningsMetric, FiscalPeriod


def _record(day: date, quarter: int | None, true_beat: str = "0.5") -> TrueBeatRecord:
    return TrueBeatRecord(
        symbol="AAPL",
        earnings_metric=EarningsMetric.EPS,
        fiscal_period=FiscalPeriod(fiscal_year=2021, fiscal_quarter=quarter),
        time=day,
        analyst_estimates_count=3,
        true_beat=Decimal(true_beat),
    )


def test_series_path_lowercases_ticker(tmp_path: Path) -> None:
    assert series_path(tmp_path, "BRK.B") == tmp_path / "alternative" / "extractalpha" / "truebeats" / "brk.b.csv"


def test_read_series_missing_file_is_empty(tmp_path: Path) -> None:
    assert read_series(tmp_path / "missing.csv", "AAPL") == []


def test_merge_series_lines_sorts_and_drops_repeats() -> None:
    """Lines are ordered by date and period and written once each."""
    early = _record(date(2021, 4, 30), 2)
    annual = _record(date(2021, 5, 1), None)
    quarter = _record(date(2021, 5, 1), 2)

    lines = merge_series_lines([quarter, early], [annual, quarter])

    assert lines == [
        "20210430,eps,3,0.5,,,,2021,2,,",
        "20210501,eps,3,0.5,,,,2021,,,",
        "20210501,eps,3,0.5,,,,2021,2,,",
    ]


def test_series_store_merges_with_existing_data(tmp_path: Path) -> None:
    """New records are merged into the prior series from the existing folder."""
    existing_dir = tmp_path / "existing"
    output_dir = tmp_path / "output"
    existing_path = series_path(existing_dir, "AAPL")
    existing_path.parent.mkdir(parents=True)
    existing_path.write_text("20210430,eps,3,0.5,,,,2021,2,,", encoding="utf-8")
    store = SeriesStore(existing_dir, output_dir)

    written = store.write("AAPL", [_record(date(2021, 5, 1), 2, "0.25")])

    assert written == series_path(output_dir, "AAPL")
    assert written.read_text(encoding="utf-8").splitlines() == [
        "20210430,eps,3,0.5,,,,2021,2,,",
        "20210501,eps,3,0.25,,,,2021,2,,",
    ]


def test_series_store_rewrite_is_idempotent(tmp_path: Path) -> None:
    """Writing the same records twice leaves the file unchanged."""
    store = SeriesStore(tmp_path, tmp_path)
    records = [_record(date(2021, 5, 1), None), _record(date(2021, 5, 1), 2)]

    path = store.write("AAPL", records)
    first_contents = path.read_text(encoding="utf-8")
    store.write("AAPL", records)

    assert path.read_text(encoding="utf-8") == first_contents
    assert len(first_contents.splitlines()) == 2
    assert not first_contents.endswith("\n")


def test_series_store_prefers_output_series(tmp_path: Path) -> None:
    """Series already written to the output folder are the prior state."""
    existing_dir = tmp_path / "existing"
    output_dir = tmp_path / "output"
    store = SeriesStore(existing_dir, output_dir)
    store.write("AAPL", [_record(date(2021, 5, 1), 2)])

    store.write("AAPL", [_record(date(2021, 5, 2), 2)])

    assert [record.time for record in store.load("AAPL")] == [date(2021, 5, 1), date(2021, 5, 2)]
    assert not series_path(existing_dir, "AAPL").exists()
