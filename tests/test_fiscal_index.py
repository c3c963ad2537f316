from __future__ import annotations

import logging
from datetime import date

import pytest

from truebeats.logic.fiscal_index import build_fiscal_period_index
from truebeats.logic.parsing import TrueBeatParseError
from truebeats.types.common import EarningsMetric, IdentityKey

from conftest import FISCAL_HEADER, PROCESSING_DATE


def test_build_fiscal_period_index_creates_bare_records(fiscal_period_lines: list[str]) -> None:
    """Each fiscal-period row becomes a record with no beat values yet."""
    working_set = build_fiscal_period_index(fiscal_period_lines, PROCESSING_DATE)

    assert working_set.tickers() == ["AAPL", "GOOG"]
    assert len(working_set) == 6
    annual = working_set.find("AAPL", IdentityKey(EarningsMetric.EPS, 2021, None))
    assert annual is not None
    assert annual.time == PROCESSING_DATE
    assert annual.fiscal_period.end == date(2021, 12, 31)
    assert annual.fiscal_period.expected_report_date == date(2022, 1, 31)
    assert annual.true_beat == 0
    assert annual.analyst_estimates_count == 0
    assert not annual.has_components
    revenue = working_set.find("GOOG", IdentityKey(EarningsMetric.REVENUE, 2021, 2))
    assert revenue is not None
    assert revenue.fiscal_period.end == date(2021, 6, 30)


def test_build_fiscal_period_index_skips_unknown_metric(caplog: pytest.LogCaptureFixture) -> None:
    """Unknown metric tokens are logged and skipped."""
    lines = [
        FISCAL_HEADER,
        "2021-05-01,AAPL,0123456789,US0000000000,EBITDA,A,2021,2021-12-31,2022-01-31",
        "2021-05-01,AAPL,0123456789,US0000000000,EPS,A,2021,2021-12-31,2022-01-31",
    ]
    with caplog.at_level(logging.ERROR):
        working_set = build_fiscal_period_index(lines, PROCESSING_DATE)

    assert len(working_set) == 1
    assert "Encountered unknown earnings metric: EBITDA - skipping" in caplog.text


def test_build_fiscal_period_index_logs_unknown_metric_once_per_ticker(
    caplog: pytest.LogCaptureFixture,
) -> None:
    """Repeated unknown metric rows for a ticker produce a single error."""
    lines = [
        FISCAL_HEADER,
        "2021-05-01,AAPL,0123456789,US0000000000,EBITDA,A,2021,2021-12-31,2022-01-31",
        "2021-05-01,AAPL,0123456789,US0000000000,EBITDA,Q,2021 Q2,2021-06-30,2021-08-15",
        "2021-05-01,AAPL,0123456789,US0000000000,EBITDA,Q,2021 Q3,2021-09-30,2021-11-05",
        "2021-05-01,GOOG,1123456789,US0000000001,EBITDA,A,2021,2021-12-31,2022-01-31",
    ]
    with caplog.at_level(logging.ERROR):
        working_set = build_fiscal_period_index(lines, PROCESSING_DATE)

    assert len(working_set) == 0
    unknown = [record for record in caplog.records if "unknown earnings metric" in record.getMessage()]
    assert len(unknown) == 2


def test_build_fiscal_period_index_logs_duplicates_once_per_ticker(
    caplog: pytest.LogCaptureFixture,
) -> None:
    """Exact duplicate rows are dropped with a single error per ticker."""
    row = "2021-05-01,AAPL,0123456789,US0000000000,EPS,Q,2021 Q2,2021-06-30,2021-08-15"
    other = "2021-05-01,AAPL,0123456789,US0000000000,SALES,Q,2021 Q2,2021-06-30,2021-08-15"
    with caplog.at_level(logging.ERROR):
        working_set = build_fiscal_period_index([FISCAL_HEADER, row, row, other, other], PROCESSING_DATE)

    assert len(working_set) == 2
    messages = [
        record.getMessage()
        for record in caplog.records
        if "Duplicate data encountered in fiscal periods dataset" in record.getMessage()
    ]
    assert messages == ["Duplicate data encountered in fiscal periods dataset for ticker: AAPL - skipping"]


def test_build_fiscal_period_index_keeps_rows_with_different_dates() -> None:
    """Rows sharing an identity but differing in dates are both kept."""
    lines = [
        "2021-05-01,AAPL,0123456789,US0000000000,EPS,Q,2021 Q2,2021-06-30,2021-08-15",
        "2021-05-01,AAPL,0123456789,US0000000000,EPS,Q,2021 Q2,2021-06-30,2021-08-20",
    ]
    working_set = build_fiscal_period_index(lines, PROCESSING_DATE)

    key = IdentityKey(EarningsMetric.EPS, 2021, 2)
    assert len(working_set.find_all("AAPL", key)) == 2
    found = working_set.find("AAPL", key)
    assert found is not None
    assert found.fiscal_period.expected_report_date == date(2021, 8, 15)


@pytest.mark.parametrize(
    "row",
    [
        "2021-05-01,AAPL,0123456789,US0000000000,EPS,Q,2021 Q2,2021/06/30,2021-08-15",
        "2021-05-01,AAPL,0123456789,US0000000000,EPS,Q,FY 2021,2021-06-30,2021-08-15",
    ],
)
def test_build_fiscal_period_index_aborts_on_malformed_row(row: str) -> None:
    """Malformed dates and periods are fatal rather than skipped."""
    with pytest.raises(TrueBeatParseError):
        build_fiscal_period_index([FISCAL_HEADER, row], PROCESSING_DATE)
