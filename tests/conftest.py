from __future__ import annotations

from datetime import date
from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from truebeats.io.sources import InMemoryRawDataSource  # noqa: E402
from truebeats.types.common import EarningsMetric, FeedVariant  # noqa: E402


PROCESSING_DATE = date(2021, 5, 1)

FISCAL_HEADER = "Date,Ticker,CUSIP,ISIN,Item,Period_Type,Fiscal_Period,Period_End_Date,Report_Date"
ALL_HEADER = "Date,Ticker,CUSIP,ISIN,Fiscal_Period,Num_Estimates,TrueBeat"
FQ1_HEADER = "Date,Ticker,CUSIP,ISIN,Fiscal_Period,Report_Date,TrueBeat,Expert_Beat,Trend_Beat,Management_Beat"


@pytest.fixture
def fiscal_period_lines() -> list[str]:
    """Fiscal-period feed for two tickers with annual and quarterly periods."""
    return [
        FISCAL_HEADER,
        "2021-05-01,AAPL,0123456789,US0000000000,EPS,A,2021,2021-12-31,2022-01-31",
        "2021-05-01,AAPL,0123456789,US0000000000,EPS,Q,2021 Q2,2021-06-30,2021-08-15",
        "2021-05-01,AAPL,0123456789,US0000000000,SALES,Q,2021 Q2,2021-06-30,2021-08-15",
        "2021-05-01,GOOG,1123456789,US0000000001,EPS,A,2021,2021-12-31,2022-01-31",
        "2021-05-01,GOOG,1123456789,US0000000001,EPS,Q,2021 Q2,2021-06-30,2021-08-15",
        "2021-05-01,GOOG,1123456789,US0000000001,SALES,Q,2021 Q2,2021-06-30,2021-08-15",
    ]


@pytest.fixture
def all_eps_lines() -> list[str]:
    return [
        ALL_HEADER,
        "2021-05-01,AAPL,0123456789,US0000000000,2021,10,0.54321",
        "2021-05-01,AAPL,0123456789,US0000000000,2021 Q2,10,0.54321",
    ]


@pytest.fixture
def fq1_eps_lines() -> list[str]:
    return [
        FQ1_HEADER,
        "2021-05-01,AAPL,0123456789,US0000000000,2021 Q2,2021-08-15,0.54321,0.34,0.3032,-0.09999",
    ]


@pytest.fixture
def memory_source(
    fiscal_period_lines: list[str],
    all_eps_lines: list[str],
    fq1_eps_lines: list[str],
) -> InMemoryRawDataSource:
    """In-memory source serving the AAPL EPS scenario."""
    return InMemoryRawDataSource(
        fiscal_period_lines,
        {
            (EarningsMetric.EPS, FeedVariant.ALL): all_eps_lines,
            (EarningsMetric.EPS, FeedVariant.FQ1): fq1_eps_lines,
        },
    )


@pytest.fixture
def reset_config(monkeypatch: pytest.MonkeyPatch):
    """Replace the cached configuration with an empty mapping for a test."""
    from truebeats import config

    state: dict[str, object] = {}
    monkeypatch.setattr(config, "_CONFIG_CACHE", state)
    return state
