from __future__ import annotations

"""Per-ticker record store shared by the fiscal-period index and the merger."""

from typing import Iterable, Iterator

from more_itertools import first

from truebeats.domain.schemas import TrueBeatRecord
from truebeats.types.common import IdentityKey


class WorkingSet:
    """Ordered records per ticker with a first-wins identity lookup.

    The fiscal-period feed can legitimately hold several rows for one
    identity key (differing period end or report dates); lookups return the
    first record added for the key while every record stays in the ticker's
    list.
    """

    def __init__(self) -> None:
        self._records: dict[str, list[TrueBeatRecord]] = {}
        self._by_key: dict[str, dict[IdentityKey, TrueBeatRecord]] = {}

    def add(self, ticker: str, record: TrueBeatRecord) -> None:
        """Append a record to the ticker's list and index it by identity."""
        self._records.setdefault(ticker, []).append(record)
        self._by_key.setdefault(ticker, {}).setdefault(record.identity, record)

    def find(self, ticker: str, key: IdentityKey) -> TrueBeatRecord | None:
        return self._by_key.get(ticker, {}).get(key)

    def find_all(self, ticker: str, key: IdentityKey) -> list[TrueBeatRecord]:
        return [record for record in self._records.get(ticker, []) if record.identity == key]

    def find_matching(self, ticker: str, record: TrueBeatRecord) -> TrueBeatRecord | None:
        """Return an existing record equal to ``record`` in identity and fiscal dates."""
        return first(
            (
                existing
                for existing in self.find_all(ticker, record.identity)
                if existing.fiscal_period == record.fiscal_period
            ),
            default=None,
        )

    def records(self, ticker: str) -> list[TrueBeatRecord]:
        return list(self._records.get(ticker, []))

    def tickers(self) -> list[str]:
        return list(self._records)

    def reset_beats(self) -> None:
        """Clear the feed-derived values of every record."""
        for record in self:
            record.reset_beats()

    def __iter__(self) -> Iterator[TrueBeatRecord]:
        return (record for records in self._records.values() for record in records)

    def __len__(self) -> int:
        return sum(len(records) for records in self._records.values())

    def __contains__(self, ticker: object) -> bool:
        return ticker in self._records

    @classmethod
    def from_records(cls, records: Iterable[tuple[str, TrueBeatRecord]]) -> WorkingSet:
        working_set = cls()
        for ticker, record in records:
            working_set.add(ticker, record)
        return working_set
