from .schemas import TrueBeatRecord, series_sort_key
from .working_set import WorkingSet

__all__ = [
    "TrueBeatRecord",
    "WorkingSet",
    "series_sort_key",
]
