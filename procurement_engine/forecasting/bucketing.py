"""
Calendar-month bucketing and the recent-vs-prior window comparison shared by
every forecast generator.

The recent window is the month of ``as_of`` and the two before it; the prior
window is the three months before that.
"""

from collections import defaultdict
from datetime import date
from enum import Enum
from typing import Callable, Dict, Iterable, List, Tuple, TypeVar

from procurement_engine.utils.helpers import month_key, shift_month

T = TypeVar("T")

WINDOW_MONTHS = 3
SIGNIFICANT_CHANGE = 0.30


class Change(str, Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


def bucket_by_month(records: Iterable[T], date_of: Callable[[T], date]) -> Dict[str, List[T]]:
    """Group records by 'YYYY-MM' of ``date_of(record)``."""
    buckets: Dict[str, List[T]] = defaultdict(list)
    for record in records:
        buckets[month_key(date_of(record))].append(record)
    return dict(buckets)


def window_months(as_of: date, offset: int = 0, length: int = WINDOW_MONTHS) -> List[str]:
    """Month keys of a window ending ``offset`` months before ``as_of``'s month, oldest first."""
    return [month_key(shift_month(as_of, -(offset + i))) for i in range(length - 1, -1, -1)]


def split_windows(as_of: date) -> Tuple[List[str], List[str]]:
    """(recent, prior) month-key windows."""
    return window_months(as_of), window_months(as_of, offset=WINDOW_MONTHS)


def in_window(buckets: Dict[str, List[T]], months: Iterable[str]) -> List[T]:
    return [record for m in months for record in buckets.get(m, [])]


def classify_change(recent: float, prior: float, threshold: float = SIGNIFICANT_CHANGE) -> Change:
    """UP / DOWN when ``recent`` differs from ``prior`` by more than ``threshold`` (relative)."""
    if prior <= 0:
        return Change.UP if recent > 0 else Change.STABLE
    ratio = (recent - prior) / prior
    if ratio > threshold:
        return Change.UP
    if ratio < -threshold:
        return Change.DOWN
    return Change.STABLE
