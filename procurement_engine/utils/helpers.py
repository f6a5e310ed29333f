"""Shared helper utilities."""

import math
from datetime import date
from typing import Iterable, Optional


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    """Clamp a value into [low, high]."""
    return max(low, min(high, value))


def round_to(value: float, digits: int = 2) -> float:
    """Round half away from zero, the way the dashboards display figures."""
    factor = 10 ** digits
    return math.floor(abs(value) * factor + 0.5) / factor * (1 if value >= 0 else -1)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, .5 rounding up (Python's round() is banker's)."""
    return int(math.floor(value + 0.5))


def mean(values: Iterable[float], default: Optional[float] = None) -> Optional[float]:
    """Arithmetic mean, or ``default`` for an empty iterable."""
    values = list(values)
    if not values:
        return default
    return sum(values) / len(values)


def month_key(d: date) -> str:
    """Calendar month key, e.g. '2025-03'."""
    return d.strftime("%Y-%m")


def shift_month(d: date, months: int) -> date:
    """First day of the month ``months`` away from ``d``'s month."""
    index = d.year * 12 + (d.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def month_end(d: date) -> date:
    """Last day of ``d``'s month."""
    return date.fromordinal(shift_month(d, 1).toordinal() - 1)


def paginate_results(items: list, page: int = 1, page_size: int = 50) -> dict:
    """Apply pagination to a list of items."""
    total = len(items)
    start = (page - 1) * page_size
    end = start + page_size
    return {
        "items": items[start:end],
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": (total + page_size - 1) // page_size,
    }
