"""Domain models for rental periods."""
from __future__ import annotations

from enum import Enum


class Granularity(str, Enum):
    """Time unit a rental price is quoted in."""

    DAY = "day"
    MONTH = "month"
    YEAR = "year"

    @property
    def months(self) -> int:
        """Number of calendar months in one unit (zero for days)."""

        if self is Granularity.MONTH:
            return 1
        if self is Granularity.YEAR:
            return 12
        return 0
