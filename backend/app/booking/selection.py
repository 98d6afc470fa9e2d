"""State behind the rent-selection dialog for a single product."""
from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from ..catalog.models import Product
from .intervals import (
    GranularityLike,
    clamp_duration,
    coerce_granularity,
    derive_duration_from_dates,
    derive_end_date,
    total_price,
    unit_price,
)
from .models import Granularity

if TYPE_CHECKING:  # pragma: no cover
    from ..cart.aggregator import CartAggregator
    from ..cart.models import CartLine


class RentalSelection:
    """Tracks granularity, duration and an optional date range for one product.

    Switching granularity never rescales: the duration goes back to one and
    any chosen date range is cleared.
    """

    def __init__(self, product: Product, granularity: GranularityLike = Granularity.DAY) -> None:
        self.product = product
        self._granularity = coerce_granularity(granularity)
        self._duration = 1
        self._start_date: Optional[date] = None

    @property
    def granularity(self) -> Granularity:
        return self._granularity

    @property
    def duration(self) -> int:
        return self._duration

    @property
    def start_date(self) -> Optional[date]:
        return self._start_date

    @property
    def end_date(self) -> Optional[date]:
        if self._start_date is None:
            return None
        return derive_end_date(self._start_date, self._duration, self._granularity)

    @property
    def unit_price(self) -> Decimal:
        return unit_price(self.product, self._granularity)

    @property
    def total(self) -> Decimal:
        return total_price(self.product, self._duration, self._granularity)

    def set_granularity(self, granularity: GranularityLike) -> None:
        unit = coerce_granularity(granularity)
        if unit is self._granularity:
            return
        self._granularity = unit
        self._duration = 1
        self._start_date = None

    def set_duration(self, duration: int) -> int:
        self._duration = clamp_duration(duration)
        return self._duration

    def increment(self) -> int:
        return self.set_duration(self._duration + 1)

    def decrement(self) -> int:
        return self.set_duration(self._duration - 1)

    def set_start_date(self, start: date) -> None:
        self._start_date = start

    def set_end_date(self, end: date) -> None:
        """Derive the duration from a chosen end date.

        Ignored when no start date is chosen or ``end`` is not after it.
        """

        if self._start_date is None or end <= self._start_date:
            return
        self._duration = derive_duration_from_dates(self._start_date, end, self._granularity)

    def clear_dates(self) -> None:
        self._start_date = None

    def add_to(self, cart: "CartAggregator") -> "CartLine":
        return cart.add(self.product, self._duration, self._granularity)
