"""Session-scoped cart that merges repeated selections of the same product."""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import List, Optional, Tuple

from ..booking.intervals import GranularityLike, clamp_duration, coerce_granularity
from ..booking.models import Granularity
from ..catalog.models import Product
from .models import CartLine

logger = logging.getLogger(__name__)


class CartLineLockedError(RuntimeError):
    """Raised when a line that already has a persisted order is changed."""

    def __init__(self, product_id: str, order_id: str) -> None:
        super().__init__(f"Cart line {product_id} already has order {order_id}")
        self.product_id = product_id
        self.order_id = order_id


class CartAggregator:
    """Holds the chosen (product, duration) pairs for one session.

    Lines marked with :meth:`mark_ordered` stay in the cart until it is
    cleared but can no longer be merged into, resized or removed.
    """

    def __init__(self) -> None:
        self._lines: List[CartLine] = []

    @property
    def lines(self) -> Tuple[CartLine, ...]:
        return tuple(self._lines)

    @property
    def pending_lines(self) -> Tuple[CartLine, ...]:
        return tuple(line for line in self._lines if not line.is_ordered)

    def __len__(self) -> int:
        return len(self._lines)

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def get(self, product_id: str) -> Optional[CartLine]:
        index = self._index_of(product_id)
        return None if index is None else self._lines[index]

    def add(
        self,
        product: Product,
        duration: int = 1,
        granularity: GranularityLike = Granularity.DAY,
    ) -> CartLine:
        """Add ``duration`` units of ``product``, merging into an existing line.

        A line quoted in a different granularity is replaced rather than
        rescaled.
        """

        count = clamp_duration(duration)
        unit = coerce_granularity(granularity)
        index = self._index_of(product.id)
        if index is None:
            line = CartLine(product=product, duration_count=count, granularity=unit)
            self._lines.append(line)
        else:
            existing = self._unlocked(index)
            if existing.granularity == unit:
                line = existing.model_copy(
                    update={"product": product, "duration_count": existing.duration_count + count}
                )
            else:
                line = CartLine(product=product, duration_count=count, granularity=unit)
            self._lines[index] = line
        logger.debug(
            "Cart line %s now %s x %s", product.id, line.duration_count, line.granularity.value
        )
        return line

    def set_duration(self, product_id: str, duration: int) -> Optional[CartLine]:
        index = self._index_of(product_id)
        if index is None:
            return None
        line = self._unlocked(index).model_copy(update={"duration_count": clamp_duration(duration)})
        self._lines[index] = line
        return line

    def remove(self, product_id: str) -> None:
        index = self._index_of(product_id)
        if index is not None:
            self._unlocked(index)
            del self._lines[index]

    def mark_ordered(self, product_id: str, order_id: str) -> CartLine:
        index = self._index_of(product_id)
        if index is None:
            raise LookupError(f"Cart has no line for {product_id}")
        line = self._lines[index].model_copy(update={"order_id": order_id})
        self._lines[index] = line
        return line

    def clear(self) -> None:
        self._lines.clear()

    def total(self) -> Decimal:
        return sum((line.line_total for line in self._lines), Decimal("0"))

    def _unlocked(self, index: int) -> CartLine:
        line = self._lines[index]
        if line.order_id is not None:
            raise CartLineLockedError(line.product_id, line.order_id)
        return line

    def _index_of(self, product_id: str) -> Optional[int]:
        for index, line in enumerate(self._lines):
            if line.product_id == product_id:
                return index
        return None
