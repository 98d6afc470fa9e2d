"""Domain models for session carts."""
from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..booking.intervals import total_price, unit_price
from ..booking.models import Granularity
from ..catalog.models import Product


class CartLine(BaseModel):
    """One (product, duration) pair awaiting checkout.

    ``order_id`` is set once checkout has persisted an order for the line; the
    line is frozen in the cart from then on.
    """

    product: Product
    duration_count: int = Field(default=1, ge=1)
    granularity: Granularity = Granularity.DAY
    order_id: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @property
    def product_id(self) -> str:
        return self.product.id

    @property
    def is_ordered(self) -> bool:
        return self.order_id is not None

    @property
    def unit_price(self) -> Decimal:
        return unit_price(self.product, self.granularity)

    @property
    def line_total(self) -> Decimal:
        return total_price(self.product, self.duration_count, self.granularity)
