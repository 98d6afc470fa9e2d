"""Administrative order status management."""
from __future__ import annotations

import logging
from typing import Optional, Protocol

from ..entitlements.models import Account
from ..feature_gates import FeatureGateError
from .models import Order, OrderStatus
from .service import OrderSink

logger = logging.getLogger(__name__)


class OrderStore(OrderSink, Protocol):
    """Order persistence that can also read and restatus orders."""

    async def get(self, order_id: str) -> Optional[Order]:
        ...

    async def update_status(self, order_id: str, status: OrderStatus) -> Order:
        ...


class OrderStatusService:
    """Lets privileged accounts move orders between statuses.

    Any status may be set from any other; renters cannot change orders.
    """

    def __init__(self, store: OrderStore) -> None:
        self._store = store

    async def update_status(self, actor: Account, order_id: str, status: OrderStatus) -> Order:
        if not actor.privileged:
            raise FeatureGateError(
                code="order_update_not_permitted",
                message="Only administrators can change order status.",
            )
        order = await self._store.get(order_id)
        if order is None:
            raise LookupError(f"Order {order_id} not found")
        if order.status == status:
            return order

        updated = await self._store.update_status(order_id, status)
        logger.info(
            "Order %s moved from %s to %s by %s",
            order_id,
            order.status.value,
            updated.status.value,
            actor.id,
        )
        return updated
