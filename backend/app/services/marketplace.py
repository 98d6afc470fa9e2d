"""Application wiring for the booking and entitlement engine."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence
from uuid import uuid4

from ..catalog import CatalogSource, Product, ProductStatus
from ..catalog.service import ChangeHandler
from ..checkout import CheckoutNotifier, Order, OrderRequest, OrderStatus, OrderStore
from ..entitlements import DEFAULT_PLANS, Plan, PlanSource
from ..listings import ListingNotifier, ProductSink

logger = logging.getLogger("marketplace")


class LoggingMarketplaceNotifier(CheckoutNotifier, ListingNotifier):
    """Notifier that records user-facing notifications to the application logger."""

    def notify_checkout_failed(
        self, account_id: str, failed_product_ids: Sequence[str], message: str
    ) -> None:
        logger.warning(
            "Checkout failed for account %s products=%s: %s",
            account_id,
            list(failed_product_ids),
            message,
        )

    def notify_checkout_succeeded(self, account_id: str, orders: Sequence[Order]) -> None:
        logger.info(
            "Checkout succeeded for account %s orders=%s",
            account_id,
            [order.id for order in orders],
        )

    def notify_listing_failed(self, account_id: str, message: str) -> None:
        logger.warning("Listing write failed for account %s: %s", account_id, message)


class LocalProductStore(CatalogSource, ProductSink):
    """In-memory product table for local development and tests.

    Writes force listings into ``pending_review`` unless the write itself
    only changes moderation status, and every write notifies subscribers.
    """

    def __init__(self, products: Optional[Sequence[Product]] = None) -> None:
        self._products: Dict[str, Product] = {product.id: product for product in products or ()}
        self._subscribers: List[ChangeHandler] = []

    async def fetch_all(self) -> Sequence[Product]:
        return sorted(self._products.values(), key=lambda product: product.created_at, reverse=True)

    def subscribe(self, on_change: ChangeHandler) -> Callable[[], None]:
        self._subscribers.append(on_change)

        def unsubscribe() -> None:
            if on_change in self._subscribers:
                self._subscribers.remove(on_change)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def create(self, fields: Mapping[str, object]) -> Product:
        data = dict(fields)
        data["id"] = str(data.get("id") or f"prod_{uuid4().hex[:12]}")
        data["status"] = ProductStatus.PENDING_REVIEW
        data.setdefault("created_at", datetime.now(timezone.utc))
        product = Product.model_validate(data)
        self._products[product.id] = product
        await self._publish({"eventType": "INSERT", "id": product.id})
        return product

    async def update(self, product_id: str, fields: Mapping[str, object]) -> Product:
        existing = self._products.get(product_id)
        if existing is None:
            raise LookupError(f"Product {product_id} not found")
        data = dict(fields)
        if set(data) - {"status", "rejection_reason"}:
            data["status"] = ProductStatus.PENDING_REVIEW
        updated = Product.model_validate({**existing.model_dump(), **data, "id": product_id})
        self._products[product_id] = updated
        await self._publish({"eventType": "UPDATE", "id": product_id})
        return updated

    async def delete(self, product_id: str) -> None:
        self._products.pop(product_id, None)
        await self._publish({"eventType": "DELETE", "id": product_id})

    async def _publish(self, event: Dict[str, Any]) -> None:
        for handler in list(self._subscribers):
            await handler(event)


class LocalPlanSource(PlanSource):
    """Serves a fixed list of plans."""

    def __init__(self, plans: Optional[Sequence[Plan]] = None) -> None:
        self._plans = list(DEFAULT_PLANS if plans is None else plans)

    async def fetch_all(self) -> Sequence[Plan]:
        return sorted(self._plans, key=lambda plan: plan.price)


class LocalOrderSink(OrderStore):
    """Keeps created orders in memory."""

    def __init__(self) -> None:
        self.orders: Dict[str, Order] = {}

    async def create(self, request: OrderRequest) -> str:
        order_id = f"ord_{uuid4().hex[:12]}"
        self.orders[order_id] = Order(id=order_id, **request.model_dump())
        logger.debug("Stored order %s for product %s", order_id, request.product_id)
        return order_id

    async def get(self, order_id: str) -> Optional[Order]:
        return self.orders.get(order_id)

    async def update_status(self, order_id: str, status: OrderStatus) -> Order:
        existing = self.orders.get(order_id)
        if existing is None:
            raise LookupError(f"Order {order_id} not found")
        updated = existing.model_copy(update={"status": status})
        self.orders[order_id] = updated
        return updated


__all__ = [
    "LocalOrderSink",
    "LocalPlanSource",
    "LocalProductStore",
    "LoggingMarketplaceNotifier",
]
