"""Shared application context for the session-scoped marketplace components."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol, Tuple

from backend.app.booking import RentalSelection
from backend.app.cart import CartAggregator
from backend.app.catalog import CatalogCache, CatalogService, CatalogSource, KeyValueStore, Product
from backend.app.checkout import (
    CheckoutNotifier,
    CheckoutWorkflow,
    Order,
    OrderLedger,
    OrderStatusService,
    OrderStore,
)
from backend.app.config import MarketplaceConfig, load_marketplace_config
from backend.app.entitlements import Account, EntitlementService, PlanSource
from backend.app.listings import ListingNotifier, ListingService, ProductSink
from backend.app.surfaces import Surface, SurfaceRouter

logger = logging.getLogger(__name__)


class _Notifier(CheckoutNotifier, ListingNotifier, Protocol):
    """Marker for notifiers serving both checkout and listings."""


class ApplicationContext:
    """Owns the session, cart, catalog and services for one running client.

    Components are created by :meth:`start` and torn down by :meth:`close`;
    nothing here is module-level state.
    """

    def __init__(
        self,
        *,
        catalog_source: CatalogSource,
        plan_source: PlanSource,
        order_sink: OrderStore,
        product_sink: ProductSink,
        store: KeyValueStore,
        notifier: _Notifier,
        config: Optional[MarketplaceConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._catalog_source = catalog_source
        self._plan_source = plan_source
        self._order_sink = order_sink
        self._product_sink = product_sink
        self._store = store
        self._notifier = notifier
        self.config = config or load_marketplace_config()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        self._account: Optional[Account] = None
        self._cart: Optional[CartAggregator] = None
        self._catalog: Optional[CatalogService] = None
        self._entitlements: Optional[EntitlementService] = None
        self._listings: Optional[ListingService] = None
        self._router: Optional[SurfaceRouter] = None
        self._orders: Optional[OrderStatusService] = None
        self._selection: Optional[RentalSelection] = None
        self._placed_orders: OrderLedger = {}

    @property
    def started(self) -> bool:
        return self._catalog is not None

    async def start(self) -> None:
        """Build the components, load the catalog and subscribe to changes."""

        if self.started:
            return
        cache = CatalogCache(
            self._store,
            key=self.config.catalog_cache_key,
            ttl_seconds=self.config.catalog_cache_ttl_seconds,
            clock=self._clock,
        )
        self._catalog = CatalogService(self._catalog_source, cache)
        self._entitlements = EntitlementService(
            self._plan_source,
            clock=self._clock,
            ttl_seconds=self.config.plan_cache_ttl_seconds,
            use_default_plans=self.config.use_default_plans,
        )
        self._listings = ListingService(
            self._product_sink, self._entitlements, self._catalog, self._notifier
        )
        self._cart = CartAggregator()
        self._router = SurfaceRouter()
        self._orders = OrderStatusService(self._order_sink)
        self._router.on_discard(Surface.RENT_SELECTION, self.discard_selection)

        await self._catalog.load()
        self._catalog.start()
        logger.info("Application context started with %s products", len(self._catalog.products))

    async def close(self) -> None:
        if not self.started:
            return
        self._require(self._catalog, "catalog").stop()
        self._require(self._cart, "cart").clear()
        self._placed_orders.clear()
        self._account = None
        self._selection = None
        self._catalog = None
        self._entitlements = None
        self._listings = None
        self._cart = None
        self._router = None
        self._orders = None
        logger.info("Application context closed")

    def sign_in(self, account: Account) -> None:
        if self._account is not None and self._account.id != account.id:
            self.cart.clear()
            self._placed_orders.clear()
        self._account = account

    def sign_out(self) -> None:
        self._account = None
        self._selection = None
        self.cart.clear()
        self._placed_orders.clear()
        self.router.reset()

    @property
    def account(self) -> Optional[Account]:
        return self._account

    @property
    def cart(self) -> CartAggregator:
        return self._require(self._cart, "cart")

    @property
    def catalog(self) -> CatalogService:
        return self._require(self._catalog, "catalog")

    @property
    def entitlements(self) -> EntitlementService:
        return self._require(self._entitlements, "entitlements")

    @property
    def listings(self) -> ListingService:
        return self._require(self._listings, "listings")

    @property
    def orders(self) -> OrderStatusService:
        return self._require(self._orders, "orders")

    @property
    def router(self) -> SurfaceRouter:
        return self._require(self._router, "router")

    @property
    def selection(self) -> Optional[RentalSelection]:
        return self._selection

    def begin_selection(self, product: Product) -> RentalSelection:
        self.router.open(Surface.RENT_SELECTION)
        self._selection = RentalSelection(product)
        return self._selection

    def confirm_selection(self) -> None:
        """Add the open selection to the cart and close the dialog."""

        selection = self._require(self._selection, "selection")
        selection.add_to(self.cart)
        self.router.dismiss()

    def discard_selection(self) -> None:
        self._selection = None

    def checkout(self) -> CheckoutWorkflow:
        """Open checkout for the signed-in account's cart; the cart must be open."""

        account = self._require(self._account, "account")
        self.router.open(Surface.CHECKOUT)
        return CheckoutWorkflow(
            self.cart,
            self._order_sink,
            self._notifier,
            account=account,
            clock=self._clock,
            currency=self.config.checkout_currency,
            default_payment_method=self.config.default_payment_method,
            placed_orders=self._placed_orders,
            on_success=self._show_confirmation,
        )

    def _show_confirmation(self, orders: Tuple[Order, ...]) -> None:
        if self._router is not None and self._router.can_open(Surface.ORDER_CONFIRMATION):
            self._router.open(Surface.ORDER_CONFIRMATION)
        logger.debug("Showing confirmation for %s orders", len(orders))

    @staticmethod
    def _require(value, name: str):
        if value is None:
            raise RuntimeError(f"Application context has not been configured yet: {name}")
        return value
