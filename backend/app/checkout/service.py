"""Checkout workflow turning a cart into one persisted order per line."""
from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Dict, FrozenSet, List, Mapping, Optional, Protocol, Sequence, Tuple

from pydantic import ValidationError

from ..booking.intervals import derive_end_date
from ..booking.models import Granularity
from ..cart.aggregator import CartAggregator
from ..cart.models import CartLine
from ..entitlements.models import Account
from .models import (
    CheckoutResult,
    CheckoutState,
    DeliveryDetails,
    Order,
    OrderRequest,
    PaymentMethod,
)
from .validation import validate_delivery

logger = logging.getLogger(__name__)

OrderLedger = Dict[str, Order]
SuccessHandler = Callable[[Tuple[Order, ...]], None]


class OrderSink(Protocol):
    """Remote order persistence."""

    async def create(self, request: OrderRequest) -> str:
        """Persist ``request`` and return the new order id; raise on failure."""


class CheckoutNotifier(Protocol):
    """Surfaces checkout outcomes to the user."""

    def notify_checkout_failed(
        self, account_id: str, failed_product_ids: Sequence[str], message: str
    ) -> None:
        ...

    def notify_checkout_succeeded(self, account_id: str, orders: Sequence[Order]) -> None:
        ...


class CheckoutStateError(RuntimeError):
    """Raised when the workflow is driven through an illegal transition."""


_TRANSITIONS: Mapping[CheckoutState, FrozenSet[CheckoutState]] = {
    CheckoutState.EDITING: frozenset({CheckoutState.VALIDATING}),
    CheckoutState.VALIDATING: frozenset({CheckoutState.EDITING, CheckoutState.SUBMITTING}),
    CheckoutState.SUBMITTING: frozenset({CheckoutState.SUCCESS, CheckoutState.FAILED}),
    CheckoutState.FAILED: frozenset({CheckoutState.EDITING}),
    CheckoutState.SUCCESS: frozenset(),
}


def order_end_date(start: date, duration: int, granularity: Granularity) -> date:
    """End of a rental starting ``start``: ``duration`` whole units later."""

    if granularity is Granularity.DAY:
        try:
            return start + timedelta(days=duration)
        except OverflowError:
            return date.max
    return derive_end_date(start, duration, granularity)


class CheckoutWorkflow:
    """Validates the delivery form, then fans the cart out into orders.

    Validation always finishes before any order call is issued. Order calls
    for all pending lines run concurrently and the workflow waits for every
    one of them. Lines whose order persisted are marked on the cart and their
    orders recorded in ``placed_orders``; both outlive the workflow, so a
    later submit from this or a freshly opened workflow only sends the lines
    that still have no order.
    """

    def __init__(
        self,
        cart: CartAggregator,
        order_sink: OrderSink,
        notifier: CheckoutNotifier,
        *,
        account: Account,
        clock: Optional[Callable[[], datetime]] = None,
        currency: str = "INR",
        default_payment_method: PaymentMethod = PaymentMethod.CASH_ON_DELIVERY,
        placed_orders: Optional[OrderLedger] = None,
        on_success: Optional[SuccessHandler] = None,
    ) -> None:
        self._cart = cart
        self._order_sink = order_sink
        self._notifier = notifier
        self._account = account
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._currency = currency
        self._default_payment_method = default_payment_method
        self._placed: OrderLedger = {} if placed_orders is None else placed_orders
        self._on_success = on_success
        self._state = CheckoutState.EDITING

    @property
    def state(self) -> CheckoutState:
        return self._state

    @property
    def persisted_orders(self) -> Tuple[Order, ...]:
        return tuple(
            self._placed[line.order_id]
            for line in self._cart.lines
            if line.order_id is not None and line.order_id in self._placed
        )

    def edit(self) -> None:
        """Return to the editable form after a failed submission."""

        if self._state is CheckoutState.EDITING:
            return
        self._transition(CheckoutState.EDITING)

    async def submit(
        self,
        delivery: DeliveryDetails,
        *,
        terms_accepted: bool,
        payment_method: Optional[PaymentMethod] = None,
    ) -> CheckoutResult:
        if self._state is CheckoutState.FAILED:
            self._transition(CheckoutState.EDITING)
        self._transition(CheckoutState.VALIDATING)

        errors = validate_delivery(delivery, terms_accepted=terms_accepted)
        if self._cart.is_empty:
            errors["cart"] = "Your cart is empty."
        if errors:
            self._transition(CheckoutState.EDITING)
            return CheckoutResult(state=self._state, field_errors=errors)

        method = payment_method or self._default_payment_method
        lines = self._cart.lines
        pending = self._cart.pending_lines
        now = self._clock()
        try:
            requests = [self._build_request(line, delivery, method, now) for line in pending]
        except ValidationError:
            logger.exception("Could not build order requests for account %s", self._account.id)
            self._transition(CheckoutState.EDITING)
            return CheckoutResult(
                state=self._state,
                message="We couldn't prepare your order. Please try again.",
            )

        self._transition(CheckoutState.SUBMITTING)
        outcomes = await asyncio.gather(
            *(self._order_sink.create(request) for request in requests),
            return_exceptions=True,
        )

        failed: List[str] = []
        for line, request, outcome in zip(pending, requests, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.warning(
                    "Order creation failed for product %s renter=%s",
                    line.product_id,
                    self._account.id,
                    exc_info=outcome,
                )
                failed.append(line.product_id)
                continue
            order = Order(id=str(outcome), **request.model_dump())
            self._placed[order.id] = order
            self._cart.mark_ordered(line.product_id, order.id)

        if failed:
            self._transition(CheckoutState.FAILED)
            message = (
                f"{len(failed)} of {len(lines)} orders could not be placed. "
                "Your cart has been kept so you can try again."
            )
            self._notifier.notify_checkout_failed(self._account.id, failed, message)
            return CheckoutResult(
                state=self._state,
                orders=self.persisted_orders,
                failed_product_ids=tuple(failed),
                message=message,
            )

        orders = self.persisted_orders
        for order in orders:
            self._placed.pop(order.id, None)
        self._cart.clear()
        self._transition(CheckoutState.SUCCESS)
        logger.info("Checkout placed %s orders for account %s", len(orders), self._account.id)
        self._notifier.notify_checkout_succeeded(self._account.id, orders)
        if self._on_success is not None:
            self._on_success(orders)
        return CheckoutResult(state=self._state, orders=orders)

    def _build_request(
        self,
        line: CartLine,
        delivery: DeliveryDetails,
        payment_method: PaymentMethod,
        now: datetime,
    ) -> OrderRequest:
        start = now.date()
        return OrderRequest(
            product_id=line.product_id,
            product_name=line.product.name,
            renter_id=self._account.id,
            renter_name=delivery.full_name,
            duration_count=line.duration_count,
            granularity=line.granularity,
            start_date=start,
            end_date=order_end_date(start, line.duration_count, line.granularity),
            amount=line.line_total,
            currency=self._currency,
            delivery_address=delivery.flattened_address(),
            delivery_phone=delivery.phone,
            payment_method=payment_method,
            created_at=now,
        )

    def _transition(self, target: CheckoutState) -> None:
        if target not in _TRANSITIONS[self._state]:
            raise CheckoutStateError(
                f"Cannot move checkout from {self._state.value} to {target.value}"
            )
        self._state = target
