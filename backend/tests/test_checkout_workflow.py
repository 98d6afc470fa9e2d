"""Unit tests for the checkout workflow."""
from __future__ import annotations

import asyncio
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import List, Sequence, Set, Tuple

import pytest

from backend.app.booking import Granularity
from backend.app.cart import CartAggregator, CartLineLockedError
from backend.app.catalog import Product
from backend.app.checkout import (
    CheckoutState,
    CheckoutStateError,
    CheckoutWorkflow,
    DeliveryDetails,
    Order,
    OrderRequest,
    OrderStatus,
    PaymentMethod,
    validate_delivery,
)
from backend.app.entitlements import Account

NOW = datetime(2025, 3, 1, 10, 30, tzinfo=timezone.utc)


class RecordingOrderSink:
    def __init__(self, fail_for: Set[str] | None = None) -> None:
        self.requests: List[OrderRequest] = []
        self.fail_for: Set[str] = set(fail_for or ())

    async def create(self, request: OrderRequest) -> str:
        self.requests.append(request)
        await asyncio.sleep(0)
        if request.product_id in self.fail_for:
            raise ConnectionError(f"could not persist order for {request.product_id}")
        return f"ord-{len(self.requests)}"


class BarrierOrderSink:
    """Only completes once every expected call is in flight at the same time."""

    def __init__(self, expected: int) -> None:
        self.expected = expected
        self.started = 0
        self._all_started = asyncio.Event()

    async def create(self, request: OrderRequest) -> str:
        self.started += 1
        if self.started == self.expected:
            self._all_started.set()
        await self._all_started.wait()
        return f"ord-{request.product_id}"


class RecordingNotifier:
    def __init__(self) -> None:
        self.failures: List[Tuple[str, Tuple[str, ...], str]] = []
        self.successes: List[Tuple[str, Tuple[str, ...]]] = []

    def notify_checkout_failed(self, account_id: str, failed_product_ids: Sequence[str], message: str) -> None:
        self.failures.append((account_id, tuple(failed_product_ids), message))

    def notify_checkout_succeeded(self, account_id: str, orders: Sequence[Order]) -> None:
        self.successes.append((account_id, tuple(order.id for order in orders)))


@pytest.fixture
def account() -> Account:
    return Account(id="user-1", name="Priya Sharma", subscription="pro")


@pytest.fixture
def cart() -> CartAggregator:
    cart = CartAggregator()
    cart.add(Product(id="cam", name="Sony A7 III Camera", price_per_day=Decimal("500")), 2)
    cart.add(Product(id="bike", name="Trek Mountain Bike", price_per_day=Decimal("1249")), 3)
    return cart


@pytest.fixture
def delivery() -> DeliveryDetails:
    return DeliveryDetails(
        full_name="Priya S.",
        phone="+91 98765 43210",
        street_address="12 Marine Drive",
        city="Mumbai",
        postal_code="400001",
    )


def make_workflow(cart, sink, notifier, account, **options) -> CheckoutWorkflow:
    return CheckoutWorkflow(cart, sink, notifier, account=account, clock=lambda: NOW, **options)


def test_validate_delivery_reports_each_field() -> None:
    errors = validate_delivery(DeliveryDetails(phone="123", postal_code="40001"), terms_accepted=False)

    assert set(errors) == {"full_name", "phone", "street_address", "city", "postal_code", "terms"}
    assert "6 digits" in errors["postal_code"]


def test_validate_delivery_accepts_complete_form(delivery: DeliveryDetails) -> None:
    assert validate_delivery(delivery, terms_accepted=True) == {}


@pytest.mark.parametrize("postal_code", ["40001", "4000011", "40OO01", "", "400 001"])
def test_bad_postal_code_never_creates_orders(cart, delivery, account, postal_code: str) -> None:
    sink = RecordingOrderSink()
    workflow = make_workflow(cart, sink, RecordingNotifier(), account)
    form = delivery.model_copy(update={"postal_code": postal_code})

    result = asyncio.run(workflow.submit(form, terms_accepted=True))

    assert result.state == CheckoutState.EDITING
    assert "postal_code" in result.field_errors
    assert sink.requests == []
    assert len(cart) == 2


def test_unaccepted_terms_blocks_submission(cart, delivery, account) -> None:
    sink = RecordingOrderSink()
    workflow = make_workflow(cart, sink, RecordingNotifier(), account)

    result = asyncio.run(workflow.submit(delivery, terms_accepted=False))

    assert result.field_errors == {"terms": "Please accept the rental terms to continue."}
    assert sink.requests == []
    assert workflow.state == CheckoutState.EDITING


def test_empty_cart_is_a_validation_error(delivery, account) -> None:
    sink = RecordingOrderSink()
    workflow = make_workflow(CartAggregator(), sink, RecordingNotifier(), account)

    result = asyncio.run(workflow.submit(delivery, terms_accepted=True))

    assert "cart" in result.field_errors
    assert sink.requests == []


def test_success_creates_one_order_per_line_and_clears_cart(cart, delivery, account) -> None:
    sink = RecordingOrderSink()
    notifier = RecordingNotifier()
    workflow = make_workflow(cart, sink, notifier, account)

    result = asyncio.run(workflow.submit(delivery, terms_accepted=True, payment_method=PaymentMethod.UPI))

    assert result.succeeded
    assert workflow.state == CheckoutState.SUCCESS
    assert cart.is_empty
    assert len(result.orders) == 2
    assert notifier.successes == [("user-1", tuple(order.id for order in result.orders))]

    camera = next(order for order in result.orders if order.product_id == "cam")
    assert camera.renter_id == "user-1"
    assert camera.renter_name == "Priya S."
    assert camera.duration_count == 2
    assert camera.start_date == date(2025, 3, 1)
    assert camera.end_date == date(2025, 3, 3)
    assert camera.amount == Decimal("1000")
    assert camera.delivery_address == "12 Marine Drive, Mumbai - 400001"
    assert camera.delivery_phone == "+91 98765 43210"
    assert camera.payment_method == PaymentMethod.UPI
    assert camera.status == OrderStatus.ACTIVE


def test_order_calls_are_issued_concurrently(cart, delivery, account) -> None:
    sink = BarrierOrderSink(expected=2)
    workflow = make_workflow(cart, sink, RecordingNotifier(), account)

    async def scenario():
        return await asyncio.wait_for(workflow.submit(delivery, terms_accepted=True), timeout=1)

    result = asyncio.run(scenario())

    assert result.succeeded
    assert sink.started == 2


def test_monthly_line_is_priced_and_dated_in_months(delivery, account) -> None:
    cart = CartAggregator()
    cart.add(Product(id="mac", name="MacBook Pro", price_per_day=Decimal("2899"), price_per_month=Decimal("58000")), 2, Granularity.MONTH)
    workflow = make_workflow(cart, RecordingOrderSink(), RecordingNotifier(), account)

    result = asyncio.run(workflow.submit(delivery, terms_accepted=True))

    order = result.orders[0]
    assert order.granularity is Granularity.MONTH
    assert order.amount == Decimal("116000")
    assert order.end_date == date(2025, 5, 1)


def test_partial_failure_keeps_cart_and_retries_only_failed_lines(cart, delivery, account) -> None:
    sink = RecordingOrderSink(fail_for={"bike"})
    notifier = RecordingNotifier()
    workflow = make_workflow(cart, sink, notifier, account)

    failed = asyncio.run(workflow.submit(delivery, terms_accepted=True))

    assert failed.state == CheckoutState.FAILED
    assert failed.failed_product_ids == ("bike",)
    assert [order.product_id for order in failed.orders] == ["cam"]
    assert len(cart) == 2
    assert notifier.failures and notifier.failures[0][1] == ("bike",)

    sink.fail_for.clear()
    retried = asyncio.run(workflow.submit(delivery, terms_accepted=True))

    assert retried.succeeded
    assert [request.product_id for request in sink.requests] == ["cam", "bike", "bike"]
    assert {order.product_id for order in retried.orders} == {"cam", "bike"}
    assert cart.is_empty


def test_failed_checkout_can_return_to_editing(cart, delivery, account) -> None:
    workflow = make_workflow(cart, RecordingOrderSink(fail_for={"cam", "bike"}), RecordingNotifier(), account)
    asyncio.run(workflow.submit(delivery, terms_accepted=True))

    workflow.edit()

    assert workflow.state == CheckoutState.EDITING
    assert len(cart) == 2


def test_completed_checkout_cannot_be_resubmitted(cart, delivery, account) -> None:
    workflow = make_workflow(cart, RecordingOrderSink(), RecordingNotifier(), account)
    asyncio.run(workflow.submit(delivery, terms_accepted=True))

    with pytest.raises(CheckoutStateError):
        asyncio.run(workflow.submit(delivery, terms_accepted=True))


@pytest.mark.parametrize(
    "phone, valid",
    [
        ("(987) 654-3210", True),
        ("+919876543210", True),
        ("98765.43210", False),
        ("98765432１0", False),
        ("9876543²10", False),
        ("98+76543210", False),
        ("123456789", False),
    ],
)
def test_phone_accepts_only_ascii_digits_and_listed_separators(delivery, phone: str, valid: bool) -> None:
    errors = validate_delivery(delivery.model_copy(update={"phone": phone}), terms_accepted=True)

    assert ("phone" not in errors) is valid


def test_missing_renter_name_blocks_submission(cart, delivery, account) -> None:
    sink = RecordingOrderSink()
    workflow = make_workflow(cart, sink, RecordingNotifier(), account)

    result = asyncio.run(workflow.submit(delivery.model_copy(update={"full_name": None}), terms_accepted=True))

    assert result.field_errors == {"full_name": "Full name is required."}
    assert sink.requests == []


def test_reopened_checkout_only_submits_lines_without_orders(cart, delivery, account) -> None:
    sink = RecordingOrderSink(fail_for={"bike"})
    placed = {}
    first = make_workflow(cart, sink, RecordingNotifier(), account, placed_orders=placed)
    asyncio.run(first.submit(delivery, terms_accepted=True))

    sink.fail_for.clear()
    second = make_workflow(cart, sink, RecordingNotifier(), account, placed_orders=placed)
    result = asyncio.run(second.submit(delivery, terms_accepted=True))

    assert result.succeeded
    assert [request.product_id for request in sink.requests] == ["cam", "bike", "bike"]
    assert [order.product_id for order in result.orders] == ["cam", "bike"]
    assert placed == {}


def test_lines_with_orders_cannot_change_after_partial_failure(cart, delivery, account) -> None:
    sink = RecordingOrderSink(fail_for={"bike"})
    workflow = make_workflow(cart, sink, RecordingNotifier(), account)
    asyncio.run(workflow.submit(delivery, terms_accepted=True))

    with pytest.raises(CartLineLockedError):
        cart.set_duration("cam", 5)
    with pytest.raises(CartLineLockedError):
        cart.remove("cam")
    cart.set_duration("bike", 4)

    sink.fail_for.clear()
    retried = asyncio.run(workflow.submit(delivery, terms_accepted=True))

    assert [request.product_id for request in sink.requests] == ["cam", "bike", "bike"]
    camera, bike = retried.orders
    assert camera.duration_count == 2
    assert bike.duration_count == 4


def test_unbuildable_order_returns_to_editing(cart, delivery, account) -> None:
    sink = RecordingOrderSink()
    workflow = make_workflow(cart, sink, RecordingNotifier(), account, currency="RUPEE")

    result = asyncio.run(workflow.submit(delivery, terms_accepted=True))

    assert result.state == CheckoutState.EDITING
    assert result.message is not None
    assert sink.requests == []
    again = asyncio.run(workflow.submit(delivery, terms_accepted=True))
    assert again.state == CheckoutState.EDITING


def test_success_handler_receives_orders(cart, delivery, account) -> None:
    seen = []
    workflow = make_workflow(cart, RecordingOrderSink(), RecordingNotifier(), account, on_success=seen.append)

    result = asyncio.run(workflow.submit(delivery, terms_accepted=True))

    assert seen == [result.orders]
