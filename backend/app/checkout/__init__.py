"""Checkout workflow, delivery validation and rental orders."""

from .models import (
    CheckoutResult,
    CheckoutState,
    DeliveryDetails,
    Order,
    OrderRequest,
    OrderStatus,
    PaymentMethod,
)
from .orders import OrderStatusService, OrderStore
from .service import (
    CheckoutNotifier,
    CheckoutStateError,
    CheckoutWorkflow,
    OrderLedger,
    OrderSink,
    order_end_date,
)
from .validation import validate_delivery

__all__ = [
    "CheckoutNotifier",
    "CheckoutResult",
    "CheckoutState",
    "CheckoutStateError",
    "CheckoutWorkflow",
    "DeliveryDetails",
    "Order",
    "OrderLedger",
    "OrderRequest",
    "OrderSink",
    "OrderStatus",
    "OrderStatusService",
    "OrderStore",
    "PaymentMethod",
    "order_end_date",
    "validate_delivery",
]
