"""Domain models for checkout and rental orders."""
from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from ..booking.models import Granularity


class PaymentMethod(str, Enum):
    """Payment options offered at checkout."""

    CASH_ON_DELIVERY = "cash_on_delivery"
    UPI = "upi"
    CARD = "card"


class OrderStatus(str, Enum):
    """Lifecycle status of a rental order."""

    ACTIVE = "active"
    PENDING = "pending"
    COMPLETED = "completed"
    SUSPENDED = "suspended"
    CANCELLED = "cancelled"


class CheckoutState(str, Enum):
    """States of the checkout workflow."""

    EDITING = "editing"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    FAILED = "failed"


class DeliveryDetails(BaseModel):
    """Raw delivery form values; validated by :func:`validate_delivery`."""

    full_name: Optional[str] = Field(default=None, alias="fullName")
    phone: Optional[str] = None
    street_address: Optional[str] = Field(default=None, alias="streetAddress")
    city: Optional[str] = None
    postal_code: Optional[str] = Field(default=None, alias="postalCode")

    model_config = ConfigDict(populate_by_name=True, frozen=True, str_strip_whitespace=True)

    def flattened_address(self) -> str:
        return f"{self.street_address}, {self.city} - {self.postal_code}"


class OrderRequest(BaseModel):
    """Fields sent to the order sink for one cart line."""

    product_id: str
    product_name: str
    renter_id: str
    renter_name: str
    duration_count: int = Field(ge=1)
    granularity: Granularity = Granularity.DAY
    start_date: date
    end_date: date
    amount: Decimal = Field(ge=0)
    currency: str = Field(default="INR", min_length=3, max_length=3)
    delivery_address: str
    delivery_phone: str
    payment_method: PaymentMethod
    status: OrderStatus = OrderStatus.ACTIVE
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class Order(OrderRequest):
    """A persisted rental order."""

    id: str


class CheckoutResult(BaseModel):
    """Outcome of one submit attempt."""

    state: CheckoutState
    orders: Tuple[Order, ...] = Field(default_factory=tuple)
    field_errors: Dict[str, str] = Field(default_factory=dict)
    failed_product_ids: Tuple[str, ...] = Field(default_factory=tuple)
    message: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @property
    def succeeded(self) -> bool:
        return self.state == CheckoutState.SUCCESS
