"""Domain models for rentable products and catalog snapshots."""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import FrozenSet, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProductStatus(str, Enum):
    """Moderation lifecycle of a listing."""

    PENDING_REVIEW = "pending_review"
    ACTIVE = "active"
    INACTIVE = "inactive"
    REJECTED = "rejected"


class Product(BaseModel):
    """A rentable listing.

    ``price_per_day`` is canonical. Month and year prices are optional; when
    the owner leaves them blank they are derived from the day price by
    :func:`backend.app.booking.intervals.default_period_price`.
    """

    id: str
    name: str
    category: str = "General"
    owner_id: Optional[str] = None
    owner_name: Optional[str] = None
    price_per_day: Decimal = Field(ge=0)
    price_per_month: Optional[Decimal] = Field(default=None, ge=0)
    price_per_year: Optional[Decimal] = Field(default=None, ge=0)
    location: Optional[str] = None
    condition: Optional[str] = None
    description: Optional[str] = None
    photos: Tuple[str, ...] = Field(default_factory=tuple)
    status: ProductStatus = ProductStatus.PENDING_REVIEW
    rejection_reason: Optional[str] = None
    tags: FrozenSet[str] = Field(default_factory=frozenset)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator("tags", mode="before")
    @classmethod
    def _stringify_tags(cls, value: object) -> object:
        if isinstance(value, (list, tuple, set, frozenset)):
            return frozenset(str(tag) for tag in value)
        return value

    @property
    def is_browsable(self) -> bool:
        return self.status == ProductStatus.ACTIVE

    def is_owned_by(self, account_id: Optional[str]) -> bool:
        return account_id is not None and self.owner_id == account_id


class CatalogSnapshot(BaseModel):
    """Persisted catalog record stored in the local key-value store."""

    captured_at: datetime = Field(alias="capturedAt")
    products: Sequence[Product] = Field(default_factory=tuple)

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator("captured_at")
    @classmethod
    def _ensure_timezone(cls, value: datetime) -> datetime:
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
