"""Domain models for subscription plans and accounts."""
from __future__ import annotations

from decimal import Decimal
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

UNLIMITED_LISTINGS = 999
"""Listing limits at or above this value mean "unlimited"."""


class Plan(BaseModel):
    """A subscription tier granting a listing allowance."""

    id: str
    name: str
    price: Decimal = Field(default=Decimal("0"), ge=0, description="Monthly price")
    listing_limit: int = Field(alias="listingLimit", ge=1)
    features: Tuple[str, ...] = Field(default_factory=tuple)
    listing_expiry_days: Optional[int] = Field(default=None, alias="listingExpiryDays", ge=1)

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator("features", mode="before")
    @classmethod
    def _normalize_features(cls, value: object) -> object:
        if value is None:
            return ()
        if isinstance(value, str):
            return tuple(item.strip() for item in value.split(",") if item.strip())
        return value

    @property
    def is_unlimited(self) -> bool:
        return self.listing_limit >= UNLIMITED_LISTINGS


class Account(BaseModel):
    """The signed-in account a session acts on behalf of."""

    id: str
    name: str
    email: Optional[str] = None
    subscription: Optional[str] = Field(default=None, description="Subscribed plan id")
    privileged: bool = False

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator("subscription", mode="before")
    @classmethod
    def _blank_subscription_is_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def is_subscribed(self) -> bool:
        return self.subscription is not None
