"""Domain models for listing drafts and submissions."""
from __future__ import annotations

from decimal import Decimal
from typing import Dict, FrozenSet, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from ..catalog.models import Product, ProductStatus
from ..entitlements.models import Account


class ListingDraft(BaseModel):
    """Owner-entered listing form values.

    Drafts are kept by the listing service when a submission is rejected so
    the owner can upgrade and retry without re-entering anything.
    """

    name: str = Field(min_length=1)
    category: str = "General"
    price_per_day: Decimal = Field(gt=0)
    price_per_month: Optional[Decimal] = Field(default=None, gt=0)
    price_per_year: Optional[Decimal] = Field(default=None, gt=0)
    location: Optional[str] = None
    condition: Optional[str] = None
    description: Optional[str] = None
    photos: Tuple[str, ...] = Field(default_factory=tuple)
    tags: FrozenSet[str] = Field(default_factory=frozenset)

    model_config = ConfigDict(populate_by_name=True, frozen=True, str_strip_whitespace=True)

    def to_fields(self, owner: Account, *, status: ProductStatus) -> Dict[str, object]:
        fields: Dict[str, object] = self.model_dump()
        fields.update(
            owner_id=owner.id,
            owner_name=owner.name,
            status=status,
            rejection_reason=None,
        )
        return fields


class ListingSubmission(BaseModel):
    """Result of a create or update attempt that reached the product sink."""

    product: Optional[Product] = None
    draft: Optional[ListingDraft] = None
    error: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @property
    def succeeded(self) -> bool:
        return self.product is not None and self.error is None
