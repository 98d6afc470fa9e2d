"""Feature gating utilities coordinating listing entitlement enforcement."""
from .exceptions import FeatureGateError
from .quota import (
    ListingQuotaEvaluation,
    QuotaReason,
    assert_listing_quota,
    can_add_listing,
    evaluate_listing_quota,
)

__all__ = [
    "FeatureGateError",
    "ListingQuotaEvaluation",
    "QuotaReason",
    "assert_listing_quota",
    "can_add_listing",
    "evaluate_listing_quota",
]
