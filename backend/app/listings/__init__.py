"""Listing lifecycle gate."""

from .models import ListingDraft, ListingSubmission
from .service import ListingNotifier, ListingService, ProductSink

__all__ = [
    "ListingDraft",
    "ListingNotifier",
    "ListingService",
    "ListingSubmission",
    "ProductSink",
]
