"""Listing lifecycle gate: entitlement checks and moderation status."""
from __future__ import annotations

import logging
from typing import Dict, Mapping, Optional, Protocol

from ..catalog.models import Product, ProductStatus
from ..catalog.service import CatalogService
from ..entitlements.models import Account
from ..entitlements.service import EntitlementService
from ..feature_gates import (
    FeatureGateError,
    ListingQuotaEvaluation,
    assert_listing_quota,
    evaluate_listing_quota,
)
from .models import ListingDraft, ListingSubmission

logger = logging.getLogger(__name__)


class ProductSink(Protocol):
    """Remote product persistence."""

    async def create(self, fields: Mapping[str, object]) -> Product:
        ...

    async def update(self, product_id: str, fields: Mapping[str, object]) -> Product:
        ...

    async def delete(self, product_id: str) -> None:
        ...


class ListingNotifier(Protocol):
    """Surfaces listing write failures to the user."""

    def notify_listing_failed(self, account_id: str, message: str) -> None:
        ...


class ListingService:
    """Gates listing creation on the account's plan and resets edits to review."""

    def __init__(
        self,
        product_sink: ProductSink,
        entitlements: EntitlementService,
        catalog: CatalogService,
        notifier: ListingNotifier,
    ) -> None:
        self._product_sink = product_sink
        self._entitlements = entitlements
        self._catalog = catalog
        self._notifier = notifier
        self._drafts: Dict[str, ListingDraft] = {}

    async def affordance(self, account: Account) -> ListingQuotaEvaluation:
        """Evaluate the quota shown on the "Add Listing" button."""

        plan = await self._entitlements.resolve_plan(account)
        return evaluate_listing_quota(account, plan, self._catalog.count_owned(account.id))

    def pending_draft(self, account_id: str) -> Optional[ListingDraft]:
        return self._drafts.get(account_id)

    def discard_draft(self, account_id: str) -> None:
        self._drafts.pop(account_id, None)

    async def create_listing(self, account: Account, draft: ListingDraft) -> ListingSubmission:
        """Create a listing in ``pending_review`` if the account's plan allows it.

        Raises :class:`FeatureGateError` when the quota check fails; the draft
        stays available through :meth:`pending_draft` either way until a
        submission succeeds.
        """

        self._drafts[account.id] = draft
        plan = await self._entitlements.resolve_plan(account)
        evaluation = assert_listing_quota(account, plan, self._catalog.count_owned(account.id))
        logger.debug("Listing quota for %s: %s", account.id, evaluation.to_dict())

        fields = draft.to_fields(account, status=ProductStatus.PENDING_REVIEW)
        try:
            product = await self._product_sink.create(fields)
        except Exception:
            logger.exception("Listing creation failed for account %s", account.id)
            return self._failed(account, draft, "We couldn't save your listing. Please try again.")

        self._drafts.pop(account.id, None)
        self._catalog.upsert(product)
        logger.info("Listing %s created by %s pending review", product.id, account.id)
        return ListingSubmission(product=product)

    async def update_listing(
        self,
        account: Account,
        product_id: str,
        draft: ListingDraft,
    ) -> ListingSubmission:
        """Apply an owner edit; the listing goes back to ``pending_review``."""

        product = self._require_product(product_id)
        self._require_owner(account, product)

        fields = draft.to_fields(account, status=ProductStatus.PENDING_REVIEW)
        if product.owner_id and product.owner_id != account.id:
            fields.update(owner_id=product.owner_id, owner_name=product.owner_name)

        self._drafts[account.id] = draft
        try:
            updated = await self._product_sink.update(product_id, fields)
        except Exception:
            logger.exception("Listing update failed for %s by %s", product_id, account.id)
            return self._failed(account, draft, "We couldn't update your listing. Please try again.")

        self._drafts.pop(account.id, None)
        self._catalog.upsert(updated)
        return ListingSubmission(product=updated)

    async def delete_listing(self, account: Account, product_id: str) -> bool:
        product = self._require_product(product_id)
        self._require_owner(account, product)
        try:
            await self._product_sink.delete(product_id)
        except Exception:
            logger.exception("Listing delete failed for %s by %s", product_id, account.id)
            self._notifier.notify_listing_failed(
                account.id, "We couldn't delete your listing. Please try again."
            )
            return False
        self._catalog.discard(product_id)
        return True

    async def review_listing(
        self,
        reviewer: Account,
        product_id: str,
        *,
        approve: bool,
        reason: Optional[str] = None,
    ) -> ListingSubmission:
        """Promote a pending listing to ``active`` or reject it with a reason."""

        if not reviewer.privileged:
            raise FeatureGateError(
                code="review_not_permitted",
                message="Only administrators can review listings.",
            )
        product = self._require_product(product_id)
        if product.status != ProductStatus.PENDING_REVIEW:
            raise ValueError(f"Listing {product_id} is not awaiting review")

        if approve:
            fields: Dict[str, object] = {"status": ProductStatus.ACTIVE, "rejection_reason": None}
        else:
            fields = {
                "status": ProductStatus.REJECTED,
                "rejection_reason": reason or "Rejected by reviewer",
            }
        try:
            updated = await self._product_sink.update(product_id, fields)
        except Exception:
            logger.exception("Listing review failed for %s", product_id)
            self._notifier.notify_listing_failed(reviewer.id, "We couldn't save the review. Please try again.")
            return ListingSubmission(error="review_failed")

        self._catalog.upsert(updated)
        logger.info("Listing %s reviewed by %s: %s", product_id, reviewer.id, updated.status.value)
        return ListingSubmission(product=updated)

    def _require_product(self, product_id: str) -> Product:
        product = self._catalog.get(product_id)
        if product is None:
            raise LookupError(f"Listing {product_id} not found")
        return product

    def _require_owner(self, account: Account, product: Product) -> None:
        if account.privileged or product.is_owned_by(account.id):
            return
        raise FeatureGateError(
            code="not_listing_owner",
            message="You can only change your own listings.",
        )

    def _failed(self, account: Account, draft: ListingDraft, message: str) -> ListingSubmission:
        self._notifier.notify_listing_failed(account.id, message)
        return ListingSubmission(draft=draft, error=message)
