"""Listing quota evaluation utilities for feature gating."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..entitlements.models import Account, Plan
from .exceptions import FeatureGateError


class QuotaReason(str, Enum):
    """Why a listing quota evaluation came out the way it did."""

    PRIVILEGED = "privileged"
    NO_SUBSCRIPTION = "no_subscription"
    UNKNOWN_PLAN = "unknown_plan"
    UNLIMITED = "unlimited"
    WITHIN_LIMIT = "within_limit"
    LIMIT_REACHED = "limit_reached"


@dataclass(frozen=True)
class ListingQuotaEvaluation:
    """Outcome of a listing quota check, including what the UI should show."""

    current_count: int
    cap: Optional[int]
    allowed: bool
    reason: QuotaReason
    plan_id: Optional[str] = None

    @property
    def unlimited(self) -> bool:
        return self.cap is None

    @property
    def remaining(self) -> Optional[int]:
        if self.cap is None:
            return None
        return max(self.cap - self.current_count, 0)

    @property
    def label(self) -> str:
        cap = "unlimited" if self.cap is None else str(self.cap)
        return f"{self.current_count} / {cap} listings"

    def to_dict(self) -> dict[str, object]:
        """Serialize the evaluation for logging or telemetry."""

        return {
            "current_count": self.current_count,
            "cap": self.cap,
            "allowed": self.allowed,
            "reason": self.reason.value,
            "plan_id": self.plan_id,
            "label": self.label,
        }


def evaluate_listing_quota(
    account: Account,
    plan: Optional[Plan],
    current_count: int,
) -> ListingQuotaEvaluation:
    """Decide whether ``account`` may create another listing.

    Privileged accounts are never capped, accounts without a subscription
    have a cap of zero, and everyone else gets ``plan.listing_limit``.
    ``current_count`` must include listings in every status.
    """

    count = max(current_count, 0)

    if account.privileged:
        return ListingQuotaEvaluation(count, None, True, QuotaReason.PRIVILEGED)

    if not account.subscription:
        return ListingQuotaEvaluation(count, 0, False, QuotaReason.NO_SUBSCRIPTION)

    if plan is None:
        return ListingQuotaEvaluation(
            count, 0, False, QuotaReason.UNKNOWN_PLAN, plan_id=account.subscription
        )

    if plan.is_unlimited:
        return ListingQuotaEvaluation(count, None, True, QuotaReason.UNLIMITED, plan_id=plan.id)

    allowed = count < plan.listing_limit
    reason = QuotaReason.WITHIN_LIMIT if allowed else QuotaReason.LIMIT_REACHED
    return ListingQuotaEvaluation(count, plan.listing_limit, allowed, reason, plan_id=plan.id)


def can_add_listing(account: Account, plan: Optional[Plan], current_count: int) -> bool:
    return evaluate_listing_quota(account, plan, current_count).allowed


def assert_listing_quota(
    account: Account,
    plan: Optional[Plan],
    current_count: int,
) -> ListingQuotaEvaluation:
    """Raise when ``account`` may not create another listing."""

    evaluation = evaluate_listing_quota(account, plan, current_count)
    if evaluation.allowed:
        return evaluation

    if evaluation.reason == QuotaReason.LIMIT_REACHED:
        raise FeatureGateError(
            code="listing_limit_reached",
            message=(
                f"Your {plan.name if plan else 'current'} plan allows {evaluation.cap} listings. "
                "Upgrade your plan to add more."
            ),
            action="upgrade_plan",
            detail=evaluation.to_dict(),
        )

    raise FeatureGateError(
        code="subscription_required",
        message="Choose a subscription plan before listing items for rent.",
        action="select_plan",
        detail=evaluation.to_dict(),
    )
