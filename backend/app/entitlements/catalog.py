"""Built-in plan definitions used when the plan source has none."""
from __future__ import annotations

from decimal import Decimal
from typing import Dict, Optional, Tuple

from .models import UNLIMITED_LISTINGS, Plan

STARTER_PLAN = Plan(
    id="starter",
    name="Starter",
    price=Decimal("199"),
    listing_limit=3,
    features=("Up to 3 listings", "Standard support"),
    listing_expiry_days=30,
)

PRO_PLAN = Plan(
    id="pro",
    name="Pro",
    price=Decimal("499"),
    listing_limit=15,
    features=("Up to 15 listings", "Featured placement", "Priority support"),
    listing_expiry_days=60,
)

BUSINESS_PLAN = Plan(
    id="business",
    name="Business",
    price=Decimal("999"),
    listing_limit=UNLIMITED_LISTINGS,
    features=("Unlimited listings", "Featured placement", "Dedicated manager"),
)

DEFAULT_PLANS: Tuple[Plan, ...] = (STARTER_PLAN, PRO_PLAN, BUSINESS_PLAN)

PLAN_CATALOG: Dict[str, Plan] = {plan.id: plan for plan in DEFAULT_PLANS}


def get_plan_definition(plan_id: str) -> Optional[Plan]:
    """Return a built-in plan by id or name, case-insensitively."""

    lowered = plan_id.strip().lower()
    plan = PLAN_CATALOG.get(lowered)
    if plan is not None:
        return plan
    for candidate in DEFAULT_PLANS:
        if candidate.name.lower() == lowered:
            return candidate
    return None
