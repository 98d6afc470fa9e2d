"""Subscription plans, accounts and plan resolution."""

from .catalog import (
    BUSINESS_PLAN,
    DEFAULT_PLANS,
    PLAN_CATALOG,
    PRO_PLAN,
    STARTER_PLAN,
    get_plan_definition,
)
from .models import UNLIMITED_LISTINGS, Account, Plan
from .service import EntitlementService, PlanSource

__all__ = [
    "BUSINESS_PLAN",
    "DEFAULT_PLANS",
    "PLAN_CATALOG",
    "PRO_PLAN",
    "STARTER_PLAN",
    "UNLIMITED_LISTINGS",
    "Account",
    "EntitlementService",
    "Plan",
    "PlanSource",
    "get_plan_definition",
]
