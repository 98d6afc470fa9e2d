"""Service responsible for resolving and caching subscription plans."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Protocol, Sequence

from .catalog import DEFAULT_PLANS
from .models import Account, Plan

logger = logging.getLogger(__name__)


class PlanSource(Protocol):
    """Remote plan catalog."""

    async def fetch_all(self) -> Sequence[Plan]:
        ...


class EntitlementService:
    """Resolves the plan behind an account's subscription."""

    def __init__(
        self,
        plan_source: PlanSource,
        *,
        clock: Optional[Callable[[], datetime]] = None,
        ttl_seconds: int = 300,
        use_default_plans: bool = True,
    ) -> None:
        self._plan_source = plan_source
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._ttl_seconds = max(ttl_seconds, 0)
        self._use_default_plans = use_default_plans
        self._plans: List[Plan] = []
        self._expires_at: Optional[datetime] = None

    async def list_plans(self) -> List[Plan]:
        """Return known plans, fetching them when the cached list has expired."""

        now = self._clock()
        if self._expires_at is not None and now < self._expires_at:
            return list(self._plans)

        try:
            plans = list(await self._plan_source.fetch_all())
        except Exception:
            logger.exception("Plan fetch failed; using %s cached plans", len(self._plans))
            plans = list(self._plans)
        else:
            self._expires_at = now + timedelta(seconds=self._ttl_seconds)

        if not plans and self._use_default_plans:
            plans = list(DEFAULT_PLANS)
        self._plans = plans
        return list(plans)

    async def get_plan(self, plan_id: str) -> Optional[Plan]:
        """Find a plan by id, falling back to a case-insensitive name match."""

        plans = await self.list_plans()
        for plan in plans:
            if plan.id == plan_id:
                return plan
        lowered = plan_id.strip().lower()
        for plan in plans:
            if plan.name.lower() == lowered:
                return plan
        return None

    async def resolve_plan(self, account: Account) -> Optional[Plan]:
        if not account.subscription:
            return None
        plan = await self.get_plan(account.subscription)
        if plan is None:
            logger.warning(
                "Account %s subscribes to unknown plan %s", account.id, account.subscription
            )
        return plan

    def invalidate(self) -> None:
        self._expires_at = None
