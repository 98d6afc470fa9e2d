"""Marketplace configuration helpers."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional
import os
import re

from dotenv import load_dotenv

from .catalog.cache import DEFAULT_CACHE_KEY, DEFAULT_TTL_SECONDS
from .checkout.models import PaymentMethod

DEFAULT_PLAN_TTL_SECONDS = 300
DEFAULT_CURRENCY = "INR"

_CURRENCY_RE = re.compile(r"[A-Z]{3}")
_DISABLED = frozenset({"0", "false", "no", "off"})


@dataclass(frozen=True)
class MarketplaceConfig:
    """Configuration for the booking and entitlement engine."""

    catalog_cache_key: str
    catalog_cache_ttl_seconds: int
    plan_cache_ttl_seconds: int
    checkout_currency: str
    default_payment_method: PaymentMethod
    use_default_plans: bool


def _seconds(env: Mapping[str, str], name: str, *, default: int, minimum: int) -> int:
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a whole number of seconds, got {raw!r}") from exc
    return max(minimum, value)


def _currency(value: Optional[str]) -> str:
    code = (value or DEFAULT_CURRENCY).strip().upper()
    if not _CURRENCY_RE.fullmatch(code):
        raise ValueError(f"CHECKOUT_CURRENCY must be a 3-letter currency code, got {value!r}")
    return code


def _payment_method(value: Optional[str]) -> PaymentMethod:
    if not value:
        return PaymentMethod.CASH_ON_DELIVERY
    try:
        return PaymentMethod(value.strip().lower())
    except ValueError as exc:
        raise ValueError(f"Unsupported payment method {value!r}") from exc


def _use_default_plans(value: Optional[str]) -> bool:
    return (value or "").strip().lower() not in _DISABLED


def load_marketplace_config(env: Optional[Mapping[str, str]] = None) -> MarketplaceConfig:
    """Load :class:`MarketplaceConfig` from environment variables.

    When ``env`` is omitted, a ``.env`` file is loaded into the process
    environment first. Malformed TTLs, currencies and payment methods raise
    :class:`ValueError` here rather than when an order is built.
    """

    if env is None:
        load_dotenv()
        env_mapping: Mapping[str, str] = os.environ
    else:
        env_mapping = env

    cache_key = (env_mapping.get("CATALOG_CACHE_KEY") or "").strip()

    return MarketplaceConfig(
        catalog_cache_key=cache_key or DEFAULT_CACHE_KEY,
        catalog_cache_ttl_seconds=_seconds(
            env_mapping, "CATALOG_CACHE_TTL_SECONDS", default=DEFAULT_TTL_SECONDS, minimum=1
        ),
        plan_cache_ttl_seconds=_seconds(
            env_mapping, "PLAN_CACHE_TTL_SECONDS", default=DEFAULT_PLAN_TTL_SECONDS, minimum=0
        ),
        checkout_currency=_currency(env_mapping.get("CHECKOUT_CURRENCY")),
        default_payment_method=_payment_method(env_mapping.get("DEFAULT_PAYMENT_METHOD")),
        use_default_plans=_use_default_plans(env_mapping.get("USE_DEFAULT_PLANS")),
    )
