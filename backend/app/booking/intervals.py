"""Conversions between rental durations, date ranges and prices.

Every helper in this module sits behind interactive controls, so invalid or
extreme input is coerced to the nearest valid value instead of raising.
"""
from __future__ import annotations

import calendar
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional, Union

from ..catalog.models import Product
from .models import Granularity

MONTH_PRICE_MULTIPLIER = 25
YEAR_PRICE_MULTIPLIER = 280

GranularityLike = Union[Granularity, str]


def coerce_granularity(value: GranularityLike) -> Granularity:
    if isinstance(value, Granularity):
        return value
    try:
        return Granularity(str(value).strip().lower())
    except ValueError:
        return Granularity.DAY


def clamp_duration(value: object) -> int:
    """Return ``value`` as a whole duration count of at least one."""

    try:
        count = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError, OverflowError):
        return 1
    return max(count, 1)


def add_months(start: date, months: int) -> date:
    """Shift ``start`` by whole months, clamping to the target month's length."""

    index = start.year * 12 + (start.month - 1) + months
    year, month_index = divmod(index, 12)
    if year > date.max.year:
        return date.max
    if year < date.min.year:
        return date.min
    month = month_index + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def derive_end_date(start: date, duration: int, granularity: GranularityLike) -> date:
    """Return the last date covered by ``duration`` units starting at ``start``.

    Day ranges are inclusive (five days from the 1st end on the 5th); month and
    year ranges end on the same day-of-month ``duration`` units later.
    """

    count = clamp_duration(duration)
    unit = coerce_granularity(granularity)
    if unit is Granularity.DAY:
        try:
            return start + timedelta(days=count - 1)
        except OverflowError:
            return date.max
    return add_months(start, count * unit.months)


def derive_duration_from_dates(start: date, end: date, granularity: GranularityLike) -> int:
    """Return the whole number of units between ``start`` and ``end`` (minimum one)."""

    unit = coerce_granularity(granularity)
    if end <= start:
        return 1
    if unit is Granularity.DAY:
        return (end - start).days + 1

    months = (end.year - start.year) * 12 + (end.month - start.month)
    if months > 0 and add_months(start, months) > end:
        months -= 1
    return clamp_duration(months // unit.months)


def default_period_price(day_price: Decimal, granularity: GranularityLike) -> Decimal:
    """Derive a month or year price from the canonical day price."""

    unit = coerce_granularity(granularity)
    if unit is Granularity.MONTH:
        return day_price * MONTH_PRICE_MULTIPLIER
    if unit is Granularity.YEAR:
        return day_price * YEAR_PRICE_MULTIPLIER
    return day_price


def unit_price(product: Product, granularity: GranularityLike = Granularity.DAY) -> Decimal:
    """Price of one ``granularity`` unit for ``product``."""

    unit = coerce_granularity(granularity)
    stored: Optional[Decimal]
    if unit is Granularity.MONTH:
        stored = product.price_per_month
    elif unit is Granularity.YEAR:
        stored = product.price_per_year
    else:
        return product.price_per_day
    if not stored:
        return default_period_price(product.price_per_day, unit)
    return stored


def total_price(product: Product, duration: int, granularity: GranularityLike = Granularity.DAY) -> Decimal:
    return unit_price(product, granularity) * clamp_duration(duration)


__all__ = [
    "MONTH_PRICE_MULTIPLIER",
    "YEAR_PRICE_MULTIPLIER",
    "add_months",
    "clamp_duration",
    "coerce_granularity",
    "default_period_price",
    "derive_duration_from_dates",
    "derive_end_date",
    "total_price",
    "unit_price",
]
