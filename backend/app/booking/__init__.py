"""Rental period arithmetic and rent-selection state."""

from .intervals import (
    MONTH_PRICE_MULTIPLIER,
    YEAR_PRICE_MULTIPLIER,
    add_months,
    clamp_duration,
    default_period_price,
    derive_duration_from_dates,
    derive_end_date,
    total_price,
    unit_price,
)
from .models import Granularity
from .selection import RentalSelection

__all__ = [
    "MONTH_PRICE_MULTIPLIER",
    "YEAR_PRICE_MULTIPLIER",
    "Granularity",
    "RentalSelection",
    "add_months",
    "clamp_duration",
    "default_period_price",
    "derive_duration_from_dates",
    "derive_end_date",
    "total_price",
    "unit_price",
]
