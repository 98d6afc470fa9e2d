"""Session cart aggregation."""

from .aggregator import CartAggregator, CartLineLockedError
from .models import CartLine

__all__ = ["CartAggregator", "CartLine", "CartLineLockedError"]
