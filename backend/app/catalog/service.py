"""Catalog loading, cache coordination and change notifications."""
from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, List, Optional, Protocol, Sequence

from .cache import CatalogCache
from .models import Product

logger = logging.getLogger(__name__)

ChangeHandler = Callable[[Any], Awaitable[None]]


class CatalogSource(Protocol):
    """Remote product catalog."""

    async def fetch_all(self) -> Sequence[Product]:
        ...

    def subscribe(self, on_change: ChangeHandler) -> Callable[[], None]:
        """Register ``on_change`` for remote product changes and return an unsubscribe callable."""


class CatalogService:
    """Keeps the in-memory product list in sync with the source and snapshot cache."""

    def __init__(self, source: CatalogSource, cache: CatalogCache) -> None:
        self._source = source
        self._cache = cache
        self._products: List[Product] = []
        self._stale = True
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def products(self) -> List[Product]:
        return list(self._products)

    @property
    def is_stale(self) -> bool:
        return self._stale

    @property
    def is_subscribed(self) -> bool:
        return self._unsubscribe is not None

    async def load(self) -> List[Product]:
        """Serve a fresh snapshot immediately, otherwise fetch from the source."""

        cached = self._cache.read()
        if cached is not None:
            self._products = list(cached.products)
            self._stale = cached.is_stale
            if not cached.is_stale:
                logger.debug("Serving %s products from catalog cache", len(self._products))
                return self.products

        await self.refresh()
        return self.products

    async def refresh(self) -> bool:
        """Re-fetch the whole catalog, replacing the list and the snapshot.

        Returns ``False`` when the fetch fails; the previously known products
        are kept in that case.
        """

        try:
            rows = await self._source.fetch_all()
        except Exception:
            logger.exception("Catalog fetch failed; keeping %s known products", len(self._products))
            return False

        self._products = list(rows)
        self._stale = False
        self._cache.write(self._products)
        logger.info("Loaded %s products from catalog source", len(self._products))
        return True

    async def refresh_if_stale(self) -> bool:
        cached = self._cache.read()
        if cached is not None and not cached.is_stale:
            return False
        return await self.refresh()

    def start(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self._source.subscribe(self._on_remote_change)

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def _on_remote_change(self, event: Any) -> None:
        logger.debug("Remote catalog change received: %s", event)
        await self.refresh()

    def upsert(self, product: Product) -> None:
        """Apply a locally confirmed write ahead of the remote change notification."""

        for index, existing in enumerate(self._products):
            if existing.id == product.id:
                self._products[index] = product
                return
        self._products.insert(0, product)

    def discard(self, product_id: str) -> None:
        self._products = [product for product in self._products if product.id != product_id]

    def browsable(self) -> List[Product]:
        return [product for product in self._products if product.is_browsable]

    def get(self, product_id: str) -> Optional[Product]:
        for product in self._products:
            if product.id == product_id:
                return product
        return None

    def count_owned(self, owner_id: str) -> int:
        """Count every product owned by ``owner_id`` regardless of status."""

        return sum(1 for product in self._products if product.owner_id == owner_id)
