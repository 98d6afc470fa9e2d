"""Timestamped local snapshot of the product catalog."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional, Protocol, Sequence, Tuple

from pydantic import ValidationError

from .models import CatalogSnapshot, Product

logger = logging.getLogger(__name__)

DEFAULT_CACHE_KEY = "rentals.catalog.v1"
DEFAULT_TTL_SECONDS = 300


class KeyValueStore(Protocol):
    """Best-effort local string storage."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...


class InMemoryKeyValueStore:
    """Simple in-memory store suitable for tests and local development."""

    def __init__(self) -> None:
        self._values: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def clear(self) -> None:
        self._values.clear()


@dataclass(frozen=True)
class CachedCatalog:
    """A snapshot read back from the store."""

    products: Tuple[Product, ...]
    captured_at: datetime
    is_stale: bool


class CatalogCache:
    """Reads and writes catalog snapshots under a version-tagged key."""

    def __init__(
        self,
        store: KeyValueStore,
        *,
        key: str = DEFAULT_CACHE_KEY,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._store = store
        self._key = key
        self._ttl = timedelta(seconds=max(ttl_seconds, 1))
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def key(self) -> str:
        return self._key

    def read(self) -> Optional[CachedCatalog]:
        """Return the stored snapshot, or ``None`` when absent, malformed or empty."""

        try:
            raw = self._store.get(self._key)
        except Exception:
            logger.debug("Catalog cache read failed for key %s", self._key, exc_info=True)
            return None
        if not raw:
            return None

        try:
            snapshot = CatalogSnapshot.model_validate_json(raw)
        except (ValidationError, ValueError):
            logger.debug("Ignoring malformed catalog snapshot under %s", self._key)
            return None
        if not snapshot.products:
            return None

        age = self._clock() - snapshot.captured_at
        return CachedCatalog(
            products=tuple(snapshot.products),
            captured_at=snapshot.captured_at,
            is_stale=age > self._ttl,
        )

    def write(self, products: Sequence[Product]) -> None:
        """Persist ``products``; storage failures never reach the caller."""

        snapshot = CatalogSnapshot(captured_at=self._clock(), products=tuple(products))
        try:
            self._store.set(self._key, snapshot.model_dump_json(by_alias=True))
        except Exception:
            logger.debug("Catalog cache write failed for key %s", self._key, exc_info=True)
