"""Product catalog records, snapshot cache and loading service."""

from .cache import (
    DEFAULT_CACHE_KEY,
    DEFAULT_TTL_SECONDS,
    CachedCatalog,
    CatalogCache,
    InMemoryKeyValueStore,
    KeyValueStore,
)
from .models import CatalogSnapshot, Product, ProductStatus
from .service import CatalogService, CatalogSource

__all__ = [
    "DEFAULT_CACHE_KEY",
    "DEFAULT_TTL_SECONDS",
    "CachedCatalog",
    "CatalogCache",
    "CatalogService",
    "CatalogSnapshot",
    "CatalogSource",
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "Product",
    "ProductStatus",
]
