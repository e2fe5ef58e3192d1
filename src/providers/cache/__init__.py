"""Cache stores and the item-pool adapter.

Stores are looked up by name, the way ``bigquery_auth_cache_store`` names
them in configuration:

    memory  →  MemoryCacheStore  (cachetools, per-process)
    sqlite  →  SQLiteCacheStore  (survives restarts)

CacheItemPool adapts any store to the item-pool contract.
"""

from __future__ import annotations

from pathlib import Path

from src.interfaces.cache_store import ICacheStore
from src.providers.cache.item_pool import CacheItemPool
from src.providers.cache.memory_store import MemoryCacheStore
from src.providers.cache.sqlite_store import SQLiteCacheStore
from src.utils.errors import ConfigurationError
from src.utils.lifetime import LifetimeUnit

CACHE_STORES = ("memory", "sqlite")


def build_cache_store(
    name: str,
    lifetime_unit: LifetimeUnit | str = LifetimeUnit.SECONDS,
    sqlite_path: str | Path = "data/cache.db",
    max_size: int = 1000,
) -> ICacheStore:
    """Instantiate the cache store registered under *name*."""
    if name == "memory":
        return MemoryCacheStore(max_size=max_size, lifetime_unit=lifetime_unit)
    if name == "sqlite":
        return SQLiteCacheStore(db_path=sqlite_path, lifetime_unit=lifetime_unit)
    raise ConfigurationError(
        f"Unknown cache store '{name}'; expected one of: {', '.join(CACHE_STORES)}"
    )


__all__ = [
    "CACHE_STORES",
    "CacheItemPool",
    "MemoryCacheStore",
    "SQLiteCacheStore",
    "build_cache_store",
]
