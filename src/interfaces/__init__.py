"""Public interface definitions for the bridge's pluggable backends.

Business code depends only on these abstract base classes; concrete
adapters live in ``src/providers/`` and are chosen in ``src/main.py``.

    Interface        →  Concrete implementations (in src/providers/)
    ─────────────────────────────────────────────────────────────────
    ICacheStore      →  MemoryCacheStore, SQLiteCacheStore
    ICacheItemPool   →  CacheItemPool (adapts any ICacheStore)

Re-exports
----------
ICacheStore
    Key-value store contract with relative lifetimes.
ICacheItemPool
    Item-pool contract with absolute expirations and deferred writes.
"""

from src.interfaces.cache_item_pool import ICacheItemPool
from src.interfaces.cache_store import ICacheStore

__all__ = [
    "ICacheItemPool",
    "ICacheStore",
]
