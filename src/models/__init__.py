"""Domain models for the BigQuery bridge.

    - cache_item.py - the mutable item handed out by the cache item pool
    - warehouse.py  - query retry states and the cached OAuth token
"""

from __future__ import annotations

from src.models.cache_item import CacheItem
from src.models.warehouse import CachedToken, QueryState

__all__ = [
    "CacheItem",
    "CachedToken",
    "QueryState",
]
