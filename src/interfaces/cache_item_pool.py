"""Abstract base class for cache item pools.

An item pool works on :class:`~src.models.cache_item.CacheItem` objects
with absolute expirations and supports deferred (batched) writes.  This is
the surface consumers such as the OAuth token cache depend on.

Boolean-returning operations report storage failures through their return
value; only malformed keys raise
(:class:`~src.utils.errors.InvalidCacheKeyError`).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable

from src.models.cache_item import CacheItem


class ICacheItemPool(ABC):
    """Contract for expiration-based cache item pools."""

    @abstractmethod
    def get_item(self, key: str) -> CacheItem:
        """Return the item for *key*; a miss yields an item with ``is_hit`` false."""

    @abstractmethod
    def get_items(self, keys: Iterable[str] = ()) -> dict[str, CacheItem]:
        """Return ``{key: item}`` for every key, in the order given."""

    @abstractmethod
    def has_item(self, key: str) -> bool:
        """Return ``True`` if an unexpired item exists for *key*."""

    @abstractmethod
    def clear(self) -> bool:
        """Drop pending writes and empty the underlying store."""

    @abstractmethod
    def delete_item(self, key: str) -> bool:
        """Remove *key*; absent keys count as successfully deleted."""

    @abstractmethod
    def delete_items(self, keys: Iterable[str]) -> bool:
        """Remove every key; ``True`` only if all deletions succeeded."""

    @abstractmethod
    def save(self, item: CacheItem) -> bool:
        """Persist *item* immediately."""

    @abstractmethod
    def save_deferred(self, item: CacheItem) -> bool:
        """Queue *item* for the next :meth:`commit`."""

    @abstractmethod
    def commit(self) -> bool:
        """Persist every queued item; ``True`` only if all saves succeeded."""
