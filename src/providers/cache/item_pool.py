"""Item pool adapter over a key-value cache store.

``CacheItemPool`` lets code written against the item-pool contract (items
with absolute expirations, deferred writes) run on top of any
:class:`~src.interfaces.cache_store.ICacheStore` (relative lifetimes).
The Google auth layer uses it to keep OAuth tokens in the application's
cache store.

Deferred items live in memory until :meth:`CacheItemPool.commit`.  Pending
items are also flushed by :meth:`CacheItemPool.close`, which the owner must
call (or use the pool as a context manager); errors during that flush are
logged and dropped.

The pool is not thread-safe.  Share one instance per call path.
"""

from __future__ import annotations

import copy
import pickle
import re
from collections.abc import Iterable
from datetime import datetime
from types import TracebackType

import structlog

from src.interfaces.cache_item_pool import ICacheItemPool
from src.interfaces.cache_store import ICacheStore
from src.models.cache_item import CacheItem
from src.utils.errors import InvalidCacheKeyError
from src.utils.lifetime import LifetimeConverter

logger = structlog.get_logger(logger_name=__name__)

_RESERVED_CHARACTERS = "{}()/\\@:"
_INVALID_KEY_PATTERN = re.compile(r"[{}()/\\@:]")


class CacheItemPool(ICacheItemPool):
    """Expiration-based item pool backed by an :class:`ICacheStore`.

    Parameters
    ----------
    store:
        The backing key-value store.
    converter:
        Converts expirations into lifetimes.  Defaults to a converter in
        the store's declared lifetime unit.
    """

    def __init__(
        self,
        store: ICacheStore,
        converter: LifetimeConverter | None = None,
    ) -> None:
        self._store = store
        self._converter = converter or LifetimeConverter(store.lifetime_unit)
        self._deferred: dict[str, CacheItem] = {}

    # ------------------------------------------------------------------
    # Scoped release
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Commit pending deferred items, logging instead of raising on failure."""
        if not self._deferred:
            return
        pending = len(self._deferred)
        try:
            if not self.commit():
                logger.warning("cache_pool_close_commit_incomplete", pending=pending)
        except Exception as exc:
            logger.warning("cache_pool_close_failed", pending=pending, error=str(exc))

    def __enter__(self) -> CacheItemPool:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # ------------------------------------------------------------------
    # ICacheItemPool implementation
    # ------------------------------------------------------------------

    def get_item(self, key: str) -> CacheItem:
        self._validate_key(key)

        if key in self._deferred:
            # Hand out a copy so callers cannot mutate the queued item.
            return copy.copy(self._deferred[key])

        if self._store.has(key):
            logger.debug("cache_hit", key=key)
            return CacheItem(
                key, pickle.loads(self._store.get(key)), hit=True, clock=self._converter.now
            )

        logger.debug("cache_miss", key=key)
        return CacheItem(key, clock=self._converter.now)

    def get_items(self, keys: Iterable[str] = ()) -> dict[str, CacheItem]:
        keys = list(keys)
        for key in keys:
            self._validate_key(key)
        return {key: self.get_item(key) for key in keys}

    def has_item(self, key: str) -> bool:
        self._validate_key(key)

        if key in self._deferred:
            expires_at = self._deferred[key].get_expires_at()
            if expires_at is None:
                return True
            return expires_at > self._now(expires_at)

        return self._store.has(key)

    def clear(self) -> bool:
        self._deferred = {}
        try:
            self._store.flush()
        except Exception as exc:
            logger.warning("cache_clear_failed", error=str(exc))
            return False
        return True

    def delete_item(self, key: str) -> bool:
        self._validate_key(key)

        self._deferred.pop(key, None)

        if not self.has_item(key):
            return True

        return self._store.forget(key)

    def delete_items(self, keys: Iterable[str]) -> bool:
        keys = list(keys)
        # Nothing is deleted unless every key is valid.
        for key in keys:
            self._validate_key(key)

        success = True
        for key in keys:
            success = self.delete_item(key) and success
        return success

    def save(self, item: CacheItem) -> bool:
        key = item.key
        self._validate_key(key)
        expires_at = item.get_expires_at()

        if expires_at is None:
            try:
                return bool(self._store.forever(key, pickle.dumps(item.get())))
            except Exception as exc:
                logger.warning("cache_save_failed", key=key, error=str(exc))
                return False

        lifetime = self._converter.compute_lifetime(expires_at)

        if lifetime <= 0:
            logger.debug("cache_save_expired", key=key, lifetime=lifetime)
            try:
                self._store.forget(key)
            except Exception as exc:
                logger.warning("cache_forget_failed", key=key, error=str(exc))
            return False

        try:
            written = self._store.put(key, pickle.dumps(item.get()), lifetime)
        except Exception as exc:
            logger.warning("cache_save_failed", key=key, error=str(exc))
            return False

        logger.debug("cache_saved", key=key, lifetime=lifetime)
        return bool(written)

    def save_deferred(self, item: CacheItem) -> bool:
        self._validate_key(item.key)
        expires_at = item.get_expires_at()

        if expires_at is not None and expires_at < self._now(expires_at):
            return False

        self._deferred[item.key] = CacheItem(
            item.key, item.get(), hit=True, clock=self._converter.now
        ).expires_at(expires_at)
        return True

    def commit(self) -> bool:
        success = True
        try:
            for item in self._deferred.values():
                success = self.save(item) and success
        finally:
            self._deferred = {}
        return success

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _now(self, reference: datetime) -> datetime:
        return self._converter.now(reference.tzinfo)

    @staticmethod
    def _validate_key(key: str) -> None:
        if _INVALID_KEY_PATTERN.search(key):
            raise InvalidCacheKeyError(key, _RESERVED_CHARACTERS)

    @property
    def deferred_count(self) -> int:
        return len(self._deferred)

    def __repr__(self) -> str:
        return (
            f"CacheItemPool(store={type(self._store).__name__}, "
            f"unit={self._converter.unit.value}, deferred={len(self._deferred)})"
        )
