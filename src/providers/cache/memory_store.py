"""In-memory cache store using cachetools.TLRUCache.

Simple, fast store suitable for single-process runs.  ``TLRUCache`` gives
each entry its own expiry, which the relative-lifetime contract needs.
"""

from __future__ import annotations

import math
import time
from typing import Any, Callable, NamedTuple

import structlog
from cachetools import TLRUCache

from src.interfaces.cache_store import ICacheStore
from src.utils.lifetime import LifetimeUnit

logger = structlog.get_logger(logger_name=__name__)


class _Entry(NamedTuple):
    payload: bytes
    ttl: float | None


def _time_to_use(_key: str, entry: _Entry, now: float) -> float:
    if entry.ttl is None:
        return math.inf
    return now + entry.ttl


class MemoryCacheStore(ICacheStore):
    """In-memory store with per-entry lifetimes.

    Parameters
    ----------
    max_size:
        Maximum number of entries before the least-recently-used entry
        is evicted.
    lifetime_unit:
        Unit of the ``lifetime`` argument to :meth:`put`.
    timer:
        Clock used for expiry; tests pass a controllable one.
    """

    def __init__(
        self,
        max_size: int = 1000,
        lifetime_unit: LifetimeUnit | str = LifetimeUnit.SECONDS,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self._unit = LifetimeUnit(lifetime_unit)
        self._cache: TLRUCache[str, Any] = TLRUCache(
            maxsize=max_size, ttu=_time_to_use, timer=timer
        )

    @property
    def lifetime_unit(self) -> LifetimeUnit:
        return self._unit

    # ------------------------------------------------------------------
    # ICacheStore implementation
    # ------------------------------------------------------------------

    def has(self, key: str) -> bool:
        return key in self._cache

    def get(self, key: str) -> bytes | None:
        entry = self._cache.get(key)
        return entry.payload if entry is not None else None

    def put(self, key: str, value: bytes, lifetime: int | float) -> bool:
        seconds = lifetime * 60 if self._unit is LifetimeUnit.MINUTES else lifetime
        if seconds <= 0:
            self._cache.pop(key, None)
            return False
        self._cache[key] = _Entry(value, float(seconds))
        logger.debug("store_put", key=key, ttl_s=seconds)
        return True

    def forever(self, key: str, value: bytes) -> bool:
        self._cache[key] = _Entry(value, None)
        logger.debug("store_forever", key=key)
        return True

    def forget(self, key: str) -> bool:
        removed = self._cache.pop(key, None) is not None
        logger.debug("store_forget", key=key, removed=removed)
        return removed

    def flush(self) -> bool:
        self._cache.clear()
        return True

    def __len__(self) -> int:
        return len(self._cache)
