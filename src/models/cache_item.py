"""Cache item handed out by :class:`~src.providers.cache.item_pool.CacheItemPool`.

A ``CacheItem`` is a mutable, in-memory view of one cache entry.  Its key
and hit flag are fixed at construction; value and expiration are changed
through fluent setters so callers can write::

    pool.save(pool.get_item("token").set(payload).expires_after(3600))

A miss is always a clean item: no value, no expiration, ``is_hit`` false.

``expires_after`` reads "now" from the item's clock.  Items handed out by a
pool share the pool's clock, so relative expirations and the pool's expiry
checks agree even when tests freeze time.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from src.utils.lifetime import Clock, system_clock


class CacheItem:
    """One cache entry: key, value, hit flag and optional expiration."""

    __slots__ = ("_clock", "_expires_at", "_hit", "_key", "_value")

    def __init__(
        self,
        key: str,
        value: Any = None,
        hit: bool = False,
        clock: Clock | None = None,
    ) -> None:
        self._key = key
        self._clock = clock or system_clock
        self._hit = hit
        self._value = value if hit else None
        self._expires_at: datetime | None = None

    @property
    def key(self) -> str:
        return self._key

    @property
    def is_hit(self) -> bool:
        return self._hit

    def get(self) -> Any:
        """Return the item's value (``None`` for a miss)."""
        return self._value

    def set(self, value: Any) -> CacheItem:
        self._value = value
        return self

    def expires_at(self, expiration: datetime | None) -> CacheItem:
        """Set an absolute expiration; ``None`` means the item never expires."""
        self._expires_at = expiration
        return self

    def expires_after(self, time: int | float | timedelta | None) -> CacheItem:
        """Set the expiration relative to now.

        *time* is a ``timedelta`` or a number of seconds.  ``None`` removes
        the expiration.
        """
        if time is None:
            self._expires_at = None
            return self

        if not isinstance(time, timedelta):
            time = timedelta(seconds=time)

        self._expires_at = self._clock(timezone.utc) + time
        return self

    def get_expires_at(self) -> datetime | None:
        return self._expires_at

    def __copy__(self) -> CacheItem:
        clone = CacheItem(self._key, self._value, self._hit, self._clock)
        clone._expires_at = self._expires_at
        return clone

    def __repr__(self) -> str:
        return (
            f"CacheItem(key={self._key!r}, hit={self._hit}, "
            f"expires_at={self._expires_at!r})"
        )
