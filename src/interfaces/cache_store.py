"""Abstract base class for key-value cache stores.

A cache store is the application's own, simple cache: values keyed by
string, written with a relative lifetime or forever.  The item pool in
``src/providers/cache/item_pool.py`` adapts any store implementing this
contract to the expiration-based item-pool contract the Google auth layer
consumes.

Values reaching a store are already serialized (``bytes``); stores never
interpret them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.utils.lifetime import LifetimeUnit


class ICacheStore(ABC):
    """Contract for key-value cache stores with relative lifetimes.

    Every store declares the unit of the ``lifetime`` argument to
    :meth:`put`.  Legacy stores count minutes, current ones seconds.
    """

    @property
    @abstractmethod
    def lifetime_unit(self) -> LifetimeUnit:
        """Unit of the ``lifetime`` argument accepted by :meth:`put`."""

    @abstractmethod
    def has(self, key: str) -> bool:
        """Return ``True`` if *key* is present and not expired."""

    @abstractmethod
    def get(self, key: str) -> bytes | None:
        """Return the payload stored under *key*, or ``None`` if absent."""

    @abstractmethod
    def put(self, key: str, value: bytes, lifetime: int | float) -> bool:
        """Store *value* under *key* for *lifetime* (in :attr:`lifetime_unit`).

        Returns ``True`` when the value was written.
        """

    @abstractmethod
    def forever(self, key: str, value: bytes) -> bool:
        """Store *value* under *key* without expiration."""

    @abstractmethod
    def forget(self, key: str) -> bool:
        """Remove *key*.  Returns ``True`` if an entry was removed."""

    @abstractmethod
    def flush(self) -> bool:
        """Remove every entry from the store."""
