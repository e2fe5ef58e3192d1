"""Conversion from absolute expiration times to backing-store lifetimes.

Item pools speak in expiration timestamps; key-value stores take a relative
lifetime.  Older generations of the store contract counted that lifetime in
minutes, newer ones in seconds.  The unit is declared once by configuration
(``cache_lifetime_unit``) and handed to the converter at startup.
"""

from __future__ import annotations

import math
from datetime import datetime, tzinfo
from enum import Enum
from typing import Callable


class LifetimeUnit(str, Enum):
    """Unit a backing store expects for the ``lifetime`` argument of ``put``."""

    SECONDS = "seconds"
    MINUTES = "minutes"


Clock = Callable[[tzinfo | None], datetime]


def system_clock(tz: tzinfo | None = None) -> datetime:
    """Current time in *tz* (naive local time when *tz* is None)."""
    return datetime.now(tz)


class LifetimeConverter:
    """Turn an expiration datetime into a lifetime in the store's unit.

    Parameters
    ----------
    unit:
        The lifetime unit the backing store declares.  ``MINUTES`` is the
        legacy convention.
    clock:
        Returns "now" in a given timezone.  Tests inject a fixed clock.
    """

    def __init__(
        self,
        unit: LifetimeUnit | str = LifetimeUnit.SECONDS,
        clock: Clock | None = None,
    ) -> None:
        self._unit = LifetimeUnit(unit)
        self._clock = clock or system_clock

    @property
    def unit(self) -> LifetimeUnit:
        return self._unit

    @property
    def is_legacy(self) -> bool:
        return self._unit is LifetimeUnit.MINUTES

    def now(self, tz: tzinfo | None = None) -> datetime:
        return self._clock(tz)

    def compute_lifetime(self, expires_at: datetime) -> int | float:
        """Return the time left until *expires_at*.

        "Now" is taken in the expiration's own timezone.  The result is not
        clamped: zero or negative means the item is already expired.  In
        legacy mode the seconds are floored to whole minutes.
        """
        now = self._clock(expires_at.tzinfo)
        seconds = expires_at.timestamp() - now.timestamp()

        if self.is_legacy:
            return int(math.floor(seconds / 60.0))
        return seconds
