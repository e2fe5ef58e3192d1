"""Warehouse-side models: query retry states and the cached OAuth token."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict


class QueryState(str, Enum):  # noqa: UP042
    """States a query passes through inside ``BigQueryService.run_query``.

        RUNNING -> COMPLETED
        RUNNING -> RETRYABLE_FAILURE -> RUNNING   (403, budget left)
        RUNNING -> FATAL_FAILURE                  (anything else)
    """

    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    RETRYABLE_FAILURE = "RETRYABLE_FAILURE"
    FATAL_FAILURE = "FATAL_FAILURE"


class CachedToken(BaseModel):
    """An OAuth access token as stored in the auth cache pool."""

    model_config = ConfigDict(frozen=True)

    access_token: str
    # Always timezone-aware (UTC) so it can be used as a cache expiration.
    expiry: datetime | None = None

    def is_usable(self, skew_seconds: float = 0.0) -> bool:
        """True when the token has no expiry or expires after now + skew."""
        if self.expiry is None:
            return True
        now = datetime.now(tz=timezone.utc)  # noqa: UP017
        return (self.expiry - now).total_seconds() > skew_seconds
