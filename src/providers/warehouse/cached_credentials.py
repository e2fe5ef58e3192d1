"""Google credentials whose access tokens are cached in an item pool.

Every ``bigquery.Client`` built by the bridge authenticates through
:class:`PoolCachedCredentials`.  On refresh it first looks for a token in
the configured auth cache (any :class:`ICacheItemPool`), and only asks the
wrapped service-account credentials for a new token when the cached one is
missing or about to expire.  Fresh tokens are written back with their
expiry as the item's expiration, so short-lived processes share one token.
"""

from __future__ import annotations

from datetime import datetime, timezone

import structlog
from google.auth import credentials
from google.auth.transport import Request
from pydantic import ValidationError

from src.interfaces.cache_item_pool import ICacheItemPool
from src.models.warehouse import CachedToken

logger = structlog.get_logger(logger_name=__name__)

# Cached tokens this close to expiry are refreshed instead of reused.
_EXPIRY_SKEW_SECONDS = 60.0


def _as_aware(value: datetime | None) -> datetime | None:
    # google-auth keeps expiries as naive UTC datetimes.
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class PoolCachedCredentials(credentials.Credentials):
    """Wrap *inner* credentials, caching their tokens in *pool* under *cache_key*."""

    def __init__(
        self,
        inner: credentials.Credentials,
        pool: ICacheItemPool,
        cache_key: str,
        skew_seconds: float = _EXPIRY_SKEW_SECONDS,
    ) -> None:
        super().__init__()
        self._inner = inner
        self._pool = pool
        self._cache_key = cache_key
        self._skew_seconds = skew_seconds

    @property
    def inner(self) -> credentials.Credentials:
        return self._inner

    def refresh(self, request: Request) -> None:
        cached = self._load_cached()
        if cached is not None:
            logger.debug("auth_token_cache_hit", key=self._cache_key)
            self._apply(cached)
            return

        logger.debug("auth_token_refresh", key=self._cache_key)
        self._inner.refresh(request)
        token = CachedToken(
            access_token=self._inner.token,
            expiry=_as_aware(self._inner.expiry),
        )
        self._apply(token)

        item = self._pool.get_item(self._cache_key).set(token.model_dump())
        item.expires_at(token.expiry)
        if not self._pool.save(item):
            logger.warning("auth_token_cache_write_failed", key=self._cache_key)

    def _load_cached(self) -> CachedToken | None:
        item = self._pool.get_item(self._cache_key)
        if not item.is_hit:
            return None
        try:
            token = CachedToken.model_validate(item.get())
        except ValidationError:
            logger.warning("auth_token_cache_corrupt", key=self._cache_key)
            return None
        if not token.is_usable(self._skew_seconds):
            return None
        return token

    def _apply(self, token: CachedToken) -> None:
        self.token = token.access_token
        self.expiry = (
            token.expiry.astimezone(timezone.utc).replace(tzinfo=None)
            if token.expiry is not None
            else None
        )
