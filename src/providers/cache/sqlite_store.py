"""SQLite-backed cache store.

Keeps serialized payloads in a local SQLite database (default
``data/cache.db``) so cached OAuth tokens survive process restarts.
Expired rows are filtered on read and purged on write.
"""

from __future__ import annotations

import sqlite3
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import structlog

from src.interfaces.cache_store import ICacheStore
from src.utils.lifetime import LifetimeUnit

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/cache.db")

_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS cache (
    key         TEXT PRIMARY KEY,
    value       BLOB NOT NULL,
    expiration  REAL
);
"""

_UPSERT_SQL = """\
INSERT INTO cache (key, value, expiration)
VALUES (?, ?, ?)
ON CONFLICT(key)
DO UPDATE SET value      = excluded.value,
              expiration = excluded.expiration;
"""

_SELECT_SQL = """\
SELECT value FROM cache
WHERE key = ? AND (expiration IS NULL OR expiration > ?);
"""

_PURGE_SQL = "DELETE FROM cache WHERE expiration IS NOT NULL AND expiration <= ?;"


class SQLiteCacheStore(ICacheStore):
    """SQLite-backed store with per-row expiration timestamps."""

    def __init__(
        self,
        db_path: str | Path = _DEFAULT_DB_PATH,
        lifetime_unit: LifetimeUnit | str = LifetimeUnit.SECONDS,
    ) -> None:
        self._db_path = Path(db_path)
        self._unit = LifetimeUnit(lifetime_unit)
        self._initialized = False

    @property
    def lifetime_unit(self) -> LifetimeUnit:
        return self._unit

    def initialize(self) -> None:
        """Create the cache table if it doesn't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialized = True
        with self._connect() as db:
            db.execute(_CREATE_TABLE_SQL)
        logger.info("cache_db_initialized", path=str(self._db_path))

    # ------------------------------------------------------------------
    # ICacheStore implementation
    # ------------------------------------------------------------------

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def get(self, key: str) -> bytes | None:
        with self._connect() as db:
            row = db.execute(_SELECT_SQL, (key, time.time())).fetchone()
        return bytes(row[0]) if row else None

    def put(self, key: str, value: bytes, lifetime: int | float) -> bool:
        seconds = lifetime * 60 if self._unit is LifetimeUnit.MINUTES else lifetime
        if seconds <= 0:
            self.forget(key)
            return False
        now = time.time()
        with self._connect() as db:
            db.execute(_PURGE_SQL, (now,))
            db.execute(_UPSERT_SQL, (key, sqlite3.Binary(value), now + seconds))
        return True

    def forever(self, key: str, value: bytes) -> bool:
        with self._connect() as db:
            db.execute(_UPSERT_SQL, (key, sqlite3.Binary(value), None))
        return True

    def forget(self, key: str) -> bool:
        with self._connect() as db:
            cursor = db.execute("DELETE FROM cache WHERE key = ?;", (key,))
        return cursor.rowcount > 0

    def flush(self) -> bool:
        with self._connect() as db:
            db.execute("DELETE FROM cache;")
        logger.info("cache_db_flushed", path=str(self._db_path))
        return True

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        if not self._initialized:
            self.initialize()
        conn = sqlite3.connect(str(self._db_path))
        try:
            with conn:
                yield conn
        finally:
            conn.close()
