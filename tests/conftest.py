"""Shared pytest fixtures for the BigQuery bridge test suite."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone, tzinfo
from pathlib import Path
from typing import Any

import pytest

from src.config.settings import Settings
from src.providers.cache.item_pool import CacheItemPool
from src.providers.cache.memory_store import MemoryCacheStore
from src.utils.lifetime import LifetimeConverter, LifetimeUnit

FIXED_NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class MutableClock:
    """A clock whose "now" only moves when a test says so."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.current = now

    def __call__(self, tz: tzinfo | None = None) -> datetime:
        if tz is None:
            return self.current.astimezone().replace(tzinfo=None)
        return self.current.astimezone(tz)

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


class RecordingStore(MemoryCacheStore):
    """MemoryCacheStore that records every contract call.

    Methods listed in ``fail_on`` raise ``RuntimeError`` instead of running;
    ``fail_keys`` limits the failure to specific keys.
    """

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.calls: list[tuple[Any, ...]] = []
        self.fail_on: set[str] = set()
        self.fail_keys: set[str] = set()

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, *args))
        key = args[0] if args else None
        if name in self.fail_on and (not self.fail_keys or key in self.fail_keys):
            raise RuntimeError(f"{name} failed")

    def calls_named(self, name: str) -> list[tuple[Any, ...]]:
        return [call for call in self.calls if call[0] == name]

    def has(self, key: str) -> bool:
        self._record("has", key)
        return super().has(key)

    def get(self, key: str) -> bytes | None:
        self._record("get", key)
        return super().get(key)

    def put(self, key: str, value: bytes, lifetime: int | float) -> bool:
        self._record("put", key, lifetime)
        return super().put(key, value, lifetime)

    def forever(self, key: str, value: bytes) -> bool:
        self._record("forever", key)
        return super().forever(key, value)

    def forget(self, key: str) -> bool:
        self._record("forget", key)
        return super().forget(key)

    def flush(self) -> bool:
        self._record("flush")
        return super().flush()


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock()


@pytest.fixture
def store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def pool(store: RecordingStore, clock: MutableClock) -> CacheItemPool:
    return CacheItemPool(store, LifetimeConverter(LifetimeUnit.SECONDS, clock=clock))


@pytest.fixture
def credentials_file(tmp_path: Path) -> Path:
    """An (empty) service-account key file; loaders are patched in tests."""
    path = tmp_path / "service-account.json"
    path.write_text("{}")
    return path


def make_settings(**overrides: Any) -> Settings:
    """Build Settings isolated from the developer's .env file."""
    defaults: dict[str, Any] = {
        "bigquery_project_id": "default-project",
        "application_credentials": "",
        "bigquery_dataset": "analytics",
        "bigquery_client_options": {},
        "bigquery_sleep_time_403": 10.0,
        "bigquery_auth_cache_store": "memory",
        "app_env": "test",
    }
    defaults.update(overrides)
    return Settings(_env_file=None, **defaults)


@pytest.fixture
def settings(credentials_file: Path) -> Settings:
    return make_settings(application_credentials=str(credentials_file))


@pytest.fixture
def settings_factory():
    return make_settings


@pytest.fixture
def store_factory():
    return RecordingStore
