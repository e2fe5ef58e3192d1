"""Composition root for the BigQuery bridge.

Wires settings, the auth-token cache store and :class:`BigQueryService`
together.  Applications call :func:`bootstrap` once at startup and keep the
returned components; tests call :func:`build_all` with their own settings
and a fake client factory.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import structlog
from google.cloud import bigquery

from src.config.loader import (
    DEFAULT_CONFIG_PATH,
    guard_against_invalid_configuration,
    load_settings,
)
from src.config.settings import Settings
from src.interfaces.cache_store import ICacheStore
from src.providers.cache import build_cache_store
from src.services.bigquery_service import BigQueryService
from src.utils.logging import configure_logging, get_logger


def _build_auth_cache_store(app_settings: Settings) -> ICacheStore:
    """Resolve the store named by ``bigquery_auth_cache_store``."""
    return build_cache_store(
        app_settings.bigquery_auth_cache_store,
        lifetime_unit=app_settings.cache_lifetime_unit,
        sqlite_path=app_settings.cache_sqlite_path,
        max_size=app_settings.cache_max_size,
    )


def build_all(
    app_settings: Settings,
    client_factory: Callable[..., bigquery.Client] = bigquery.Client,
    sleep: Callable[[float], None] | None = None,
) -> dict[str, Any]:
    """Construct every component of the bridge.

    Returns a flat dict of named components.
    """
    store = _build_auth_cache_store(app_settings)

    service_kwargs: dict[str, Any] = {"client_factory": client_factory}
    if sleep is not None:
        service_kwargs["sleep"] = sleep

    return {
        "settings": app_settings,
        "auth_cache_store": store,
        "bigquery": BigQueryService(app_settings, store, **service_kwargs),
    }


def bootstrap(config_path: str | Path = DEFAULT_CONFIG_PATH) -> dict[str, Any]:
    """Load configuration, configure logging, validate and build the bridge.

    Raises
    ------
    ConfigurationError
        If the credentials file is missing or the cache store is unknown.
    """
    app_settings = load_settings(config_path)
    configure_logging(
        log_level=app_settings.log_level,
        json_output=(app_settings.app_env == "production"),
    )
    logger: structlog.BoundLogger = get_logger(__name__)

    guard_against_invalid_configuration(app_settings)
    components = build_all(app_settings)

    logger.info(
        "bridge_ready",
        project=app_settings.bigquery_project_id,
        auth_cache_store=app_settings.bigquery_auth_cache_store,
        lifetime_unit=app_settings.cache_lifetime_unit.value,
    )
    return components
