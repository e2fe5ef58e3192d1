"""Application settings loaded from environment variables via pydantic-settings.

Values come from, in priority order:

  1. Environment variables, e.g. BIGQUERY_PROJECT_ID=my-project
  2. The .env file in the working directory
  3. The defaults below

Field ``bigquery_project_id`` maps to ``BIGQUERY_PROJECT_ID``.  Two fields
also accept the variable names Google tooling already uses:
``GOOGLE_APPLICATION_CREDENTIALS`` and ``GOOGLE_CLOUD_DATASET``.
``BIGQUERY_CLIENT_OPTIONS`` is parsed as JSON.
"""

from typing import Any

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.utils.lifetime import LifetimeUnit


class Settings(BaseSettings):
    """BigQuery bridge settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # === BigQuery ===
    bigquery_project_id: str = ""
    application_credentials: str = Field(
        default="",
        validation_alias=AliasChoices(
            "application_credentials",
            "bigquery_application_credentials",
            "google_application_credentials",
        ),
    )
    bigquery_dataset: str = Field(
        default="",
        validation_alias=AliasChoices("bigquery_dataset", "google_cloud_dataset"),
    )
    # Extra keyword arguments passed straight to bigquery.Client.
    bigquery_client_options: dict[str, Any] = Field(default_factory=dict)
    # Seconds to wait before retrying a query rejected with 403.
    bigquery_sleep_time_403: float = 10.0
    bigquery_query_tries: int = 5

    # === Auth token cache ===
    bigquery_auth_cache_store: str = "memory"
    bigquery_auth_cache_key: str = "bigquery_oauth_token"
    # "minutes" for stores that still use the legacy lifetime unit.
    cache_lifetime_unit: LifetimeUnit = LifetimeUnit.SECONDS
    cache_sqlite_path: str = "data/cache.db"
    cache_max_size: int = 1000

    # === App Config ===
    app_env: str = "development"
    log_level: str = "INFO"
