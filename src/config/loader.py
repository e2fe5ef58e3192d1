"""YAML configuration loader with environment variable overrides.

Configuration is layered (later layers override earlier):

  1. src/config/bigquery.yaml  - packaged defaults
  2. config/bigquery.yaml      - the published, user-edited copy (if present)
  3. .env file / environment   - per-deployment overrides

``_deep_merge`` merges dictionaries recursively, so a published
``bigquery_client_options: {location: EU}`` survives an environment
override that only adds another client option.
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Any

import yaml

from src.config.settings import Settings
from src.utils.errors import ConfigurationError

DEFAULT_CONFIG_PATH = Path("config/bigquery.yaml")
PACKAGED_CONFIG_PATH = Path(__file__).resolve().parent / "bigquery.yaml"


def load_config(path: str | Path = DEFAULT_CONFIG_PATH) -> dict[str, Any]:
    """Load packaged + published YAML and merge explicitly-set environment values.

    Args:
        path: Path to the published YAML configuration file.

    Returns:
        Fully resolved configuration dictionary keyed by Settings field names.
    """
    config = _read_yaml(PACKAGED_CONFIG_PATH)
    _deep_merge(config, _read_yaml(Path(path)))

    # Only values that actually came from the environment or .env override
    # the YAML layers; Settings defaults must not.
    env_settings = Settings()
    env_overrides = env_settings.model_dump(include=env_settings.model_fields_set)

    _deep_merge(config, env_overrides)
    return config


def load_settings(path: str | Path = DEFAULT_CONFIG_PATH) -> Settings:
    """Return a Settings instance built from :func:`load_config`."""
    return Settings.model_validate(load_config(path))


def publish_config(target: str | Path = DEFAULT_CONFIG_PATH, force: bool = False) -> Path:
    """Copy the packaged default configuration to *target*.

    Raises:
        ConfigurationError: If *target* exists and *force* is not set.
    """
    target_path = Path(target)
    if target_path.exists() and not force:
        raise ConfigurationError(f"Configuration file already exists at `{target_path}`.")
    target_path.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(PACKAGED_CONFIG_PATH, target_path)
    return target_path


def guard_against_invalid_configuration(settings: Settings) -> None:
    """Fail fast when the service-account key file is not where settings say.

    Raises:
        ConfigurationError: If ``application_credentials`` is empty or missing.
    """
    path = settings.application_credentials
    if not path or not Path(path).is_file():
        raise ConfigurationError.credentials_file_missing(path)


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
