"""Configuration module - exports Settings and the YAML loader helpers."""

from src.config.loader import (
    guard_against_invalid_configuration,
    load_config,
    load_settings,
    publish_config,
)
from src.config.settings import Settings

__all__ = [
    "Settings",
    "guard_against_invalid_configuration",
    "load_config",
    "load_settings",
    "publish_config",
]
