"""Utility modules for the BigQuery bridge.

- **backoff** -- exponential backoff helper used to poll load jobs.
- **errors** -- exception hierarchy rooted at BridgeError.
- **lifetime** -- expiration-to-lifetime conversion for cache stores that
  count in seconds or (legacy) minutes.
- **logging** -- structlog setup with console/JSON renderers.
"""

from src.utils.backoff import ExponentialBackoff
from src.utils.errors import (
    BridgeError,
    ConfigurationError,
    InvalidArgumentError,
    InvalidCacheKeyError,
    JobNotCompleteError,
    LoadJobError,
    WarehouseError,
)
from src.utils.lifetime import LifetimeConverter, LifetimeUnit
from src.utils.logging import configure_logging, get_logger

__all__ = [
    "BridgeError",
    "ConfigurationError",
    "ExponentialBackoff",
    "InvalidArgumentError",
    "InvalidCacheKeyError",
    "JobNotCompleteError",
    "LifetimeConverter",
    "LifetimeUnit",
    "LoadJobError",
    "WarehouseError",
    "configure_logging",
    "get_logger",
]
