"""Warehouse providers: credential wrappers for the BigQuery client."""

from src.providers.warehouse.cached_credentials import PoolCachedCredentials

__all__ = ["PoolCachedCredentials"]
