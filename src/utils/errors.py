"""Custom exception hierarchy for the BigQuery bridge.

All application exceptions inherit from :class:`BridgeError`, which carries
an optional ``provider_name`` so error handlers can identify which backend
(e.g. "bigquery", "sqlite") caused the failure.

    BridgeError  (base -- catch-all for any bridge error)
    +-- InvalidArgumentError     (malformed caller input, never retried)
    |   +-- InvalidCacheKeyError (cache key with reserved characters)
    +-- ConfigurationError       (startup / missing credentials)
    +-- WarehouseError           (warehouse job failures)
        +-- JobNotCompleteError  (job still running, retryable)
        +-- LoadJobError         (load job finished with an error result)

Remote API errors raised by ``google-cloud-bigquery`` are not wrapped; they
propagate as ``google.api_core.exceptions.GoogleAPICallError`` subclasses.
"""


class BridgeError(Exception):
    """Base exception for all bridge errors.

    The ``__str__`` method prefixes the provider name in brackets for
    structured log output, e.g. ``[bigquery] Load job failed``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Caller input errors
# ---------------------------------------------------------------------------

class InvalidArgumentError(BridgeError, ValueError):
    """Raised when a caller passes an argument the bridge cannot accept."""

    def __init__(
        self,
        message: str = "Invalid argument",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class InvalidCacheKeyError(InvalidArgumentError):
    """Raised when a cache key contains reserved characters."""

    def __init__(self, key: str, reserved: str) -> None:
        self._key = key
        super().__init__(
            message=f'Cache key "{key}" contains invalid characters: {reserved}',
        )

    @property
    def key(self) -> str:
        return self._key


# ---------------------------------------------------------------------------
# Configuration errors
# ---------------------------------------------------------------------------

class ConfigurationError(BridgeError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)

    @classmethod
    def credentials_file_missing(cls, path: str) -> "ConfigurationError":
        return cls(f"Could not find a credentials file at `{path}`.")


# ---------------------------------------------------------------------------
# Warehouse job errors
# ---------------------------------------------------------------------------

class WarehouseError(BridgeError):
    """Raised when a warehouse job cannot be completed."""

    def __init__(
        self,
        message: str = "Warehouse operation failed",
        provider_name: str | None = "bigquery",
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class JobNotCompleteError(WarehouseError):
    """Raised while polling a job that has not finished yet.

    The backoff helper treats this as retryable; if the retry budget runs
    out, the last instance propagates to the caller.
    """

    def __init__(
        self,
        message: str = "Job has not yet completed",
        provider_name: str | None = "bigquery",
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class LoadJobError(WarehouseError):
    """Raised when a load job is rejected or finishes with an error result."""

    def __init__(
        self,
        message: str = "Load job failed",
        provider_name: str | None = "bigquery",
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
