"""Exponential backoff for polling long-running warehouse jobs.

The delay before attempt *n* is ``2 ** n`` seconds plus up to one second of
jitter, capped at 60 seconds.

``google.api_core.retry.Retry`` bounds its work by a total timeout; load-job
polling is bounded by a number of retries (10), so the loop is written out
here.

The callable is retried while it raises an exception accepted by
``should_retry``; once the retry budget is spent the last exception
propagates unchanged.
"""

from __future__ import annotations

import random
import time
from typing import Callable, TypeVar

import structlog

T = TypeVar("T")

_MAX_DELAY = 60.0

_logger = structlog.get_logger(logger_name=__name__)


def _retry_everything(_exc: Exception) -> bool:
    return True


class ExponentialBackoff:
    """Run a callable, retrying failures with exponentially growing sleeps.

    Parameters
    ----------
    retries:
        Maximum number of retries after the first attempt.
    should_retry:
        Predicate deciding whether an exception is retryable.  Defaults to
        retrying every ``Exception``.
    sleep:
        Sleep function; injectable for tests.
    """

    def __init__(
        self,
        retries: int = 3,
        should_retry: Callable[[Exception], bool] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._retries = retries
        self._should_retry = should_retry or _retry_everything
        self._sleep = sleep

    @staticmethod
    def calculate_delay(attempt: int) -> float:
        return min(2 ** attempt + random.random(), _MAX_DELAY)

    def execute(self, func: Callable[[], T]) -> T:
        attempt = 0
        while True:
            try:
                return func()
            except Exception as exc:
                if attempt >= self._retries or not self._should_retry(exc):
                    raise
                attempt += 1
                delay = self.calculate_delay(attempt)
                _logger.debug(
                    "backoff_retry",
                    attempt=attempt,
                    retries=self._retries,
                    delay_s=round(delay, 3),
                    error=str(exc),
                )
                self._sleep(delay)
