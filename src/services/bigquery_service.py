"""BigQuery service: client construction, queries and CSV loads with retries.

Application code talks to BigQuery through :class:`BigQueryService`:

    make_client           configured ``bigquery.Client`` with cached OAuth tokens
    prepare_data          wrap rows as ``{"data": row}`` records
    truncate              delete every row of a table
    handle_select_result  REST-shaped result -> list of ``{field: value}``
    run_query             run a query, retrying 403 (access denied) responses
    save_from_file        load a ``;``-delimited CSV and wait for the job

Retry behaviour
---------------
``run_query`` retries only ``403 Forbidden``.  BigQuery answers with 403
when a project exceeds its rate limits, so a fixed pause
(``bigquery_sleep_time_403``, default 10 s) followed by another attempt
usually succeeds.  The budget (default 5) counts retries, so up to six
calls are made.  Every attempt waits for the job result, so errors that
BigQuery reports on the finished job go through the same retry decision.
Any other error, or an exhausted budget, propagates.

``save_from_file`` polls the load job through :class:`ExponentialBackoff`
with 10 retries.  If the budget runs out first, the last
:class:`JobNotCompleteError` propagates.  A finished job carrying an error
result raises :class:`LoadJobError`.
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Sequence
from pathlib import Path
from pprint import pformat
from typing import Any, Callable

from google.api_core.exceptions import GoogleAPICallError
from google.cloud import bigquery
from google.oauth2 import service_account

from src.config.loader import guard_against_invalid_configuration
from src.config.settings import Settings
from src.interfaces.cache_store import ICacheStore
from src.models.warehouse import QueryState
from src.providers.cache.item_pool import CacheItemPool
from src.providers.warehouse.cached_credentials import PoolCachedCredentials
from src.utils.backoff import ExponentialBackoff
from src.utils.errors import JobNotCompleteError, LoadJobError
from src.utils.logging import get_logger

_BIGQUERY_SCOPES = ("https://www.googleapis.com/auth/bigquery",)
_FORBIDDEN = 403
_LOAD_JOB_RETRIES = 10
_CSV_DELIMITER = ";"
# Project ids that mean "use the configured default".
_UNSET_PROJECT_IDS = (None, "", "0")


class BigQueryService:
    """Runs queries and load jobs against BigQuery.

    Parameters
    ----------
    settings:
        Resolved bridge settings.
    auth_cache_store:
        Store that receives cached OAuth tokens.  One store is shared by
        every client this service creates.
    client_factory:
        Builds the client from keyword arguments; ``bigquery.Client`` by
        default.
    sleep:
        Sleep function used between retries; injectable for tests.
    """

    def __init__(
        self,
        settings: Settings,
        auth_cache_store: ICacheStore,
        client_factory: Callable[..., bigquery.Client] = bigquery.Client,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._settings = settings
        self._store = auth_cache_store
        self._client_factory = client_factory
        self._sleep = sleep
        self._logger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Client construction
    # ------------------------------------------------------------------

    def make_client(self, project_id: str | None = None) -> bigquery.Client:
        """Build a client for *project_id* (or the configured default project).

        Raises
        ------
        ConfigurationError
            If the service-account key file does not exist.
        """
        project = (
            self._settings.bigquery_project_id
            if project_id in _UNSET_PROJECT_IDS
            else project_id
        )
        guard_against_invalid_configuration(self._settings)

        inner = service_account.Credentials.from_service_account_file(
            self._settings.application_credentials,
            scopes=list(_BIGQUERY_SCOPES),
        )
        credentials = PoolCachedCredentials(
            inner,
            CacheItemPool(self._store),
            self._settings.bigquery_auth_cache_key,
        )

        options: dict[str, Any] = {
            "project": project,
            "credentials": credentials,
            **self._settings.bigquery_client_options,
        }
        self._logger.debug("bigquery_client_created", project=options["project"])
        return self._client_factory(**options)

    # ------------------------------------------------------------------
    # Result helpers
    # ------------------------------------------------------------------

    @staticmethod
    def prepare_data(rows: Iterable[Any]) -> list[dict[str, Any]]:
        """Wrap each row as ``{"data": row}``, the shape of a JSON-column insert."""
        return [{"data": row} for row in rows]

    @staticmethod
    def handle_select_result(data: dict[str, Any]) -> list[dict[str, Any]]:
        """Map a REST ``tabledata``/``getQueryResults`` payload to plain rows.

        ``{"schema": {"fields": [{"name": "id"}]}, "rows": [{"f": [{"v": "1"}]}]}``
        becomes ``[{"id": "1"}]``.  Missing or empty ``rows`` gives ``[]``.
        """
        rows = data.get("rows")
        if not rows:
            return []

        fields = [field["name"] for field in data["schema"]["fields"]]
        return [
            {fields[index]: cell["v"] for index, cell in enumerate(row["f"])}
            for row in rows
        ]

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def truncate(self, dataset: str, table: str, project_id: str | None = None) -> bool:
        """Delete every row of ``dataset.table``.

        Returns ``True`` once the DELETE job finished without an error result.
        A failed job raises from :meth:`run_query`.
        """
        client = self.make_client(project_id)
        job = self.run_query(f"DELETE FROM `{dataset}.{table}` WHERE 1=1", client)
        return bool(job.done()) and job.error_result is None

    def run_query(
        self,
        query: str,
        client: bigquery.Client,
        tries: int | None = None,
        job_config: bigquery.QueryJobConfig | None = None,
        wait_timeout: float | None = None,
    ) -> bigquery.QueryJob:
        """Run *query*, wait for it to finish and return its job.

        Errors reported on the finished job (``errorResult``) surface from
        ``job.result()`` as API errors, so a job-level 403 is retried exactly
        like a rejected insert call.

        Parameters
        ----------
        query:
            Standard SQL text.
        client:
            Client from :meth:`make_client`.
        tries:
            Retry budget for 403 responses; ``bigquery_query_tries`` if omitted.
        job_config:
            Optional query job configuration.
        wait_timeout:
            Seconds to wait for the job to finish; ``None`` waits until it
            does.

        Raises
        ------
        google.api_core.exceptions.GoogleAPICallError
            Any non-403 error, or a 403 once the budget is spent.
        concurrent.futures.TimeoutError
            If the job is still running after *wait_timeout* seconds.
        """
        remaining = self._settings.bigquery_query_tries if tries is None else tries
        attempt = 0

        while True:
            attempt += 1
            self._logger.debug("query_state", state=QueryState.RUNNING.value, attempt=attempt)
            try:
                job = client.query(query, job_config=job_config)
                # job_retry=None: 403 jobs are retried by this loop, not by the client.
                job.result(timeout=wait_timeout, job_retry=None)
            except GoogleAPICallError as exc:
                if remaining <= 0 or exc.code != _FORBIDDEN:
                    self._logger.error(
                        "query_state",
                        state=QueryState.FATAL_FAILURE.value,
                        attempt=attempt,
                        code=exc.code,
                        error=str(exc),
                    )
                    raise
                self._logger.warning(
                    "query_state",
                    state=QueryState.RETRYABLE_FAILURE.value,
                    attempt=attempt,
                    remaining=remaining,
                    backoff_s=self._settings.bigquery_sleep_time_403,
                )
                self._sleep(self._settings.bigquery_sleep_time_403)
                remaining -= 1
                continue

            self._logger.debug("query_state", state=QueryState.COMPLETED.value, attempt=attempt)
            return job

    # ------------------------------------------------------------------
    # Load jobs
    # ------------------------------------------------------------------

    def save_from_file(
        self,
        file: str | Path,
        table: str,
        fields: Sequence[str],
        dataset: str | None = None,
        project_id: str | None = None,
    ) -> bigquery.LoadJob:
        """Load a ``;``-delimited CSV into *table* and wait for the job.

        The load schema is the table's own schema restricted to *fields*,
        matched case-insensitively and kept in the order of *fields* (the
        CSV column order).

        Raises
        ------
        LoadJobError
            If a field is not in the table, or the job ends with an error.
        JobNotCompleteError
            If the job is still running after the last poll.
        """
        dataset = dataset or self._settings.bigquery_dataset
        client = self.make_client(project_id)
        table_id = f"{client.project}.{dataset}.{table}"

        table_schema = {field.name.lower(): field for field in client.get_table(table_id).schema}
        unknown = [name for name in fields if name.lower() not in table_schema]
        if unknown:
            raise LoadJobError(f"Fields not found in {table_id}: {', '.join(unknown)}")

        job_config = bigquery.LoadJobConfig(
            source_format=bigquery.SourceFormat.CSV,
            field_delimiter=_CSV_DELIMITER,
            schema=[table_schema[name.lower()] for name in fields],
        )

        with open(file, "rb") as source:
            job = client.load_table_from_file(source, table_id, job_config=job_config)
        self._logger.info("load_job_started", table=table_id, job_id=job.job_id, file=str(file))

        def _poll() -> None:
            job.reload()
            if not job.done(reload=False):
                raise JobNotCompleteError()

        ExponentialBackoff(retries=_LOAD_JOB_RETRIES, sleep=self._sleep).execute(_poll)

        if job.error_result:
            raise LoadJobError(
                f"Error during saving to BQ\n{pformat(self._job_metadata(job))}"
            )

        self._logger.info("load_job_completed", table=table_id, job_id=job.job_id)
        return job

    @staticmethod
    def _job_metadata(job: bigquery.LoadJob) -> dict[str, Any]:
        return {
            "job_id": job.job_id,
            "state": job.state,
            "error_result": job.error_result,
            "errors": job.errors,
            "output_rows": job.output_rows,
        }
