"""Unit tests for BigQueryService.

Every test runs against a fake client (``MagicMock``) and a recording sleep
function, so no network calls or real waits happen.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from google.api_core.exceptions import BadRequest, Forbidden, NotFound
from google.cloud import bigquery

from src.providers.cache.memory_store import MemoryCacheStore
from src.providers.warehouse.cached_credentials import PoolCachedCredentials
from src.services.bigquery_service import BigQueryService
from src.utils.errors import ConfigurationError, JobNotCompleteError, LoadJobError

_LOADER = "src.services.bigquery_service.service_account.Credentials.from_service_account_file"


@pytest.fixture(autouse=True)
def fake_service_account():
    with patch(_LOADER) as loader:
        loader.return_value = MagicMock(name="service_account_credentials")
        yield loader


@pytest.fixture()
def sleeps() -> list[float]:
    return []


@pytest.fixture()
def client() -> MagicMock:
    fake = MagicMock(name="bigquery_client")
    fake.project = "default-project"
    return fake


@pytest.fixture()
def client_factory(client: MagicMock) -> MagicMock:
    return MagicMock(return_value=client)


@pytest.fixture()
def service(settings, client_factory, sleeps) -> BigQueryService:
    return BigQueryService(
        settings,
        MemoryCacheStore(),
        client_factory=client_factory,
        sleep=sleeps.append,
    )


# ======================================================================
# make_client
# ======================================================================


class TestMakeClient:
    @pytest.mark.parametrize("project_id", [None, "", "0"])
    def test_falls_back_to_configured_project(self, service, client_factory, project_id) -> None:
        service.make_client(project_id)
        assert client_factory.call_args.kwargs["project"] == "default-project"

    def test_explicit_project(self, service, client_factory) -> None:
        service.make_client("other-project")
        assert client_factory.call_args.kwargs["project"] == "other-project"

    def test_credentials_cache_tokens_in_pool(
        self, service, client_factory, fake_service_account, settings
    ) -> None:
        service.make_client()

        credentials = client_factory.call_args.kwargs["credentials"]
        assert isinstance(credentials, PoolCachedCredentials)
        assert credentials.inner is fake_service_account.return_value
        fake_service_account.assert_called_once_with(
            settings.application_credentials,
            scopes=["https://www.googleapis.com/auth/bigquery"],
        )

    def test_client_options_are_merged_last(
        self, settings_factory, credentials_file, client_factory, sleeps
    ) -> None:
        settings = settings_factory(
            application_credentials=str(credentials_file),
            bigquery_client_options={"location": "EU", "project": "forced"},
        )
        service = BigQueryService(
            settings, MemoryCacheStore(), client_factory=client_factory, sleep=sleeps.append
        )

        service.make_client("ignored")

        kwargs = client_factory.call_args.kwargs
        assert kwargs["location"] == "EU"
        assert kwargs["project"] == "forced"

    def test_missing_credentials_file(self, settings_factory, tmp_path, client_factory) -> None:
        missing = tmp_path / "nope.json"
        service = BigQueryService(
            settings_factory(application_credentials=str(missing)),
            MemoryCacheStore(),
            client_factory=client_factory,
        )

        with pytest.raises(ConfigurationError, match="Could not find a credentials file"):
            service.make_client()
        client_factory.assert_not_called()


# ======================================================================
# Result helpers
# ======================================================================


class TestResultHelpers:
    def test_prepare_data_wraps_rows(self) -> None:
        rows = [{"id": 1}, {"id": 2}]
        assert BigQueryService.prepare_data(rows) == [{"data": {"id": 1}}, {"data": {"id": 2}}]

    def test_prepare_data_empty(self) -> None:
        assert BigQueryService.prepare_data([]) == []

    def test_handle_select_result_maps_fields(self) -> None:
        data = {
            "schema": {"fields": [{"name": "id"}, {"name": "name"}]},
            "rows": [
                {"f": [{"v": "1"}, {"v": "alpha"}]},
                {"f": [{"v": "2"}, {"v": None}]},
            ],
        }
        assert BigQueryService.handle_select_result(data) == [
            {"id": "1", "name": "alpha"},
            {"id": "2", "name": None},
        ]

    @pytest.mark.parametrize("data", [{}, {"rows": []}, {"rows": None, "schema": {"fields": []}}])
    def test_handle_select_result_without_rows(self, data) -> None:
        assert BigQueryService.handle_select_result(data) == []


# ======================================================================
# run_query
# ======================================================================


class TestRunQuery:
    def test_success_on_first_attempt(self, service, client, sleeps) -> None:
        job = MagicMock(name="job")
        client.query.return_value = job

        assert service.run_query("SELECT 1", client) is job
        client.query.assert_called_once_with("SELECT 1", job_config=None)
        assert sleeps == []

    def test_forbidden_retried_until_success(self, service, client, sleeps) -> None:
        job = MagicMock(name="job")
        client.query.side_effect = [
            Forbidden("rate limited"),
            Forbidden("rate limited"),
            Forbidden("rate limited"),
            job,
        ]

        assert service.run_query("SELECT 1", client, tries=5) is job
        assert client.query.call_count == 4
        assert sleeps == [10.0, 10.0, 10.0]

    def test_configured_back_off(self, settings_factory, credentials_file, client, sleeps) -> None:
        service = BigQueryService(
            settings_factory(
                application_credentials=str(credentials_file),
                bigquery_sleep_time_403=2.5,
            ),
            MemoryCacheStore(),
            sleep=sleeps.append,
        )
        client.query.side_effect = [Forbidden("rate limited"), MagicMock()]

        service.run_query("SELECT 1", client)
        assert sleeps == [2.5]

    def test_budget_exhausted_raises(self, service, client, sleeps) -> None:
        client.query.side_effect = Forbidden("still rate limited")

        with pytest.raises(Forbidden):
            service.run_query("SELECT 1", client, tries=2)
        assert client.query.call_count == 3
        assert len(sleeps) == 2

    def test_default_budget_is_five_retries(self, service, client, sleeps) -> None:
        client.query.side_effect = Forbidden("still rate limited")

        with pytest.raises(Forbidden):
            service.run_query("SELECT 1", client)
        assert client.query.call_count == 6
        assert len(sleeps) == 5

    @pytest.mark.parametrize("error", [NotFound("no table"), BadRequest("bad sql")])
    def test_other_errors_are_fatal(self, service, client, sleeps, error) -> None:
        client.query.side_effect = error

        with pytest.raises(type(error)):
            service.run_query("SELECT 1", client)
        client.query.assert_called_once()
        assert sleeps == []

    def test_non_api_errors_propagate(self, service, client, sleeps) -> None:
        client.query.side_effect = RuntimeError("socket closed")

        with pytest.raises(RuntimeError):
            service.run_query("SELECT 1", client)
        assert sleeps == []

    def test_waits_for_job_result(self, service, client) -> None:
        job = MagicMock(name="job")
        client.query.return_value = job

        service.run_query("SELECT 1", client, wait_timeout=30)
        job.result.assert_called_once_with(timeout=30, job_retry=None)

    def test_waits_without_limit_by_default(self, service, client) -> None:
        service.run_query("SELECT 1", client)
        client.query.return_value.result.assert_called_once_with(timeout=None, job_retry=None)

    def test_job_level_forbidden_is_retried(self, service, client, sleeps) -> None:
        failed = MagicMock(name="rate_limited_job")
        failed.result.side_effect = Forbidden("Exceeded rate limits")
        succeeded = MagicMock(name="job")
        client.query.side_effect = [failed, succeeded]

        assert service.run_query("SELECT 1", client) is succeeded
        assert client.query.call_count == 2
        assert sleeps == [10.0]

    def test_job_error_result_is_fatal(self, service, client, sleeps) -> None:
        job = MagicMock(name="job")
        job.result.side_effect = NotFound("Not found: Table p:raw.events")
        client.query.return_value = job

        with pytest.raises(NotFound):
            service.run_query("SELECT 1", client)
        client.query.assert_called_once()
        assert sleeps == []

    def test_passes_job_config(self, service, client) -> None:
        config = bigquery.QueryJobConfig(use_legacy_sql=False)
        service.run_query("SELECT 1", client, job_config=config)
        client.query.assert_called_once_with("SELECT 1", job_config=config)


# ======================================================================
# truncate
# ======================================================================


class TestTruncate:
    def test_runs_delete_and_reports_done(self, service, client) -> None:
        client.query.return_value.done.return_value = True
        client.query.return_value.error_result = None

        assert service.truncate("raw", "events") is True
        client.query.assert_called_once_with("DELETE FROM `raw.events` WHERE 1=1", job_config=None)

    def test_reports_not_done(self, service, client) -> None:
        client.query.return_value.done.return_value = False
        client.query.return_value.error_result = None
        assert service.truncate("raw", "events") is False

    def test_failed_delete_raises(self, service, client) -> None:
        job = client.query.return_value
        job.result.side_effect = NotFound("Not found: Table p:raw.events")

        with pytest.raises(NotFound):
            service.truncate("raw", "events")

    def test_error_result_is_not_success(self, service, client) -> None:
        job = client.query.return_value
        job.done.return_value = True
        job.error_result = {"reason": "notFound", "message": "Not found: Table p:raw.events"}

        assert service.truncate("raw", "events") is False

    def test_uses_given_project(self, service, client_factory, client) -> None:
        service.truncate("raw", "events", project_id="other")
        assert client_factory.call_args.kwargs["project"] == "other"


# ======================================================================
# save_from_file
# ======================================================================


class TestSaveFromFile:
    @pytest.fixture()
    def csv_file(self, tmp_path: Path) -> Path:
        path = tmp_path / "rows.csv"
        path.write_text("alpha;1\nbeta;2\n")
        return path

    @pytest.fixture()
    def load_job(self, client: MagicMock) -> MagicMock:
        job = MagicMock(name="load_job")
        job.job_id = "job-123"
        job.error_result = None
        job.done.side_effect = [False, True]
        client.load_table_from_file.return_value = job
        client.get_table.return_value.schema = [
            bigquery.SchemaField("ID", "INTEGER"),
            bigquery.SchemaField("Name", "STRING"),
            bigquery.SchemaField("created_at", "TIMESTAMP"),
        ]
        return job

    def test_loads_with_matching_schema(self, service, client, csv_file, load_job, sleeps) -> None:
        assert service.save_from_file(csv_file, "events", ["name", "id"]) is load_job

        client.get_table.assert_called_once_with("default-project.analytics.events")
        args, kwargs = client.load_table_from_file.call_args
        assert args[1] == "default-project.analytics.events"
        job_config = kwargs["job_config"]
        assert [field.name for field in job_config.schema] == ["Name", "ID"]
        assert job_config.field_delimiter == ";"
        assert job_config.source_format == bigquery.SourceFormat.CSV
        assert load_job.reload.call_count == 2
        assert len(sleeps) == 1

    def test_explicit_dataset(self, service, client, csv_file, load_job) -> None:
        service.save_from_file(csv_file, "events", ["id"], dataset="staging")
        client.get_table.assert_called_once_with("default-project.staging.events")

    def test_unknown_field_rejected_before_upload(self, service, client, csv_file, load_job) -> None:
        with pytest.raises(LoadJobError, match="missing_column"):
            service.save_from_file(csv_file, "events", ["id", "missing_column"])
        client.load_table_from_file.assert_not_called()

    def test_error_result_raises(self, service, csv_file, load_job) -> None:
        load_job.error_result = {"reason": "invalid", "message": "Too many errors"}

        with pytest.raises(LoadJobError, match="Error during saving to BQ") as exc_info:
            service.save_from_file(csv_file, "events", ["id"])
        assert "Too many errors" in str(exc_info.value)
        assert "job-123" in str(exc_info.value)

    def test_job_never_completes(self, service, csv_file, load_job, sleeps) -> None:
        load_job.done.side_effect = None
        load_job.done.return_value = False

        with pytest.raises(JobNotCompleteError):
            service.save_from_file(csv_file, "events", ["id"])
        assert load_job.reload.call_count == 11
        assert len(sleeps) == 10

    def test_missing_file(self, service, tmp_path, load_job) -> None:
        with pytest.raises(FileNotFoundError):
            service.save_from_file(tmp_path / "absent.csv", "events", ["id"])
