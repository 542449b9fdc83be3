"""Unit tests for RetentionReaper and RetentionStatistics.

Stores and storage are AsyncMock ports; database behaviour is covered by
tests/integration/test_retention_sweep.py.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from inductlite.domain.exports.job_status import ExportStatus, ExportType
from inductlite.domain.exports.ports import ExportJobRecord, ExportJobStorePort
from inductlite.domain.retention.ports import CompanyRetention, ExpiredDocument, RetentionStorePort
from inductlite.domain.storage.ports import StorageBackendPort
from inductlite.domain.exports.errors import StorageError
from inductlite.guardrails import GuardrailConfig
from inductlite.retention import RetentionReaper, RetentionStatistics, sign_in_cutoff

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def expired_job(job_id: str, file_path="/data/exports/c1/job.csv") -> ExportJobRecord:
    return ExportJobRecord(
        id=job_id,
        company_id="c1",
        export_type=ExportType.SIGN_IN_CSV,
        status=ExportStatus.SUCCEEDED,
        requested_by="u1",
        attempts=0,
        queued_at=NOW - timedelta(days=40),
        run_at=NOW - timedelta(days=40),
        expires_at=NOW - timedelta(days=10),
        file_path=file_path,
    )


@pytest.fixture
def retention_store():
    store = AsyncMock(spec=RetentionStorePort)
    store.purge_audit_logs.return_value = 0
    store.list_companies.return_value = [CompanyRetention(company_id="c1", retention_days=365)]
    store.purge_sign_in_records.return_value = 0
    store.list_expired_contractor_documents.return_value = []
    return store


@pytest.fixture
def export_store():
    store = AsyncMock(spec=ExportJobStorePort)
    store.list_expired.return_value = []
    return store


@pytest.fixture
def storage():
    return AsyncMock(spec=StorageBackendPort)


@pytest.fixture
def reaper(retention_store, export_store, storage):
    return RetentionReaper(retention_store, export_store, storage, GuardrailConfig())


class TestSignInCutoff:

    def test_company_retention_days(self):
        assert sign_in_cutoff(NOW, 30) == NOW - timedelta(days=30)

    @pytest.mark.parametrize("retention_days", [0, -5, None])
    def test_unset_retention_defaults_to_365(self, retention_days):
        assert sign_in_cutoff(NOW, retention_days) == NOW - timedelta(days=365)

    def test_thirty_day_and_unset_cutoffs_differ_by_335_days(self):
        assert sign_in_cutoff(NOW, 30) - sign_in_cutoff(NOW, 0) == timedelta(days=335)


class TestRetentionStatistics:

    def make(self, **counts):
        return RetentionStatistics(
            job_started_at=NOW, job_completed_at=NOW, duration_seconds=0.5, **counts
        )

    def test_total_records_deleted(self):
        stats = self.make(
            audit_logs_deleted=1,
            export_jobs_deleted=2,
            contractor_documents_deleted=3,
            sign_in_records_deleted=4,
        )
        assert stats.total_records_deleted == 10
        assert not stats.has_errors

    def test_has_errors(self):
        assert self.make(storage_errors=1).has_errors
        assert self.make(database_errors=1).has_errors

    def test_anomaly_threshold(self):
        assert not self.make(sign_in_records_deleted=10000).is_anomaly
        assert self.make(sign_in_records_deleted=10001).is_anomaly


class TestRetentionReaper:

    def test_concurrency_must_be_positive(self, retention_store, export_store, storage):
        with pytest.raises(ValueError):
            RetentionReaper(retention_store, export_store, storage, GuardrailConfig(), concurrency=0)

    @pytest.mark.asyncio
    async def test_audit_cutoff_uses_audit_retention_days(self, retention_store, export_store, storage):
        retention_store.purge_audit_logs.return_value = 7
        reaper = RetentionReaper(
            retention_store, export_store, storage, GuardrailConfig(AUDIT_RETENTION_DAYS=45)
        )

        stats = await reaper.run(NOW)

        retention_store.purge_audit_logs.assert_awaited_once_with(NOW - timedelta(days=45))
        assert stats.audit_logs_deleted == 7

    @pytest.mark.asyncio
    async def test_expired_exports_delete_file_then_row(self, reaper, export_store, storage):
        export_store.list_expired.return_value = [expired_job("j1"), expired_job("j2", file_path=None)]

        stats = await reaper.run(NOW)

        export_store.list_expired.assert_awaited_once_with("c1", NOW, 200)
        storage.delete.assert_awaited_once_with("/data/exports/c1/job.csv")
        assert {call.args for call in export_store.delete.await_args_list} == {("c1", "j1"), ("c1", "j2")}
        assert stats.export_jobs_deleted == 2

    @pytest.mark.asyncio
    async def test_storage_failure_keeps_row(self, reaper, export_store, storage, caplog):
        export_store.list_expired.return_value = [expired_job("j1"), expired_job("j2")]
        storage.delete.side_effect = [StorageError("AccessDenied"), None]

        stats = await reaper.run(NOW)

        assert export_store.delete.await_count == 1
        assert stats.export_jobs_deleted == 1
        assert stats.storage_errors == 1
        assert stats.has_errors
        assert "Export retention cleanup failed" in caplog.text

    @pytest.mark.asyncio
    async def test_row_failure_counted_as_database_error(self, reaper, export_store):
        export_store.list_expired.return_value = [expired_job("j1")]
        export_store.delete.side_effect = RuntimeError("deadlock")

        stats = await reaper.run(NOW)

        assert stats.export_jobs_deleted == 0
        assert stats.database_errors == 1

    @pytest.mark.asyncio
    async def test_expired_contractor_documents(self, reaper, retention_store, storage):
        retention_store.list_expired_contractor_documents.return_value = [
            ExpiredDocument(id="d1", company_id="c1", file_path="/docs/d1.pdf"),
            ExpiredDocument(id="d2", company_id="c1", file_path="/docs/d2.pdf"),
        ]
        storage.delete.side_effect = [None, StorageError("boom")]

        stats = await reaper.run(NOW)

        retention_store.delete_contractor_document.assert_awaited_once_with("c1", "d1")
        assert stats.contractor_documents_deleted == 1
        assert stats.storage_errors == 1

    @pytest.mark.asyncio
    async def test_sign_in_cutoff_per_company(self, reaper, retention_store):
        retention_store.list_companies.return_value = [
            CompanyRetention(company_id="short", retention_days=30),
            CompanyRetention(company_id="unset", retention_days=0),
        ]
        retention_store.purge_sign_in_records.return_value = 4

        stats = await reaper.run(NOW)

        cutoffs = {call.args[0]: call.args[1] for call in retention_store.purge_sign_in_records.await_args_list}
        assert cutoffs == {
            "short": NOW - timedelta(days=30),
            "unset": NOW - timedelta(days=365),
        }
        assert stats.sign_in_records_deleted == 8
        assert stats.companies_processed == 2

    @pytest.mark.asyncio
    async def test_failing_company_does_not_stop_others(self, reaper, retention_store):
        retention_store.list_companies.return_value = [
            CompanyRetention(company_id="broken", retention_days=30),
            CompanyRetention(company_id="fine", retention_days=30),
        ]

        async def purge(company_id, cutoff):
            if company_id == "broken":
                raise RuntimeError("lock timeout")
            return 2

        retention_store.purge_sign_in_records.side_effect = purge

        stats = await reaper.run(NOW)

        assert stats.sign_in_records_deleted == 2
        assert stats.companies_processed == 1
        assert stats.database_errors == 1

    @pytest.mark.asyncio
    async def test_failing_phase_does_not_stop_sweep(self, reaper, retention_store, export_store):
        retention_store.purge_audit_logs.side_effect = RuntimeError("audit table missing")
        export_store.list_expired.side_effect = RuntimeError("export table missing")
        retention_store.list_companies.return_value = [CompanyRetention(company_id="c1", retention_days=90)]
        retention_store.purge_sign_in_records.return_value = 1

        stats = await reaper.run(NOW)

        assert stats.database_errors == 2
        assert stats.sign_in_records_deleted == 1

    @pytest.mark.asyncio
    async def test_fan_out_respects_batch_and_concurrency(self, retention_store, export_store, storage):
        reaper = RetentionReaper(
            retention_store, export_store, storage, GuardrailConfig(), concurrency=2, batch_size=50
        )

        await reaper.run(NOW)

        export_store.list_expired.assert_awaited_once_with("c1", NOW, 50)
        retention_store.list_expired_contractor_documents.assert_awaited_once_with("c1", NOW, 50)

    @pytest.mark.asyncio
    async def test_second_run_finds_nothing(self, reaper, export_store):
        export_store.list_expired.side_effect = [[expired_job("j1")], []]

        first = await reaper.run(NOW)
        second = await reaper.run(NOW)

        assert first.export_jobs_deleted == 1
        assert second.total_records_deleted == 0

    @pytest.mark.asyncio
    async def test_expiry_batches_are_per_company(self, reaper, retention_store, export_store):
        retention_store.list_companies.return_value = [
            CompanyRetention(company_id=company_id, retention_days=365) for company_id in ("c1", "c2", "c3")
        ]

        async def list_expired(company_id, now, limit):
            return [expired_job(f"{company_id}-j{n}") for n in range(limit)]

        export_store.list_expired.side_effect = list_expired
        reaper.batch_size = 3

        stats = await reaper.run(NOW)

        listed = [call.args for call in export_store.list_expired.await_args_list]
        assert listed == [("c1", NOW, 3), ("c2", NOW, 3), ("c3", NOW, 3)]
        documents = [call.args[0] for call in retention_store.list_expired_contractor_documents.await_args_list]
        assert documents == ["c1", "c2", "c3"]
        assert stats.export_jobs_deleted == 9

    @pytest.mark.asyncio
    async def test_company_listing_failure_skips_tenant_phases(self, reaper, retention_store, export_store):
        retention_store.purge_audit_logs.return_value = 3
        retention_store.list_companies.side_effect = RuntimeError("company table locked")

        stats = await reaper.run(NOW)

        assert stats.audit_logs_deleted == 3
        assert stats.database_errors == 1
        export_store.list_expired.assert_not_awaited()
        retention_store.purge_sign_in_records.assert_not_awaited()
