"""Integration tests for the retention sweep against SQLite and local storage."""

from datetime import timedelta
from pathlib import Path

import pytest
from sqlalchemy import func, select

from inductlite.audit.service import log_audit_event
from inductlite.database import get_db_session
from inductlite.domain.exports.job_status import ExportStatus
from inductlite.guardrails import GuardrailConfig
from inductlite.infrastructure.repositories import (
    SqlAlchemyExportJobStore,
    SqlAlchemyRetentionRepository,
)
from inductlite.infrastructure.storage import LocalStorageAdapter
from inductlite.models import AuditLog, ContractorDocument, ExportJob, InductionResponse, SignInRecord
from inductlite.retention import RetentionReaper

from conftest import NOW


@pytest.fixture
def storage(tmp_path):
    return LocalStorageAdapter(tmp_path)


@pytest.fixture
def reaper(session_factory, storage):
    return RetentionReaper(
        retention_store=SqlAlchemyRetentionRepository(session_factory),
        export_store=SqlAlchemyExportJobStore(session_factory),
        storage=storage,
        config=GuardrailConfig(AUDIT_RETENTION_DAYS=90),
    )


def count(session_factory, model, *where):
    with get_db_session(session_factory) as session:
        return session.scalar(select(func.count()).select_from(model).where(*where))


class TestAuditPurge:

    @pytest.mark.asyncio
    async def test_purges_entries_older_than_retention(self, reaper, session_factory, company):
        with get_db_session(session_factory) as session:
            old = log_audit_event(session, company.id, "export.completed")
            old.created_at = NOW - timedelta(days=91)
            recent = log_audit_event(session, company.id, "export.completed")
            recent.created_at = NOW - timedelta(days=89)

        stats = await reaper.run(NOW)

        assert stats.audit_logs_deleted == 1
        assert count(session_factory, AuditLog) == 1


class TestExportArtifacts:

    @pytest.mark.asyncio
    async def test_expired_artifact_and_row_removed(self, reaper, storage, session_factory, company, make_export_job):
        written = await storage.write(company.id, "old.csv", "id\n1\n")
        expired = make_export_job(
            company.id,
            status=ExportStatus.SUCCEEDED,
            expires_at=NOW - timedelta(days=1),
            file_path=written.path,
        )
        kept = make_export_job(company.id, status=ExportStatus.SUCCEEDED, expires_at=NOW + timedelta(days=1))

        stats = await reaper.run(NOW)

        assert stats.export_jobs_deleted == 1
        assert not Path(written.path).exists()
        assert count(session_factory, ExportJob, ExportJob.id == expired.id) == 0
        assert count(session_factory, ExportJob, ExportJob.id == kept.id) == 1

    @pytest.mark.asyncio
    async def test_already_missing_file_still_removes_row(self, reaper, tmp_path, session_factory, company, make_export_job):
        make_export_job(
            company.id,
            status=ExportStatus.FAILED,
            expires_at=NOW - timedelta(days=1),
            file_path=str(tmp_path / "exports" / "gone.csv"),
        )

        stats = await reaper.run(NOW)

        assert stats.export_jobs_deleted == 1
        assert not stats.has_errors


class TestContractorDocuments:

    @pytest.mark.asyncio
    async def test_expired_documents_removed(self, reaper, tmp_path, session_factory, company, make_contractor_document):
        expired_file = tmp_path / "doc-old.pdf"
        expired_file.write_bytes(b"%PDF")
        make_contractor_document(company.id, str(expired_file), expires_at=NOW - timedelta(days=1))
        make_contractor_document(company.id, str(tmp_path / "doc-new.pdf"), expires_at=NOW + timedelta(days=10))
        make_contractor_document(company.id, str(tmp_path / "doc-none.pdf"), expires_at=None)

        stats = await reaper.run(NOW)

        assert stats.contractor_documents_deleted == 1
        assert not expired_file.exists()
        assert count(session_factory, ContractorDocument) == 2


class TestSignInRecords:

    @pytest.mark.asyncio
    async def test_company_retention_days(
        self, reaper, session_factory, make_company, make_site, make_sign_in
    ):
        short = make_company("short-retention", retention_days=30)
        unset = make_company("unset-retention", retention_days=0)
        for company in (short, unset):
            site = make_site(company.id)
            make_sign_in(company.id, site.id, visitor_name="100 days", sign_out_ts=NOW - timedelta(days=100))
            make_sign_in(company.id, site.id, visitor_name="400 days", sign_out_ts=NOW - timedelta(days=400))
            make_sign_in(company.id, site.id, visitor_name="10 days", sign_out_ts=NOW - timedelta(days=10))

        stats = await reaper.run(NOW)

        assert count(session_factory, SignInRecord, SignInRecord.company_id == short.id) == 1
        assert count(session_factory, SignInRecord, SignInRecord.company_id == unset.id) == 2
        assert stats.sign_in_records_deleted == 3
        assert stats.companies_processed == 2

    @pytest.mark.asyncio
    async def test_visitors_still_on_site_are_kept(self, reaper, session_factory, make_company, make_site, make_sign_in):
        company = make_company("on-site", retention_days=1)
        site = make_site(company.id)
        make_sign_in(company.id, site.id, sign_in_ts=NOW - timedelta(days=800), sign_out_ts=None)

        await reaper.run(NOW)

        assert count(session_factory, SignInRecord) == 1

    @pytest.mark.asyncio
    async def test_induction_responses_removed_with_record(
        self, reaper, session_factory, make_company, make_site, make_sign_in
    ):
        company = make_company("cascade", retention_days=30)
        site = make_site(company.id)
        record = make_sign_in(company.id, site.id, sign_out_ts=NOW - timedelta(days=60))
        with get_db_session(session_factory) as session:
            session.add(InductionResponse(sign_in_record_id=record.id, template_id="t", template_version=1))

        await reaper.run(NOW)

        assert count(session_factory, InductionResponse) == 0

    @pytest.mark.asyncio
    async def test_sweep_is_idempotent(self, reaper, make_company, make_site, make_sign_in):
        company = make_company("idempotent", retention_days=30)
        site = make_site(company.id)
        make_sign_in(company.id, site.id, sign_out_ts=NOW - timedelta(days=31))

        first = await reaper.run(NOW)
        second = await reaper.run(NOW)

        assert first.sign_in_records_deleted == 1
        assert second.total_records_deleted == 0


class TestMultiTenantBatches:

    @pytest.mark.asyncio
    async def test_every_company_gets_its_own_batch(
        self, session_factory, storage, make_company, make_export_job, make_contractor_document, tmp_path
    ):
        reaper = RetentionReaper(
            retention_store=SqlAlchemyRetentionRepository(session_factory),
            export_store=SqlAlchemyExportJobStore(session_factory),
            storage=storage,
            config=GuardrailConfig(),
            batch_size=5,
        )
        companies = [make_company(f"tenant-{n}") for n in range(3)]
        for company in companies:
            for days in range(1, 8):
                make_export_job(company.id, status=ExportStatus.SUCCEEDED, expires_at=NOW - timedelta(days=days))
            for n in range(6):
                make_contractor_document(company.id, str(tmp_path / f"{company.slug}-{n}.pdf"), expires_at=NOW - timedelta(days=1))

        first = await reaper.run(NOW)

        assert first.export_jobs_deleted == 15
        assert first.contractor_documents_deleted == 15
        for company in companies:
            assert count(session_factory, ExportJob, ExportJob.company_id == company.id) == 2

        second = await reaper.run(NOW)

        assert second.export_jobs_deleted == 6
        assert second.contractor_documents_deleted == 3
        assert count(session_factory, ExportJob) == 0
        assert count(session_factory, ContractorDocument) == 0
