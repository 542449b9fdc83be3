"""Pytest fixtures shared by unit and integration tests.

Provides:
- File-backed SQLite engine with all tables created (fresh per test); a
  file rather than :memory: so sessions on worker threads get their own
  connections
- Session factory bound to that engine
- A company with ADMIN, SITE_MANAGER, VIEWER and inactive users
- Factories for export jobs, sign-in records and contractor documents

Usage:
    def test_claim(session_factory, company, make_export_job):
        job = make_export_job(company_id=company.id)
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from inductlite.database import build_engine, build_session_factory, create_all, get_db_session
from inductlite.domain.exports.job_status import ExportStatus, ExportType
from inductlite.guardrails import GuardrailConfig
from inductlite.models import (
    Company,
    Contractor,
    ContractorDocument,
    ExportJob,
    SignInRecord,
    Site,
    User,
)

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine(tmp_path_factory):
    database = tmp_path_factory.mktemp("db") / "inductlite.db"
    engine = build_engine(f"sqlite:///{database}")
    create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def guardrails():
    """Default guardrails, independent of the environment."""
    return GuardrailConfig()


def _add(session_factory, obj):
    with get_db_session(session_factory) as session:
        session.add(obj)
        session.flush()
        session.expunge(obj)
    return obj


@pytest.fixture
def make_company(session_factory):
    def _make(slug: str = "acme-build", retention_days: int = 365) -> Company:
        return _add(
            session_factory,
            Company(name=slug.replace("-", " ").title(), slug=slug, retention_days=retention_days),
        )
    return _make


@pytest.fixture
def company(make_company):
    return make_company()


@pytest.fixture
def make_user(session_factory):
    def _make(company_id: str, role: str = "ADMIN", is_active: bool = True, email: Optional[str] = None) -> User:
        return _add(
            session_factory,
            User(
                company_id=company_id,
                email=email or f"{role.lower()}-{os.urandom(4).hex()}@example.com",
                name=f"{role.title()} User",
                role=role,
                is_active=is_active,
            ),
        )
    return _make


@pytest.fixture
def admin_user(company, make_user):
    return make_user(company.id, "ADMIN")


@pytest.fixture
def viewer_user(company, make_user):
    return make_user(company.id, "VIEWER")


@pytest.fixture
def make_export_job(session_factory):
    def _make(
        company_id: str,
        requested_by: Optional[str] = None,
        export_type: ExportType = ExportType.SIGN_IN_CSV,
        status: ExportStatus = ExportStatus.QUEUED,
        queued_at: Optional[datetime] = None,
        run_at: Optional[datetime] = None,
        **fields,
    ) -> ExportJob:
        queued_at = queued_at or NOW - timedelta(minutes=1)
        return _add(
            session_factory,
            ExportJob(
                company_id=company_id,
                export_type=export_type.value,
                status=status.value,
                requested_by=requested_by,
                queued_at=queued_at,
                run_at=run_at or queued_at,
                **fields,
            ),
        )
    return _make


@pytest.fixture
def make_site(session_factory):
    def _make(company_id: str, name: str = "Main Yard") -> Site:
        return _add(session_factory, Site(company_id=company_id, name=name))
    return _make


@pytest.fixture
def make_sign_in(session_factory):
    def _make(
        company_id: str,
        site_id: str,
        visitor_name: str = "Jo Visitor",
        sign_in_ts: Optional[datetime] = None,
        sign_out_ts: Optional[datetime] = None,
        **fields,
    ) -> SignInRecord:
        return _add(
            session_factory,
            SignInRecord(
                company_id=company_id,
                site_id=site_id,
                visitor_name=visitor_name,
                visitor_phone=fields.pop("visitor_phone", "+64211234567"),
                sign_in_ts=sign_in_ts or NOW,
                sign_out_ts=sign_out_ts,
                **fields,
            ),
        )
    return _make


@pytest.fixture
def make_contractor_document(session_factory):
    def _make(company_id: str, file_path: str, expires_at: Optional[datetime] = None) -> ContractorDocument:
        contractor = _add(session_factory, Contractor(company_id=company_id, name="Sparky Ltd"))
        return _add(
            session_factory,
            ContractorDocument(
                contractor_id=contractor.id,
                document_type="INSURANCE",
                file_name="insurance.pdf",
                file_path=file_path,
                file_size=1024,
                mime_type="application/pdf",
                expires_at=expires_at,
            ),
        )
    return _make
