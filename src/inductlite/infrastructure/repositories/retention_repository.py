"""SQLAlchemy implementation of RetentionStorePort."""

from datetime import datetime
from typing import List

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, sessionmaker

from ...audit.service import purge_old_audit_logs
from ...database import run_in_session
from ...domain.retention.ports import CompanyRetention, ExpiredDocument, RetentionStorePort
from ...models.company import Company
from ...models.contractor import Contractor, ContractorDocument
from ...models.site import InductionResponse, SignInRecord


class SqlAlchemyRetentionRepository(RetentionStorePort):

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    async def purge_audit_logs(self, older_than: datetime) -> int:
        return await run_in_session(
            self._session_factory, lambda session: purge_old_audit_logs(session, older_than)
        )

    async def list_companies(self) -> List[CompanyRetention]:
        def _list(session: Session) -> List[CompanyRetention]:
            rows = session.execute(
                select(Company.id, Company.retention_days).order_by(Company.created_at)
            ).all()
            return [
                CompanyRetention(company_id=row.id, retention_days=row.retention_days or 0)
                for row in rows
            ]

        return await run_in_session(self._session_factory, _list)

    async def purge_sign_in_records(self, company_id: str, cutoff: datetime) -> int:
        expired = (
            SignInRecord.company_id == company_id,
            SignInRecord.sign_out_ts.is_not(None),
            SignInRecord.sign_out_ts < cutoff,
        )

        def _purge(session: Session) -> int:
            # Children first; SQLite does not enforce ON DELETE CASCADE by default
            session.execute(
                delete(InductionResponse)
                .where(InductionResponse.sign_in_record_id.in_(select(SignInRecord.id).where(*expired)))
                .execution_options(synchronize_session=False)
            )
            result = session.execute(
                delete(SignInRecord)
                .where(*expired)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount or 0

        return await run_in_session(self._session_factory, _purge)

    async def list_expired_contractor_documents(
        self, company_id: str, now: datetime, limit: int
    ) -> List[ExpiredDocument]:
        def _list(session: Session) -> List[ExpiredDocument]:
            rows = session.execute(
                select(ContractorDocument.id, ContractorDocument.file_path)
                .join(Contractor, Contractor.id == ContractorDocument.contractor_id)
                .where(
                    Contractor.company_id == company_id,
                    ContractorDocument.expires_at.is_not(None),
                    ContractorDocument.expires_at < now,
                )
                .order_by(ContractorDocument.expires_at.asc())
                .limit(limit)
            ).all()
            return [
                ExpiredDocument(id=row.id, company_id=company_id, file_path=row.file_path)
                for row in rows
            ]

        return await run_in_session(self._session_factory, _list)

    async def delete_contractor_document(self, company_id: str, document_id: str) -> None:
        owned_by_company = select(Contractor.id).where(Contractor.company_id == company_id)

        def _delete(session: Session) -> None:
            session.execute(
                delete(ContractorDocument)
                .where(
                    ContractorDocument.id == document_id,
                    ContractorDocument.contractor_id.in_(owned_by_company),
                )
                .execution_options(synchronize_session=False)
            )

        await run_in_session(self._session_factory, _delete)
