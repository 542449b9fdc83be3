"""SQLAlchemy implementation of AuditSinkPort."""

from typing import Any, Dict, Optional

from sqlalchemy.orm import Session, sessionmaker

from ...audit.service import log_audit_event
from ...database import run_in_session
from ...domain.exports.ports import AuditSinkPort
from ...observability.request_id import request_id_var


class SqlAlchemyAuditSink(AuditSinkPort):
    """Writes each audit entry in its own short transaction."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    async def record(
        self,
        company_id: str,
        action: str,
        *,
        user_id: Optional[str] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        # Captured here; the worker thread does not see this task's context
        request_id = request_id_var.get()

        def _record(session: Session) -> None:
            log_audit_event(
                session,
                company_id=company_id,
                action=action,
                user_id=user_id,
                entity_type=entity_type,
                entity_id=entity_id,
                details=details,
                request_id=request_id,
            )

        await run_in_session(self._session_factory, _record)
