"""Audit logging service for system events.

Background jobs write audit entries without an HTTP request, so the
request_id recorded is the correlation id of the running tick.

System Events:
- export.denied     (requester missing, inactive or lacking export:create)
- export.completed
- export.failed     (attempts exhausted)
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import delete
from sqlalchemy.orm import Session

from ..models.audit_log import AuditLog
from ..observability.request_id import request_id_var


def log_audit_event(
    db: Session,
    company_id: str,
    action: str,
    user_id: Optional[str] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    request_id: Optional[str] = None,
) -> AuditLog:
    """Create an audit log entry.

    This function does not validate action names or entity types.

    Args:
        db: Database session
        company_id: Tenant the event belongs to
        action: Event action (e.g., "export.denied")
        user_id: User involved (None for pure system events)
        entity_type: Type of entity affected (e.g., "exportJob")
        entity_id: ID of affected entity
        details: Additional context as JSON (e.g., {"reason": "permission_denied"})
        request_id: Correlation id; defaults to the current context's id

    Returns:
        AuditLog: The created audit log entry

    Example:
        log_audit_event(
            db=db,
            company_id=job.company_id,
            action="export.denied",
            user_id=job.requested_by,
            entity_type="exportJob",
            entity_id=job.id,
            details={"reason": "user_missing_or_inactive"},
        )
    """
    audit_entry = AuditLog(
        company_id=company_id,
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details,
        request_id=request_id if request_id is not None else request_id_var.get(),
    )

    db.add(audit_entry)
    db.flush()  # Get ID without committing transaction

    return audit_entry


def purge_old_audit_logs(db: Session, older_than: datetime) -> int:
    """Bulk-delete audit entries created before older_than across all tenants.

    Returns:
        Number of rows deleted
    """
    result = db.execute(
        delete(AuditLog)
        .where(AuditLog.created_at < older_than)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0
