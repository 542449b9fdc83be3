"""SQLAlchemy adapters for the domain ports."""

from .export_job_repository import SqlAlchemyExportJobStore
from .user_repository import SqlAlchemyUserDirectory
from .audit_repository import SqlAlchemyAuditSink
from .retention_repository import SqlAlchemyRetentionRepository

__all__ = [
    "SqlAlchemyExportJobStore",
    "SqlAlchemyUserDirectory",
    "SqlAlchemyAuditSink",
    "SqlAlchemyRetentionRepository",
]
