"""SQLAlchemy Models for InductLite"""

from .base import Base, PortableJSONB
from .company import Company, DEFAULT_RETENTION_DAYS
from .user import User
from .audit_log import AuditLog
from .export_job import ExportJob
from .site import Site, SignInRecord, InductionResponse
from .contractor import Contractor, ContractorDocument

__all__ = [
    "Base",
    "PortableJSONB",
    "Company",
    "DEFAULT_RETENTION_DAYS",
    "User",
    "AuditLog",
    "ExportJob",
    "Site",
    "SignInRecord",
    "InductionResponse",
    "Contractor",
    "ContractorDocument",
]
