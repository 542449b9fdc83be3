from .export_job_store_port import ExportJobRecord, ExportJobStorePort
from .content_generator_port import ContentGeneratorPort
from .collaborator_ports import AuditSinkPort, UserDirectoryPort, UserRecord

__all__ = [
    "ExportJobRecord",
    "ExportJobStorePort",
    "ContentGeneratorPort",
    "AuditSinkPort",
    "UserDirectoryPort",
    "UserRecord",
]
