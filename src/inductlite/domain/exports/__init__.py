"""Exports domain module - job lifecycle, failure taxonomy, ports"""

from .job_status import (
    ExportStatus,
    ExportType,
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    can_transition,
    is_terminal,
    source_statuses,
)
from .errors import (
    ExportError,
    AuthorizationDenied,
    GuardrailExceeded,
    TransientSkip,
    StorageError,
    RepositoryError,
    JobLeaseLost,
)

__all__ = [
    "ExportStatus",
    "ExportType",
    "ALLOWED_TRANSITIONS",
    "TERMINAL_STATUSES",
    "can_transition",
    "is_terminal",
    "source_statuses",
    "ExportError",
    "AuthorizationDenied",
    "GuardrailExceeded",
    "TransientSkip",
    "StorageError",
    "RepositoryError",
    "JobLeaseLost",
]
