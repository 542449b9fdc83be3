"""Observability module: structured logging, request correlation, metrics."""

from .logging_config import configure_logging
from .request_id import request_id_var, get_request_id, set_request_id, generate_request_id
from .metrics import (
    export_jobs_processed_total,
    export_jobs_requeued_total,
    export_generation_seconds,
    retention_records_deleted_total,
    retention_errors_total,
)

__all__ = [
    "configure_logging",
    "request_id_var",
    "get_request_id",
    "set_request_id",
    "generate_request_id",
    "export_jobs_processed_total",
    "export_jobs_requeued_total",
    "export_generation_seconds",
    "retention_records_deleted_total",
    "retention_errors_total",
]
