"""Prometheus metrics for the export queue and retention reaper."""

from prometheus_client import Counter, Histogram

export_jobs_processed_total = Counter(
    "inductlite_export_jobs_processed_total",
    "Export jobs that reached an outcome in the runner",
    ["export_type", "outcome"]  # outcome: succeeded|failed|retry|denied
)

export_jobs_requeued_total = Counter(
    "inductlite_export_jobs_requeued_total",
    "Export jobs returned to QUEUED without a counted attempt",
    ["reason"]  # reason: company_concurrency|offpeak|stale
)

export_generation_seconds = Histogram(
    "inductlite_export_generation_seconds",
    "Wall-clock time spent generating export content",
    ["export_type"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0]
)

retention_records_deleted_total = Counter(
    "inductlite_retention_records_deleted_total",
    "Records removed by the retention reaper",
    ["target"]  # target: audit_log|export_job|contractor_document|sign_in_record
)

retention_errors_total = Counter(
    "inductlite_retention_errors_total",
    "Per-item failures during retention sweeps",
    ["target", "phase"]  # phase: storage|database
)
