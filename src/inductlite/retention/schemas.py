"""Pydantic schemas for retention statistics.

RetentionStatistics is returned by every RetentionReaper sweep and is what
the Celery task and maintenance scheduler log.
"""

from datetime import datetime

from pydantic import BaseModel, Field

# More deletions than this in a single sweep is treated as an alert condition
ANOMALY_THRESHOLD = 10000


class RetentionStatistics(BaseModel):
    """Statistics from a retention sweep.

    Tracks how many records were deleted per target and any errors
    encountered. Used for monitoring and alerting on reaper health.
    """

    job_started_at: datetime = Field(
        description="When the sweep started"
    )

    job_completed_at: datetime = Field(
        description="When the sweep completed"
    )

    duration_seconds: float = Field(
        ge=0.0,
        description="Sweep duration in seconds"
    )

    audit_logs_deleted: int = Field(
        default=0,
        ge=0,
        description="Audit log entries older than AUDIT_RETENTION_DAYS"
    )

    export_jobs_deleted: int = Field(
        default=0,
        ge=0,
        description="Expired export jobs removed (artifact and row)"
    )

    contractor_documents_deleted: int = Field(
        default=0,
        ge=0,
        description="Expired contractor documents removed (file and row)"
    )

    sign_in_records_deleted: int = Field(
        default=0,
        ge=0,
        description="Signed-out records past their company's retention period"
    )

    storage_errors: int = Field(
        default=0,
        ge=0,
        description="Number of object storage deletion errors"
    )

    database_errors: int = Field(
        default=0,
        ge=0,
        description="Number of database deletion errors"
    )

    companies_processed: int = Field(
        default=0,
        ge=0,
        description="Companies whose sign-in records were swept"
    )

    @property
    def total_records_deleted(self) -> int:
        """Total number of records deleted across all targets."""
        return (
            self.audit_logs_deleted +
            self.export_jobs_deleted +
            self.contractor_documents_deleted +
            self.sign_in_records_deleted
        )

    @property
    def has_errors(self) -> bool:
        """Whether any errors occurred during execution."""
        return self.storage_errors > 0 or self.database_errors > 0

    @property
    def is_anomaly(self) -> bool:
        """Whether deletion volume exceeds normal thresholds (alert condition)."""
        return self.total_records_deleted > ANOMALY_THRESHOLD
