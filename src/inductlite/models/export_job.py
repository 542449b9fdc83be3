"""ExportJob model - one row per requested export.

Mutated only by the export runner; removed only by the retention reaper
once terminal and past expires_at.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, Text

from ..domain.exports.job_status import ExportStatus
from .base import Base, PortableJSONB, generate_id, utcnow


class ExportJob(Base):
    """Export job record.

    Attributes:
        id: Primary key
        company_id: Tenant owning the job
        export_type: ExportType value
        status: ExportStatus value
        parameters: Free-form JSON captured at enqueue time
        requested_by: User id re-checked at execution time
        attempts: Counted failures so far, including stale recoveries
        queued_at: Original enqueue time (claim order)
        run_at: Earliest time the job may be claimed (requeue delay)
        started_at: When the current RUNNING claim began
        lock_token: Random token identifying the current claim
        completed_at: When the job reached a terminal status
        expires_at: When the artifact (and row) become eligible for purge
        file_path/file_name/file_size: Stored artifact metadata
        error_message: Last failure message
    """

    __tablename__ = "export_job"

    id = Column(Text, primary_key=True, default=generate_id)
    company_id = Column(Text, ForeignKey("company.id", ondelete="RESTRICT"), nullable=False)
    export_type = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default=ExportStatus.QUEUED.value)
    parameters = Column(PortableJSONB, nullable=False, default=dict)
    requested_by = Column(Text, nullable=True)
    attempts = Column(Integer, nullable=False, default=0)
    queued_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    run_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    started_at = Column(DateTime(timezone=True), nullable=True)
    lock_token = Column(Text, nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    file_path = Column(Text, nullable=True)
    file_name = Column(Text, nullable=True)
    file_size = Column(Integer, nullable=True)
    error_message = Column(Text, nullable=True)

    __table_args__ = (
        Index("ix_export_job_status_run_at", "status", "run_at"),
        Index("ix_export_job_company_id_status_run_at", "company_id", "status", "run_at"),
    )

    def __repr__(self):
        return f"<ExportJob(id={self.id}, type={self.export_type}, status={self.status})>"
