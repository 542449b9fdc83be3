"""Export Job Store Port - persistence contract for the export queue.

The store is the only authoritative queue state; nothing is held in memory
across process restarts. claim_next_queued() is the single operation that
needs cross-process mutual exclusion and must be one conditional state
transition, never a read-then-write pair. The claim issues a lock_token; later
transitions pass it back so a worker whose job was recovered as stale
cannot overwrite the job.

Architecture: Hexagonal - Port interface in domain layer
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..job_status import ExportStatus, ExportType


@dataclass(frozen=True)
class ExportJobRecord:
    """Detached snapshot of an export job row."""
    id: str
    company_id: str
    export_type: ExportType
    status: ExportStatus
    requested_by: Optional[str]
    attempts: int
    queued_at: datetime
    run_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    lock_token: Optional[str] = None
    completed_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    file_path: Optional[str] = None
    file_name: Optional[str] = None
    file_size: Optional[int] = None
    error_message: Optional[str] = None
    parameters: Dict[str, Any] = field(default_factory=dict)


class ExportJobStorePort(ABC):
    """Port interface for export job persistence."""

    @abstractmethod
    async def enqueue(
        self,
        company_id: str,
        export_type: ExportType,
        requested_by: Optional[str],
        parameters: Optional[Dict[str, Any]] = None,
    ) -> ExportJobRecord:
        """Create a QUEUED job. Used by the (external) request path and tests."""
        pass

    @abstractmethod
    async def claim_next_queued(
        self,
        max_global_running: Optional[int] = None,
    ) -> Optional[ExportJobRecord]:
        """Atomically move the oldest claimable QUEUED job to RUNNING.

        Claimable means status QUEUED and run_at <= now. Oldest is by
        queued_at. Returns None if nothing was claimed, including when
        max_global_running jobs are already RUNNING.
        """
        pass

    @abstractmethod
    async def count_running(self, company_id: str) -> int:
        pass

    @abstractmethod
    async def count_running_global(self) -> int:
        pass

    @abstractmethod
    async def mark_succeeded(
        self,
        company_id: str,
        job_id: str,
        *,
        path: str,
        name: str,
        size: int,
        expires_at: Optional[datetime],
        lock_token: Optional[str] = None,
    ) -> None:
        """RUNNING → SUCCEEDED.

        Raises:
            JobLeaseLost: The job is not RUNNING under lock_token (when given)
        """
        pass

    @abstractmethod
    async def mark_failed(
        self,
        company_id: str,
        job_id: str,
        message: str,
        *,
        attempts: Optional[int] = None,
        lock_token: Optional[str] = None,
    ) -> None:
        """RUNNING → FAILED. attempts=None leaves the counter untouched.

        Raises:
            JobLeaseLost: The job is not RUNNING under lock_token (when given)
        """
        pass

    @abstractmethod
    async def requeue(
        self,
        company_id: str,
        job_id: str,
        delay_ms: int,
        *,
        attempts: Optional[int] = None,
        lock_token: Optional[str] = None,
    ) -> None:
        """RUNNING → QUEUED with run_at = now + delay_ms.

        Raises:
            JobLeaseLost: The job is not RUNNING under lock_token (when given)
        """
        pass

    @abstractmethod
    async def requeue_stale(self, timeout_ms: int, max_attempts: Optional[int] = None) -> int:
        """Recover RUNNING jobs started more than timeout_ms ago.

        Each recovery counts as an attempt. A job whose counted attempts
        reach max_attempts is marked FAILED instead of being requeued.

        Returns:
            Number of jobs moved out of RUNNING (requeued or failed)
        """
        pass

    @abstractmethod
    async def list_expired(self, company_id: str, now: datetime, limit: int) -> List[ExportJobRecord]:
        """The tenant's terminal jobs whose expires_at is before now, oldest expiry first."""
        pass

    @abstractmethod
    async def delete(self, company_id: str, job_id: str) -> None:
        pass
