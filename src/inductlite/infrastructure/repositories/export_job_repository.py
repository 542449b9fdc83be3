"""SQLAlchemy implementation of ExportJobStorePort.

The claim is a single conditional UPDATE:

    UPDATE export_job SET status='RUNNING', started_at=:now, lock_token=:token
    WHERE id = (SELECT id FROM export_job
                WHERE status='QUEUED' AND run_at <= :now
                ORDER BY queued_at LIMIT 1 [FOR UPDATE SKIP LOCKED])
      AND status = 'QUEUED'
    RETURNING *

On PostgreSQL the row lock with SKIP LOCKED lets concurrent workers pick
different jobs; on every backend the trailing status predicate guarantees
that at most one caller wins a given row.

Every later transition is conditional on the job still being in a status
that may move to the target (see job_status.source_statuses) and, when the
caller passes it, on the lock_token issued by the claim. Stale recovery
clears the token, so a worker that outlived the stale timeout gets
JobLeaseLost instead of overwriting the job.

Session work runs on the default thread pool via run_in_session().
"""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session, aliased, sessionmaker

from ...database import run_in_session
from ...domain.exports.errors import JobLeaseLost
from ...domain.exports.job_status import (
    ExportStatus,
    ExportType,
    TERMINAL_STATUSES,
    source_statuses,
)
from ...domain.exports.ports import ExportJobRecord, ExportJobStorePort
from ...models.base import as_utc, utcnow
from ...models.export_job import ExportJob

logger = logging.getLogger(__name__)

_export_job_table = ExportJob.__table__

STALE_FAILURE_MESSAGE = "Export abandoned: worker stopped responding on every attempt"


def _row_values(job: ExportJob) -> Dict[str, Any]:
    return {column.key: getattr(job, column.key) for column in _export_job_table.c}


def _to_record(row) -> ExportJobRecord:
    """Build a detached snapshot from a row mapping."""
    get = row.get
    return ExportJobRecord(
        id=get("id"),
        company_id=get("company_id"),
        export_type=ExportType(get("export_type")),
        status=ExportStatus(get("status")),
        requested_by=get("requested_by"),
        attempts=get("attempts") or 0,
        queued_at=as_utc(get("queued_at")),
        run_at=as_utc(get("run_at")),
        started_at=as_utc(get("started_at")),
        lock_token=get("lock_token"),
        completed_at=as_utc(get("completed_at")),
        expires_at=as_utc(get("expires_at")),
        file_path=get("file_path"),
        file_name=get("file_name"),
        file_size=get("file_size"),
        error_message=get("error_message"),
        parameters=get("parameters") or {},
    )


def _new_lock_token() -> str:
    return uuid.uuid4().hex


class SqlAlchemyExportJobStore(ExportJobStorePort):
    """Export job persistence backed by the export_job table.

    Every method runs in its own short transaction; no session outlives a call.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._session_factory = session_factory
        self._clock = clock

    async def enqueue(
        self,
        company_id: str,
        export_type: ExportType,
        requested_by: Optional[str],
        parameters: Optional[Dict[str, Any]] = None,
    ) -> ExportJobRecord:
        now = self._clock()

        def _enqueue(session: Session) -> ExportJobRecord:
            job = ExportJob(
                company_id=company_id,
                export_type=ExportType(export_type).value,
                status=ExportStatus.QUEUED.value,
                parameters=parameters or {},
                requested_by=requested_by,
                attempts=0,
                queued_at=now,
                run_at=now,
            )
            session.add(job)
            session.flush()
            return _to_record(_row_values(job))

        return await run_in_session(self._session_factory, _enqueue)

    async def claim_next_queued(
        self,
        max_global_running: Optional[int] = None,
    ) -> Optional[ExportJobRecord]:
        now = self._clock()

        def _claim(session: Session) -> Optional[ExportJobRecord]:
            if max_global_running is not None:
                running = session.scalar(
                    select(func.count())
                    .select_from(ExportJob)
                    .where(ExportJob.status == ExportStatus.RUNNING.value)
                )
                if running >= max_global_running:
                    logger.debug(
                        "Global export concurrency reached, not claiming",
                        extra={"status": f"{running}/{max_global_running}"},
                    )
                    return None

            candidate = aliased(ExportJob, name="candidate")
            next_id = (
                select(candidate.id)
                .where(
                    candidate.status == ExportStatus.QUEUED.value,
                    candidate.run_at <= now,
                )
                .order_by(candidate.queued_at.asc(), candidate.id.asc())
                .limit(1)
            )
            if session.get_bind().dialect.name == "postgresql":
                next_id = next_id.with_for_update(skip_locked=True)

            stmt = (
                update(_export_job_table)
                .where(
                    _export_job_table.c.id == next_id.scalar_subquery(),
                    _export_job_table.c.status.in_(
                        [status.value for status in source_statuses(ExportStatus.RUNNING)]
                    ),
                )
                .values(
                    status=ExportStatus.RUNNING.value,
                    started_at=now,
                    lock_token=_new_lock_token(),
                )
                .returning(*_export_job_table.c)
            )
            row = session.execute(stmt).mappings().first()
            if row is None:
                return None
            return _to_record(row)

        return await run_in_session(self._session_factory, _claim)

    async def count_running(self, company_id: str) -> int:
        def _count(session: Session) -> int:
            return session.scalar(
                select(func.count())
                .select_from(ExportJob)
                .where(
                    ExportJob.company_id == company_id,
                    ExportJob.status == ExportStatus.RUNNING.value,
                )
            )

        return await run_in_session(self._session_factory, _count)

    async def count_running_global(self) -> int:
        def _count(session: Session) -> int:
            return session.scalar(
                select(func.count())
                .select_from(ExportJob)
                .where(ExportJob.status == ExportStatus.RUNNING.value)
            )

        return await run_in_session(self._session_factory, _count)

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
        await self._transition(
            company_id,
            job_id,
            ExportStatus.SUCCEEDED,
            lock_token,
            completed_at=self._clock(),
            lock_token=None,
            file_path=path,
            file_name=name,
            file_size=size,
            expires_at=expires_at,
            error_message=None,
        )

    async def mark_failed(
        self,
        company_id: str,
        job_id: str,
        message: str,
        *,
        attempts: Optional[int] = None,
        lock_token: Optional[str] = None,
    ) -> None:
        values = {
            "completed_at": self._clock(),
            "lock_token": None,
            "error_message": message,
        }
        if attempts is not None:
            values["attempts"] = attempts
        await self._transition(company_id, job_id, ExportStatus.FAILED, lock_token, **values)

    async def requeue(
        self,
        company_id: str,
        job_id: str,
        delay_ms: int,
        *,
        attempts: Optional[int] = None,
        lock_token: Optional[str] = None,
    ) -> None:
        values = {
            "run_at": self._clock() + timedelta(milliseconds=max(0, delay_ms)),
            "started_at": None,
            "lock_token": None,
        }
        if attempts is not None:
            values["attempts"] = attempts
        await self._transition(company_id, job_id, ExportStatus.QUEUED, lock_token, **values)

    async def requeue_stale(self, timeout_ms: int, max_attempts: Optional[int] = None) -> int:
        now = self._clock()
        stale_before = now - timedelta(milliseconds=timeout_ms)
        stale = (
            ExportJob.status == ExportStatus.RUNNING.value,
            ExportJob.started_at < stale_before,
        )

        def _recover(session: Session) -> int:
            failed = 0
            if max_attempts is not None:
                result = session.execute(
                    update(ExportJob)
                    .where(*stale, ExportJob.attempts + 1 >= max_attempts)
                    .values(
                        status=ExportStatus.FAILED.value,
                        attempts=ExportJob.attempts + 1,
                        completed_at=now,
                        lock_token=None,
                        error_message=STALE_FAILURE_MESSAGE,
                    )
                    .execution_options(synchronize_session=False)
                )
                failed = result.rowcount or 0
                if failed:
                    logger.warning(f"Failed {failed} export job(s) abandoned on their last attempt")

            result = session.execute(
                update(ExportJob)
                .where(*stale)
                .values(
                    status=ExportStatus.QUEUED.value,
                    attempts=ExportJob.attempts + 1,
                    run_at=now,
                    started_at=None,
                    lock_token=None,
                )
                .execution_options(synchronize_session=False)
            )
            return failed + (result.rowcount or 0)

        return await run_in_session(self._session_factory, _recover)

    async def list_expired(self, company_id: str, now: datetime, limit: int) -> List[ExportJobRecord]:
        def _list(session: Session) -> List[ExportJobRecord]:
            jobs = session.scalars(
                select(ExportJob)
                .where(
                    ExportJob.company_id == company_id,
                    ExportJob.status.in_([status.value for status in TERMINAL_STATUSES]),
                    ExportJob.expires_at.is_not(None),
                    ExportJob.expires_at < now,
                )
                .order_by(ExportJob.expires_at.asc())
                .limit(limit)
            ).all()
            return [_to_record(_row_values(job)) for job in jobs]

        return await run_in_session(self._session_factory, _list)

    async def delete(self, company_id: str, job_id: str) -> None:
        def _delete(session: Session) -> None:
            session.execute(
                delete(ExportJob)
                .where(ExportJob.id == job_id, ExportJob.company_id == company_id)
                .execution_options(synchronize_session=False)
            )

        await run_in_session(self._session_factory, _delete)

    async def _transition(
        self,
        company_id: str,
        job_id: str,
        to_status: ExportStatus,
        expected_token: Optional[str],
        **values,
    ) -> None:
        """Apply to_status only from an allowed source status (and claim).

        Raises:
            JobLeaseLost: No row matched; the job is gone, in another status,
                or claimed under a different token
        """
        conditions = [
            ExportJob.id == job_id,
            ExportJob.company_id == company_id,
            ExportJob.status.in_([status.value for status in source_statuses(to_status)]),
        ]
        if expected_token is not None:
            conditions.append(ExportJob.lock_token == expected_token)

        def _apply(session: Session) -> int:
            result = session.execute(
                update(ExportJob)
                .where(*conditions)
                .values(status=to_status.value, **values)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount or 0

        if await run_in_session(self._session_factory, _apply) == 0:
            raise JobLeaseLost(
                f"Export job {job_id} in company {company_id} is no longer RUNNING under this claim"
            )
