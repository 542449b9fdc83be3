"""Export runner - processes one eligible export job per invocation.

Each call to process_next_export_job():

1. Recovers RUNNING jobs older than the stale timeout (best effort); each
   recovery counts an attempt and the last one fails the job
2. Atomically claims the oldest runnable QUEUED job
3. Re-authorizes the requesting user (terminal FAILED on denial, not counted)
4. Requeues without counting when the tenant is at its concurrency ceiling
   or exports are restricted to the off-peak window
5. Generates content, enforces the runtime guardrail, stores the artifact
6. On failure counts an attempt: requeue with exponential backoff, or FAILED
   once MAX_EXPORT_ATTEMPTS is reached

Every write after the claim carries the claim's lock_token. When stale
recovery has taken the job away in the meantime the store raises
JobLeaseLost and the run's outcome is dropped.

The runner never raises; outcomes are recorded on the job and in the logs.
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Mapping, Optional

from ..auth.roles import Permission, has_permission
from ..domain.exports.errors import (
    AuthorizationDenied,
    GuardrailExceeded,
    JobLeaseLost,
    TransientSkip,
)
from ..domain.exports.job_status import ExportStatus, ExportType
from ..domain.exports.ports import (
    AuditSinkPort,
    ContentGeneratorPort,
    ExportJobRecord,
    ExportJobStorePort,
    UserDirectoryPort,
)
from ..domain.storage.ports import StorageBackendPort
from ..guardrails import (
    DEFAULT_EXPORT_TIMEZONE,
    GuardrailConfig,
    get_export_expiry_date,
    is_off_peak_now,
)
from ..models.base import utcnow
from ..observability.metrics import (
    export_generation_seconds,
    export_jobs_processed_total,
    export_jobs_requeued_total,
)
from ..observability.request_id import generate_request_id, set_request_id

logger = logging.getLogger(__name__)

MAX_BACKOFF_MS = 300_000
COMPANY_BUSY_DELAY_MS = 30_000
OFFPEAK_DELAY_MS = 60 * 60 * 1000

ENTITY_TYPE = "exportJob"


@dataclass(frozen=True)
class ExportRunResult:
    """Job touched by a run and the status it was left in."""
    id: str
    status: ExportStatus


def backoff_delay_ms(attempts: int) -> int:
    """Delay before retrying after the given number of counted attempts.

    Example:
        >>> [backoff_delay_ms(n) for n in (1, 2, 3)]
        [2000, 4000, 8000]
        >>> backoff_delay_ms(9)
        300000
    """
    return min(MAX_BACKOFF_MS, (2 ** attempts) * 1000)


class ExportRunner:
    """Claims and executes export jobs against an injected GuardrailConfig.

    Example:
        runner = ExportRunner(
            store=SqlAlchemyExportJobStore(session_factory),
            generators=build_generator_registry(session_factory, config),
            storage=build_storage_backend(settings),
            users=SqlAlchemyUserDirectory(session_factory),
            audit=SqlAlchemyAuditSink(session_factory),
            config=config,
        )
        result = await runner.process_next_export_job()
    """

    def __init__(
        self,
        store: ExportJobStorePort,
        generators: Mapping[ExportType, ContentGeneratorPort],
        storage: StorageBackendPort,
        users: UserDirectoryPort,
        audit: AuditSinkPort,
        config: GuardrailConfig,
        *,
        exports_enabled: bool = True,
        time_zone: str = DEFAULT_EXPORT_TIMEZONE,
        clock: Callable[[], datetime] = utcnow,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        missing = [export_type.value for export_type in ExportType if export_type not in generators]
        if missing:
            raise ValueError(f"No generator registered for export types: {', '.join(missing)}")

        self.store = store
        self.generators: Dict[ExportType, ContentGeneratorPort] = dict(generators)
        self.storage = storage
        self.users = users
        self.audit = audit
        self.config = config
        self.exports_enabled = exports_enabled
        self.time_zone = time_zone
        self._clock = clock
        self._monotonic = monotonic

    async def process_next_export_job(self) -> Optional[ExportRunResult]:
        """Process at most one job.

        Returns:
            ExportRunResult for a job that was executed or denied, None when
            nothing was claimable, the job was requeued without an attempt,
            or the run failed before an outcome could be recorded.
        """
        if not self.exports_enabled:
            return None

        set_request_id(generate_request_id())
        try:
            return await self._process()
        except Exception as e:
            logger.exception(f"Export run aborted: {e}")
            return None

    async def _process(self) -> Optional[ExportRunResult]:
        await self._requeue_stale()

        job = await self.store.claim_next_queued(self.config.MAX_CONCURRENT_EXPORTS_GLOBAL)
        if job is None:
            return None

        log_extra = {"job_id": job.id, "company_id": job.company_id, "export_type": job.export_type.value}
        logger.info("Claimed export job", extra=log_extra)

        try:
            return await self._run_claimed(job, log_extra)
        except JobLeaseLost:
            export_jobs_processed_total.labels(
                export_type=job.export_type.value, outcome="lease_lost"
            ).inc()
            logger.warning(
                "Export job was recovered as stale while running, discarding this run's outcome",
                extra=log_extra,
            )
            return None

    async def _run_claimed(self, job: ExportJobRecord, log_extra: Dict[str, str]) -> Optional[ExportRunResult]:
        try:
            await self._authorize(job)
        except AuthorizationDenied as denied:
            return await self._deny(job, denied)

        try:
            await self._check_capacity(job)
        except TransientSkip as skip:
            await self.store.requeue(
                job.company_id, job.id, skip.delay_ms, lock_token=job.lock_token
            )
            export_jobs_requeued_total.labels(reason=skip.reason).inc()
            logger.info(
                f"Export job requeued without attempt: reason={skip.reason}, delay_ms={skip.delay_ms}",
                extra=log_extra,
            )
            return None

        try:
            return await self._execute(job)
        except JobLeaseLost:
            raise
        except Exception as e:
            return await self._handle_failure(job, e)

    async def _requeue_stale(self) -> None:
        try:
            recovered = await self.store.requeue_stale(
                self.config.stale_timeout_seconds * 1000,
                max_attempts=self.config.MAX_EXPORT_ATTEMPTS,
            )
        except Exception as e:
            logger.warning(f"Failed to requeue stale export jobs: {e}")
            return
        if recovered:
            export_jobs_requeued_total.labels(reason="stale").inc(recovered)
            logger.warning(f"Recovered {recovered} stale export job(s)")

    async def _authorize(self, job: ExportJobRecord) -> None:
        """Re-check the requester at execution time.

        Raises:
            AuthorizationDenied: With reason missing_requested_by,
                user_missing_or_inactive or permission_denied
        """
        if not job.requested_by:
            raise AuthorizationDenied(
                "missing_requested_by", "Export request missing requested_by"
            )

        user = await self.users.find_user(job.company_id, job.requested_by)
        if user is None or not user.is_active:
            raise AuthorizationDenied(
                "user_missing_or_inactive", "Export denied: user missing or inactive"
            )

        if not has_permission(user.role, Permission.EXPORT_CREATE):
            raise AuthorizationDenied(
                "permission_denied", "Export denied: insufficient permissions"
            )

    async def _deny(self, job: ExportJobRecord, denied: AuthorizationDenied) -> ExportRunResult:
        await self.store.mark_failed(
            job.company_id, job.id, str(denied), lock_token=job.lock_token
        )
        await self._record_audit(
            job,
            "export.denied",
            user_id=job.requested_by,
            details={"reason": denied.reason},
        )
        export_jobs_processed_total.labels(export_type=job.export_type.value, outcome="denied").inc()
        logger.warning(
            f"Export job denied: reason={denied.reason}",
            extra={"job_id": job.id, "company_id": job.company_id, "user_id": job.requested_by},
        )
        return ExportRunResult(id=job.id, status=ExportStatus.FAILED)

    async def _check_capacity(self, job: ExportJobRecord) -> None:
        """Raises TransientSkip when the job must wait without counting an attempt."""
        # The count includes the job just claimed
        running = await self.store.count_running(job.company_id)
        if running > self.config.MAX_CONCURRENT_EXPORTS_PER_COMPANY:
            raise TransientSkip("company_concurrency", COMPANY_BUSY_DELAY_MS)

        if self.config.EXPORT_OFFPEAK_ONLY and not is_off_peak_now(self._clock(), self.time_zone):
            raise TransientSkip("offpeak", OFFPEAK_DELAY_MS)

    async def _execute(self, job: ExportJobRecord) -> ExportRunResult:
        generator = self.generators[job.export_type]
        filename = f"{job.id}.csv"

        started = self._monotonic()
        content = await generator.generate(job.company_id)
        elapsed = self._monotonic() - started
        export_generation_seconds.labels(export_type=job.export_type.value).observe(elapsed)

        limit = self.config.MAX_EXPORT_RUNTIME_SECONDS
        if elapsed > limit:
            raise GuardrailExceeded("MAX_EXPORT_RUNTIME_SECONDS", limit, round(elapsed, 3))

        written = await self.storage.write(job.company_id, filename, content)
        await self.store.mark_succeeded(
            job.company_id,
            job.id,
            path=written.path,
            name=filename,
            size=written.size,
            expires_at=get_export_expiry_date(self.config, self._clock()),
            lock_token=job.lock_token,
        )
        await self._record_audit(
            job,
            "export.completed",
            user_id=job.requested_by,
            details={"export_type": job.export_type.value, "file_size": written.size},
        )

        export_jobs_processed_total.labels(export_type=job.export_type.value, outcome="succeeded").inc()
        logger.info(
            f"Export job succeeded: size={written.size}, elapsed={elapsed:.3f}s",
            extra={"job_id": job.id, "company_id": job.company_id},
        )
        return ExportRunResult(id=job.id, status=ExportStatus.SUCCEEDED)

    async def _handle_failure(self, job: ExportJobRecord, error: Exception) -> ExportRunResult:
        attempts = job.attempts + 1
        message = str(error) or error.__class__.__name__
        log_extra = {"job_id": job.id, "company_id": job.company_id}

        if attempts >= self.config.MAX_EXPORT_ATTEMPTS:
            await self.store.mark_failed(
                job.company_id, job.id, message, attempts=attempts, lock_token=job.lock_token
            )
            await self._record_audit(
                job,
                "export.failed",
                user_id=job.requested_by,
                details={"error": message, "attempts": attempts},
            )
            export_jobs_processed_total.labels(export_type=job.export_type.value, outcome="failed").inc()
            logger.error(
                f"Export job failed permanently after {attempts} attempt(s): {message}",
                extra=log_extra,
            )
            return ExportRunResult(id=job.id, status=ExportStatus.FAILED)

        delay_ms = backoff_delay_ms(attempts)
        await self.store.requeue(
            job.company_id, job.id, delay_ms, attempts=attempts, lock_token=job.lock_token
        )
        export_jobs_processed_total.labels(export_type=job.export_type.value, outcome="retry").inc()
        logger.warning(
            f"Export job attempt {attempts} failed, retrying in {delay_ms}ms: {message}",
            extra=log_extra,
        )
        return ExportRunResult(id=job.id, status=ExportStatus.QUEUED)

    async def _record_audit(self, job: ExportJobRecord, action: str, **kwargs) -> None:
        try:
            await self.audit.record(
                job.company_id,
                action,
                entity_type=ENTITY_TYPE,
                entity_id=job.id,
                **kwargs,
            )
        except Exception as e:
            logger.warning(
                f"Failed to write audit entry {action}: {e}",
                extra={"job_id": job.id, "company_id": job.company_id},
            )
