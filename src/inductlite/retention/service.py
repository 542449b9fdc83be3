"""Retention reaper - periodic multi-tenant garbage collection.

One sweep covers four targets:

- Audit logs: bulk delete older than AUDIT_RETENTION_DAYS (all tenants)
- Export artifacts: terminal jobs past expires_at; stored file first, then row
- Contractor documents: past expires_at; stored file first, then row
  (both listed per company, at most batch_size rows per company per sweep)
- Sign-in records: per company, signed-out records older than the company's
  retention_days (365 when unset); records still on site are kept

Companies are walked one at a time; file/row pairs and sign-in purges are fanned out with map_bounded. Each
phase is isolated: a failure is logged and counted and the sweep continues.
A file deletion failure leaves the row in place so the next sweep retries it.
"""

import logging
import time
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from ..domain.exports.ports import ExportJobRecord, ExportJobStorePort
from ..domain.retention.ports import CompanyRetention, ExpiredDocument, RetentionStorePort
from ..domain.storage.ports import StorageBackendPort
from ..guardrails import GuardrailConfig
from ..models.base import utcnow
from ..models.company import DEFAULT_RETENTION_DAYS
from ..observability.metrics import retention_errors_total, retention_records_deleted_total
from ..observability.request_id import generate_request_id, set_request_id
from ..workers.concurrency import map_bounded
from .schemas import RetentionStatistics

logger = logging.getLogger(__name__)

DEFAULT_FANOUT_CONCURRENCY = 10
DEFAULT_BATCH_SIZE = 200


def sign_in_cutoff(now: datetime, retention_days: Optional[int]) -> datetime:
    """Oldest sign_out_ts a company keeps.

    Example:
        >>> sign_in_cutoff(datetime(2025, 1, 31), 30)
        datetime.datetime(2025, 1, 1, 0, 0)
        >>> sign_in_cutoff(datetime(2025, 1, 31), 0) == datetime(2025, 1, 31) - timedelta(days=365)
        True
    """
    days = retention_days if retention_days and retention_days > 0 else DEFAULT_RETENTION_DAYS
    return now - timedelta(days=max(days, 1))


class RetentionReaper:
    """Runs retention sweeps against injected stores and storage.

    Example:
        reaper = RetentionReaper(
            retention_store=SqlAlchemyRetentionRepository(session_factory),
            export_store=SqlAlchemyExportJobStore(session_factory),
            storage=build_storage_backend(settings),
            config=GuardrailConfig.from_env(),
        )
        stats = await reaper.run()
    """

    def __init__(
        self,
        retention_store: RetentionStorePort,
        export_store: ExportJobStorePort,
        storage: StorageBackendPort,
        config: GuardrailConfig,
        *,
        concurrency: int = DEFAULT_FANOUT_CONCURRENCY,
        batch_size: int = DEFAULT_BATCH_SIZE,
        clock: Callable[[], datetime] = utcnow,
    ):
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")
        self.retention_store = retention_store
        self.export_store = export_store
        self.storage = storage
        self.config = config
        self.concurrency = concurrency
        self.batch_size = batch_size
        self._clock = clock

    async def run(self, now: Optional[datetime] = None) -> RetentionStatistics:
        """Execute one sweep.

        Args:
            now: Reference time for every cutoff (defaults to current UTC time)

        Returns:
            RetentionStatistics: Per-target counts and error counts
        """
        set_request_id(generate_request_id())
        started_at = self._clock()
        started = time.monotonic()
        now = now or started_at
        logger.info("Starting retention sweep")

        counts: Dict[str, int] = {
            "audit_logs_deleted": 0,
            "export_jobs_deleted": 0,
            "contractor_documents_deleted": 0,
            "sign_in_records_deleted": 0,
            "storage_errors": 0,
            "database_errors": 0,
            "companies_processed": 0,
        }

        await self._purge_audit_logs(now, counts)

        companies = await self._list_companies(counts)
        for company in companies:
            await self._purge_expired_exports(company.company_id, now, counts)
            await self._purge_expired_documents(company.company_id, now, counts)
        await self._purge_sign_in_records(companies, now, counts)

        statistics = RetentionStatistics(
            job_started_at=started_at,
            job_completed_at=self._clock(),
            duration_seconds=max(0.0, time.monotonic() - started),
            **counts,
        )

        logger.info(
            "Retention sweep completed",
            extra={
                "status": (
                    f"deleted={statistics.total_records_deleted}, "
                    f"companies={statistics.companies_processed}, "
                    f"storage_errors={statistics.storage_errors}, "
                    f"database_errors={statistics.database_errors}"
                ),
            },
        )

        if statistics.is_anomaly:
            logger.warning(
                f"Retention sweep anomaly detected: {statistics.total_records_deleted} records deleted"
            )

        if statistics.has_errors:
            logger.error(
                f"Retention sweep completed with errors: storage={statistics.storage_errors}, "
                f"database={statistics.database_errors}"
            )

        return statistics

    async def _purge_audit_logs(self, now: datetime, counts: Dict[str, int]) -> None:
        cutoff = now - timedelta(days=self.config.AUDIT_RETENTION_DAYS)
        try:
            deleted = await self.retention_store.purge_audit_logs(cutoff)
        except Exception as e:
            logger.warning(f"Audit purge failed: {e}", exc_info=True)
            counts["database_errors"] += 1
            retention_errors_total.labels(target="audit_log", phase="database").inc()
            return
        counts["audit_logs_deleted"] += deleted
        retention_records_deleted_total.labels(target="audit_log").inc(deleted)

    async def _list_companies(self, counts: Dict[str, int]) -> List[CompanyRetention]:
        try:
            return await self.retention_store.list_companies()
        except Exception as e:
            logger.warning(f"Listing companies failed: {e}", exc_info=True)
            counts["database_errors"] += 1
            retention_errors_total.labels(target="company", phase="database").inc()
            return []

    async def _purge_expired_exports(self, company_id: str, now: datetime, counts: Dict[str, int]) -> None:
        try:
            expired = await self.export_store.list_expired(company_id, now, self.batch_size)
        except Exception as e:
            logger.warning(
                f"Listing expired export jobs failed: {e}",
                exc_info=True,
                extra={"company_id": company_id},
            )
            counts["database_errors"] += 1
            retention_errors_total.labels(target="export_job", phase="database").inc()
            return

        async def purge(job: ExportJobRecord) -> None:
            log_extra = {"company_id": job.company_id, "job_id": job.id}
            if job.file_path:
                try:
                    await self.storage.delete(job.file_path)
                except Exception as e:
                    logger.warning(f"Export retention cleanup failed: {e}", extra=log_extra)
                    counts["storage_errors"] += 1
                    retention_errors_total.labels(target="export_job", phase="storage").inc()
                    return
            try:
                await self.export_store.delete(job.company_id, job.id)
            except Exception as e:
                logger.warning(f"Export job row deletion failed: {e}", extra=log_extra)
                counts["database_errors"] += 1
                retention_errors_total.labels(target="export_job", phase="database").inc()
                return
            counts["export_jobs_deleted"] += 1
            retention_records_deleted_total.labels(target="export_job").inc()

        await map_bounded(expired, self.concurrency, purge)

    async def _purge_expired_documents(self, company_id: str, now: datetime, counts: Dict[str, int]) -> None:
        try:
            expired = await self.retention_store.list_expired_contractor_documents(
                company_id, now, self.batch_size
            )
        except Exception as e:
            logger.warning(
                f"Listing expired contractor documents failed: {e}",
                exc_info=True,
                extra={"company_id": company_id},
            )
            counts["database_errors"] += 1
            retention_errors_total.labels(target="contractor_document", phase="database").inc()
            return

        async def purge(document: ExpiredDocument) -> None:
            log_extra = {"company_id": document.company_id}
            try:
                await self.storage.delete(document.file_path)
            except Exception as e:
                logger.warning(
                    f"Document cleanup failed: document_id={document.id}, error={e}",
                    extra=log_extra,
                )
                counts["storage_errors"] += 1
                retention_errors_total.labels(target="contractor_document", phase="storage").inc()
                return
            try:
                await self.retention_store.delete_contractor_document(document.company_id, document.id)
            except Exception as e:
                logger.warning(
                    f"Document row deletion failed: document_id={document.id}, error={e}",
                    extra=log_extra,
                )
                counts["database_errors"] += 1
                retention_errors_total.labels(target="contractor_document", phase="database").inc()
                return
            counts["contractor_documents_deleted"] += 1
            retention_records_deleted_total.labels(target="contractor_document").inc()

        await map_bounded(expired, self.concurrency, purge)

    async def _purge_sign_in_records(
        self, companies: List[CompanyRetention], now: datetime, counts: Dict[str, int]
    ) -> None:
        async def purge(company: CompanyRetention) -> None:
            cutoff = sign_in_cutoff(now, company.retention_days)
            try:
                deleted = await self.retention_store.purge_sign_in_records(company.company_id, cutoff)
            except Exception as e:
                logger.warning(
                    f"Sign-in purge failed: {e}",
                    extra={"company_id": company.company_id},
                )
                counts["database_errors"] += 1
                retention_errors_total.labels(target="sign_in_record", phase="database").inc()
                return
            counts["sign_in_records_deleted"] += deleted
            counts["companies_processed"] += 1
            retention_records_deleted_total.labels(target="sign_in_record").inc(deleted)

        await map_bounded(companies, self.concurrency, purge)
