"""Celery tasks that trigger a single export tick or retention sweep.

Both tasks are safe to run concurrently and repeatedly: the export claim is
atomic and the retention sweep is idempotent.
"""

import asyncio
import logging
from typing import Any, Dict

from celery import shared_task

from ..bootstrap import get_services

logger = logging.getLogger(__name__)


@shared_task(name="exports.process_next", bind=True)
def process_next_export_task(self) -> Dict[str, Any]:
    """Process at most one queued export job.

    Returns:
        Dict with 'status' ('processed' or 'idle') and, when a job was
        touched, its 'job_id' and 'job_status'
    """
    services = get_services()
    result = asyncio.run(services.runner.process_next_export_job())
    if result is None:
        return {"status": "idle"}

    logger.info(
        "Processed export job",
        extra={"job_id": result.id, "status": result.status.value},
    )
    return {"status": "processed", "job_id": result.id, "job_status": result.status.value}


@shared_task(name="retention.sweep", bind=True)
def retention_sweep_task(self) -> Dict[str, Any]:
    """Execute one retention sweep across all companies.

    Returns:
        Dict with sweep statistics, or status 'failed' and the error

    Raises:
        Nothing: errors are logged and reported in the result
    """
    logger.info("Retention sweep task started")

    try:
        statistics = asyncio.run(get_services().reaper.run())
    except Exception as e:
        logger.error("Retention sweep task failed", exc_info=True)
        return {
            "status": "failed",
            "error": str(e),
            "total_deleted": 0,
        }

    result = {
        "status": "completed",
        **statistics.model_dump(mode="json"),
        "total_deleted": statistics.total_records_deleted,
        "has_errors": statistics.has_errors,
        "is_anomaly": statistics.is_anomaly,
    }
    logger.info("Retention sweep task completed")
    return result
