#!/usr/bin/env python
"""Run the export scheduler until interrupted.

Ticks ExportRunner.process_next_export_job every
EXPORT_SCHEDULER_INTERVAL_SECONDS. Several instances may run against the
same database; the claim is atomic.

Usage:
    python scripts/run_export_scheduler.py [--interval SECONDS]

Environment Variables:
    DATABASE_URL, STORAGE_MODE, EXPORTS_S3_BUCKET, LOG_LEVEL, LOG_JSON
    and the guardrail limits (MAX_EXPORT_ROWS, MAX_EXPORT_ATTEMPTS, ...)
"""

import argparse
import asyncio
import logging
import signal

from inductlite.bootstrap import build_services
from inductlite.config import get_settings
from inductlite.infrastructure.storage import S3StorageAdapter
from inductlite.observability import configure_logging
from inductlite.workers.scheduler import ExportScheduler

logger = logging.getLogger("inductlite.scripts.export_scheduler")


async def main(interval: float = None):
    """Start the export scheduler and wait for SIGINT/SIGTERM."""
    settings = get_settings()
    configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)

    services = build_services(settings=settings)
    if isinstance(services.storage, S3StorageAdapter):
        await services.storage.verify_bucket_exists()

    scheduler = ExportScheduler(
        services.runner,
        interval_seconds=interval or settings.EXPORT_SCHEDULER_INTERVAL_SECONDS,
    )

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    logger.info("=== InductLite Export Scheduler Starting ===")
    logger.info(f"Database: {settings.DATABASE_URL.split('@')[-1]}")  # Hide credentials
    logger.info(f"Interval: {scheduler.interval_seconds}s")

    scheduler.start()
    await stop_event.wait()

    logger.info("Shutting down export scheduler...")
    await scheduler.stop()
    services.engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run the InductLite export scheduler")
    parser.add_argument("--interval", type=float, default=None, help="Tick interval in seconds")
    args = parser.parse_args()
    asyncio.run(main(args.interval))
