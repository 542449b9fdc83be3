#!/usr/bin/env python
"""Run retention maintenance.

With --once, performs a single sweep, prints the statistics as JSON and
exits non-zero if the sweep recorded errors. Otherwise runs the maintenance
scheduler (daily by default) until interrupted.

Usage:
    python scripts/run_maintenance.py [--once] [--interval SECONDS]
"""

import argparse
import asyncio
import logging
import signal
import sys

from inductlite.bootstrap import build_services
from inductlite.config import get_settings
from inductlite.observability import configure_logging
from inductlite.workers.scheduler import MaintenanceScheduler

logger = logging.getLogger("inductlite.scripts.maintenance")


async def run_once(services) -> int:
    statistics = await services.reaper.run()
    print(statistics.model_dump_json(indent=2))
    return 1 if statistics.has_errors else 0


async def run_forever(services, interval: float) -> int:
    scheduler = MaintenanceScheduler(services.reaper, interval_seconds=interval)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    logger.info(f"Maintenance scheduler starting: interval={interval}s")
    scheduler.start()
    await stop_event.wait()

    logger.info("Shutting down maintenance scheduler...")
    await scheduler.stop()
    return 0


async def main(once: bool, interval: float = None) -> int:
    settings = get_settings()
    configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)

    services = build_services(settings=settings)
    try:
        if once:
            return await run_once(services)
        return await run_forever(services, interval or settings.MAINTENANCE_INTERVAL_SECONDS)
    finally:
        services.engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run InductLite retention maintenance")
    parser.add_argument("--once", action="store_true", help="Run a single sweep and exit")
    parser.add_argument("--interval", type=float, default=None, help="Sweep interval in seconds")
    args = parser.parse_args()
    sys.exit(asyncio.run(main(args.once, args.interval)))
