"""Background workers: schedulers, bounded fan-out and Celery triggers.

Celery modules are imported explicitly (inductlite.workers.tasks,
inductlite.workers.celery_app) so the asyncio schedulers can be used without
a broker configuration.
"""

from .concurrency import map_bounded
from .scheduler import ExportScheduler, IntervalScheduler, MaintenanceScheduler

__all__ = ["map_bounded", "ExportScheduler", "IntervalScheduler", "MaintenanceScheduler"]
