"""Wiring for the background job processes.

build_services() constructs every component from Settings and a
GuardrailConfig read once from the environment. Entry points (scripts,
Celery tasks) call get_services() and never construct adapters themselves.
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from .config import Settings, get_settings
from .database import build_engine, build_session_factory
from .domain.storage.ports import StorageBackendPort
from .exports.generators import build_generator_registry
from .exports.runner import ExportRunner
from .guardrails import GuardrailConfig
from .infrastructure.repositories import (
    SqlAlchemyAuditSink,
    SqlAlchemyExportJobStore,
    SqlAlchemyRetentionRepository,
    SqlAlchemyUserDirectory,
)
from .infrastructure.storage import build_storage_backend
from .retention.service import RetentionReaper
from .workers.scheduler import ExportScheduler, MaintenanceScheduler

logger = logging.getLogger(__name__)


@dataclass
class JobServices:
    settings: Settings
    config: GuardrailConfig
    engine: Engine
    session_factory: sessionmaker
    storage: StorageBackendPort
    export_store: SqlAlchemyExportJobStore
    runner: ExportRunner
    reaper: RetentionReaper

    def export_scheduler(self) -> ExportScheduler:
        return ExportScheduler(self.runner, self.settings.EXPORT_SCHEDULER_INTERVAL_SECONDS)

    def maintenance_scheduler(self) -> MaintenanceScheduler:
        return MaintenanceScheduler(self.reaper, self.settings.MAINTENANCE_INTERVAL_SECONDS)


def build_services(
    settings: Optional[Settings] = None,
    config: Optional[GuardrailConfig] = None,
    engine: Optional[Engine] = None,
    storage: Optional[StorageBackendPort] = None,
) -> JobServices:
    """Construct the runner, reaper and their adapters.

    Args:
        settings: Process settings (defaults to get_settings())
        config: Guardrails (defaults to GuardrailConfig.from_env())
        engine: Database engine (defaults to one built from DATABASE_URL)
        storage: Storage backend (defaults to the STORAGE_MODE backend)
    """
    settings = settings or get_settings()
    config = config or GuardrailConfig.from_env()
    engine = engine or build_engine(settings.DATABASE_URL)
    session_factory = build_session_factory(engine)
    storage = storage or build_storage_backend(settings)

    export_store = SqlAlchemyExportJobStore(session_factory)
    runner = ExportRunner(
        store=export_store,
        generators=build_generator_registry(session_factory, config),
        storage=storage,
        users=SqlAlchemyUserDirectory(session_factory),
        audit=SqlAlchemyAuditSink(session_factory),
        config=config,
        exports_enabled=settings.FEATURE_EXPORTS_ENABLED,
        time_zone=settings.EXPORT_TIMEZONE,
    )
    reaper = RetentionReaper(
        retention_store=SqlAlchemyRetentionRepository(session_factory),
        export_store=export_store,
        storage=storage,
        config=config,
        concurrency=settings.RETENTION_FANOUT_CONCURRENCY,
        batch_size=settings.RETENTION_BATCH_SIZE,
    )

    logger.info(
        f"Job services ready: storage_mode={settings.STORAGE_MODE}, "
        f"tier={config.ENV_BUDGET_TIER.value}, exports_enabled={settings.FEATURE_EXPORTS_ENABLED}"
    )
    return JobServices(
        settings=settings,
        config=config,
        engine=engine,
        session_factory=session_factory,
        storage=storage,
        export_store=export_store,
        runner=runner,
        reaper=reaper,
    )


@lru_cache()
def get_services() -> JobServices:
    """Process-wide services built from the environment.

    Call get_services.cache_clear() to rebuild.
    """
    return build_services()
