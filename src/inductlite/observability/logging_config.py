"""JSON logging for the job workers.

Every line carries the request id of the tick or sweep that emitted it, plus
whichever job context fields the caller passed through ``extra``.
"""

import json
import logging
import sys
from datetime import datetime, timezone

from .request_id import get_request_id

# Fields copied from ``extra`` into the payload when present on a record
CONTEXT_FIELDS = ("company_id", "job_id", "user_id", "export_type", "status", "scheduler")

TEXT_FORMAT = "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s"

NOISY_LOGGERS = ("sqlalchemy.engine", "botocore", "boto3", "urllib3", "celery.worker.strategy")


class RequestIDFilter(logging.Filter):
    """Stamp the current tick's request id onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id()
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record, timestamped with the record's creation time."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "request_id": getattr(record, "request_id", "no-request-id"),
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["error"] = str(record.exc_info[1])
            log_data["traceback"] = self.formatException(record.exc_info)

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_data[field] = str(value)

        return json.dumps(log_data)


def resolve_level(level: str) -> int:
    """Map a level name to its number; unknown names mean INFO.

    Example:
        >>> resolve_level("warning")
        30
        >>> resolve_level("chatty")
        20
    """
    value = logging.getLevelName(level.strip().upper())
    return value if isinstance(value, int) else logging.INFO


def configure_logging(level: str = "INFO", json_format: bool = True) -> None:
    """Replace root handlers with a single stdout handler.

    Args:
        level: Log level name (LOG_LEVEL)
        json_format: JSON lines when True, plain text otherwise (LOG_JSON)
    """
    numeric_level = resolve_level(level)
    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(JSONFormatter() if json_format else logging.Formatter(TEXT_FORMAT))
    handler.addFilter(RequestIDFilter())
    root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))
