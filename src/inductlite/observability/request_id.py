"""Correlation ids for background work.

There is no inbound HTTP request in a worker, so each scheduler tick, Celery
task and retention sweep calls set_request_id(generate_request_id()) before
doing anything. Ticks run as separate asyncio tasks and therefore get their
own copy of the context variable.
"""

import uuid
from contextvars import ContextVar
from typing import Optional

NO_REQUEST_ID = "no-request-id"

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def generate_request_id() -> str:
    """16 hex characters taken from a uuid4.

    Example:
        >>> len(generate_request_id())
        16
    """
    return uuid.uuid4().hex[:16]


def get_request_id() -> str:
    return request_id_var.get() or NO_REQUEST_ID


def set_request_id(request_id: Optional[str]) -> None:
    request_id_var.set(request_id)
