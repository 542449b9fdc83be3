"""Unit tests for JSON logging and request id correlation."""

import asyncio
import json
import logging
import sys

import pytest

from inductlite.observability.logging_config import JSONFormatter, RequestIDFilter, resolve_level
from inductlite.observability.request_id import (
    NO_REQUEST_ID,
    generate_request_id,
    get_request_id,
    request_id_var,
    set_request_id,
)


def make_record(message="Claimed export job", **extra) -> logging.LogRecord:
    record = logging.LogRecord("inductlite.exports.runner", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture(autouse=True)
def reset_request_id():
    token = request_id_var.set(None)
    yield
    request_id_var.reset(token)


class TestRequestId:

    def test_default_when_unset(self):
        assert get_request_id() == NO_REQUEST_ID

    def test_generated_ids_are_distinct(self):
        assert generate_request_id() != generate_request_id()

    @pytest.mark.asyncio
    async def test_tasks_do_not_share_ids(self):
        async def tick(request_id):
            set_request_id(request_id)
            await asyncio.sleep(0)
            return get_request_id()

        results = await asyncio.gather(tick("a"), tick("b"))

        assert results == ["a", "b"]
        assert get_request_id() == NO_REQUEST_ID


class TestJSONFormatter:

    def test_includes_request_id_and_job_context(self):
        set_request_id("tick-1")
        record = make_record(job_id="job-1", company_id="c1", user_id=None)
        RequestIDFilter().filter(record)

        payload = json.loads(JSONFormatter().format(record))

        assert payload["request_id"] == "tick-1"
        assert payload["job_id"] == "job-1"
        assert payload["company_id"] == "c1"
        assert "user_id" not in payload
        assert payload["level"] == "INFO"
        assert payload["message"] == "Claimed export job"

    def test_exception_details(self):
        try:
            raise RuntimeError("disk full")
        except RuntimeError:
            record = logging.LogRecord(
                "inductlite", logging.ERROR, __file__, 1, "write failed", None, sys.exc_info()
            )

        payload = json.loads(JSONFormatter().format(record))

        assert payload["error"] == "disk full"
        assert "RuntimeError" in payload["traceback"]


class TestResolveLevel:

    @pytest.mark.parametrize("name,expected", [
        ("DEBUG", logging.DEBUG),
        (" error ", logging.ERROR),
        ("verbose", logging.INFO),
    ])
    def test_names(self, name, expected):
        assert resolve_level(name) == expected
