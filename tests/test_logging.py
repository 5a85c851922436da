"""Log formatting and per-request context stamping."""

import json
import logging

from flask import g

from bugtracker.core.principal import Principal
from bugtracker.middleware.logging_config import (
    JSONFormatter,
    ReadableFormatter,
    RequestContextFilter,
)


def _record(msg="Bug moved", **extra):
    record = logging.makeLogRecord({"name": "bugtracker.services.bug_lifecycle",
                                    "levelname": "INFO", "levelno": logging.INFO,
                                    "msg": msg})
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestFormatters:
    def test_json_carries_request_context(self):
        record = _record(method="PATCH", path="/api/v1/bugs/b1/status", status=200,
                         duration_ms=3.2, request_id="abc123", user_id="u1",
                         project_id=None, bug_id="b1")
        entry = json.loads(JSONFormatter().format(record))
        assert entry["message"] == "Bug moved"
        assert entry["request_id"] == "abc123"
        assert entry["user_id"] == "u1"
        assert entry["bug_id"] == "b1"
        assert entry["status"] == 200
        assert "project_id" not in entry

    def test_readable_suffix(self):
        line = ReadableFormatter().format(_record(request_id="abc123", user_id="u1", bug_id="b1"))
        assert line.endswith("Bug moved [req=abc123 user=u1 bug=b1]")

    def test_readable_without_context(self):
        line = ReadableFormatter().format(_record())
        assert line.endswith("Bug moved")


class TestRequestContextFilter:
    def test_stamps_from_g(self, app):
        with app.test_request_context("/api/v1/bugs/b1"):
            g.request_id = "req-1"
            g.principal = Principal(id="u9", role="developer")
            record = _record()
            assert RequestContextFilter().filter(record)
        assert record.request_id == "req-1"
        assert record.user_id == "u9"

    def test_explicit_extra_wins(self, app):
        with app.test_request_context("/"):
            g.request_id = "req-1"
            record = _record(request_id="other")
            RequestContextFilter().filter(record)
        assert record.request_id == "other"
        assert record.user_id is None

    def test_outside_request(self):
        record = _record()
        assert RequestContextFilter().filter(record)
        assert not hasattr(record, "request_id")
