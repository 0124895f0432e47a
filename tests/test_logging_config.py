"""
Tests for the structured logging configuration.

Validates:
- JSONFormatter produces valid JSON with required fields
- DevFormatter produces human-readable colored text
- ContextFilter injects request_id from thread-local storage
- configure_logging() switches mode based on COMPANY_AI_ENV
"""

from __future__ import annotations

import json
import logging
import sys
from unittest.mock import patch

import pytest

from company_ai.observability.logging_config import (
    ContextFilter,
    DevFormatter,
    JSONFormatter,
    clear_request_id,
    configure_logging,
    get_request_id,
    set_request_id,
)


# ─── Fixtures ─────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def _cleanup_request_id():
    """Clear request_id before and after each test."""
    clear_request_id()
    yield
    clear_request_id()


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


def _make_record(
    msg: str = "test message",
    level: int = logging.INFO,
    name: str = "company_ai.test",
    **extra,
) -> logging.LogRecord:
    record = logging.LogRecord(
        name=name,
        level=level,
        pathname="test.py",
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


# ─── Request Context ──────────────────────────────────────────────────


class TestRequestContext:

    def test_default_is_none(self):
        assert get_request_id() is None

    def test_set_and_get(self):
        set_request_id("req-123")
        assert get_request_id() == "req-123"

    def test_clear(self):
        set_request_id("req-123")
        clear_request_id()
        assert get_request_id() is None


class TestContextFilter:

    def test_injects_request_id(self):
        set_request_id("req-abc")
        record = _make_record()
        assert ContextFilter().filter(record) is True
        assert record.request_id == "req-abc"

    def test_no_request_id_leaves_record_alone(self):
        record = _make_record()
        ContextFilter().filter(record)
        assert not hasattr(record, "request_id")


# ─── JSON Formatter ───────────────────────────────────────────────────


class TestJSONFormatter:

    def test_required_fields(self):
        output = JSONFormatter().format(_make_record("company_analyzed"))
        data = json.loads(output)
        assert data["level"] == "INFO"
        assert data["logger"] == "company_ai.test"
        assert data["message"] == "company_analyzed"
        assert "timestamp" in data

    def test_extra_fields_included(self):
        record = _make_record(company_id="acme", duration_ms=812)
        data = json.loads(JSONFormatter().format(record))
        assert data["company_id"] == "acme"
        assert data["duration_ms"] == 812

    def test_unserializable_extra_is_stringified(self):
        record = _make_record(payload=object())
        data = json.loads(JSONFormatter().format(record))
        assert isinstance(data["payload"], str)

    def test_request_id_included(self):
        record = _make_record(request_id="req-9")
        data = json.loads(JSONFormatter().format(record))
        assert data["request_id"] == "req-9"

    def test_exception_included(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = _make_record(level=logging.ERROR)
            record.exc_info = sys.exc_info()
        data = json.loads(JSONFormatter().format(record))
        assert "ValueError: boom" in data["exception"]


# ─── Dev Formatter ────────────────────────────────────────────────────


class TestDevFormatter:

    def test_contains_level_and_message(self):
        output = DevFormatter().format(_make_record("alert_created"))
        assert "INFO" in output
        assert "company_ai.test: alert_created" in output

    def test_known_extras_rendered(self):
        record = _make_record(company_id="acme", severity="warning")
        output = DevFormatter().format(record)
        assert "company_id=acme" in output
        assert "severity=warning" in output

    def test_unknown_extras_not_rendered(self):
        output = DevFormatter().format(_make_record(internal="x"))
        assert "internal=x" not in output


# ─── configure_logging ────────────────────────────────────────────────


class TestConfigureLogging:

    def test_production_uses_json(self):
        configure_logging(env="production")
        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0].formatter, JSONFormatter)

    def test_development_uses_dev_formatter(self):
        configure_logging(env="development")
        assert isinstance(logging.getLogger().handlers[0].formatter, DevFormatter)

    def test_reads_env_var(self):
        with patch.dict("os.environ", {"COMPANY_AI_ENV": "production"}):
            configure_logging()
        assert isinstance(logging.getLogger().handlers[0].formatter, JSONFormatter)

    def test_sets_level(self):
        configure_logging(env="development", level=logging.DEBUG)
        assert logging.getLogger().level == logging.DEBUG

    def test_silences_vendor_loggers(self):
        configure_logging(env="development")
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("anthropic").level == logging.WARNING

    def test_reconfigure_replaces_handler(self):
        configure_logging(env="development")
        configure_logging(env="production")
        assert len(logging.getLogger().handlers) == 1
