"""Tests for the acmetxt.logging module."""

from __future__ import annotations

import json
import logging
import sys
import threading

import flask

from acmetxt.config.settings import LoggingSettings
from acmetxt.logging.setup import (
    ContextFilter,
    StructuredFormatter,
    TextFormatter,
    configure_logging,
    dns_query_context,
)


def _record(msg: str = "hello %s", args=("world",), **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="acmetxt.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=args,
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    """JSON-lines output."""

    def test_standard_fields(self):
        data = json.loads(StructuredFormatter().format(_record()))
        assert data["level"] == "INFO"
        assert data["logger"] == "acmetxt.test"
        assert data["message"] == "hello world"
        assert "timestamp" in data

    def test_extra_fields_included(self):
        data = json.loads(
            StructuredFormatter().format(_record(client_ip="192.0.2.1", transport="udp")),
        )
        assert data["client_ip"] == "192.0.2.1"
        assert data["transport"] == "udp"

    def test_unset_context_omitted(self):
        record = _record()
        ContextFilter().filter(record)
        data = json.loads(StructuredFormatter().format(record))
        assert "request_id" not in data
        assert "method" not in data

    def test_exception_included(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = _record()
            record.exc_info = sys.exc_info()
        data = json.loads(StructuredFormatter().format(record))
        assert "ValueError: boom" in data["exception"]


class TestContextFilter:
    """Defaults, DNS query context and Flask request context."""

    def test_defaults_without_request(self):
        record = _record()
        assert ContextFilter().filter(record) is True
        assert record.request_id == "-"
        assert record.client_ip == "-"
        assert record.method is None

    def test_existing_client_ip_kept(self):
        record = _record(client_ip="198.51.100.7")
        ContextFilter().filter(record)
        assert record.client_ip == "198.51.100.7"

    def test_request_context_values(self):
        app = flask.Flask("test")
        with app.test_request_context(
            "/update",
            method="POST",
            environ_base={"REMOTE_ADDR": "192.0.2.5"},
        ):
            flask.g.request_id = "req-1"
            record = _record()
            ContextFilter().filter(record)
        assert record.request_id == "req-1"
        assert record.client_ip == "192.0.2.5"
        assert record.method == "POST"
        assert record.path == "/update"
        assert record.transport == "http"

    def test_dns_query_context_values(self):
        record = _record()
        with dns_query_context(client_ip="192.0.2.9", transport="tcp"):
            ContextFilter().filter(record)
        assert record.client_ip == "192.0.2.9"
        assert record.transport == "tcp"
        assert record.request_id == "-"

    def test_dns_query_context_is_reset(self):
        with dns_query_context(client_ip="192.0.2.9", transport="udp"):
            pass
        record = _record()
        ContextFilter().filter(record)
        assert record.client_ip == "-"
        assert record.transport == "-"

    def test_dns_query_context_is_per_thread(self):
        seen = {}

        def worker():
            record = _record()
            ContextFilter().filter(record)
            seen["client_ip"] = record.client_ip

        with dns_query_context(client_ip="192.0.2.9", transport="udp"):
            thread = threading.Thread(target=worker)
            thread.start()
            thread.join()
        assert seen["client_ip"] == "-"

    def test_dns_query_context_overrides_extra(self):
        record = _record(client_ip="198.51.100.7")
        with dns_query_context(client_ip="192.0.2.9", transport="udp"):
            ContextFilter().filter(record)
        assert record.client_ip == "192.0.2.9"

    def test_text_formatter_uses_context(self):
        record = _record()
        ContextFilter().filter(record)
        line = TextFormatter().format(record)
        assert "[- -]" in line
        assert "hello world" in line


class TestConfigureLogging:
    """Handler, level and propagation of the acmetxt hierarchy."""

    def test_text_format(self):
        root = configure_logging(LoggingSettings(level="WARNING", format="text"))
        assert root.name == "acmetxt"
        assert root.level == logging.WARNING
        assert root.propagate is False
        (handler,) = root.handlers
        assert isinstance(handler.formatter, TextFormatter)
        assert any(isinstance(f, ContextFilter) for f in handler.filters)

    def test_json_format(self):
        root = configure_logging(LoggingSettings(level="INFO", format="json"))
        assert isinstance(root.handlers[0].formatter, StructuredFormatter)

    def test_repeated_calls_do_not_stack_handlers(self):
        configure_logging(LoggingSettings(level="INFO", format="text"))
        root = configure_logging(LoggingSettings(level="INFO", format="text"))
        assert len(root.handlers) == 1

    def test_access_logger_follows_debug(self):
        configure_logging(LoggingSettings(level="DEBUG", format="text"))
        assert logging.getLogger("acmetxt.access").level == logging.DEBUG
        configure_logging(LoggingSettings(level="ERROR", format="text"))
        assert logging.getLogger("acmetxt.access").level == logging.INFO

    def test_werkzeug_quietened(self):
        configure_logging(LoggingSettings(level="DEBUG", format="text"))
        assert logging.getLogger("werkzeug").level == logging.WARNING
