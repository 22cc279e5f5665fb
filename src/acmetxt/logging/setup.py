"""Structured logging configuration for ACMETXT.

Two kinds of work produce log records: HTTP requests served by Flask
and DNS queries served on socketserver threads.  Both carry the same
context fields (``request_id``, ``client_ip``, ``transport``,
``method``, ``path``) so a single formatter can render either.

* HTTP records pick their context up from the active Flask request.
* DNS handler threads wrap each query in :func:`dns_query_context`.

Usage::

    configure_logging(settings.logging)

    with dns_query_context(client_ip="192.0.2.1", transport="udp"):
        log.debug("answering")      # record carries client_ip/transport
"""

from __future__ import annotations

import contextlib
import json
import logging
import sys
import threading
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from acmetxt.core.types import LogFormat

if TYPE_CHECKING:
    from collections.abc import Iterator

    from acmetxt.config.settings import LoggingSettings

CONTEXT_DEFAULTS: dict[str, Any] = {
    "request_id": "-",
    "client_ip": "-",
    "transport": "-",
    "method": None,
    "path": None,
}

# Attributes every LogRecord has; the rest are caller extras.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {
    "message",
    "asctime",
    "taskName",
}

# Third-party loggers and the level they are capped at.
_QUIET_LOGGERS = {"werkzeug": logging.WARNING}

# Per-thread DNS query context, set by the socketserver handlers.
_DNS_LOCAL = threading.local()


@contextlib.contextmanager
def dns_query_context(*, client_ip: str, transport: str) -> Iterator[None]:
    """Attach *client_ip* and *transport* to records logged inside the block."""
    previous = getattr(_DNS_LOCAL, "context", None)
    _DNS_LOCAL.context = {"client_ip": client_ip, "transport": transport}
    try:
        yield
    finally:
        _DNS_LOCAL.context = previous


def _flask_context() -> dict[str, Any] | None:
    from flask import g, has_request_context, request

    if not has_request_context():
        return None
    context: dict[str, Any] = {
        "transport": "http",
        "method": request.method,
        "path": request.path,
    }
    if request.remote_addr:
        context["client_ip"] = request.remote_addr
    request_id = getattr(g, "request_id", None)
    if request_id:
        context["request_id"] = request_id
    return context


# ---------------------------------------------------------------------------
# Filter
# ---------------------------------------------------------------------------


class ContextFilter(logging.Filter):
    """Fill the context fields on every record.

    Precedence, lowest first: defaults, caller *extra* values, the DNS
    query context, the Flask request context.
    """

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        for attr, default in CONTEXT_DEFAULTS.items():
            if not hasattr(record, attr):
                setattr(record, attr, default)
        for context in (getattr(_DNS_LOCAL, "context", None), _flask_context()):
            if context:
                for attr, value in context.items():
                    setattr(record, attr, value)
        return True


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


class StructuredFormatter(logging.Formatter):
    """One JSON object per line.

    Context fields are emitted when set; any other *extra* attribute
    passed by the caller is appended after them.
    """

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=UTC)
        data: dict[str, Any] = {
            "timestamp": created.isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for attr, default in CONTEXT_DEFAULTS.items():
            value = getattr(record, attr, default)
            if value not in (None, "-"):
                data[attr] = value
        for key, value in vars(record).items():
            if key in _RECORD_ATTRS or key in CONTEXT_DEFAULTS or key.startswith("_"):
                continue
            data.setdefault(key, value)

        if record.exc_info and record.exc_info[0] is not None:
            data["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            data["stack_info"] = self.formatStack(record.stack_info)
        return json.dumps(data, default=str)


class TextFormatter(logging.Formatter):
    """Console output: ``time level [transport request_id] client logger: message``."""

    _FMT = (
        "%(asctime)s %(levelname)-8s [%(transport)s %(request_id)s] "
        "%(client_ip)s %(name)s: %(message)s"
    )

    def __init__(self) -> None:
        super().__init__(fmt=self._FMT, datefmt="%Y-%m-%d %H:%M:%S")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def configure_logging(settings: LoggingSettings) -> logging.Logger:
    """Route the ``acmetxt`` hierarchy to stderr in the configured format.

    Safe to call more than once; previous handlers are replaced.
    Returns the ``acmetxt`` logger.
    """
    level = logging.getLevelName(settings.level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        StructuredFormatter() if settings.format == LogFormat.JSON else TextFormatter(),
    )
    handler.addFilter(ContextFilter())

    root = logging.getLogger("acmetxt")
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)
    root.propagate = False

    # Per-query DNS lines are DEBUG; HTTP access lines are INFO.
    logging.getLogger("acmetxt.access").setLevel(min(level, logging.INFO))

    for name, cap in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(cap)

    return root
