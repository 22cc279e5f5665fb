"""Enumerated types shared across ACMETXT."""

from __future__ import annotations

from enum import StrEnum


class Outcome(StrEnum):
    """Terminal state of a single DNS query."""

    AUTHORITATIVE = "authoritative"
    NOT_FOUND = "not_found"
    NOT_IMPLEMENTED = "not_implemented"
    SERVER_ERROR = "server_error"


class LogFormat(StrEnum):
    TEXT = "text"
    JSON = "json"
