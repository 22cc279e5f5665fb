"""JSON error responses for the update API.

Provides :class:`ApiError`, an exception that renders itself as a
``{"error": message}`` response, and the Flask error-handler
registration that maps :mod:`acmetxt.core.errors` kinds onto HTTP
status codes.

Usage::

    raise ApiError("request body must be a JSON object", 400)
"""

from __future__ import annotations

import logging

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from acmetxt.core.errors import (
    AcmetxtError,
    ForbiddenError,
    InvalidChallengeError,
    NotFullyQualifiedError,
    ProtocolError,
    StorePersistenceError,
    UnimplementedError,
)

log = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "internal server error"

# Checked in order; the first matching class wins.
_STATUS_BY_ERROR: tuple[tuple[type[AcmetxtError], int], ...] = (
    (ForbiddenError, 403),
    (InvalidChallengeError, 400),
    (ProtocolError, 400),
    (NotFullyQualifiedError, 400),
    (UnimplementedError, 501),
    (StorePersistenceError, 500),
)


# ---------------------------------------------------------------------------
# Error exception
# ---------------------------------------------------------------------------


class ApiError(Exception):
    """An HTTP error that doubles as an exception.

    Parameters
    ----------
    message:
        Human-readable explanation, returned as ``error``.
    status:
        HTTP status code (default 400).

    """

    def __init__(self, message: str, status: int = 400) -> None:
        self.message = message
        self.status = status
        super().__init__(message)

    def to_response(self):
        """Build a Flask :class:`~flask.Response`."""
        resp = jsonify({"error": self.message})
        resp.status_code = self.status
        resp.headers["Cache-Control"] = "no-store"
        return resp


def status_for(exc: AcmetxtError) -> int:
    """HTTP status for a domain error; 500 when unmapped."""
    for kind, status in _STATUS_BY_ERROR:
        if isinstance(exc, kind):
            return status
    return 500


# ---------------------------------------------------------------------------
# Flask error handler registration
# ---------------------------------------------------------------------------


def register_error_handlers(app: Flask) -> None:
    """Attach handlers that produce ``{"error": ...}`` bodies for all errors."""

    @app.errorhandler(ApiError)
    def _handle_api_error(exc: ApiError):
        return exc.to_response()

    @app.errorhandler(AcmetxtError)
    def _handle_domain_error(exc: AcmetxtError):
        status = status_for(exc)
        if status == 500 and not isinstance(exc, StorePersistenceError):
            log.error("Unmapped error during request: %s", exc.detail, exc_info=exc)
            return ApiError(INTERNAL_ERROR_MESSAGE, 500).to_response()
        if status >= 500:
            log.error("Request failed (%d): %s", status, exc.detail)
        else:
            log.info("Request rejected (%d): %s", status, exc.detail)
        return ApiError(exc.detail, status).to_response()

    @app.errorhandler(HTTPException)
    def _handle_http_exception(exc: HTTPException):
        return ApiError(
            exc.description or exc.name or "An error occurred",
            exc.code or 500,
        ).to_response()

    @app.errorhandler(Exception)
    def _handle_unhandled(exc: Exception):
        log.exception("Unhandled exception during request")
        return ApiError(INTERNAL_ERROR_MESSAGE, 500).to_response()
