"""Threaded WSGI server for the update API.

Runs the Flask app on werkzeug's threaded server inside this process,
so requests share the challenge store with the DNS listeners.

Usage::

    from acmetxt.server import ApiServer

    server = ApiServer(app, settings.api)
    server.start()
    ...
    server.stop()
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from werkzeug.serving import WSGIRequestHandler, make_server

if TYPE_CHECKING:
    from flask import Flask

    from acmetxt.config.settings import ApiSettings

log = logging.getLogger(__name__)


def _request_handler(timeout: float) -> type[WSGIRequestHandler]:
    # socketserver applies ``timeout`` to each accepted connection.
    return type("_TimeoutRequestHandler", (WSGIRequestHandler,), {"timeout": timeout})


class ApiServer:
    """Serve *app* on ``settings.bind:settings.port`` from a background thread.

    Port ``0`` binds an ephemeral port (see :attr:`address`).
    """

    def __init__(self, app: Flask, settings: ApiSettings) -> None:
        self._settings = settings
        self._server = make_server(
            settings.bind,
            settings.port,
            app,
            threaded=True,
            request_handler=_request_handler(settings.timeout_seconds),
        )
        self._thread: threading.Thread | None = None

    @property
    def address(self) -> tuple[str, int]:
        return self._server.server_address[:2]

    def start(self) -> None:
        self._thread = threading.Thread(
            target=self._server.serve_forever,
            name="http-api",
            daemon=True,
        )
        self._thread.start()
        log.info("HTTP API listening on %s:%d", *self.address)

    def stop(self) -> None:
        """Stop accepting requests and close the listening socket."""
        if self._thread is not None:
            self._server.shutdown()
            self._thread.join(timeout=5)
            self._thread = None
        self._server.server_close()
        log.info("HTTP API stopped")
