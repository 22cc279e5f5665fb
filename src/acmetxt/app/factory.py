"""Flask application factory for ACMETXT.

Usage::

    from acmetxt.app import create_app
    from acmetxt.config import AcmetxtConfig
    from acmetxt.store import create_store

    settings = AcmetxtConfig(config_file="config.yaml").settings
    store = create_store(settings.store)
    app = create_app(settings, store)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from flask import Flask

from acmetxt.acl import AccessControl
from acmetxt.app.errors import register_error_handlers
from acmetxt.app.middleware import register_request_hooks
from acmetxt.app.shutdown import ShutdownCoordinator
from acmetxt.services.update import UpdateGateway

if TYPE_CHECKING:
    from acmetxt.config.settings import AcmetxtSettings
    from acmetxt.store.shared import SharedChallengeStore

log = logging.getLogger(__name__)

MAX_REQUEST_BODY_BYTES = 4096


def create_app(
    settings: AcmetxtSettings,
    store: SharedChallengeStore,
    *,
    acl: AccessControl | None = None,
    shutdown_coordinator: ShutdownCoordinator | None = None,
) -> Flask:
    """Create and configure the ACMETXT Flask application.

    Parameters
    ----------
    settings:
        Validated :class:`AcmetxtSettings`.
    store:
        The shared challenge store; the same instance must be handed to
        the DNS answer engine.
    acl:
        Access control built from ``settings``; created here when
        ``None``.
    shutdown_coordinator:
        Tracks in-flight updates.  A private one is created when
        ``None``.

    Returns
    -------
    Flask
        Fully configured WSGI application.

    """
    if acl is None:
        acl = AccessControl(settings.zone.domain, settings.acl)
    if shutdown_coordinator is None:
        shutdown_coordinator = ShutdownCoordinator(
            graceful_timeout=settings.api.graceful_timeout_seconds,
        )

    app = Flask("acmetxt")
    app.config["ACMETXT_SETTINGS"] = settings
    app.config["MAX_CONTENT_LENGTH"] = MAX_REQUEST_BODY_BYTES

    app.extensions["shutdown_coordinator"] = shutdown_coordinator
    app.extensions["update_gateway"] = UpdateGateway(acl, store)

    register_error_handlers(app)
    register_request_hooks(app)
    from acmetxt.api import register_blueprints  # noqa: PLC0415

    register_blueprints(app)

    log.info("Flask application created")
    return app
