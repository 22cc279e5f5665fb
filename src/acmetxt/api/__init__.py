"""Update API layer: Flask blueprint registration."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from acmetxt.api.routes import api_bp

if TYPE_CHECKING:
    from flask import Flask

log = logging.getLogger(__name__)


def register_blueprints(app: Flask) -> None:
    """Register the update API blueprint on the Flask application."""
    app.register_blueprint(api_bp)
    log.debug(
        "Registered API blueprint (%d URL rules)",
        len(list(app.url_map.iter_rules())),
    )
