"""HTTP endpoints of the update API.

``GET  /healthcheck`` — liveness probe.
``POST /register``    — account registration; not provided (501).
``POST /update``      — publish a DNS-01 TXT value for a subdomain.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from flask import Blueprint, current_app, jsonify, request

from acmetxt.app.errors import ApiError
from acmetxt.core.errors import UnimplementedError

if TYPE_CHECKING:
    from flask.typing import ResponseReturnValue

    from acmetxt.app.shutdown import ShutdownCoordinator
    from acmetxt.services.update import UpdateGateway

api_bp = Blueprint("api", __name__)


def _gateway() -> UpdateGateway:
    return current_app.extensions["update_gateway"]


def _coordinator() -> ShutdownCoordinator:
    return current_app.extensions["shutdown_coordinator"]


@api_bp.route("/healthcheck", methods=["GET"])
def healthcheck() -> ResponseReturnValue:
    """GET /healthcheck — 200 while the process is up."""
    return jsonify({"ok": "healthy"}), 200


@api_bp.route("/register", methods=["POST"])
def register() -> ResponseReturnValue:
    """POST /register — always 501."""
    raise UnimplementedError


@api_bp.route("/update", methods=["POST"])
def update() -> ResponseReturnValue:
    """POST /update — ``{"subdomain": ..., "txt": ...}`` → ``{"txt": ...}``."""
    if not request.is_json:
        raise ApiError("Content-Type must be application/json", 415)

    data = request.get_json(silent=True)
    if data is None:
        raise ApiError("request body is not valid JSON", 400)
    if not isinstance(data, dict):
        raise ApiError("request body must be a JSON object", 400)

    subdomain = data.get("subdomain")
    txt = data.get("txt")
    if not isinstance(subdomain, str) or not isinstance(txt, str):
        raise ApiError("both 'subdomain' and 'txt' must be strings", 400)

    source_ip = request.remote_addr
    if not source_ip:
        raise ApiError("cannot determine client address", 400)

    coordinator = _coordinator()
    if coordinator.is_shutting_down:
        raise ApiError("server is shutting down", 503)
    with coordinator.track("update"):
        accepted = _gateway().update(source_ip, subdomain, txt)
    return jsonify({"txt": accepted}), 200
