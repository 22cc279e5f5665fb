"""Tests for acmetxt.api.routes via the Flask test client."""

from __future__ import annotations

from unittest.mock import MagicMock

import dns.name
import pytest

from acmetxt.app import create_app
from acmetxt.app.shutdown import ShutdownCoordinator
from acmetxt.core.errors import StoreIOError, StoreSerializationError

FQDN = dns.name.from_text("test.example.com.")
ALLOWED = {"REMOTE_ADDR": "192.0.2.5"}


@pytest.fixture()
def app(settings, store):
    return create_app(settings, store)


@pytest.fixture()
def client(app):
    return app.test_client()


# ---------------------------------------------------------------------------
# TestHealthcheck
# ---------------------------------------------------------------------------


class TestHealthcheck:
    def test_healthy(self, client):
        resp = client.get("/healthcheck")
        assert resp.status_code == 200
        assert resp.get_json() == {"ok": "healthy"}

    def test_post_not_allowed(self, client):
        resp = client.post("/healthcheck")
        assert resp.status_code == 405
        assert "error" in resp.get_json()


# ---------------------------------------------------------------------------
# TestRegister
# ---------------------------------------------------------------------------


class TestRegister:
    def test_not_implemented(self, client):
        resp = client.post("/register", json={})
        assert resp.status_code == 501
        assert resp.get_json() == {"error": "not implemented"}


# ---------------------------------------------------------------------------
# TestUpdate
# ---------------------------------------------------------------------------


class TestUpdate:
    def test_success_echoes_value(self, client, store, make_challenge):
        value = make_challenge()
        resp = client.post(
            "/update",
            json={"subdomain": "test", "txt": value},
            environ_base=ALLOWED,
        )
        assert resp.status_code == 200
        assert resp.get_json() == {"txt": value}
        assert store.get(FQDN) == [value]

    def test_ipv4_mapped_client(self, client, store, make_challenge):
        resp = client.post(
            "/update",
            json={"subdomain": "test", "txt": make_challenge()},
            environ_base={"REMOTE_ADDR": "::ffff:192.0.2.5"},
        )
        assert resp.status_code == 200

    def test_forbidden(self, client, store, make_challenge):
        resp = client.post(
            "/update",
            json={"subdomain": "test", "txt": make_challenge()},
            environ_base={"REMOTE_ADDR": "203.0.113.1"},
        )
        assert resp.status_code == 403
        assert resp.get_json() == {
            "error": 'IP 203.0.113.1 is not authorized to update "test"',
        }
        assert store.get(FQDN) == []

    def test_invalid_challenge(self, client, store):
        resp = client.post(
            "/update",
            json={"subdomain": "test", "txt": "not-a-challenge"},
            environ_base=ALLOWED,
        )
        assert resp.status_code == 400
        assert resp.get_json() == {
            "error": "TXT value is not a valid DNS-01 challenge response",
        }
        assert store.get(FQDN) == []

    def test_invalid_subdomain(self, client, make_challenge):
        resp = client.post(
            "/update",
            json={"subdomain": "a" * 64, "txt": make_challenge()},
            environ_base=ALLOWED,
        )
        assert resp.status_code == 400
        assert "invalid subdomain" in resp.get_json()["error"]

    def test_non_json_content_type(self, client):
        resp = client.post(
            "/update",
            data="subdomain=test",
            content_type="application/x-www-form-urlencoded",
            environ_base=ALLOWED,
        )
        assert resp.status_code == 415

    def test_unparsable_json(self, client):
        resp = client.post(
            "/update",
            data="{not json",
            content_type="application/json",
            environ_base=ALLOWED,
        )
        assert resp.status_code == 400
        assert resp.get_json() == {"error": "request body is not valid JSON"}

    def test_json_array_body(self, client):
        resp = client.post("/update", json=["test"], environ_base=ALLOWED)
        assert resp.status_code == 400

    @pytest.mark.parametrize(
        "body",
        [
            {"txt": "x"},
            {"subdomain": "test"},
            {"subdomain": 1, "txt": "x"},
            {"subdomain": "test", "txt": None},
        ],
    )
    def test_missing_or_mistyped_fields(self, client, body):
        resp = client.post("/update", json=body, environ_base=ALLOWED)
        assert resp.status_code == 400
        assert "subdomain" in resp.get_json()["error"]

    def test_get_not_allowed(self, client):
        assert client.get("/update").status_code == 405

    def test_persistence_failure_is_500(self, settings, make_challenge):
        failing = MagicMock()
        failing.put.side_effect = StoreIOError("cannot write state file: disk full")
        client = create_app(settings, failing).test_client()
        resp = client.post(
            "/update",
            json={"subdomain": "test", "txt": make_challenge()},
            environ_base=ALLOWED,
        )
        assert resp.status_code == 500
        assert resp.get_json() == {"error": "cannot write state file: disk full"}

    def test_serialization_failure_is_500(self, settings, make_challenge):
        failing = MagicMock()
        failing.put.side_effect = StoreSerializationError("cannot serialise")
        client = create_app(settings, failing).test_client()
        resp = client.post(
            "/update",
            json={"subdomain": "test", "txt": make_challenge()},
            environ_base=ALLOWED,
        )
        assert resp.status_code == 500

    def test_unexpected_error_is_generic_500(self, settings, make_challenge, caplog):
        failing = MagicMock()
        failing.put.side_effect = RuntimeError("secret detail")
        client = create_app(settings, failing).test_client()
        with caplog.at_level("ERROR", logger="acmetxt.app.errors"):
            resp = client.post(
                "/update",
                json={"subdomain": "test", "txt": make_challenge()},
                environ_base=ALLOWED,
            )
        assert resp.status_code == 500
        assert resp.get_json() == {"error": "internal server error"}
        assert "secret detail" in caplog.text

    def test_update_is_tracked_for_shutdown(self, settings, store, make_challenge):
        coordinator = MagicMock()
        coordinator.is_shutting_down = False
        client = create_app(settings, store, shutdown_coordinator=coordinator).test_client()
        client.post(
            "/update",
            json={"subdomain": "test", "txt": make_challenge()},
            environ_base=ALLOWED,
        )
        coordinator.track.assert_called_once_with("update")

    def test_refused_once_shutdown_began(self, settings, store, make_challenge):
        coordinator = ShutdownCoordinator(graceful_timeout=1)
        coordinator.initiate()
        client = create_app(settings, store, shutdown_coordinator=coordinator).test_client()
        resp = client.post(
            "/update",
            json={"subdomain": "test", "txt": make_challenge()},
            environ_base=ALLOWED,
        )
        assert resp.status_code == 503
        assert resp.get_json() == {"error": "server is shutting down"}
        assert store.get(FQDN) == []


# ---------------------------------------------------------------------------
# TestFactory
# ---------------------------------------------------------------------------


class TestFactory:
    def test_extensions_wired(self, app):
        assert "update_gateway" in app.extensions
        assert "shutdown_coordinator" in app.extensions

    def test_settings_stored(self, app, settings):
        assert app.config["ACMETXT_SETTINGS"] is settings

    def test_oversized_body_rejected(self, client):
        resp = client.post(
            "/update",
            data="{" + " " * 10_000 + "}",
            content_type="application/json",
            environ_base=ALLOWED,
        )
        assert resp.status_code == 413
