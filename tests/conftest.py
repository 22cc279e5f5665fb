"""Root conftest for the ACMETXT test suite."""

from __future__ import annotations

import base64
import hashlib
import logging
import sys
from pathlib import Path

import pytest
import yaml

# ---------------------------------------------------------------------------
# Make ``src/`` importable without installing the package
# ---------------------------------------------------------------------------
_SRC = str(Path(__file__).resolve().parent.parent / "src")
if _SRC not in sys.path:
    sys.path.insert(0, _SRC)

from acmetxt.acl import AccessControl  # noqa: E402
from acmetxt.config.settings import build_settings  # noqa: E402
from acmetxt.store import InMemoryChallengeStore, SharedChallengeStore  # noqa: E402


def challenge_value(seed: str = "key-authorization") -> str:
    """Return a well-formed DNS-01 value (unpadded base64url SHA-256)."""
    digest = hashlib.sha256(seed.encode()).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode()


@pytest.fixture()
def make_challenge():
    """Factory fixture for valid challenge values."""
    return challenge_value


# ---------------------------------------------------------------------------
# Config data shared by multiple test modules
# ---------------------------------------------------------------------------


@pytest.fixture()
def minimal_config_data() -> dict:
    """Return a dict containing the minimum required config fields."""
    return {
        "zone": {
            "domain": "example.com",
            "ns_domain": "ns.example.com",
            "ns_admin": "hostmaster@example.com",
        },
    }


@pytest.fixture()
def config_data(minimal_config_data: dict) -> dict:
    """A complete configuration: ACL, static records, ephemeral ports."""
    data = dict(minimal_config_data)
    data.update(
        {
            "api": {"bind": "127.0.0.1", "port": 0},
            "dns": {
                "udp_bind": "127.0.0.1",
                "udp_port": 0,
                "tcp_bind": "127.0.0.1",
                "tcp_port": 0,
                "tcp_timeout_seconds": 2,
            },
            "acl": {
                "192.0.2.0/24": ["test"],
                "198.51.100.7/32": ["_acme-challenge", "other"],
            },
            "addrs": {
                "example.com": ["192.0.2.10", "2001:db8::10"],
                "ns.example.com": ["192.0.2.53"],
            },
            "ns_records": {"example.com": ["ns.example.com"]},
        },
    )
    return data


@pytest.fixture()
def tmp_config_file(tmp_path: Path, config_data: dict) -> Path:
    """Write *config_data* to a temp YAML file and return its path."""
    cfg = tmp_path / "config.yaml"
    cfg.write_text(
        yaml.safe_dump(config_data, default_flow_style=False, sort_keys=False),
        encoding="utf-8",
    )
    return cfg


@pytest.fixture()
def settings(config_data: dict):
    return build_settings(config_data)


@pytest.fixture()
def store() -> SharedChallengeStore:
    return SharedChallengeStore(InMemoryChallengeStore())


@pytest.fixture()
def acl(settings) -> AccessControl:
    return AccessControl(settings.zone.domain, settings.acl)


# ---------------------------------------------------------------------------
# Logger cleanup — configure_logging() detaches the acmetxt hierarchy
# from the root logger, which would hide records from caplog.
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def reset_acmetxt_logger():
    yield
    for name in ("acmetxt", "acmetxt.access"):
        logger = logging.getLogger(name)
        logger.handlers.clear()
        logger.setLevel(logging.NOTSET)
        logger.propagate = True
