"""ACMETXT configuration loader.

Lifecycle::

    # The CLI loads the file once at startup ...
    config = AcmetxtConfig(config_file="/etc/acmetxt/config.yaml")

    # ... and hands the typed tree to every component explicitly.
    config.settings.zone.domain

    # Dynamic access to the raw data
    config.get("dns.udp_port", default=53)
"""

from __future__ import annotations

import ipaddress
import json
import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

from acmetxt.config.settings import AcmetxtSettings, build_settings
from acmetxt.core.errors import ProtocolError
from acmetxt.core.names import (
    absolute_name,
    admin_contact_name,
    qualify,
    relative_name,
)
from acmetxt.core.types import LogFormat

_ENV_RE = re.compile(
    r"^\$\{([^}:]+?)(?::-(.*))?\}$",
    re.DOTALL,
)

_IPV4_PRIVATE = tuple(
    ipaddress.ip_network(n) for n in ("10.0.0.0/8", "172.16.0.0/12", "192.168.0.0/16")
)
_IPV6_UNIQUE_LOCAL = ipaddress.ip_network("fc00::/7")

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})

_MAX_PORT = 65535

_MISSING = object()

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Validation error collector
# ---------------------------------------------------------------------------


class ConfigValidationError(Exception):
    """Raised when validation finds one or more problems."""

    def __init__(self, errors: list[str]) -> None:
        """Store *errors* and build a human-readable message."""
        self.errors = errors
        body = "\n".join(f"  - {e}" for e in errors)
        super().__init__(f"Configuration validation failed:\n{body}")


# ---------------------------------------------------------------------------
# Environment variable resolution
# ---------------------------------------------------------------------------


def _resolve_value(value: str, path: str) -> str:
    """Replace ``${VAR}`` or ``${VAR:-default}`` with env var value."""
    match = _ENV_RE.match(value)
    if match is None:
        return value
    var_name = match.group(1)
    fallback = match.group(2)
    resolved = os.environ.get(var_name)
    if resolved is not None:
        return resolved
    if fallback is not None:
        return fallback
    raise ConfigValidationError(
        [
            f"Environment variable '${{{var_name}}}' referenced "
            f"at '{path}' is not set and has no default",
        ],
    )


def _resolve_env_vars(
    data: Any,  # noqa: ANN401
    path: str = "",
) -> None:
    """Walk *data* in-place and resolve ``${VAR}``/``${VAR:-default}`` strings."""
    if isinstance(data, dict):
        for key in data:
            child_path = f"{path}.{key}" if path else key
            if isinstance(data[key], str):
                data[key] = _resolve_value(data[key], child_path)
            elif isinstance(data[key], (dict, list)):
                _resolve_env_vars(data[key], child_path)
    elif isinstance(data, list):
        for idx, item in enumerate(data):
            child_path = f"{path}[{idx}]"
            if isinstance(item, str):
                data[idx] = _resolve_value(item, child_path)
            elif isinstance(item, (dict, list)):
                _resolve_env_vars(item, child_path)


def _read_file(path: Path) -> dict:
    with path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f) if path.suffix in (".yaml", ".yml") else json.load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigValidationError(
            [f"configuration root must be a mapping (got {type(data).__name__})"],
        )
    return data


def _api_bind_is_secure(addr: ipaddress.IPv4Address | ipaddress.IPv6Address) -> bool:
    if addr.is_loopback:
        return True
    if isinstance(addr, ipaddress.IPv4Address):
        return any(addr in net for net in _IPV4_PRIVATE)
    return addr in _IPV6_UNIQUE_LOCAL


# ---------------------------------------------------------------------------
# Config class
# ---------------------------------------------------------------------------


class AcmetxtConfig:
    """Central configuration for the ACMETXT server.

    Reads a YAML or JSON file, resolves environment references and
    validates every section before the typed settings tree is built.
    All problems are reported together in one
    :class:`ConfigValidationError`.
    """

    def __init__(self, *, config_file: str | Path) -> None:
        self._source = Path(config_file)
        self._data = _read_file(self._source)
        _resolve_env_vars(self._data)
        self.additional_checks()
        self._settings: AcmetxtSettings = build_settings(self._data)

    # -- typed access -------------------------------------------------------

    @property
    def settings(self) -> AcmetxtSettings:
        """Fully-typed, frozen settings tree."""
        return self._settings

    @property
    def data(self) -> dict:
        """Raw configuration data after env-var resolution."""
        return self._data

    def get(self, path: str, default: Any = None) -> Any:  # noqa: ANN401
        """Look up a dot-separated *path* in the raw data."""
        node: Any = self._data
        for part in path.split("."):
            if not isinstance(node, dict):
                return default
            node = node.get(part, _MISSING)
            if node is _MISSING:
                return default
        return node

    # -- validation ---------------------------------------------------------

    def additional_checks(self) -> None:  # noqa: C901, PLR0912
        """Semantic & cross-field validation."""
        errors: list[str] = []
        warnings: list[str] = []

        sections: dict[str, dict] = {}
        for key in ("zone", "api", "dns", "logging", "store"):
            section = self._data.get(key) or {}
            if not isinstance(section, dict):
                errors.append(f"{key} must be a mapping (got {type(section).__name__})")
                section = {}
            sections[key] = section
        zone = sections["zone"]
        api = sections["api"]
        dns_cfg = sections["dns"]
        logging_cfg = sections["logging"]
        zone_domain = None

        # -- zone --
        for key in ("domain", "ns_domain", "ns_admin"):
            if not isinstance(zone.get(key), str) or not zone.get(key):
                errors.append(f"zone.{key} is required")
        for key in ("domain", "ns_domain"):
            if isinstance(zone.get(key), str) and zone.get(key):
                try:
                    name = absolute_name(zone[key])
                except ProtocolError as exc:
                    errors.append(f"zone.{key}: {exc}")
                    continue
                if key == "domain":
                    zone_domain = name
        if isinstance(zone.get("ns_admin"), str) and zone.get("ns_admin"):
            try:
                admin_contact_name(zone["ns_admin"])
            except ProtocolError as exc:
                warnings.append(
                    f"zone.ns_admin cannot be used as an SOA contact ({exc}) — "
                    "SOA queries will fail with SERVFAIL",
                )

        # -- api --
        bind = api.get("bind", "127.0.0.1")
        try:
            bind_addr = ipaddress.ip_address(bind)
        except ValueError:
            errors.append(f"api.bind must be an IP address (got '{bind}')")
        else:
            if not _api_bind_is_secure(bind_addr):
                errors.append(
                    f"api.bind ({bind}) is an insecure API bind address — "
                    "it must be a loopback or private IP",
                )
        for section, key, default in (
            ("api", "port", 3000),
            ("dns", "udp_port", 53),
            ("dns", "tcp_port", 53),
        ):
            value = (api if section == "api" else dns_cfg).get(key, default)
            if not isinstance(value, int) or not 0 <= value <= _MAX_PORT:
                errors.append(f"{section}.{key} must be a port number (got {value!r})")
        for section, key in (
            ("api", "timeout_seconds"),
            ("api", "graceful_timeout_seconds"),
            ("dns", "tcp_timeout_seconds"),
        ):
            value = (api if section == "api" else dns_cfg).get(key, 1)
            if not isinstance(value, int) or value <= 0:
                errors.append(f"{section}.{key} must be a positive integer (got {value!r})")
        for key in ("udp_bind", "tcp_bind"):
            value = dns_cfg.get(key, "0.0.0.0")  # noqa: S104
            try:
                ipaddress.ip_address(value)
            except ValueError:
                errors.append(f"dns.{key} must be an IP address (got '{value}')")

        # -- acl --
        acl = self._data.get("acl") or {}
        if not isinstance(acl, dict):
            errors.append("acl must be a mapping of network to subdomain list")
            acl = {}
        if not acl:
            warnings.append("acl is empty — no client will be able to update TXT records")
        for network, subdomains in acl.items():
            try:
                ipaddress.ip_network(network, strict=False)
            except ValueError:
                errors.append(f"acl key '{network}' is not a valid network")
            if not isinstance(subdomains, list):
                errors.append(f"acl['{network}'] must be a list of subdomains")
                continue
            for sub in subdomains:
                if not isinstance(sub, str):
                    errors.append(f"acl['{network}'] contains non-string {sub!r}")
                    continue
                try:
                    name = relative_name(sub)
                except ProtocolError as exc:
                    errors.append(f"acl['{network}']: {exc}")
                    continue
                if name.is_absolute():
                    errors.append(
                        f"acl['{network}'] subdomain '{sub}' must be relative to zone.domain",
                    )
                    continue
                if zone_domain is not None:
                    try:
                        qualify(name, zone_domain)
                    except ProtocolError as exc:
                        errors.append(f"acl['{network}']: {exc}")

        # -- static records --
        addrs = self._data.get("addrs") or {}
        if not isinstance(addrs, dict):
            errors.append("addrs must be a mapping of name to address list")
            addrs = {}
        for name, ips in addrs.items():
            errors.extend(_check_name(f"addrs key '{name}'", name))
            if not isinstance(ips, list):
                errors.append(f"addrs['{name}'] must be a list of IP addresses")
                continue
            for ip in ips:
                try:
                    ipaddress.ip_address(ip)
                except ValueError:
                    errors.append(f"addrs['{name}'] contains invalid IP address {ip!r}")

        ns_records = self._data.get("ns_records") or {}
        if not isinstance(ns_records, dict):
            errors.append("ns_records must be a mapping of name to nameserver list")
            ns_records = {}
        for name, targets in ns_records.items():
            errors.extend(_check_name(f"ns_records key '{name}'", name))
            if not isinstance(targets, list):
                errors.append(f"ns_records['{name}'] must be a list of names")
                continue
            for target in targets:
                errors.extend(_check_name(f"ns_records['{name}'] entry", target))

        # -- logging --
        level = str(logging_cfg.get("level", "INFO")).upper()
        if level not in _LOG_LEVELS:
            errors.append(f"logging.level must be one of {sorted(_LOG_LEVELS)} (got '{level}')")
        fmt = logging_cfg.get("format", LogFormat.TEXT)
        if fmt not in {f.value for f in LogFormat}:
            errors.append(f"logging.format must be 'text' or 'json' (got '{fmt}')")

        # -- store --
        store = sections["store"]
        state_path = store.get("state_path")
        if state_path is not None and not isinstance(state_path, str):
            errors.append("store.state_path must be a string path")
        elif not state_path:
            warnings.append(
                "store.state_path is not set — TXT records will be lost on restart",
            )

        for w in warnings:
            log.warning("Config warning: %s", w)

        if errors:
            raise ConfigValidationError(errors)

    def __repr__(self) -> str:
        """Return a developer-friendly representation."""
        return f"<AcmetxtConfig config_file={self._source}>"


def _check_name(label: str, value: Any) -> list[str]:  # noqa: ANN401
    if not isinstance(value, str):
        return [f"{label} must be a string (got {value!r})"]
    try:
        absolute_name(value)
    except ProtocolError as exc:
        return [f"{label}: {exc}"]
    return []
