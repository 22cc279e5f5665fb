"""Typed, frozen dataclasses for every configuration section.

This module is the **single source of truth** for default values.
Builders receive data that :class:`~acmetxt.config.AcmetxtConfig` has
already validated, so parsing failures here are programming errors.

Access pattern::

    config = AcmetxtConfig(config_file="config.yaml")
    zone = config.settings.zone
    print(zone.domain, zone.ns_domain)
"""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from acmetxt.core.names import absolute_name, relative_name

if TYPE_CHECKING:
    from collections.abc import Mapping

    import dns.name

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address
IPNetwork = ipaddress.IPv4Network | ipaddress.IPv6Network

# ---------------------------------------------------------------------------
# Zone authority
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ZoneSettings:
    """Base zone, primary nameserver and administrator contact (SOA)."""

    domain: dns.name.Name
    ns_domain: dns.name.Name
    ns_admin: str


def _build_zone(data: dict | None) -> ZoneSettings:
    d = data or {}
    return ZoneSettings(
        domain=absolute_name(d["domain"]),
        ns_domain=absolute_name(d["ns_domain"]),
        ns_admin=d["ns_admin"],
    )


# ---------------------------------------------------------------------------
# Challenge store
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StoreSettings:
    """Optional JSON state file; ``None`` selects the in-memory store."""

    state_path: str | None


def _build_store(data: dict | None) -> StoreSettings:
    d = data or {}
    return StoreSettings(state_path=d.get("state_path") or None)


# ---------------------------------------------------------------------------
# HTTP update API
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ApiSettings:
    """HTTP update API listener."""

    bind: str
    port: int
    timeout_seconds: int
    graceful_timeout_seconds: int


def _build_api(data: dict | None) -> ApiSettings:
    d = data or {}
    return ApiSettings(
        bind=d.get("bind", "127.0.0.1"),
        port=d.get("port", 3000),
        timeout_seconds=d.get("timeout_seconds", 30),
        graceful_timeout_seconds=d.get("graceful_timeout_seconds", 10),
    )


# ---------------------------------------------------------------------------
# DNS listeners
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DnsSettings:
    """UDP and TCP listeners for the authoritative responder."""

    udp_bind: str
    udp_port: int
    tcp_bind: str
    tcp_port: int
    tcp_timeout_seconds: int


def _build_dns(data: dict | None) -> DnsSettings:
    d = data or {}
    return DnsSettings(
        udp_bind=d.get("udp_bind", "0.0.0.0"),  # noqa: S104
        udp_port=d.get("udp_port", 53),
        tcp_bind=d.get("tcp_bind", "0.0.0.0"),  # noqa: S104
        tcp_port=d.get("tcp_port", 53),
        tcp_timeout_seconds=d.get("tcp_timeout_seconds", 10),
    )


# ---------------------------------------------------------------------------
# Static records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RecordSettings:
    """Static A/AAAA and NS answers, keyed by absolute name."""

    addrs: Mapping[dns.name.Name, tuple[IPAddress, ...]] = field(
        default_factory=lambda: MappingProxyType({}),
    )
    ns_records: Mapping[dns.name.Name, tuple[dns.name.Name, ...]] = field(
        default_factory=lambda: MappingProxyType({}),
    )


def _build_records(addrs: dict | None, ns_records: dict | None) -> RecordSettings:
    return RecordSettings(
        addrs=MappingProxyType(
            {
                absolute_name(name): tuple(ipaddress.ip_address(ip) for ip in ips)
                for name, ips in (addrs or {}).items()
            },
        ),
        ns_records=MappingProxyType(
            {
                absolute_name(name): tuple(absolute_name(ns) for ns in targets)
                for name, targets in (ns_records or {}).items()
            },
        ),
    )


# ---------------------------------------------------------------------------
# Access control
# ---------------------------------------------------------------------------


def _build_acl(data: dict | None) -> Mapping[IPNetwork, frozenset[dns.name.Name]]:
    acl: dict[IPNetwork, frozenset[dns.name.Name]] = {}
    for network, subdomains in (data or {}).items():
        net = ipaddress.ip_network(network, strict=False)
        names = frozenset(relative_name(s) for s in subdomains)
        # Two spellings of one network (e.g. "10.0.0.1/8" and "10.0.0.0/8")
        # collapse to a single entry.
        acl[net] = acl.get(net, frozenset()) | names
    return MappingProxyType(acl)


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LoggingSettings:
    """Log level and output format (``text`` or ``json``)."""

    level: str
    format: str


def _build_logging(data: dict | None) -> LoggingSettings:
    d = data or {}
    return LoggingSettings(
        level=d.get("level", "INFO"),
        format=d.get("format", "text"),
    )


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AcmetxtSettings:
    """Top-level settings tree."""

    zone: ZoneSettings
    store: StoreSettings
    api: ApiSettings
    dns: DnsSettings
    acl: Mapping[IPNetwork, frozenset[dns.name.Name]]
    records: RecordSettings
    logging: LoggingSettings


def build_settings(data: dict[str, Any]) -> AcmetxtSettings:
    """Materialise the typed settings tree from validated config data."""
    return AcmetxtSettings(
        zone=_build_zone(data.get("zone")),
        store=_build_store(data.get("store")),
        api=_build_api(data.get("api")),
        dns=_build_dns(data.get("dns")),
        acl=_build_acl(data.get("acl")),
        records=_build_records(data.get("addrs"), data.get("ns_records")),
        logging=_build_logging(data.get("logging")),
    )
