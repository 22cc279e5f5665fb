"""ACMETXT command-line entry point.

Usage::

    acmetxt -c /etc/acmetxt/config.yaml
    acmetxt -c config.yaml --debug
    acmetxt -c config.yaml --validate-only
    python -m acmetxt -c config.yaml
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

log = logging.getLogger(__name__)


def _get_version() -> str:
    from acmetxt import __version__

    return __version__


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="acmetxt",
        description="ACMETXT: authoritative DNS responder for ACME DNS-01 challenges",
    )
    parser.add_argument(
        "-c",
        "--config",
        required=True,
        metavar="PATH",
        help="Path to the configuration file (YAML or JSON).",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="Enable debug output (full tracebacks, verbose logging).",
    )
    parser.add_argument(
        "--validate-only",
        action="store_true",
        default=False,
        help="Validate the configuration file and exit.",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )
    return parser


def _print_error(message: str) -> None:
    """Print a user-facing error to stderr."""
    sys.stderr.write(f"acmetxt: error: {message}\n")


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.  Parses arguments, loads config, starts servers."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    # -- resolve config path ---
    config_path = Path(args.config)
    if not config_path.is_file():
        _print_error(f"configuration file not found: {config_path}")
        sys.exit(1)

    # -- bootstrap logging early (basic stderr until config is loaded) ---
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    # -- load & validate config ---
    try:
        from acmetxt.config import AcmetxtConfig, ConfigValidationError

        config = AcmetxtConfig(config_file=str(config_path))
    except ConfigValidationError as exc:
        _print_error(str(exc))
        sys.exit(1)
    except Exception as exc:
        if args.debug:
            raise
        _print_error(f"failed to load configuration: {exc}")
        sys.exit(1)

    # -- replace bootstrap logging with structured logging ---
    from acmetxt.logging import configure_logging

    configure_logging(config.settings.logging)

    if args.validate_only:
        _print_settings_summary(config)
        sys.exit(0)

    _print_settings_summary(config)
    _run_serve(config, args)


def _run_serve(config, args) -> None:
    """Build the store, start the DNS and HTTP listeners, wait for a signal."""
    from acmetxt.acl import AccessControl
    from acmetxt.app import create_app
    from acmetxt.app.shutdown import ShutdownCoordinator
    from acmetxt.core.errors import StorePersistenceError
    from acmetxt.dns import AnswerEngine, DnsServer
    from acmetxt.server import ApiServer
    from acmetxt.store import create_store

    settings = config.settings

    try:
        store = create_store(settings.store)
    except StorePersistenceError as exc:
        if args.debug:
            raise
        _print_error(f"cannot open TXT store: {exc}")
        sys.exit(1)

    acl = AccessControl(settings.zone.domain, settings.acl)
    coordinator = ShutdownCoordinator(
        graceful_timeout=settings.api.graceful_timeout_seconds,
    )
    engine = AnswerEngine(settings.zone, settings.records, acl, store)
    app = create_app(settings, store, acl=acl, shutdown_coordinator=coordinator)

    # werkzeug reports its own bind failures and exits.
    api_server = ApiServer(app, settings.api)
    try:
        dns_server = DnsServer(engine, settings.dns)
    except OSError as exc:
        api_server.stop()
        _print_error(f"cannot bind DNS listeners: {exc}")
        sys.exit(1)

    coordinator.register_signals()
    dns_server.start()
    api_server.start()
    log.info("ACMETXT serving zone %s", settings.zone.domain)

    try:
        coordinator.wait()
    finally:
        api_server.stop()
        if coordinator.in_flight_count:
            log.info("Waiting for %d in-flight update(s)", coordinator.in_flight_count)
        coordinator.initiate()
        dns_server.stop()
    log.info("ACMETXT stopped")


def _print_settings_summary(config) -> None:
    """Log a short summary of the loaded configuration."""
    s = config.settings
    log.info("Zone: %s (NS %s, admin %s)", s.zone.domain, s.zone.ns_domain, s.zone.ns_admin)
    log.info("DNS: udp %s:%d, tcp %s:%d", s.dns.udp_bind, s.dns.udp_port, s.dns.tcp_bind, s.dns.tcp_port)
    log.info("API: %s:%d", s.api.bind, s.api.port)
    log.info("Store: %s", s.store.state_path or "in-memory")
    log.info("ACL: %d network(s)", len(s.acl))
